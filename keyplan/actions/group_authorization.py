"""
Keyplan Actions - Authorizing groups.

A group can delegate auditing, delegation, membership or provisioning
approval to another group. Connecting and disconnecting are requested by
principal 2 as manager of the authorizing group and approved by principal 1
as manager of the subject group.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from keyplan.action.base import Action
from keyplan.actions.group_membership import AccountInGroup
from keyplan.actions.requests import (
    current_authorizing_group,
    display_name,
    setup_authorizing_group_request,
    submit_and_approve,
)
from keyplan.core.exceptions import ActionExecutionError, DirectoryError
from keyplan.core.types import AuthorizingGroupType, GroupRights

if TYPE_CHECKING:
    from keyplan.action.environment import Environment

Entity = dict[str, Any]


@dataclass(frozen=True)
class AuthorizationIntent:
    subject_group_uuid: str
    authorization_type: AuthorizingGroupType
    authorizing_group_uuid: str | None = None


@dataclass
class AuthorizationSnapshot:
    subject_group: Entity
    authorizing_group: Entity | None = None

    def current(self, authorization_type: AuthorizingGroupType) -> Entity | None:
        return current_authorizing_group(self.subject_group, authorization_type)


class _AuthorizationAction(Action[AuthorizationIntent, AuthorizationSnapshot]):
    """Shared resolution and requests of authorization actions."""

    async def resolve(self, env: Environment) -> AuthorizationSnapshot:
        client = env.account1.client
        subject = await client.find_group(self.intent.subject_group_uuid)
        authorizing = None
        if self.intent.authorizing_group_uuid is not None:
            authorizing = await client.find_group(self.intent.authorizing_group_uuid)
        return AuthorizationSnapshot(subject_group=subject, authorizing_group=authorizing)

    def allows_global_cancellation(self) -> bool:
        return False

    @property
    def _current(self) -> Entity | None:
        return self.snapshot.current(self.intent.authorization_type)

    def _revert_to_current(self) -> Action:
        current = self._current
        if current is None:
            return DisconnectGroupAuthorization(self.intent.subject_group_uuid, self.intent.authorization_type)
        return ConnectGroupAuthorization(
            self.intent.subject_group_uuid, current["uuid"], self.intent.authorization_type
        )

    def _managers_for(self, env: Environment, authorizing_uuids: list[str]) -> list[Action]:
        ret: list[Action] = [
            AccountInGroup(env.account2.uuid, uuid, GroupRights.MANAGER) for uuid in authorizing_uuids
        ]
        ret.append(AccountInGroup(env.account1.uuid, self.intent.subject_group_uuid, GroupRights.MANAGER))
        return ret

    async def _request(self, env: Environment, authorizing: Entity, connect: bool) -> None:
        request = setup_authorizing_group_request(
            self.snapshot.subject_group,
            authorizing,
            self.intent.authorization_type,
            connect,
            f"automation {self.type_id()}",
        )
        try:
            await submit_and_approve(request, env.account2, env.account1)
        except DirectoryError as e:
            verb = "connect" if connect else "disconnect"
            raise ActionExecutionError(
                self,
                f"cannot request to {verb} {self.intent.authorization_type.description} authorization: {e}",
                e,
            ) from e

    def _subject_name(self) -> str:
        subject = self._snapshot.subject_group if self._snapshot else None
        return display_name(subject, self.intent.subject_group_uuid)


class ConnectGroupAuthorization(_AuthorizationAction):
    """Ensure a group is authorized by a specific authorizing group."""

    def __init__(
        self,
        subject_group_uuid: str,
        authorizing_group_uuid: str,
        authorization_type: AuthorizingGroupType,
    ) -> None:
        super().__init__(AuthorizationIntent(subject_group_uuid, authorization_type, authorizing_group_uuid))

    def type_id(self) -> str:
        return "connectGroupAuthorization"

    def parameters(self) -> list[str | None]:
        return [
            self.intent.subject_group_uuid,
            self.intent.authorizing_group_uuid,
            self.intent.authorization_type.value,
        ]

    def is_satisfied(self) -> bool:
        current = self._current
        return current is not None and current.get("uuid") == self.intent.authorizing_group_uuid

    def setup(self, env: Environment) -> list[Action]:
        authorizing = []
        current = self._current
        if current is not None:
            authorizing.append(current["uuid"])
        authorizing.append(self.intent.authorizing_group_uuid)
        return self._managers_for(env, authorizing)

    def revert(self) -> Action | None:
        return self._revert_to_current()

    async def execute(self, env: Environment) -> None:
        current = self._current
        if current is not None:
            await self._request(env, current, connect=False)
        authorizing = self.snapshot.authorizing_group
        if authorizing is None:
            raise ActionExecutionError(self, "authorizing group is not known")
        await self._request(env, authorizing, connect=True)

    def progress(self) -> str:
        return f"{self.intent.authorization_type.description.capitalize()} auth. on {self._subject_name()}"

    def __str__(self) -> str:
        authorizing = self._snapshot.authorizing_group if self._snapshot else None
        return (
            f"Setup {self.intent.authorization_type.description} authorization on "
            f"'{self._subject_name()}' by '{display_name(authorizing, self.intent.authorizing_group_uuid)}'"
        )


class DisconnectGroupAuthorization(_AuthorizationAction):
    """Ensure a group has no authorizing group of one type."""

    def __init__(self, subject_group_uuid: str, authorization_type: AuthorizingGroupType) -> None:
        super().__init__(AuthorizationIntent(subject_group_uuid, authorization_type))

    def type_id(self) -> str:
        return "disconnectGroupAuthorization"

    def parameters(self) -> list[str | None]:
        return [self.intent.subject_group_uuid, self.intent.authorization_type.value]

    def is_satisfied(self) -> bool:
        return self._current is None

    def setup(self, env: Environment) -> list[Action]:
        current = self._current
        return self._managers_for(env, [current["uuid"]] if current is not None else [])

    def revert(self) -> Action | None:
        if self._current is None:
            return None
        return self._revert_to_current()

    async def execute(self, env: Environment) -> None:
        current = self._current
        if current is None:
            return
        await self._request(env, current, connect=False)

    def progress(self) -> str:
        return f"Stop {self.intent.authorization_type.description} auth. on {self._subject_name()}"

    def __str__(self) -> str:
        return f"Stop {self.intent.authorization_type.description} authorization on '{self._subject_name()}'"
