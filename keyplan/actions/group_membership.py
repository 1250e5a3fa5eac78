"""
Keyplan Actions - Group membership.

``AccountInGroup`` and ``AccountNotInGroup`` revert into each other, so they
share a module.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from loguru import logger

from keyplan.action.base import Action
from keyplan.action.environment import THIRD_PRINCIPAL_PLACEHOLDER
from keyplan.actions.requests import add_group_admin_request, display_name, submit_and_approve
from keyplan.client.directory import entity_id
from keyplan.core.exceptions import ActionExecutionError, DirectoryError
from keyplan.core.types import GroupRights

if TYPE_CHECKING:
    from keyplan.action.environment import Environment

Entity = dict[str, Any]


@dataclass(frozen=True)
class MembershipIntent:
    account_uuid: str
    group_uuid: str
    rights: GroupRights | None = None


@dataclass
class MembershipSnapshot:
    """
    Group with its members as seen at init.

    ``account`` stays ``None`` while the account is the third principal
    placeholder and nobody has logged in as it yet.
    """

    group: Entity
    account: Entity | None = None
    membership: Entity | None = None

    @property
    def rights(self) -> GroupRights | None:
        if self.membership is None:
            return None
        return GroupRights(self.membership["rights"])


async def resolve_membership(env: Environment, account_uuid: str, group_uuid: str) -> MembershipSnapshot:
    """Read a group and the membership of one account in it."""
    client = env.account1.client
    group = await client.find_group(group_uuid, additional=["accounts"])
    uuid = env.resolve_account_uuid(account_uuid)
    if uuid is None:
        return MembershipSnapshot(group=group)

    account = await client.find_account(uuid)
    members = ((group.get("additionalObjects") or {}).get("accounts") or {}).get("items") or []
    membership = next((m for m in members if m.get("uuid") == uuid), None)
    return MembershipSnapshot(group=group, account=account, membership=membership)


def _rights_label(rights: GroupRights | None) -> str | None:
    if rights is None:
        return None
    return "manager" if rights == GroupRights.MANAGER else "member"


class _MembershipAction(Action[MembershipIntent, MembershipSnapshot]):
    """Shared resolution and naming of membership actions."""

    async def resolve(self, env: Environment) -> MembershipSnapshot:
        return await resolve_membership(env, self.intent.account_uuid, self.intent.group_uuid)

    def requires_third_principal(self) -> bool:
        return self.intent.account_uuid == THIRD_PRINCIPAL_PLACEHOLDER

    def allows_global_cancellation(self) -> bool:
        # steps between an elevation and its revert rely on it
        return False

    def _needs_manager(self, env: Environment) -> list[Action]:
        if env.is_principal(self.intent.account_uuid):
            return []
        return [AccountInGroup(env.account1.uuid, self.intent.group_uuid, GroupRights.MANAGER)]

    def _account_name(self) -> str:
        if self.intent.account_uuid == THIRD_PRINCIPAL_PLACEHOLDER and self._snapshot is None:
            return "account #3"
        account = self._snapshot.account if self._snapshot else None
        return display_name(account, "unknown", key="username")

    def _group_name(self) -> str:
        return display_name(self._snapshot.group if self._snapshot else None, "unknown")

    async def _own_membership(self, env: Environment) -> tuple[Any, Entity]:
        """Fetch the membership through the session allowed to change it."""
        account = self.snapshot.account
        if account is None:
            raise ActionExecutionError(self, "account is not known yet")
        principal = env.principal_for(account["uuid"])
        try:
            membership = await principal.client.group_membership(
                entity_id(self.snapshot.group), entity_id(account)
            )
        except DirectoryError as e:
            raise ActionExecutionError(self, f"cannot fetch group membership: {e}", e) from e
        return principal, membership


class AccountInGroup(_MembershipAction):
    """
    Ensure an account is a member of a group.

    With ``rights`` set the membership must have exactly those rights;
    without, any membership will do.
    """

    def __init__(self, account_uuid: str, group_uuid: str, rights: GroupRights | None = None) -> None:
        super().__init__(MembershipIntent(account_uuid, group_uuid, rights))

    def type_id(self) -> str:
        return "accountInGroup"

    def parameters(self) -> list[str | None]:
        return [self.intent.account_uuid, self.intent.group_uuid, _rights_label(self.intent.rights)]

    def is_satisfied(self) -> bool:
        snapshot = self.snapshot
        if snapshot.membership is None:
            return False
        return self.intent.rights is None or snapshot.rights == self.intent.rights

    def setup(self, env: Environment) -> list[Action]:
        # Only downgrading to a normal member is done by a group manager,
        # becoming a manager goes through a request
        if self.intent.rights != GroupRights.NORMAL:
            return []
        return self._needs_manager(env)

    def revert(self) -> Action | None:
        snapshot = self.snapshot
        if snapshot.membership is None:
            return AccountNotInGroup(self.intent.account_uuid, self.intent.group_uuid)
        return AccountInGroup(self.intent.account_uuid, self.intent.group_uuid, snapshot.rights)

    async def execute(self, env: Environment) -> None:
        snapshot = self.snapshot
        if snapshot.account is None:
            raise ActionExecutionError(self, "account is not known yet")

        if snapshot.membership is None or self.intent.rights == GroupRights.MANAGER:
            requester, approver = env.requester_and_approver(snapshot.account["uuid"])
            request = add_group_admin_request(
                snapshot.account,
                snapshot.group,
                env.vault_recovery_key,
                f"automation {self.type_id()}",
            )
            try:
                await submit_and_approve(request, requester, approver)
            except DirectoryError as e:
                raise ActionExecutionError(self, f"cannot request to add manager to group: {e}", e) from e

        if self.intent.rights == GroupRights.NORMAL:
            principal, membership = await self._own_membership(env)
            membership["rights"] = GroupRights.NORMAL.value
            try:
                await principal.client.update_membership(membership)
            except DirectoryError as e:
                raise ActionExecutionError(self, f"cannot convert user to normal: {e}", e) from e

    def progress(self) -> str:
        rel = _rights_label(self.intent.rights) or "member"
        return f"Make {self._account_name()} {rel} of {self._group_name()}"

    def __str__(self) -> str:
        rel = {None: "in", GroupRights.MANAGER: "manager of", GroupRights.NORMAL: "normal member of"}
        return (
            f"Ensure account {self.intent.account_uuid} ({self._account_name()}) is "
            f"{rel[self.intent.rights]} group {self.intent.group_uuid} ({self._group_name()})"
        )


class AccountNotInGroup(_MembershipAction):
    """Ensure an account is not a member of a group."""

    def __init__(self, account_uuid: str, group_uuid: str) -> None:
        super().__init__(MembershipIntent(account_uuid, group_uuid))

    def type_id(self) -> str:
        return "accountNotInGroup"

    def parameters(self) -> list[str | None]:
        return [self.intent.account_uuid, self.intent.group_uuid]

    def is_satisfied(self) -> bool:
        return self.snapshot.membership is None

    def setup(self, env: Environment) -> list[Action]:
        return self._needs_manager(env)

    def revert(self) -> Action | None:
        snapshot = self.snapshot
        if snapshot.membership is None:
            return None
        return AccountInGroup(self.intent.account_uuid, self.intent.group_uuid, snapshot.rights)

    async def execute(self, env: Environment) -> None:
        if self.snapshot.membership is None:
            logger.debug(f"{self.key} already holds, nothing to remove")
            return
        principal, membership = await self._own_membership(env)
        try:
            await principal.client.delete_membership(membership)
        except DirectoryError as e:
            raise ActionExecutionError(self, f"cannot remove user from group: {e}", e) from e

    def progress(self) -> str:
        return f"Remove {self._account_name()} from {self._group_name()}"

    def __str__(self) -> str:
        return (
            f"Ensure account {self.intent.account_uuid} ({self._account_name()}) is not in "
            f"group {self.intent.group_uuid} ({self._group_name()})"
        )
