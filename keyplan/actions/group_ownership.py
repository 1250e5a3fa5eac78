"""
Keyplan Actions - Ownership of groups on provisioned systems.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from keyplan.action.base import Action
from keyplan.actions.group_membership import AccountInGroup
from keyplan.actions.requests import (
    display_name,
    submit_and_approve,
    transfer_group_on_system_ownership_request,
)
from keyplan.client.directory import entity_id
from keyplan.core.exceptions import ActionExecutionError, DirectoryError
from keyplan.core.types import GroupRights

if TYPE_CHECKING:
    from keyplan.action.environment import Environment

Entity = dict[str, Any]


@dataclass(frozen=True)
class OwnershipIntent:
    system_uuid: str
    name_in_system: str
    group_uuid: str


@dataclass
class OwnershipSnapshot:
    system: Entity
    group_on_system: Entity
    group: Entity

    @property
    def owner_uuid(self) -> str | None:
        return (self.group_on_system.get("owner") or {}).get("uuid")


class GroupOwnerOfGroupOnSystem(Action[OwnershipIntent, OwnershipSnapshot]):
    """
    Ensure a group owns a group on a system.

    Principal 1 requests the transfer as manager of the current owner and
    principal 2 approves it as manager of the new owner.
    """

    def __init__(self, system_uuid: str, name_in_system: str, group_uuid: str) -> None:
        super().__init__(OwnershipIntent(system_uuid, name_in_system, group_uuid))

    def type_id(self) -> str:
        return "groupOwnerOfGOS"

    def parameters(self) -> list[str | None]:
        return [self.intent.system_uuid, self.intent.name_in_system, self.intent.group_uuid]

    async def resolve(self, env: Environment) -> OwnershipSnapshot:
        client = env.account1.client
        system = await client.find_system(self.intent.system_uuid)
        group_on_system = await client.find_group_on_system(entity_id(system), self.intent.name_in_system)
        group = await client.find_group(self.intent.group_uuid, additional=["accounts"])
        return OwnershipSnapshot(system=system, group_on_system=group_on_system, group=group)

    def is_satisfied(self) -> bool:
        return self.snapshot.owner_uuid == self.intent.group_uuid

    def setup(self, env: Environment) -> list[Action]:
        ret: list[Action] = []
        owner_uuid = self.snapshot.owner_uuid
        if owner_uuid is not None:
            ret.append(AccountInGroup(env.account1.uuid, owner_uuid, GroupRights.MANAGER))
        ret.append(AccountInGroup(env.account2.uuid, self.intent.group_uuid, GroupRights.MANAGER))
        return ret

    def revert(self) -> Action | None:
        owner_uuid = self.snapshot.owner_uuid
        if owner_uuid is None:
            return None
        return GroupOwnerOfGroupOnSystem(self.intent.system_uuid, self.intent.name_in_system, owner_uuid)

    async def execute(self, env: Environment) -> None:
        snapshot = self.snapshot
        request = transfer_group_on_system_ownership_request(
            snapshot.group_on_system,
            snapshot.group,
            f"automation {self.type_id()}",
        )
        try:
            await submit_and_approve(request, env.account1, env.account2)
        except DirectoryError as e:
            raise ActionExecutionError(
                self, f"cannot request to transfer group on system ownership: {e}", e
            ) from e

    def progress(self) -> str:
        gos = self._snapshot.group_on_system if self._snapshot else None
        return f"Transfer {display_name(gos, self.intent.name_in_system, key='displayName')}"

    def __str__(self) -> str:
        snapshot = self._snapshot
        system = display_name(snapshot.system if snapshot else None, "unknown")
        gos = display_name(snapshot.group_on_system if snapshot else None, "unknown", key="displayName")
        group = display_name(snapshot.group if snapshot else None, "unknown")
        return (
            f"Ensure ownership of {self.intent.name_in_system} ({gos}) within the system "
            f"{self.intent.system_uuid} ({system}) is set to group {self.intent.group_uuid} ({group})"
        )
