"""
Keyplan Actions - Organizational unit membership.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from keyplan.action.base import Action
from keyplan.action.environment import THIRD_PRINCIPAL_PLACEHOLDER
from keyplan.actions.group_membership import AccountInGroup
from keyplan.actions.requests import display_name
from keyplan.client.directory import entity_id
from keyplan.core.exceptions import ActionExecutionError, DirectoryError
from keyplan.core.types import GroupRights

if TYPE_CHECKING:
    from keyplan.action.environment import Environment

Entity = dict[str, Any]


@dataclass(frozen=True)
class OrgUnitIntent:
    account_uuid: str
    org_unit_uuid: str


@dataclass
class OrgUnitSnapshot:
    org_unit: Entity
    account: Entity | None = None
    member: bool = False


class AccountInOU(Action[OrgUnitIntent, OrgUnitSnapshot]):
    """
    Ensure an account is in an organizational unit.

    Accounts are added directly by a manager of the group owning the
    organizational unit. There is no way back, so there is no revert.
    """

    def __init__(self, account_uuid: str, org_unit_uuid: str) -> None:
        super().__init__(OrgUnitIntent(account_uuid, org_unit_uuid))

    def type_id(self) -> str:
        return "accountInOU"

    def parameters(self) -> list[str | None]:
        return [self.intent.account_uuid, self.intent.org_unit_uuid]

    async def resolve(self, env: Environment) -> OrgUnitSnapshot:
        client = env.account1.client
        org_unit = await client.find_org_unit(self.intent.org_unit_uuid)
        uuid = env.resolve_account_uuid(self.intent.account_uuid)
        if uuid is None:
            return OrgUnitSnapshot(org_unit=org_unit)

        account = await client.find_account(uuid)
        members = await client.org_unit_accounts(entity_id(org_unit), entity_id(account))
        return OrgUnitSnapshot(org_unit=org_unit, account=account, member=bool(members))

    def is_satisfied(self) -> bool:
        return self.snapshot.member

    def requires_third_principal(self) -> bool:
        return self.intent.account_uuid == THIRD_PRINCIPAL_PLACEHOLDER

    def allows_global_cancellation(self) -> bool:
        return False

    def setup(self, env: Environment) -> list[Action]:
        owner = self.snapshot.org_unit.get("owner") or {}
        if not owner.get("uuid"):
            return []
        return [AccountInGroup(env.account1.uuid, owner["uuid"], GroupRights.MANAGER)]

    def revert(self) -> Action | None:
        return None

    async def execute(self, env: Environment) -> None:
        snapshot = self.snapshot
        if snapshot.account is None:
            raise ActionExecutionError(self, "account is not known yet")
        try:
            await env.account1.client.add_account_to_org_unit(entity_id(snapshot.org_unit), snapshot.account)
        except DirectoryError as e:
            raise ActionExecutionError(self, f"cannot add account to organisational unit: {e}", e) from e

    def _account_name(self) -> str:
        if self._snapshot is None or self._snapshot.account is None:
            if self.intent.account_uuid == THIRD_PRINCIPAL_PLACEHOLDER:
                return "account #3"
            return self.intent.account_uuid
        return display_name(self._snapshot.account, self.intent.account_uuid, key="username")

    def progress(self) -> str:
        return f"Adding {self._account_name()}"

    def __str__(self) -> str:
        org_unit = self._snapshot.org_unit if self._snapshot else None
        return f"Add {self._account_name()} to '{display_name(org_unit, self.intent.org_unit_uuid)}'"
