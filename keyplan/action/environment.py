"""
Keyplan Action - Execution environment.

Holds the authenticated principals and the vault recovery key shared by
every action of a run.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from keyplan.client.directory import DirectoryClient, entity_id
from keyplan.core.exceptions import DuplicateIdentityError, KeyplanError

# Stands in for the uuid of the third account until it has logged in
THIRD_PRINCIPAL_PLACEHOLDER = "account-3-placeholder"


@dataclass
class AuthenticatedAccount:
    """A principal: an authenticated session and the account behind it."""

    client: DirectoryClient
    account: dict[str, Any]

    @property
    def uuid(self) -> str:
        return self.account["uuid"]

    @property
    def username(self) -> str:
        return self.account.get("username", self.uuid)

    @property
    def id(self) -> int:
        return entity_id(self.account)


@dataclass
class Environment:
    """
    Principals and secrets available to actions.

    ``account1`` and ``account2`` act as requester and approver of
    two-person changes. The third account is only added when an action
    asks for it and can be set once.
    """

    account1: AuthenticatedAccount
    account2: AuthenticatedAccount
    vault_recovery_key: str | None = None
    _account3: AuthenticatedAccount | None = field(default=None, init=False, repr=False)

    @property
    def account3(self) -> AuthenticatedAccount | None:
        return self._account3

    def set_account3(self, account: AuthenticatedAccount) -> None:
        """
        Add the third principal.

        Raises:
            DuplicateIdentityError: If it is the same account as principal 1 or 2
            KeyplanError: If a third principal was already set
        """
        if self._account3 is not None:
            raise KeyplanError("Third account is already authenticated")
        if account.uuid in (self.account1.uuid, self.account2.uuid):
            raise DuplicateIdentityError(account.username)
        self._account3 = account

    def resolve_account_uuid(self, account_uuid: str) -> str | None:
        """Map the third-account placeholder to a real uuid, if known yet."""
        if account_uuid == THIRD_PRINCIPAL_PLACEHOLDER:
            return self._account3.uuid if self._account3 else None
        return account_uuid

    def is_principal(self, account_uuid: str) -> bool:
        """Whether the uuid belongs to principal 1 or 2."""
        return account_uuid in (self.account1.uuid, self.account2.uuid)

    def principal_for(self, account_uuid: str) -> AuthenticatedAccount:
        """
        The session to act with on the given account's behalf.

        A principal acts on its own memberships; anything else goes
        through principal 1.
        """
        if account_uuid == self.account2.uuid:
            return self.account2
        if self._account3 is not None and account_uuid == self._account3.uuid:
            return self._account3
        return self.account1

    def requester_and_approver(self, subject_uuid: str) -> tuple[AuthenticatedAccount, AuthenticatedAccount]:
        """Pick requester and approver so nobody approves a change about themselves."""
        if subject_uuid == self.account2.uuid:
            return self.account2, self.account1
        return self.account1, self.account2

    @property
    def accounts(self) -> list[AuthenticatedAccount]:
        """All authenticated principals."""
        ret = [self.account1, self.account2]
        if self._account3 is not None:
            ret.append(self._account3)
        return ret

    async def aclose(self) -> None:
        """Close every principal's session."""
        for account in self.accounts:
            await account.client.aclose()
