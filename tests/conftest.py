"""Pytest configuration and shared fixtures."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from typing import Any
from unittest.mock import AsyncMock

import pytest

from keyplan.action.base import Action
from keyplan.action.environment import AuthenticatedAccount, Environment
from keyplan.core.exceptions import ActionExecutionError

pytest_plugins = ("pytest_asyncio",)


# =============================================================================
# Fake actions
# =============================================================================

@dataclass(frozen=True)
class FakeIntent:
    name: str
    params: tuple[str | None, ...]


@dataclass
class FakeSnapshot:
    satisfied: bool


class FakeAction(Action[FakeIntent, FakeSnapshot]):
    """
    Scriptable action.

    ``satisfied`` is read when the action is (re)initialized, so tests can
    flip it between planning and execution.
    """

    def __init__(
        self,
        name: str,
        *params: str | None,
        satisfied: bool = False,
        setup: Callable[[], list[Action]] | None = None,
        perform: Callable[[], list[Action]] | None = None,
        revert: Callable[[], Action | None] | None = None,
        global_cancel: bool = True,
        third: bool = False,
        failures: int = 0,
    ) -> None:
        super().__init__(FakeIntent(name, params))
        self.satisfied = satisfied
        self._setup = setup
        self._perform = perform
        self._revert = revert
        self._global_cancel = global_cancel
        self._third = third
        self.failures = failures
        self.resolve_calls = 0
        self.execute_calls = 0

    def type_id(self) -> str:
        return self.intent.name

    def parameters(self) -> list[str | None]:
        return list(self.intent.params)

    async def resolve(self, env: Environment) -> FakeSnapshot:
        self.resolve_calls += 1
        return FakeSnapshot(satisfied=self.satisfied)

    def is_satisfied(self) -> bool:
        return self.snapshot.satisfied

    def requires_third_principal(self) -> bool:
        return self._third

    def allows_global_cancellation(self) -> bool:
        return self._global_cancel

    def setup(self, env: Environment) -> list[Action]:
        return self._setup() if self._setup else []

    def perform(self, env: Environment) -> list[Action]:
        return self._perform() if self._perform else []

    def revert(self) -> Action | None:
        return self._revert() if self._revert else None

    async def execute(self, env: Environment) -> None:
        self.execute_calls += 1
        if self.failures > 0:
            self.failures -= 1
            raise ActionExecutionError(self, "directory said no")

    def __str__(self) -> str:
        return self.key


async def initialized(env: Environment, *actions: FakeAction) -> list[FakeAction]:
    """Initialize fakes so they can be optimized directly."""
    for action in actions:
        await action.init(env)
    return list(actions)


# =============================================================================
# Environment
# =============================================================================

def make_account(uuid: str, username: str, account_id: int) -> dict[str, Any]:
    """Account entity as returned by the directory."""
    return {
        "uuid": uuid,
        "username": username,
        "links": [{"rel": "self", "id": account_id}],
    }


def make_principal(uuid: str, username: str, account_id: int) -> AuthenticatedAccount:
    """Principal with a mocked directory session."""
    return AuthenticatedAccount(client=AsyncMock(), account=make_account(uuid, username, account_id))


@pytest.fixture
def env() -> Environment:
    """Environment with two mocked principals."""
    return Environment(
        account1=make_principal("uuid-admin-1", "admin1", 1),
        account2=make_principal("uuid-admin-2", "admin2", 2),
        vault_recovery_key="vault-recovery-key",
    )
