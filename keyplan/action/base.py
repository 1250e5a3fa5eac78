"""
Keyplan Action - Action capability contract.

Every concrete directory change is an ``Action``. An action has two kinds
of state:

- the *intent*: immutable constructor arguments naming the wanted change,
- the *snapshot*: what the directory currently looks like, read once by
  ``init`` and never before.

Actions compare by value: ``(type_id, parameters)``. A ``None`` parameter
is a wildcard matching anything in the same position.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Generic, TypeVar

from keyplan.core.exceptions import (
    ActionAlreadyInitializedError,
    ActionInitializationError,
    ActionNotInitializedError,
    DirectoryError,
)

if TYPE_CHECKING:
    from keyplan.action.environment import Environment

IntentT = TypeVar("IntentT")
SnapshotT = TypeVar("SnapshotT")


class Action(ABC, Generic[IntentT, SnapshotT]):
    """
    Base class for all planned directory changes.

    Subclasses implement ``resolve`` to read the snapshot and the planning
    hooks (``is_satisfied``, ``setup``, ``perform``, ``revert``) as pure
    functions of intent and snapshot.
    """

    def __init__(self, intent: IntentT) -> None:
        self._intent = intent
        self._snapshot: SnapshotT | None = None

    # -------------------------------------------------------------------------
    # Identity
    # -------------------------------------------------------------------------

    @abstractmethod
    def type_id(self) -> str:
        """Stable identifier of the action kind."""

    @abstractmethod
    def parameters(self) -> list[str | None]:
        """Comparison key. ``None`` entries match any value."""

    @property
    def intent(self) -> IntentT:
        return self._intent

    @property
    def key(self) -> str:
        """Compact identity for messages that must not touch the snapshot."""
        params = ", ".join("*" if p is None else p for p in self.parameters())
        return f"{self.type_id()}({params})"

    # -------------------------------------------------------------------------
    # Resolved snapshot
    # -------------------------------------------------------------------------

    @property
    def snapshot(self) -> SnapshotT:
        """
        Observed directory state.

        Raises:
            ActionNotInitializedError: If ``init`` has not run yet
        """
        if self._snapshot is None:
            raise ActionNotInitializedError(self.key)
        return self._snapshot

    @property
    def initialized(self) -> bool:
        return self._snapshot is not None

    async def init(self, env: Environment) -> None:
        """
        Read current state into the snapshot.

        Raises:
            ActionAlreadyInitializedError: If called twice
            ActionInitializationError: If the directory could not be read
        """
        if self._snapshot is not None:
            raise ActionAlreadyInitializedError(self.key)
        self._snapshot = await self._resolve_or_fail(env)

    async def reinit(self, env: Environment) -> None:
        """Replace the snapshot with freshly read state (before execution)."""
        self._snapshot = await self._resolve_or_fail(env)

    async def _resolve_or_fail(self, env: Environment) -> SnapshotT:
        try:
            return await self.resolve(env)
        except DirectoryError as e:
            raise ActionInitializationError(self.key, f"unable to read current state: {e}", e) from e

    @abstractmethod
    async def resolve(self, env: Environment) -> SnapshotT:
        """Fetch the state this action depends on. No side effects."""

    # -------------------------------------------------------------------------
    # Planning hooks
    # -------------------------------------------------------------------------

    @abstractmethod
    def is_satisfied(self) -> bool:
        """Whether the target state already holds. Pure."""

    def requires_third_principal(self) -> bool:
        """Whether executing needs a third authenticated account."""
        return False

    def allows_global_cancellation(self) -> bool:
        """
        Whether this action may cancel against an inverse anywhere later
        in the plan, rather than only the directly following one.
        """
        return True

    def setup(self, env: Environment) -> list[Action]:
        """Temporary prerequisites, rolled back after this action."""
        return []

    def perform(self, env: Environment) -> list[Action]:
        """Permanent sub-goals, planned after this action."""
        return []

    @abstractmethod
    def revert(self) -> Action | None:
        """The action restoring the state observed by ``init``, if any."""

    # -------------------------------------------------------------------------
    # Execution
    # -------------------------------------------------------------------------

    @abstractmethod
    async def execute(self, env: Environment) -> None:
        """
        Apply the change.

        Raises:
            ActionExecutionError: If the directory rejected the change
        """

    # -------------------------------------------------------------------------
    # Description
    # -------------------------------------------------------------------------

    def progress(self) -> str:
        """Short label for progress bars."""
        return str(self)

    @abstractmethod
    def __str__(self) -> str:
        """Full description for plan listings and audit logs."""

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.key}>"

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Action):
            return NotImplemented
        return is_equal(self, other)

    # Wildcard equality is not transitive
    __hash__ = None  # type: ignore[assignment]


def is_equal(a: Action | None, b: Action | None) -> bool:
    """
    Value equality of two actions.

    Same ``type_id`` and every position where both parameters are set
    holds the same value.
    """
    if a is None or b is None:
        return False
    if a.type_id() != b.type_id():
        return False
    for pa, pb in zip(a.parameters(), b.parameters(), strict=False):
        if pa is not None and pb is not None and pa != pb:
            return False
    return True


def is_inverse(a: Action, b: Action) -> bool:
    """Whether ``a`` reverted yields ``b``."""
    return is_equal(a.revert(), b)


def is_equal_or_inverse(a: Action, b: Action) -> bool:
    return is_equal(a, b) or is_inverse(a, b)
