"""
Tests for keyplan.action.optimizer module.
"""

import pytest
from conftest import FakeAction, initialized

from keyplan.action.optimizer import delete_inverses, optimize, remove_duplicates


def grant(subject: str, global_cancel: bool = True) -> FakeAction:
    return FakeAction(
        "grant",
        subject,
        revert=lambda: revoke(subject, global_cancel),
        global_cancel=global_cancel,
    )


def revoke(subject: str, global_cancel: bool = True) -> FakeAction:
    return FakeAction(
        "revoke",
        subject,
        revert=lambda: grant(subject, global_cancel),
        global_cancel=global_cancel,
    )


def keys(plan) -> list[str]:
    return [a.key for a in plan]


class TestInverseCancellation:
    """Tests for deleting self-canceling pairs."""

    @pytest.mark.asyncio
    async def test_adjacent_pair_cancels(self, env) -> None:
        """[X, revert(X)] optimizes to nothing."""
        plan = await initialized(env, grant("a"), revoke("a"))
        assert optimize(plan) == []

    @pytest.mark.asyncio
    async def test_global_pair_cancels_across_steps(self, env) -> None:
        """Global actions cancel with an inverse anywhere later."""
        plan = await initialized(env, grant("a"), FakeAction("other", "z"), revoke("a"))
        assert keys(optimize(plan)) == ["other(z)"]

    @pytest.mark.asyncio
    async def test_non_global_pair_kept_across_steps(self, env) -> None:
        """Order sensitive actions only cancel when adjacent."""
        plan = await initialized(
            env,
            grant("a", global_cancel=False),
            FakeAction("other", "z"),
            revoke("a", global_cancel=False),
        )
        assert len(optimize(plan)) == 3

    @pytest.mark.asyncio
    async def test_non_global_adjacent_pair_cancels(self, env) -> None:
        """Adjacency is enough for order sensitive actions."""
        plan = await initialized(env, grant("a", global_cancel=False), revoke("a", global_cancel=False))
        assert optimize(plan) == []

    @pytest.mark.asyncio
    async def test_rollback_finds_newly_adjacent_pair(self, env) -> None:
        """Removing an inner pair exposes an outer one."""
        plan = await initialized(
            env,
            grant("a", global_cancel=False),
            grant("b", global_cancel=False),
            revoke("b", global_cancel=False),
            revoke("a", global_cancel=False),
        )
        assert delete_inverses(plan) == []

    @pytest.mark.asyncio
    async def test_input_is_not_modified(self, env) -> None:
        """The optimizer returns a new list."""
        plan = await initialized(env, grant("a"), revoke("a"))
        optimize(plan)
        assert len(plan) == 2


class TestDuplicateRemoval:
    """Tests for deleting repeated actions."""

    @pytest.mark.asyncio
    async def test_later_duplicate_removed(self, env) -> None:
        """[A, B, A] keeps the first A."""
        first = FakeAction("a", "x")
        plan = await initialized(env, first, FakeAction("b", "y"), FakeAction("a", "x"))
        result = optimize(plan)
        assert keys(result) == ["a(x)", "b(y)"]
        assert result[0] is first

    @pytest.mark.asyncio
    async def test_wildcard_duplicate_removed(self, env) -> None:
        """Duplicates are found through wildcard equality."""
        plan = await initialized(env, FakeAction("a", "x", "manager"), FakeAction("a", "x", None))
        assert keys(remove_duplicates(plan)) == ["a(x, manager)"]

    @pytest.mark.asyncio
    async def test_copy_after_revert_is_kept(self, env) -> None:
        """A repeated elevation after its revert is not redundant."""
        plan = await initialized(
            env,
            grant("p1", global_cancel=False),
            FakeAction("goal", "1"),
            revoke("p1", global_cancel=False),
            grant("p1", global_cancel=False),
            FakeAction("goal", "2"),
            revoke("p1", global_cancel=False),
        )
        assert keys(optimize(plan)) == [
            "grant(p1)",
            "goal(1)",
            "goal(2)",
            "revoke(p1)",
        ]
