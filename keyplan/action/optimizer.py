"""
Keyplan Action - Plan optimization.

Two local passes over a collected plan:

- duplicates: only the first of several equal actions is kept,
- inverses: an action followed by its own revert cancels out.

Each pass is a single left-to-right sweep that steps back after a
deletion, so pairs that become adjacent are still found.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from loguru import logger

from keyplan.action.base import is_equal, is_inverse

if TYPE_CHECKING:
    from keyplan.action.base import Action


def optimize(plan: list[Action]) -> list[Action]:
    """Return a shortened copy of ``plan``; the input is left untouched."""
    return delete_inverses(remove_duplicates(plan))


def remove_duplicates(plan: list[Action]) -> list[Action]:
    """
    Drop every action equal to an earlier one.

    Once the earlier action's revert shows up, later copies are no longer
    redundant and are kept.
    """
    ret = list(plan)
    i = 0
    while i < len(ret):
        j = i + 1
        while j < len(ret):
            if is_inverse(ret[i], ret[j]):
                break
            if is_equal(ret[i], ret[j]):
                logger.debug(f"Removing duplicate {ret[j].key}")
                del ret[j]
            else:
                j += 1
        i += 1
    return ret


def delete_inverses(plan: list[Action]) -> list[Action]:
    """
    Cancel actions against their reverts.

    Actions allowing global cancellation pair with the first inverse
    anywhere after them; all others only with the directly following one.
    """
    ret = list(plan)
    i = 0
    while i < len(ret) - 1:
        j = _find_inverse(ret, i)
        if j is None:
            i += 1
            continue
        logger.debug(f"Cancelling {ret[i].key} against {ret[j].key}")
        del ret[j]
        del ret[i]
        i = max(i - 2, 0)
    return ret


def _find_inverse(plan: list[Action], i: int) -> int | None:
    action = plan[i]
    if action.allows_global_cancellation():
        candidates = range(i + 1, len(plan))
    else:
        candidates = range(i + 1, i + 2)
    for j in candidates:
        if is_inverse(action, plan[j]):
            return j
    return None
