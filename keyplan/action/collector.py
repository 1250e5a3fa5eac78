"""
Keyplan Action - Plan collection.

Expands a root goal into a linear plan:

1. prerequisites from ``setup`` that do not hold yet, each followed later
   by its revert,
2. the action itself,
3. the permanent sub-goals from ``perform``,
4. the collected reverts, most recent elevation first.

The raw plan is then passed through the optimizer.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from loguru import logger

from keyplan.action.optimizer import optimize
from keyplan.core.exceptions import MaxDepthExceededError

if TYPE_CHECKING:
    from keyplan.action.base import Action
    from keyplan.action.environment import Environment
    from keyplan.action.stepper import Stepper

MAX_DEPTH = 20


async def collect(action: Action, env: Environment, stepper: Stepper) -> list[Action]:
    """
    Build the optimized plan reaching the state described by ``action``.

    Args:
        action: Root goal, not yet initialized
        env: Environment with the authenticated principals
        stepper: Progress tracker, fed while walking the graph

    Returns:
        Ordered list of initialized actions to execute

    Raises:
        ActionInitializationError: If the state of any action could not be read
        MaxDepthExceededError: If expansion nests deeper than ``MAX_DEPTH``
    """
    logger.info(f"Collecting actions for {action.key}")
    await action.init(env)
    collector = Collector(env, stepper)
    plan = await collector.traverse(action)
    logger.debug(f"Raw plan has {len(plan)} actions")
    optimized = optimize(plan)
    logger.info(f"Plan has {len(optimized)} actions after optimization ({len(plan)} before)")
    return optimized


class Collector:
    """Recursive expansion of one goal. Holds no state between calls."""

    def __init__(self, env: Environment, stepper: Stepper, max_depth: int = MAX_DEPTH) -> None:
        self.env = env
        self.stepper = stepper
        self.max_depth = max_depth

    async def traverse(self, action: Action, force: bool = False, depth: int = 1) -> list[Action]:
        """
        Expand an initialized action into the steps reaching it.

        Args:
            action: Initialized action to expand
            force: Plan the action even if it looks satisfied (cleanup)
            depth: Current nesting level, starting at 1

        Returns:
            Steps in execution order
        """
        if not force and action.is_satisfied():
            return []
        if depth > self.max_depth:
            raise MaxDepthExceededError(self.max_depth, action)

        try:
            return await self._expand(action, force, depth)
        except MaxDepthExceededError as e:
            e.add_frame(action)
            raise

    async def _expand(self, action: Action, force: bool, depth: int) -> list[Action]:
        result: list[Action] = []
        cleanup: list[Action] = []

        prerequisites = action.setup(self.env)
        self.stepper.add_steps(len(prerequisites))
        for prerequisite in prerequisites:
            self.stepper.step()
            await prerequisite.init(self.env)
            if prerequisite.is_satisfied():
                continue
            result.extend(await self.traverse(prerequisite, False, depth + 1))
            revert = prerequisite.revert()
            if revert is not None:
                self.stepper.add_steps(1)
                cleanup.append(revert)

        result.append(action)

        subgoals = action.perform(self.env)
        self.stepper.add_steps(len(subgoals))
        for subgoal in subgoals:
            self.stepper.step()
            await subgoal.init(self.env)
            result.extend(await self.traverse(subgoal, force, depth + 1))

        for revert in reversed(cleanup):
            self.stepper.step()
            await revert.init(self.env)
            result.extend(await self.traverse(revert, True, depth + 1))

        return result
