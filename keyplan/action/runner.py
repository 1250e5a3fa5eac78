"""
Keyplan Action - Plan execution.

Runs an optimized plan strictly in order. Each action reads the directory
again right before it executes, since earlier steps of the same run
changed it. Failures are never retried automatically: the operator picks
Retry, Continue or Abort.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from functools import partial
from typing import TYPE_CHECKING, Protocol

from loguru import logger

from keyplan.action.collector import collect
from keyplan.action.stepper import NullStepper
from keyplan.audit.logger import AuditLogger
from keyplan.core.exceptions import (
    ActionExecutionError,
    AuthenticationError,
    DirectoryError,
    PlanAbortedError,
)
from keyplan.core.types import RecoveryChoice
from keyplan.utils.logger import log_prefix

if TYPE_CHECKING:
    from keyplan.action.base import Action
    from keyplan.action.environment import Environment
    from keyplan.action.stepper import Stepper
    from keyplan.config.models import Config
    from keyplan.ui.console import ConsoleUI

ThirdPrincipalAuthenticator = Callable[["Environment"], Awaitable[None]]


class Prompter(Protocol):
    """Operator decisions the executor depends on."""

    async def confirm_plan(self, plan: list[Action]) -> bool:
        """Go/no-go before anything is executed."""
        ...

    async def choose_recovery(self, action: Action, error: ActionExecutionError) -> RecoveryChoice:
        """What to do after ``action`` failed."""
        ...


@dataclass
class ExecutionReport:
    """Outcome of running a plan."""

    executed: list[Action] = field(default_factory=list)
    skipped: list[Action] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return not self.skipped


async def execute_action(
    action: Action,
    env: Environment,
    prompter: Prompter,
    audit: AuditLogger,
) -> bool:
    """
    Execute one action, asking the operator how to proceed on failure.

    Returns:
        True if the action was applied, False if the operator skipped it

    Raises:
        PlanAbortedError: If the operator chose to abort
    """
    attempts = 0
    while True:
        attempts += 1
        try:
            await action.execute(env)
        except (ActionExecutionError, DirectoryError) as e:
            error = e if isinstance(e, ActionExecutionError) else ActionExecutionError(action, str(e), e)
            logger.warning(f"{log_prefix('❌')} Execution of {action.key} failed: {error}")
            audit.log_failed(action, error)

            choice = await prompter.choose_recovery(action, error)
            if choice == RecoveryChoice.RETRY:
                logger.info(f"{log_prefix('🔄')} Retrying {action.key}")
                continue
            if choice == RecoveryChoice.CONTINUE:
                logger.info(f"Continuing with the next action, {action.key} left unapplied")
                audit.log_skipped(action)
                return False
            raise PlanAbortedError("Aborting automation", {"action": action.key}) from e

        logger.info(f"{log_prefix('✅')} {action}")
        audit.log_executed(action, attempts)
        return True


async def execute_plan(
    plan: list[Action],
    env: Environment,
    prompter: Prompter,
    stepper: Stepper | None = None,
    authenticate_third: ThirdPrincipalAuthenticator | None = None,
    audit: AuditLogger | None = None,
) -> ExecutionReport:
    """
    Execute a plan in order.

    Args:
        plan: Optimized plan from ``collect``
        env: Environment with the authenticated principals
        prompter: Source of operator decisions
        stepper: Progress tracker, one step per action
        authenticate_third: Logs in the third account when the plan needs one
        audit: Audit trail

    Returns:
        Which actions were executed and which were skipped

    Raises:
        PlanAbortedError: If the operator aborted
        ActionInitializationError: If state could not be re-read
        AuthenticationError: If a third account is needed but cannot be added
    """
    stepper = stepper or NullStepper()
    audit = audit or AuditLogger()

    if env.account3 is None and any(a.requires_third_principal() for a in plan):
        if authenticate_third is None:
            raise AuthenticationError("The plan requires a third account, but none can be authenticated")
        logger.info("Plan requires a third account, authenticating")
        await authenticate_third(env)

    report = ExecutionReport()
    stepper.add_steps(len(plan))
    for action in plan:
        stepper.step(action.progress())
        await action.reinit(env)
        if await execute_action(action, env, prompter, audit):
            report.executed.append(action)
        else:
            report.skipped.append(action)
    stepper.done()

    logger.info(f"Executed {len(report.executed)} actions, skipped {len(report.skipped)}")
    return report


async def run(
    config: Config,
    action: Action,
    ui: ConsoleUI | None = None,
    audit: AuditLogger | None = None,
) -> ExecutionReport:
    """
    Authenticate, plan, confirm and execute a single goal.

    Args:
        config: Loaded configuration
        action: Root goal
        ui: Console for progress and prompts
        audit: Audit trail

    Returns:
        Execution report (empty if nothing had to be done)

    Raises:
        PlanAbortedError: If the operator declined or aborted
    """
    from keyplan.client.auth import authenticate_third_principal, setup_environment
    from keyplan.ui.console import ConsoleUI

    ui = ui or ConsoleUI()
    audit = audit or AuditLogger()

    env = await setup_environment(config, ui, audit)
    try:
        ui.info(f"Collecting actions for {action.key}...")
        with ui.progress("collecting") as stepper:
            plan = await collect(action, env, stepper)
            stepper.done()
        audit.log_plan(plan)

        if not plan:
            ui.success("Target state already holds, nothing to do")
            return ExecutionReport()

        ui.show_plan(plan)
        confirmed = await ui.confirm_plan(plan)
        audit.log_confirmation(confirmed, len(plan))
        if not confirmed:
            raise PlanAbortedError("Aborting automation")

        with ui.progress("Starting") as stepper:
            report = await execute_plan(
                plan,
                env,
                ui,
                stepper,
                authenticate_third=partial(authenticate_third_principal, config, ui, audit),
                audit=audit,
            )
        ui.show_report(report)
        return report
    finally:
        await env.aclose()
