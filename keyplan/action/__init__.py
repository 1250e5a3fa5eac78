"""
Keyplan Action - Goal-directed action planning.

``collect`` expands a goal into an optimized plan, ``execute_plan`` runs it.
"""

from keyplan.action.base import Action, is_equal, is_equal_or_inverse, is_inverse
from keyplan.action.collector import MAX_DEPTH, Collector, collect
from keyplan.action.environment import THIRD_PRINCIPAL_PLACEHOLDER, AuthenticatedAccount, Environment
from keyplan.action.optimizer import delete_inverses, optimize, remove_duplicates
from keyplan.action.runner import ExecutionReport, Prompter, execute_action, execute_plan, run
from keyplan.action.stepper import CountingStepper, NullStepper, Stepper

__all__ = [
    "Action",
    "AuthenticatedAccount",
    "Collector",
    "CountingStepper",
    "Environment",
    "ExecutionReport",
    "MAX_DEPTH",
    "NullStepper",
    "Prompter",
    "Stepper",
    "THIRD_PRINCIPAL_PLACEHOLDER",
    "collect",
    "delete_inverses",
    "execute_action",
    "execute_plan",
    "is_equal",
    "is_equal_or_inverse",
    "is_inverse",
    "optimize",
    "remove_duplicates",
    "run",
]
