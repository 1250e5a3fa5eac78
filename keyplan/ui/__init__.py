"""
Keyplan UI - Console, prompts and progress bars.
"""

from keyplan.ui.console import KEYPLAN_THEME, ConsoleUI
from keyplan.ui.progress import ProgressStepper

__all__ = ["ConsoleUI", "KEYPLAN_THEME", "ProgressStepper"]
