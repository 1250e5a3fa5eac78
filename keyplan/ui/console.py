"""
Keyplan UI - Console implementation.

Rich-based console with panels and tables, prompt_toolkit prompts.
"""

from __future__ import annotations

from collections.abc import Generator
from contextlib import contextmanager, nullcontext
from typing import TYPE_CHECKING, Any

from prompt_toolkit import PromptSession
from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.theme import Theme

from keyplan.core.types import RecoveryChoice
from keyplan.ui.progress import ProgressStepper

if TYPE_CHECKING:
    from keyplan.action.base import Action
    from keyplan.action.runner import ExecutionReport
    from keyplan.core.exceptions import ActionExecutionError

# Custom theme
KEYPLAN_THEME = Theme(
    {
        "info": "cyan",
        "warning": "yellow",
        "error": "red bold",
        "success": "green",
        "muted": "dim",
        "highlight": "magenta",
    }
)


class ConsoleUI:
    """
    Console user interface.

    Shows progress and plans, and asks the operator for every decision the
    executor needs.
    """

    def __init__(self, theme: Theme | None = None, console: Console | None = None) -> None:
        """Initialize console (stderr keeps stdout free for piping)."""
        self.console = console or Console(theme=theme or KEYPLAN_THEME, stderr=True)
        self._active_progress: ProgressStepper | None = None

    def print(self, *args: Any, **kwargs: Any) -> None:
        """Print to console."""
        self.console.print(*args, **kwargs)

    def success(self, message: str) -> None:
        """Display success message."""
        self.console.print(f"[success]{message}[/success]")

    def error(self, message: str) -> None:
        """Display error message."""
        self.console.print(f"[error]{message}[/error]")

    def warning(self, message: str) -> None:
        """Display warning message."""
        self.console.print(f"[warning]{message}[/warning]")

    def info(self, message: str) -> None:
        """Display info message."""
        self.console.print(f"[info]{message}[/info]")

    def muted(self, message: str) -> None:
        """Display muted message."""
        self.console.print(f"[muted]{message}[/muted]")

    # -------------------------------------------------------------------------
    # Progress
    # -------------------------------------------------------------------------

    @contextmanager
    def progress(self, description: str) -> Generator[ProgressStepper, None, None]:
        """Show a progress bar for one phase."""
        stepper = ProgressStepper(self.console, description)
        with stepper:
            self._active_progress = stepper
            try:
                yield stepper
            finally:
                self._active_progress = None

    def _paused_progress(self):
        if self._active_progress is None:
            return nullcontext()
        return self._active_progress.paused()

    # -------------------------------------------------------------------------
    # Plans
    # -------------------------------------------------------------------------

    def show_plan(self, plan: list[Action]) -> None:
        """List the steps about to be performed."""
        table = Table(title="The following steps will be performed", show_header=True, header_style="bold")
        table.add_column("#", justify="right")
        table.add_column("Step")
        for i, action in enumerate(plan, 1):
            table.add_row(str(i), str(action))
        self.console.print(table)

    def show_report(self, report: ExecutionReport) -> None:
        """Summarize an execution."""
        if report.success:
            self.success(f"All {len(report.executed)} steps executed")
            return
        self.warning(f"{len(report.executed)} steps executed, {len(report.skipped)} skipped:")
        for action in report.skipped:
            self.muted(f"  - {action}")

    def show_device_code(self, verification_uri: str, user_code: str, complete_uri: str | None = None) -> None:
        """Tell the operator where to log in."""
        lines = [
            f"Open [highlight]{verification_uri}[/highlight]",
            f"and enter the code [bold]{user_code}[/bold]",
        ]
        if complete_uri:
            lines.append(f"or open [highlight]{complete_uri}[/highlight] directly")
        self.console.print(Panel("\n".join(lines), title="Login", border_style="info"))

    # -------------------------------------------------------------------------
    # Prompts
    # -------------------------------------------------------------------------

    async def confirm_plan(self, plan: list[Action]) -> bool:
        """Ask whether to execute the listed plan."""
        with self._paused_progress():
            try:
                return await self.prompt_confirm("Do you want to continue", default=False)
            except EOFError:
                return False

    async def choose_recovery(self, action: Action, error: ActionExecutionError) -> RecoveryChoice:
        """Show the failure and ask Retry, Continue or Abort."""
        with self._paused_progress():
            self.console.print(
                Panel(str(error), title=f"An error occurred during execution of {action}", border_style="error")
            )
            choices = [c.value for c in RecoveryChoice]
            while True:
                try:
                    answer = await self.prompt_choice("How do you want to continue", choices)
                except EOFError:
                    return RecoveryChoice.ABORT
                for choice in RecoveryChoice:
                    if answer.lower() == choice.value.lower():
                        return choice
                self.warning(f"Please answer one of: {', '.join(choices)}")

    async def prompt_confirm(self, message: str, default: bool = False) -> bool:
        """Prompt for yes/no confirmation (async-safe)."""
        suffix = " [Y/n]" if default else " [y/N]"
        session: PromptSession[str] = PromptSession()
        result = await session.prompt_async(f"{message}{suffix}: ")
        result = result.strip().lower()

        if not result:
            return default

        return result in ("y", "yes")

    async def prompt_choice(
        self,
        message: str,
        choices: list[str],
        default: str | None = None,
    ) -> str:
        """Prompt for choice from list (async-safe)."""
        session: PromptSession[str] = PromptSession()
        numbered = " ".join(f"{i}) {c}" for i, c in enumerate(choices, 1))
        default_str = f" [{default}]" if default else ""

        result = await session.prompt_async(f"{message} {numbered}{default_str}: ")
        result = result.strip()

        if not result and default:
            return default

        # Try numeric selection
        try:
            idx = int(result) - 1
            if 0 <= idx < len(choices):
                return choices[idx]
        except ValueError:
            pass

        return result
