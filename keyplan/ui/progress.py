"""
Keyplan UI - Progress bar stepper.

Rich progress bar implementing the ``Stepper`` contract. The total starts
unknown (spinner only) and grows as the planner discovers work.
"""

from __future__ import annotations

from collections.abc import Generator
from contextlib import contextmanager
from typing import Any

from rich.console import Console
from rich.progress import (
    BarColumn,
    MofNCompleteColumn,
    Progress,
    SpinnerColumn,
    TaskID,
    TextColumn,
    TimeElapsedColumn,
)


class ProgressStepper:
    """
    Progress bar for one phase (collecting or executing).

    Use as a context manager; the bar is shown between enter and exit.
    """

    def __init__(self, console: Console, description: str) -> None:
        self.description = description
        self._progress = Progress(
            SpinnerColumn(),
            BarColumn(bar_width=50),
            MofNCompleteColumn(),
            TextColumn("steps"),
            TimeElapsedColumn(),
            TextColumn("[progress.description]{task.description}"),
            console=console,
        )
        self._task: TaskID | None = None

    def __enter__(self) -> ProgressStepper:
        self._progress.start()
        self._task = self._progress.add_task(self.description, total=None)
        return self

    def __exit__(self, *exc: Any) -> None:
        self._progress.stop()

    @property
    def _state(self):
        return self._progress.tasks[0]

    @property
    def total(self) -> int:
        return int(self._state.total or 0)

    @property
    def completed(self) -> int:
        return int(self._state.completed)

    def add_steps(self, num: int) -> None:
        if num <= 0 or self._task is None:
            return
        self._progress.update(self._task, total=self.total + num)

    def step(self, description: str | None = None) -> None:
        if self._task is None:
            return
        if description:
            self._progress.update(self._task, description=description)
        self._progress.advance(self._task)

    def done(self) -> None:
        if self._task is None:
            return
        total = max(self.total, self.completed)
        self._progress.update(self._task, total=total, completed=total)

    @contextmanager
    def paused(self) -> Generator[None, None, None]:
        """Hide the bar while the operator is prompted."""
        self._progress.stop()
        try:
            yield
        finally:
            self._progress.start()
