"""
Keyplan Action - Progress tracking contract.

The total amount of work is discovered while planning, so the estimate
only ever grows and consumers must cope with a moving denominator.
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable


@runtime_checkable
class Stepper(Protocol):
    """Receives step estimates while planning and completions while executing."""

    def add_steps(self, num: int) -> None:
        """Extend the estimated total by ``num`` steps."""
        ...

    def step(self, description: str | None = None) -> None:
        """Mark one step as visited or executed."""
        ...

    def done(self) -> None:
        """Finish the current phase."""
        ...


class NullStepper:
    """Stepper that ignores everything."""

    def add_steps(self, num: int) -> None:
        pass

    def step(self, description: str | None = None) -> None:
        pass

    def done(self) -> None:
        pass


class CountingStepper:
    """In-memory stepper, used for headless runs and tests."""

    def __init__(self) -> None:
        self.estimated_total = 0
        self.completed = 0
        self.finished = False
        self.descriptions: list[str] = []

    def add_steps(self, num: int) -> None:
        if num > 0:
            self.estimated_total += num

    def step(self, description: str | None = None) -> None:
        self.completed += 1
        if description:
            self.descriptions.append(description)

    def done(self) -> None:
        # The estimate never shrinks; completion may lag it for skipped branches
        self.estimated_total = max(self.estimated_total, self.completed)
        self.completed = self.estimated_total
        self.finished = True
