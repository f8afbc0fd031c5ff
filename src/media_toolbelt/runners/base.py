"""Batch result types and progress callbacks."""

from collections.abc import Callable
from dataclasses import dataclass, field
from pathlib import Path


@dataclass
class ItemOutcome:
    """Result of processing one item of a batch."""

    item: Path
    success: bool
    output: Path | None = None
    error: str | None = None


@dataclass
class BatchResult:
    """Result of running an action over every item."""

    outcomes: list[ItemOutcome] = field(default_factory=list)

    @property
    def total(self) -> int:
        return len(self.outcomes)

    @property
    def succeeded(self) -> int:
        return sum(1 for outcome in self.outcomes if outcome.success)

    @property
    def failed(self) -> int:
        return self.total - self.succeeded

    @property
    def success(self) -> bool:
        return self.failed == 0

    @property
    def outputs(self) -> list[Path]:
        return [outcome.output for outcome in self.outcomes if outcome.success and outcome.output]

    @property
    def errors(self) -> list[str]:
        return [f"{outcome.item}: {outcome.error}" for outcome in self.outcomes if not outcome.success]


@dataclass
class BatchCallbacks:
    """
    Callbacks for batch progress reporting.

    All callbacks are optional - if None, no callback is made.
    """

    on_item_start: Callable[[Path, int, int], None] | None = None  # item, index, total
    on_item_complete: Callable[[ItemOutcome, int, int], None] | None = None  # outcome, index, total
    on_batch_complete: Callable[[BatchResult], None] | None = None
