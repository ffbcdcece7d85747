"""Data models for promotion run reporting."""

from dataclasses import dataclass
from datetime import datetime
from typing import Optional


@dataclass
class PromotionResult:
    """
    Outcome of one promotion run.

    Attributes:
        run_started_at: UTC timestamp when the run began
        run_finished_at: UTC timestamp when the run completed
        selected: Due rows found by the selection query
        promoted: Rows this run moved from pending to delivered
        failed: Rows whose update raised an error (retried next run)
        skipped: Rows another promoter claimed first
        error: Selection error message, if the run could not select at all
        lock_held: True if the run was skipped because one was in progress
    """

    run_started_at: datetime
    run_finished_at: datetime
    selected: int = 0
    promoted: int = 0
    failed: int = 0
    skipped: int = 0
    error: Optional[str] = None
    lock_held: bool = False

    @property
    def duration_seconds(self) -> float:
        return (self.run_finished_at - self.run_started_at).total_seconds()

    @property
    def had_errors(self) -> bool:
        return self.failed > 0 or self.error is not None
