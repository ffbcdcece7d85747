"""Options and cursor state for the polling fallback."""

from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Optional

DEFAULT_INTERVAL_MS = 30000


@dataclass
class PollerOptions:
    """
    Configuration for one user's poller.

    Attributes:
        user_id: Recipient whose rows are polled
        interval_ms: Milliseconds between checks
        on_new_notifications: Called with the number of new rows found
        on_error: Called with the exception when a check fails
        last_check_time: Initial cursor (defaults to the creation instant)
    """

    user_id: str
    interval_ms: int = DEFAULT_INTERVAL_MS
    on_new_notifications: Optional[Callable[[int], None]] = None
    on_error: Optional[Callable[[Exception], None]] = None
    last_check_time: Optional[datetime] = None

    def __post_init__(self):
        if not self.user_id:
            raise ValueError("user_id is required")
        if self.interval_ms <= 0:
            raise ValueError(f"interval_ms must be positive, got {self.interval_ms}")


@dataclass(frozen=True)
class PollerCursor:
    """Snapshot of a poller's state."""

    user_id: str
    last_check_time: datetime
    interval_ms: int
    running: bool
