"""Data models for dispatch reporting."""

from dataclasses import dataclass, field
from typing import List


@dataclass
class DispatchResult:
    """
    Outcome of dispatching one event.

    Attributes:
        event_type: Type tag of the dispatched event
        recipient_count: Number of resolved recipients
        notification_ids: IDs of the rows for this event, including rows that
            already existed from an earlier dispatch of the same event
        delivered: Rows written as delivered
        queued: Rows written as pending (held by quiet hours)
        skipped: Recipients suppressed by their preferences
        duplicates: Recipients that already had a row for this event
        failed_recipients: Recipients whose row could not be written
    """

    event_type: str
    recipient_count: int = 0
    notification_ids: List[str] = field(default_factory=list)
    delivered: int = 0
    queued: int = 0
    skipped: int = 0
    duplicates: int = 0
    failed_recipients: List[str] = field(default_factory=list)

    @property
    def failed(self) -> int:
        return len(self.failed_recipients)

    @property
    def had_errors(self) -> bool:
        return bool(self.failed_recipients)
