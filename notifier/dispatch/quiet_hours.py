"""Quiet-hours gate: deliver now, or hold until the recipient's window ends.

A recipient's window is half-open, ``[start, end)``, in their local time zone.
Windows whose start is later than their end cross midnight (22:00-07:00).
An event originating exactly at ``end`` is delivered immediately.

The gate never drops a notification: missing preferences, disabled windows,
lookup failures and unusable time zones all resolve to immediate delivery.
"""

from dataclasses import dataclass
from datetime import datetime, time, timedelta, timezone
from typing import Optional, Protocol
from zoneinfo import ZoneInfo

from notifier.domain.models import NotificationPreferences, QuietHours
from notifier.logging import get_logger
from notifier.utils.timestamps import ensure_utc

logger = get_logger(__name__, component="quiet_hours")

DEFAULT_QUIET_HOURS_END = time(8, 0)


class PreferenceStore(Protocol):
    """Per-user notification preferences, owned by the host application."""

    def get_preferences(self, user_id: str) -> Optional[NotificationPreferences]:
        """Return the user's preferences, or None if they have none.

        May raise ``PreferenceLookupError`` (or anything else) on failure.
        """
        ...


@dataclass(frozen=True)
class GateDecision:
    """Outcome of the quiet-hours check for one recipient.

    Attributes:
        deliver_now: True to write the row as delivered
        hold_until: UTC instant the row is held until (set iff not deliver_now)
    """

    deliver_now: bool
    hold_until: Optional[datetime] = None

    @classmethod
    def immediate(cls) -> "GateDecision":
        return cls(deliver_now=True)

    @classmethod
    def hold(cls, until: datetime) -> "GateDecision":
        return cls(deliver_now=False, hold_until=until)


def in_window(local_time: time, start: time, end: time) -> bool:
    """Whether ``local_time`` falls in the half-open window ``[start, end)``."""
    if start == end:
        return False
    if start < end:
        return start <= local_time < end
    return local_time >= start or local_time < end


def next_window_end(local_now: datetime, end: time) -> datetime:
    """First instant strictly after ``local_now`` whose wall clock reads ``end``.

    ``local_now`` must be aware; the result carries the same zone.
    """
    zone = local_now.tzinfo
    candidate = datetime.combine(local_now.date(), end, tzinfo=zone)
    if candidate <= local_now:
        candidate = datetime.combine(local_now.date() + timedelta(days=1), end, tzinfo=zone)
    return candidate


class QuietHoursGate:
    """Decide per recipient whether a notification is delivered or held."""

    def __init__(
        self,
        preference_store: Optional[PreferenceStore] = None,
        default_timezone: str = "UTC",
        default_end: time = DEFAULT_QUIET_HOURS_END,
    ):
        self.preference_store = preference_store
        self.default_timezone = default_timezone
        self.default_end = default_end

    def load_preferences(self, recipient_id: str) -> Optional[NotificationPreferences]:
        """Fetch ``recipient_id``'s preferences, or None to apply the defaults.

        A failed lookup is logged and treated like a missing record, so the
        notification is delivered unfiltered and immediately.
        """
        if self.preference_store is None:
            return None

        try:
            preferences = self.preference_store.get_preferences(recipient_id)
        except Exception as e:
            logger.warning(
                f"Preference lookup failed for {recipient_id}, using defaults: {e}",
                extra={
                    "event": "quiet_hours.lookup_failed",
                    "recipient_id": recipient_id,
                    "error_type": type(e).__name__,
                },
            )
            return None

        if preferences is None:
            logger.debug(
                f"No preferences for {recipient_id}, using defaults",
                extra={"event": "quiet_hours.no_preferences", "recipient_id": recipient_id},
            )
        return preferences

    def decide(
        self,
        recipient_id: str,
        quiet_hours: Optional[QuietHours],
        occurred_at: datetime,
    ) -> GateDecision:
        """Decide for an already-loaded quiet-hours window."""
        if quiet_hours is None or not quiet_hours.enabled:
            return GateDecision.immediate()

        end = quiet_hours.end or self.default_end
        zone_name = quiet_hours.timezone or self.default_timezone

        try:
            zone = ZoneInfo(zone_name)
        except Exception as e:
            logger.warning(
                f"Unusable time zone '{zone_name}' for {recipient_id}, delivering immediately",
                extra={
                    "event": "quiet_hours.invalid_timezone",
                    "recipient_id": recipient_id,
                    "error_type": type(e).__name__,
                },
            )
            return GateDecision.immediate()

        local_now = ensure_utc(occurred_at).astimezone(zone)

        if not in_window(local_now.time().replace(tzinfo=None), quiet_hours.start, end):
            return GateDecision.immediate()

        hold_until = next_window_end(local_now, end).astimezone(timezone.utc)

        logger.debug(
            f"Holding notification for {recipient_id} until {hold_until.isoformat()}",
            extra={
                "event": "quiet_hours.held",
                "recipient_id": recipient_id,
                "hold_until": hold_until,
            },
        )
        return GateDecision.hold(hold_until)
