"""Timestamp utilities for UTC handling and storage formatting.

Every instant the pipeline persists or compares is a timezone-aware UTC
``datetime``. The store keeps them as fixed-width strings
(``YYYY-MM-DDTHH:MM:SS.ffffffZ``) so that lexical order equals time order,
which the promoter's ``snoozed_until <= now`` and the poller's
``created_at > cursor`` comparisons rely on.
"""

import re
from datetime import datetime, time, timezone
from typing import Optional

STORAGE_FORMAT = "%Y-%m-%dT%H:%M:%S.%fZ"

_CLOCK_PATTERN = re.compile(r"^([01]?\d|2[0-3]):([0-5]\d)(?::([0-5]\d))?$")


def utc_now() -> datetime:
    """Get current UTC time as timezone-aware datetime.

    Example:
        >>> utc_now().tzinfo == timezone.utc
        True
    """
    return datetime.now(timezone.utc)


def ensure_utc(dt: Optional[datetime]) -> Optional[datetime]:
    """Ensure a datetime is timezone-aware and in UTC.

    Naive datetimes are treated as UTC; aware ones are converted.

    Example:
        >>> ensure_utc(datetime(2025, 11, 4, 12, 0)).tzinfo == timezone.utc
        True
    """
    if dt is None:
        return None

    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)

    return dt.astimezone(timezone.utc)


def to_storage(dt: Optional[datetime]) -> Optional[str]:
    """Format a datetime for database storage (UTC, microseconds, ``Z`` suffix)."""
    if dt is None:
        return None
    return ensure_utc(dt).strftime(STORAGE_FORMAT)


def from_storage(value: Optional[str]) -> Optional[datetime]:
    """Parse a stored timestamp back into an aware UTC datetime."""
    if value is None or value == "":
        return None

    value = value.rstrip("Z")
    try:
        dt = datetime.strptime(value, "%Y-%m-%dT%H:%M:%S.%f")
    except ValueError:
        dt = datetime.strptime(value, "%Y-%m-%dT%H:%M:%S")

    return dt.replace(tzinfo=timezone.utc)


def parse_clock_time(value: str) -> time:
    """Parse a wall-clock ``HH:MM`` (or ``HH:MM:SS``) string.

    Raises:
        ValueError: If the string is not a valid 24-hour clock time

    Example:
        >>> parse_clock_time("07:30")
        datetime.time(7, 30)
    """
    match = _CLOCK_PATTERN.match(value.strip()) if isinstance(value, str) else None
    if not match:
        raise ValueError(f"Invalid clock time: {value!r}. Expected HH:MM (24-hour)")

    hours, minutes, seconds = match.groups()
    return time(int(hours), int(minutes), int(seconds or 0))
