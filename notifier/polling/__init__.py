"""Polling fallback: per-user interval checks for new notifications."""

from .manager import PollerManager
from .models import DEFAULT_INTERVAL_MS, PollerCursor, PollerOptions
from .poller import NotificationPoller

__all__ = [
    "NotificationPoller",
    "PollerManager",
    "PollerOptions",
    "PollerCursor",
    "DEFAULT_INTERVAL_MS",
]
