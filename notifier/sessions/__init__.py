"""Per-user notification session wiring."""

from .session import UserNotificationSession

__all__ = [
    "UserNotificationSession",
]
