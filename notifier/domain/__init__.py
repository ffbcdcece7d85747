"""Domain models for the case notifier."""

from .models import (
    CategoryPreference,
    DeliveryStatus,
    Notification,
    NotificationEvent,
    NotificationPreferences,
    Priority,
    QuietHours,
    RecipientStrategy,
)

__all__ = [
    "NotificationEvent",
    "Notification",
    "RecipientStrategy",
    "Priority",
    "DeliveryStatus",
    "QuietHours",
    "CategoryPreference",
    "NotificationPreferences",
]
