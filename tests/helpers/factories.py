"""Builders for events and notification rows used across tests."""

from datetime import datetime, timedelta, timezone
from typing import Optional
from uuid import uuid4

from notifier.domain.models import (
    DeliveryStatus,
    Notification,
    NotificationEvent,
    Priority,
    RecipientStrategy,
)
from notifier.utils.hashing import compute_dedup_key

BASE_TIME = datetime(2025, 11, 4, 12, 0, 0, tzinfo=timezone.utc)


def make_event(
    event_type: str = "task_assigned",
    recipient_strategy: RecipientStrategy = RecipientStrategy.SINGLE,
    recipient_ids=("user-1",),
    reference_id: Optional[str] = "task-1",
    **overrides,
) -> NotificationEvent:
    fields = {
        "event_type": event_type,
        "recipient_strategy": recipient_strategy,
        "recipient_ids": list(recipient_ids) if recipient_ids is not None else None,
        "reference_id": reference_id,
        "firm_id": "firm-1",
        "title": "Task Assigned",
        "message": "You have been assigned a new task",
        "category": "task",
        "priority": Priority.NORMAL,
        "occurred_at": BASE_TIME,
    }
    fields.update(overrides)
    return NotificationEvent(**fields)


def make_notification(
    recipient_id: str = "user-1",
    notification_type: str = "task_assigned",
    created_at: datetime = BASE_TIME,
    pending_until: Optional[datetime] = None,
    read: bool = False,
    reference_id: Optional[str] = None,
    **overrides,
) -> Notification:
    """Build a delivered row, or a pending one when ``pending_until`` is given."""
    reference_id = reference_id or uuid4().hex
    if pending_until is not None:
        state = {
            "delivery_status": DeliveryStatus.PENDING,
            "snoozed_until": pending_until,
            "delivered_at": None,
        }
    else:
        state = {
            "delivery_status": DeliveryStatus.DELIVERED,
            "snoozed_until": None,
            "delivered_at": created_at,
        }

    fields = {
        "id": uuid4().hex,
        "recipient_id": recipient_id,
        "notification_type": notification_type,
        "title": "Notification",
        "message": "Something happened",
        "category": notification_type.split("_", 1)[0],
        "read": read,
        "created_at": created_at,
        "reference_id": reference_id,
        "dedup_key": compute_dedup_key(notification_type, reference_id, recipient_id),
        **state,
    }
    fields.update(overrides)
    return Notification(**fields)


def seconds_after(seconds: float, base: datetime = BASE_TIME) -> datetime:
    return base + timedelta(seconds=seconds)
