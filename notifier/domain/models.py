"""Core domain models for notification events, rows and recipient preferences.

This module defines the data structures used throughout the pipeline:
- NotificationEvent: normalized descriptor handed over by business-event producers
- Notification: one persisted row per resolved recipient
- QuietHours / NotificationPreferences: per-user delivery settings (external data)
"""

from datetime import datetime, time
from enum import Enum
from typing import Any, Dict, List, Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import BaseModel, Field, field_validator, model_validator

from notifier.utils.timestamps import ensure_utc, parse_clock_time, to_storage, utc_now


class RecipientStrategy(str, Enum):
    """How an event's recipients are resolved."""

    SINGLE = "single"
    TEAM = "team"
    CASE_MEMBERS = "case_members"
    ASSIGNED_USERS = "assigned_users"
    CUSTOM = "custom"


class Priority(str, Enum):
    """Notification priority, ordered low to urgent."""

    LOW = "low"
    NORMAL = "normal"
    HIGH = "high"
    URGENT = "urgent"

    @property
    def rank(self) -> int:
        return _PRIORITY_RANK[self]


_PRIORITY_RANK = {
    Priority.LOW: 0,
    Priority.NORMAL: 1,
    Priority.HIGH: 2,
    Priority.URGENT: 3,
}


class DeliveryStatus(str, Enum):
    """Row lifecycle. The only transition is PENDING -> DELIVERED."""

    PENDING = "pending"
    DELIVERED = "delivered"


class NotificationEvent(BaseModel):
    """Normalized event descriptor produced by case/task/hearing mutation handlers.

    The event is ephemeral: it is consumed exactly once by the dispatcher and
    never persisted as such. Recipient-set validation (non-empty IDs for
    ``single``/``custom``, ``firm_id`` for ``team`` ...) belongs to the
    resolver so that it surfaces as a ``ResolutionError``.
    """

    event_type: str = Field(..., min_length=1, description="Notification type tag")
    event_id: Optional[str] = Field(
        None, description="Producer-assigned identity; retries of one event reuse it"
    )
    recipient_strategy: RecipientStrategy = Field(..., description="Recipient resolution rule")
    recipient_ids: Optional[List[str]] = Field(
        None, description="Explicit recipients (single, custom, optionally assigned_users)"
    )
    reference_id: Optional[str] = Field(None, description="Business entity the event is about")
    case_id: Optional[str] = Field(None, description="Related case, if any")
    firm_id: Optional[str] = Field(None, description="Firm owning the entity")
    actor_id: Optional[str] = Field(None, description="User who caused the event")
    title: str = Field(..., min_length=1)
    message: str = Field(..., description="Notification body")
    category: str = Field("general", min_length=1)
    priority: Priority = Field(Priority.NORMAL)
    action_url: Optional[str] = None
    metadata: Dict[str, Any] = Field(default_factory=dict)
    occurred_at: datetime = Field(
        default_factory=utc_now, description="Origination instant (UTC)"
    )

    @field_validator("event_type", "title", "category")
    @classmethod
    def strip_whitespace(cls, v: str) -> str:
        """Strip whitespace from tag-like fields."""
        stripped = v.strip()
        if not stripped:
            raise ValueError("Field cannot be empty or whitespace-only")
        return stripped

    @field_validator("occurred_at")
    @classmethod
    def ensure_occurred_utc(cls, v: datetime) -> datetime:
        return ensure_utc(v)

    @property
    def occurrence_key(self) -> str:
        """Identity of this occurrence: ``event_id``, else the stored ``occurred_at``."""
        if self.event_id and self.event_id.strip():
            return self.event_id.strip()
        return to_storage(self.occurred_at)

    model_config = {"json_schema_extra": {"example": {
        "event_type": "hearing_rescheduled",
        "recipient_strategy": "case_members",
        "reference_id": "hearing-881",
        "case_id": "case-17",
        "firm_id": "firm-3",
        "actor_id": "user-9",
        "title": "Hearing Rescheduled",
        "message": "The hearing for Sharma v. State moved to 14 Nov",
        "category": "hearing",
        "priority": "high",
        "action_url": "/cases/case-17",
    }}}


class Notification(BaseModel):
    """One persisted notification row for a single recipient.

    Construction enforces the delivery invariants:
    - pending   => snoozed_until is set and delivered_at is not
    - delivered => snoozed_until is cleared and delivered_at is set
    """

    id: str = Field(..., description="Unique row identifier")
    recipient_id: str = Field(..., min_length=1)
    notification_type: str = Field(..., min_length=1)
    title: str
    message: str
    category: str
    priority: Priority = Priority.NORMAL
    read: bool = False
    delivery_status: DeliveryStatus
    snoozed_until: Optional[datetime] = None
    created_at: datetime
    delivered_at: Optional[datetime] = None
    reference_id: Optional[str] = None
    case_id: Optional[str] = None
    firm_id: Optional[str] = None
    action_url: Optional[str] = None
    metadata: Dict[str, Any] = Field(default_factory=dict)
    dedup_key: str = Field(..., description="Uniqueness key of the (event, recipient) pair")

    @field_validator("snoozed_until", "created_at", "delivered_at")
    @classmethod
    def ensure_timestamps_utc(cls, v: Optional[datetime]) -> Optional[datetime]:
        return ensure_utc(v)

    @model_validator(mode="after")
    def check_delivery_invariants(self):
        if self.delivery_status == DeliveryStatus.PENDING:
            if self.snoozed_until is None or self.delivered_at is not None:
                raise ValueError(
                    "pending notifications need snoozed_until and no delivered_at"
                )
        else:
            if self.snoozed_until is not None or self.delivered_at is None:
                raise ValueError(
                    "delivered notifications need delivered_at and no snoozed_until"
                )
        return self

    @property
    def is_pending(self) -> bool:
        return self.delivery_status == DeliveryStatus.PENDING


class QuietHours(BaseModel):
    """A recipient's do-not-disturb window in local wall-clock time.

    The window is half-open, ``[start, end)``. When ``start`` is later than
    ``end`` it spans midnight; when they are equal the window is empty.
    ``end`` and ``timezone`` may be omitted, in which case the dispatcher's
    configured defaults apply.
    """

    start: time = time(22, 0)
    end: Optional[time] = None
    timezone: Optional[str] = None
    enabled: bool = True

    @field_validator("start", "end", mode="before")
    @classmethod
    def parse_clock(cls, v: Any) -> Any:
        if isinstance(v, str):
            return parse_clock_time(v)
        return v

    @field_validator("timezone")
    @classmethod
    def validate_timezone(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return v
        try:
            ZoneInfo(v)
        except (ZoneInfoNotFoundError, ValueError) as e:
            raise ValueError(f"Unknown time zone: {v}") from e
        return v


class CategoryPreference(BaseModel):
    """Per-category switch and minimum priority."""

    enabled: bool = True
    priority_filter: Optional[Priority] = Field(
        None, description="Only deliver at or above this priority (high or urgent)"
    )


class NotificationPreferences(BaseModel):
    """Per-user notification settings, owned by an external preference store."""

    enabled: bool = True
    quiet_hours: Optional[QuietHours] = None
    categories: Dict[str, CategoryPreference] = Field(default_factory=dict)
    event_preferences: Dict[str, bool] = Field(default_factory=dict)
    muted_cases: List[str] = Field(default_factory=list)
    muted_clients: List[str] = Field(default_factory=list)
    muted_users: List[str] = Field(default_factory=list)
