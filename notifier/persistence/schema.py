"""Database schema definition and ORM models.

This module defines the SQLAlchemy ORM model for the notification store and the
conversions between ORM rows and domain models.
"""

import json
import logging

from sqlalchemy import Boolean, CheckConstraint, Column, Index, String, Text
from sqlalchemy.engine import Engine
from sqlalchemy.orm import declarative_base

from notifier.domain.models import DeliveryStatus, Notification, Priority
from notifier.utils.timestamps import from_storage, to_storage

logger = logging.getLogger(__name__)

Base = declarative_base()


class NotificationModel(Base):
    """ORM model for the notifications table.

    One row per (event, resolved recipient). Timestamps are stored as
    fixed-width UTC ISO 8601 strings so string comparison is time comparison.
    """

    __tablename__ = "notifications"

    id = Column(String(32), primary_key=True, nullable=False)
    recipient_id = Column(String(64), nullable=False)

    # Content
    notification_type = Column(String(100), nullable=False)
    title = Column(Text, nullable=False)
    message = Column(Text, nullable=False)
    category = Column(String(50), nullable=False)
    priority = Column(String(10), nullable=False, default=Priority.NORMAL.value)
    action_url = Column(Text, nullable=True)
    # "metadata" is reserved on declarative classes
    metadata_json = Column("metadata", Text, nullable=False, default="{}")

    # Business references
    reference_id = Column(String(64), nullable=True)
    case_id = Column(String(64), nullable=True)
    firm_id = Column(String(64), nullable=True)

    # Lifecycle
    read = Column(Boolean, nullable=False, default=False)
    delivery_status = Column(String(10), nullable=False)
    snoozed_until = Column(String(50), nullable=True)
    created_at = Column(String(50), nullable=False)
    delivered_at = Column(String(50), nullable=True)

    # One row per (event_type, reference_id, recipient_id)
    dedup_key = Column(String(64), nullable=False, unique=True)

    __table_args__ = (
        CheckConstraint(
            "(delivery_status = 'pending' AND snoozed_until IS NOT NULL AND delivered_at IS NULL)"
            " OR (delivery_status = 'delivered' AND snoozed_until IS NULL AND delivered_at IS NOT NULL)",
            name="ck_notifications_delivery_state",
        ),
        Index("idx_notifications_recipient_created", "recipient_id", "created_at"),
        Index("idx_notifications_recipient_read", "recipient_id", "read"),
        Index("idx_notifications_due", "delivery_status", "snoozed_until"),
    )

    def to_domain(self) -> Notification:
        """Convert ORM model to domain model."""
        return Notification(
            id=self.id,
            recipient_id=self.recipient_id,
            notification_type=self.notification_type,
            title=self.title,
            message=self.message,
            category=self.category,
            priority=Priority(self.priority),
            read=bool(self.read),
            delivery_status=DeliveryStatus(self.delivery_status),
            snoozed_until=from_storage(self.snoozed_until),
            created_at=from_storage(self.created_at),
            delivered_at=from_storage(self.delivered_at),
            reference_id=self.reference_id,
            case_id=self.case_id,
            firm_id=self.firm_id,
            action_url=self.action_url,
            metadata=json.loads(self.metadata_json or "{}"),
            dedup_key=self.dedup_key,
        )

    @classmethod
    def from_domain(cls, notification: Notification) -> "NotificationModel":
        """Create ORM model from domain model."""
        return cls(
            id=notification.id,
            recipient_id=notification.recipient_id,
            notification_type=notification.notification_type,
            title=notification.title,
            message=notification.message,
            category=notification.category,
            priority=notification.priority.value,
            action_url=notification.action_url,
            metadata_json=json.dumps(notification.metadata, default=str),
            reference_id=notification.reference_id,
            case_id=notification.case_id,
            firm_id=notification.firm_id,
            read=notification.read,
            delivery_status=notification.delivery_status.value,
            snoozed_until=to_storage(notification.snoozed_until),
            created_at=to_storage(notification.created_at),
            delivered_at=to_storage(notification.delivered_at),
            dedup_key=notification.dedup_key,
        )


def create_schema(engine: Engine) -> None:
    """Create all tables and indexes if they don't exist (idempotent)."""
    logger.info("Creating database schema if not exists")

    try:
        Base.metadata.create_all(engine, checkfirst=True)

        from sqlalchemy import inspect

        tables = inspect(engine).get_table_names()
        logger.info(f"Database schema ready. Tables: {', '.join(tables)}")

    except Exception as e:
        logger.error(f"Failed to create database schema: {e}", exc_info=True)
        raise
