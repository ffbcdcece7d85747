"""Data access layer for the notification store.

NotificationRepository encapsulates every read and write the pipeline makes
against the notifications table and returns domain models rather than ORM rows.
Each mutation is recorded on the session so it reaches the change feed after
commit.
"""

import logging
from datetime import datetime
from typing import Dict, List, Optional

from sqlalchemy import func, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from notifier.domain.models import DeliveryStatus, Notification
from notifier.utils.timestamps import to_storage

from .change_feed import ChangeEvent, ChangeType
from .database import record_change
from .exceptions import (
    DataIntegrityError,
    DuplicateNotificationError,
    PersistenceError,
    RecordNotFoundError,
)
from .schema import NotificationModel

logger = logging.getLogger(__name__)


class NotificationRepository:
    """Repository for notification row operations."""

    def __init__(self, session: Session):
        """Initialize repository with database session.

        Args:
            session: SQLAlchemy session for database operations
        """
        self.session = session

    def add(self, notification: Notification) -> Notification:
        """Insert a new notification row.

        Args:
            notification: Fully built row (id, dedup_key and delivery state set)

        Returns:
            Persisted Notification domain model

        Raises:
            DuplicateNotificationError: If a row with the same dedup_key exists
            DataIntegrityError: If the row violates another store constraint
            PersistenceError: If database error occurs
        """
        try:
            existing = self._get_model_by_dedup_key(notification.dedup_key)
            if existing is not None:
                raise DuplicateNotificationError(
                    f"Notification already exists for dedup key {notification.dedup_key}",
                    dedup_key=notification.dedup_key,
                )

            model = NotificationModel.from_domain(notification)
            self.session.add(model)
            self.session.flush()

            persisted = model.to_domain()
            record_change(self.session, ChangeEvent(ChangeType.INSERT, persisted))
            return persisted

        except IntegrityError as e:
            if "dedup_key" not in str(e.orig):
                logger.error(
                    f"Constraint violated inserting notification {notification.id}: {e.orig}",
                    exc_info=True,
                )
                raise DataIntegrityError(f"Failed to insert notification: {e.orig}") from e

            # A concurrent dispatch won the race for the unique dedup_key
            logger.debug(
                f"Duplicate notification for dedup key {notification.dedup_key} "
                f"(expected under concurrent dispatch)"
            )
            raise DuplicateNotificationError(
                f"Notification already exists for dedup key {notification.dedup_key}",
                dedup_key=notification.dedup_key,
            ) from e
        except SQLAlchemyError as e:
            logger.error(f"Error inserting notification {notification.id}: {e}", exc_info=True)
            raise PersistenceError(f"Failed to insert notification: {e}") from e

    def get_by_id(self, notification_id: str) -> Optional[Notification]:
        """Retrieve a notification by primary key, or None."""
        try:
            model = self.session.get(NotificationModel, notification_id)
            return model.to_domain() if model is not None else None

        except SQLAlchemyError as e:
            logger.error(f"Error retrieving notification {notification_id}: {e}", exc_info=True)
            raise PersistenceError(f"Failed to retrieve notification: {e}") from e

    def get_by_dedup_key(self, dedup_key: str) -> Optional[Notification]:
        """Retrieve the row for an (event, recipient) pair, or None."""
        try:
            model = self._get_model_by_dedup_key(dedup_key)
            return model.to_domain() if model is not None else None

        except SQLAlchemyError as e:
            logger.error(f"Error retrieving notification by dedup key: {e}", exc_info=True)
            raise PersistenceError(f"Failed to retrieve notification: {e}") from e

    def list_created_since(
        self,
        recipient_id: str,
        since: Optional[datetime],
        limit: Optional[int] = None,
    ) -> List[Notification]:
        """Rows for ``recipient_id`` created strictly after ``since``.

        Args:
            recipient_id: Recipient user ID
            since: Exclusive lower bound on created_at (None means everything)
            limit: Optional maximum number of rows

        Returns:
            Notifications ordered by created_at ascending
        """
        try:
            stmt = select(NotificationModel).where(NotificationModel.recipient_id == recipient_id)
            if since is not None:
                stmt = stmt.where(NotificationModel.created_at > to_storage(since))
            stmt = stmt.order_by(NotificationModel.created_at.asc(), NotificationModel.id.asc())
            if limit is not None:
                stmt = stmt.limit(limit)

            models = self.session.execute(stmt).scalars().all()
            return [model.to_domain() for model in models]

        except SQLAlchemyError as e:
            logger.error(
                f"Error listing notifications for {recipient_id} since {since}: {e}",
                exc_info=True,
            )
            raise PersistenceError(f"Failed to list notifications: {e}") from e

    def list_unread(self, recipient_id: str) -> List[Notification]:
        """All unread rows for ``recipient_id``, newest first."""
        try:
            stmt = (
                select(NotificationModel)
                .where(
                    NotificationModel.recipient_id == recipient_id,
                    NotificationModel.read.is_(False),
                )
                .order_by(NotificationModel.created_at.desc())
            )
            models = self.session.execute(stmt).scalars().all()
            return [model.to_domain() for model in models]

        except SQLAlchemyError as e:
            logger.error(f"Error listing unread notifications for {recipient_id}: {e}", exc_info=True)
            raise PersistenceError(f"Failed to list unread notifications: {e}") from e

    def list_unread_types(self, recipient_id: str) -> List[str]:
        """``notification_type`` of every unread row for ``recipient_id``."""
        try:
            stmt = select(NotificationModel.notification_type).where(
                NotificationModel.recipient_id == recipient_id,
                NotificationModel.read.is_(False),
            )
            return list(self.session.execute(stmt).scalars().all())

        except SQLAlchemyError as e:
            logger.error(f"Error listing unread types for {recipient_id}: {e}", exc_info=True)
            raise PersistenceError(f"Failed to list unread notification types: {e}") from e

    def list_due(self, now: datetime, limit: int) -> List[Notification]:
        """Pending rows whose hold has expired, oldest due first.

        Args:
            now: Reference instant (rows with snoozed_until <= now are due)
            limit: Maximum number of rows to return

        Returns:
            Notifications ordered by snoozed_until ascending
        """
        try:
            stmt = (
                select(NotificationModel)
                .where(
                    NotificationModel.delivery_status == DeliveryStatus.PENDING.value,
                    NotificationModel.snoozed_until.is_not(None),
                    NotificationModel.snoozed_until <= to_storage(now),
                )
                .order_by(NotificationModel.snoozed_until.asc(), NotificationModel.id.asc())
                .limit(limit)
            )
            models = self.session.execute(stmt).scalars().all()
            return [model.to_domain() for model in models]

        except SQLAlchemyError as e:
            logger.error(f"Error listing due notifications: {e}", exc_info=True)
            raise PersistenceError(f"Failed to list due notifications: {e}") from e

    def promote_if_due(self, notification_id: str, now: datetime) -> Optional[Notification]:
        """Conditionally transition one row from pending to delivered.

        The UPDATE only matches while the row is still pending and due, so when
        two promoters race for the same row exactly one of them wins.

        Args:
            notification_id: Row to promote
            now: Promotion instant, stored as delivered_at

        Returns:
            The promoted Notification, or None if the row was no longer eligible

        Raises:
            PersistenceError: If database error occurs
        """
        try:
            now_str = to_storage(now)
            stmt = (
                update(NotificationModel)
                .where(
                    NotificationModel.id == notification_id,
                    NotificationModel.delivery_status == DeliveryStatus.PENDING.value,
                    NotificationModel.snoozed_until.is_not(None),
                    NotificationModel.snoozed_until <= now_str,
                )
                .values(
                    delivery_status=DeliveryStatus.DELIVERED.value,
                    snoozed_until=None,
                    delivered_at=now_str,
                )
                .execution_options(synchronize_session=False)
            )
            result = self.session.execute(stmt)

            if result.rowcount == 0:
                return None

            model = self.session.get(NotificationModel, notification_id, populate_existing=True)
            promoted = model.to_domain()
            record_change(self.session, ChangeEvent(ChangeType.UPDATE, promoted))
            return promoted

        except SQLAlchemyError as e:
            logger.error(f"Error promoting notification {notification_id}: {e}", exc_info=True)
            raise PersistenceError(f"Failed to promote notification: {e}") from e

    def mark_read(self, notification_id: str, read: bool = True) -> Notification:
        """Set the ``read`` flag on a row.

        Raises:
            RecordNotFoundError: If the row doesn't exist
            PersistenceError: If database error occurs
        """
        try:
            model = self.session.get(NotificationModel, notification_id)
            if model is None:
                raise RecordNotFoundError(f"Notification {notification_id} not found")

            model.read = read
            self.session.flush()

            updated = model.to_domain()
            record_change(self.session, ChangeEvent(ChangeType.UPDATE, updated))
            return updated

        except RecordNotFoundError:
            raise
        except SQLAlchemyError as e:
            logger.error(f"Error marking notification {notification_id} read: {e}", exc_info=True)
            raise PersistenceError(f"Failed to mark notification read: {e}") from e

    def count_by_status(self) -> Dict[str, int]:
        """Row counts keyed by delivery_status (observability)."""
        try:
            stmt = select(
                NotificationModel.delivery_status, func.count(NotificationModel.id)
            ).group_by(NotificationModel.delivery_status)
            counts = {status.value: 0 for status in DeliveryStatus}
            for status, count in self.session.execute(stmt).all():
                counts[status] = count
            return counts

        except SQLAlchemyError as e:
            logger.error(f"Error counting notifications by status: {e}", exc_info=True)
            raise PersistenceError(f"Failed to count notifications: {e}") from e

    def _get_model_by_dedup_key(self, dedup_key: str) -> Optional[NotificationModel]:
        stmt = select(NotificationModel).where(NotificationModel.dedup_key == dedup_key)
        return self.session.execute(stmt).scalar_one_or_none()
