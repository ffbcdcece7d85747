"""Notification dispatch: event -> recipients -> preferences -> gate -> store."""

from typing import Callable, ContextManager, Optional
from uuid import uuid4

from sqlalchemy.orm import Session

from notifier.domain.models import (
    DeliveryStatus,
    Notification,
    NotificationEvent,
)
from notifier.logging import get_logger
from notifier.logging.context import log_context
from notifier.persistence.database import get_session
from notifier.persistence.exceptions import DuplicateNotificationError
from notifier.persistence.repositories import NotificationRepository
from notifier.utils.hashing import compute_dedup_key
from notifier.utils.timestamps import utc_now

from .exceptions import ResolutionError
from .models import DispatchResult
from .preferences import suppression_reason
from .quiet_hours import GateDecision, QuietHoursGate
from .resolver import RecipientResolver

logger = get_logger(__name__, component="dispatcher")

SessionProvider = Callable[[], ContextManager[Session]]


class NotificationDispatcher:
    """
    Turns one NotificationEvent into one row per resolved recipient.

    Each recipient is written in its own transaction, so a failure for one
    recipient (store error, bad preference data) is logged with that
    recipient's ID and never affects the others. Re-dispatching an event is
    safe: rows are keyed by (event_type, reference_id, recipient_id) and an
    existing row is reported instead of written again.
    """

    def __init__(
        self,
        resolver: RecipientResolver,
        gate: QuietHoursGate,
        session_provider: SessionProvider = get_session,
        clock: Callable = utc_now,
    ):
        """
        Initialize the dispatcher.

        Args:
            resolver: Maps an event's recipient strategy to user IDs
            gate: Preference lookup and quiet-hours decision per recipient
            session_provider: Context manager factory yielding store sessions
            clock: Returns the current UTC instant
        """
        self.resolver = resolver
        self.gate = gate
        self.session_provider = session_provider
        self.clock = clock

    def dispatch(self, event: NotificationEvent) -> DispatchResult:
        """
        Dispatch ``event`` to every resolved recipient.

        Returns:
            DispatchResult with the notification IDs and per-outcome counts

        Raises:
            ResolutionError: If recipients cannot be resolved. No rows are
                written in that case.
        """
        with log_context(event_type=event.event_type, reference_id=event.reference_id):
            logger.info(
                f"Dispatching {event.event_type}",
                extra={
                    "event": "dispatch.started",
                    "recipient_strategy": event.recipient_strategy,
                },
            )

            try:
                recipients = self.resolver.resolve(event)
            except ResolutionError as e:
                logger.error(
                    f"Recipient resolution failed: {e}",
                    extra={
                        "event": "dispatch.resolution_failed",
                        "recipient_strategy": event.recipient_strategy,
                    },
                )
                raise

            result = DispatchResult(event_type=event.event_type, recipient_count=len(recipients))

            for recipient_id in recipients:
                try:
                    self._dispatch_to(event, recipient_id, result)
                except Exception as e:
                    result.failed_recipients.append(recipient_id)
                    logger.error(
                        f"Failed to write notification for {recipient_id}: {e}",
                        extra={
                            "event": "dispatch.recipient.failed",
                            "recipient_id": recipient_id,
                            "error_type": type(e).__name__,
                        },
                        exc_info=True,
                    )

            log = logger.warning if result.had_errors else logger.info
            log(
                f"Dispatch completed for {event.event_type}",
                extra={
                    "event": "dispatch.completed",
                    "recipient_count": result.recipient_count,
                    "delivered": result.delivered,
                    "queued": result.queued,
                    "skipped": result.skipped,
                    "duplicates": result.duplicates,
                    "failed": result.failed,
                    "failed_recipients": result.failed_recipients,
                },
            )
            return result

    def _dispatch_to(self, event: NotificationEvent, recipient_id: str, result: DispatchResult) -> None:
        preferences = self.gate.load_preferences(recipient_id)

        reason = suppression_reason(event, preferences)
        if reason is not None:
            result.skipped += 1
            logger.info(
                f"Notification suppressed for {recipient_id}: {reason}",
                extra={
                    "event": "dispatch.recipient.skipped",
                    "recipient_id": recipient_id,
                    "reason": reason,
                },
            )
            return

        quiet_hours = preferences.quiet_hours if preferences is not None else None
        decision = self.gate.decide(recipient_id, quiet_hours, event.occurred_at)

        now = self.clock()
        if not decision.deliver_now and decision.hold_until <= now:
            # Event arrived after the window had already ended
            decision = GateDecision.immediate()

        notification = self._build(event, recipient_id, decision, now)

        try:
            with self.session_provider() as session:
                persisted = NotificationRepository(session).add(notification)
        except DuplicateNotificationError as e:
            existing_id = self._existing_id(e.dedup_key)
            result.duplicates += 1
            if existing_id is not None:
                result.notification_ids.append(existing_id)
            logger.info(
                f"Notification already dispatched to {recipient_id}",
                extra={
                    "event": "dispatch.recipient.duplicate",
                    "recipient_id": recipient_id,
                    "notification_id": existing_id,
                },
            )
            return

        result.notification_ids.append(persisted.id)
        if persisted.is_pending:
            result.queued += 1
            logger.info(
                f"Notification queued for {recipient_id} until {persisted.snoozed_until.isoformat()}",
                extra={
                    "event": "dispatch.recipient.queued",
                    "recipient_id": recipient_id,
                    "notification_id": persisted.id,
                    "snoozed_until": persisted.snoozed_until,
                },
            )
        else:
            result.delivered += 1
            logger.debug(
                f"Notification delivered to {recipient_id}",
                extra={
                    "event": "dispatch.recipient.delivered",
                    "recipient_id": recipient_id,
                    "notification_id": persisted.id,
                },
            )

    def _build(
        self,
        event: NotificationEvent,
        recipient_id: str,
        decision: GateDecision,
        now,
    ) -> Notification:
        if decision.deliver_now:
            status, snoozed_until, delivered_at = DeliveryStatus.DELIVERED, None, now
        else:
            status, snoozed_until, delivered_at = DeliveryStatus.PENDING, decision.hold_until, None

        return Notification(
            id=uuid4().hex,
            recipient_id=recipient_id,
            notification_type=event.event_type,
            title=event.title,
            message=event.message,
            category=event.category,
            priority=event.priority,
            delivery_status=status,
            snoozed_until=snoozed_until,
            created_at=now,
            delivered_at=delivered_at,
            reference_id=event.reference_id,
            case_id=event.case_id,
            firm_id=event.firm_id,
            action_url=event.action_url,
            metadata=event.metadata,
            dedup_key=compute_dedup_key(
                event.event_type, event.reference_id, recipient_id, event.occurrence_key
            ),
        )

    def _existing_id(self, dedup_key: str) -> Optional[str]:
        with self.session_provider() as session:
            existing = NotificationRepository(session).get_by_dedup_key(dedup_key)
        return existing.id if existing is not None else None
