"""Queue promoter: move held notifications to delivered once their hold expires."""

import threading
from typing import Callable, ContextManager, Optional
from uuid import uuid4

from sqlalchemy.orm import Session

from notifier.logging import get_logger
from notifier.logging.context import log_context
from notifier.persistence.database import get_session
from notifier.persistence.repositories import NotificationRepository
from notifier.utils.timestamps import utc_now

from .models import PromotionResult

logger = get_logger(__name__, component="promoter")

DEFAULT_BATCH_SIZE = 100

SessionProvider = Callable[[], ContextManager[Session]]


class QueuePromoter:
    """
    Idempotent unit of work run by the scheduler.

    Each run selects up to ``batch_size`` due rows (pending, snoozed_until <=
    now, oldest first) and promotes them one at a time. Every promotion is a
    conditional UPDATE in its own transaction that only matches a row that is
    still pending and due, so overlapping runs (in this process or another)
    partition the batch instead of promoting a row twice. A row lost to a
    concurrent run is counted as ``skipped``; a row whose update fails is
    counted as ``failed`` and picked up again on the next run.
    """

    def __init__(
        self,
        batch_size: int = DEFAULT_BATCH_SIZE,
        session_provider: SessionProvider = get_session,
        clock: Callable = utc_now,
    ):
        self.batch_size = batch_size
        self.session_provider = session_provider
        self.clock = clock
        self._lock = threading.Lock()

    def promote_queued(self, batch_size: Optional[int] = None) -> PromotionResult:
        """
        Promote every due row in one batch.

        Args:
            batch_size: Override for the configured batch size

        Returns:
            PromotionResult with selected/promoted/failed/skipped counts.
            Store errors are captured in the result, never raised.
        """
        run_started_at = self.clock()
        promotion_id = uuid4().hex
        limit = batch_size or self.batch_size

        if not self._lock.acquire(blocking=False):
            with log_context(promotion_id=promotion_id):
                logger.warning(
                    "Promotion run skipped: previous run still in progress",
                    extra={"event": "promoter.run.skipped", "reason": "lock_held"},
                )
            return PromotionResult(
                run_started_at=run_started_at,
                run_finished_at=self.clock(),
                lock_held=True,
            )

        try:
            with log_context(promotion_id=promotion_id):
                return self._run(run_started_at, limit)
        finally:
            self._lock.release()

    def _run(self, run_started_at, limit: int) -> PromotionResult:
        now = run_started_at
        logger.info(
            "Promotion run started",
            extra={"event": "promoter.run.started", "batch_size": limit},
        )

        try:
            with self.session_provider() as session:
                due = NotificationRepository(session).list_due(now, limit)
        except Exception as e:
            logger.error(
                f"Failed to select due notifications: {e}",
                extra={"event": "promoter.select.failed", "error_type": type(e).__name__},
                exc_info=True,
            )
            return PromotionResult(
                run_started_at=run_started_at,
                run_finished_at=self.clock(),
                error=str(e),
            )

        result = PromotionResult(
            run_started_at=run_started_at,
            run_finished_at=run_started_at,
            selected=len(due),
        )

        for notification in due:
            try:
                with self.session_provider() as session:
                    promoted = NotificationRepository(session).promote_if_due(notification.id, now)
            except Exception as e:
                result.failed += 1
                logger.error(
                    f"Failed to promote notification {notification.id}: {e}",
                    extra={
                        "event": "promoter.row.failed",
                        "notification_id": notification.id,
                        "recipient_id": notification.recipient_id,
                        "error_type": type(e).__name__,
                    },
                    exc_info=True,
                )
                continue

            if promoted is None:
                result.skipped += 1
                logger.debug(
                    f"Notification {notification.id} already promoted elsewhere",
                    extra={"event": "promoter.row.skipped", "notification_id": notification.id},
                )
            else:
                result.promoted += 1

        result.run_finished_at = self.clock()

        log = logger.warning if result.failed else logger.info
        log(
            "Promotion run completed",
            extra={
                "event": "promoter.run.completed",
                "duration_ms": int(result.duration_seconds * 1000),
                "selected": result.selected,
                "promoted": result.promoted,
                "failed": result.failed,
                "skipped": result.skipped,
            },
        )
        return result
