"""Per-user polling fallback for when realtime delivery is unavailable.

Each poller re-queries the store for the user's rows created strictly after a
cursor. The cursor only moves forward, and only after a successful query, so
the poller alone never reports the same row twice and a failed check is simply
retried on the next tick.

Timers are APScheduler interval jobs on a scheduler shared by every poller.
Stopping a poller removes its job; a check already running on a worker thread
is allowed to finish, but its result is discarded.
"""

import threading
from datetime import datetime, timezone
from typing import Callable, ContextManager, List, Optional
from uuid import uuid4

from apscheduler.job import Job
from apscheduler.jobstores.base import JobLookupError
from apscheduler.schedulers.base import BaseScheduler
from apscheduler.triggers.interval import IntervalTrigger
from sqlalchemy.orm import Session

from notifier.domain.models import Notification
from notifier.logging import get_logger
from notifier.logging.context import log_context
from notifier.persistence.database import get_session
from notifier.persistence.repositories import NotificationRepository
from notifier.utils.timestamps import ensure_utc, utc_now

from .models import PollerCursor, PollerOptions

logger = get_logger(__name__, component="poller")

SessionProvider = Callable[[], ContextManager[Session]]


class NotificationPoller:
    """Interval poller for one user's new notifications."""

    def __init__(
        self,
        options: PollerOptions,
        scheduler: BaseScheduler,
        session_provider: SessionProvider = get_session,
        clock: Callable[[], datetime] = utc_now,
    ):
        """
        Args:
            options: User, interval, callbacks and optional initial cursor
            scheduler: Scheduler the interval job is registered on
            session_provider: Context manager factory yielding store sessions
            clock: Returns the current UTC instant
        """
        self.options = options
        self.user_id = options.user_id
        self.scheduler = scheduler
        self.session_provider = session_provider
        self.clock = clock
        self.job_id = f"notification-poller:{self.user_id}:{uuid4().hex[:8]}"

        self._last_check_time = ensure_utc(options.last_check_time) or clock()
        self._interval_ms = options.interval_ms
        self._running = False
        self._job: Optional[Job] = None
        # Bumped on every start/stop; checks from an older timer are discarded
        self._generation = 0
        self._state_lock = threading.Lock()
        self._check_lock = threading.RLock()
        self._listeners: List[Callable[[int], None]] = []

    def add_listener(self, callback: Callable[[int], None]) -> None:
        """Also call ``callback(count)`` whenever a check finds new rows."""
        with self._state_lock:
            self._listeners.append(callback)

    def remove_listener(self, callback: Callable[[int], None]) -> None:
        with self._state_lock:
            if callback in self._listeners:
                self._listeners.remove(callback)

    @property
    def cursor(self) -> PollerCursor:
        with self._state_lock:
            return PollerCursor(
                user_id=self.user_id,
                last_check_time=self._last_check_time,
                interval_ms=self._interval_ms,
                running=self._running,
            )

    def is_active(self) -> bool:
        return self._running

    def start(self) -> None:
        """
        Start polling: one check right away, then one every ``interval_ms``.

        Calling this while already running is a no-op.
        """
        with self._state_lock:
            if self._running:
                logger.info(
                    f"Poller for {self.user_id} already running",
                    extra={"event": "poller.already_running", "user_id": self.user_id},
                )
                return

            self._running = True
            self._generation += 1
            generation = self._generation

            self._job = self.scheduler.add_job(
                func=self._tick,
                trigger=IntervalTrigger(
                    seconds=self._interval_ms / 1000, timezone=timezone.utc
                ),
                args=[generation],
                id=self.job_id,
                name=f"Notification poller ({self.user_id})",
                replace_existing=True,
                max_instances=1,
                coalesce=True,
                misfire_grace_time=max(1, self._interval_ms // 1000),
                next_run_time=datetime.now(timezone.utc),
            )

        logger.info(
            f"Poller started for {self.user_id} (interval: {self._interval_ms}ms)",
            extra={
                "event": "poller.started",
                "user_id": self.user_id,
                "interval_ms": self._interval_ms,
            },
        )

    def stop(self) -> None:
        """Cancel the timer. Idempotent; an in-flight check's result is discarded."""
        with self._state_lock:
            if not self._running:
                return
            self._running = False
            self._generation += 1
            job, self._job = self._job, None

        if job is not None:
            try:
                job.remove()
            except JobLookupError:
                pass

        logger.info(
            f"Poller stopped for {self.user_id}",
            extra={"event": "poller.stopped", "user_id": self.user_id},
        )

    def set_interval(self, interval_ms: int) -> None:
        """Change the interval; a running poller restarts with the new timer."""
        if interval_ms <= 0:
            raise ValueError(f"interval_ms must be positive, got {interval_ms}")

        self._interval_ms = interval_ms
        self.options.interval_ms = interval_ms

        if self._running:
            self.stop()
            self.start()

    def check_now(self) -> int:
        """Run one check synchronously in the calling thread.

        Returns:
            Number of new rows found (0 on failure)
        """
        return self._check(generation=None)

    def _tick(self, generation: int) -> None:
        self._check(generation)

    def _is_stale(self, generation: Optional[int]) -> bool:
        if generation is None:
            return False
        with self._state_lock:
            return not self._running or generation != self._generation

    def _check(self, generation: Optional[int]) -> int:
        with self._check_lock, log_context(user_id=self.user_id):
            since = self._last_check_time

            try:
                with self.session_provider() as session:
                    rows = NotificationRepository(session).list_created_since(self.user_id, since)
            except Exception as e:
                if self._is_stale(generation):
                    logger.debug(
                        "Discarding failed check from a stopped poller",
                        extra={"event": "poller.check.discarded"},
                    )
                    return 0
                logger.warning(
                    f"Notification poll failed: {e}",
                    extra={
                        "event": "poller.check.failed",
                        "error_type": type(e).__name__,
                    },
                )
                self._notify_error(e)
                return 0

            if self._is_stale(generation):
                logger.debug(
                    "Discarding check result from a stopped poller",
                    extra={"event": "poller.check.discarded", "row_count": len(rows)},
                )
                return 0

            if not rows:
                return 0

            self._advance(rows)

            count = len(rows)
            logger.info(
                f"Poller found {count} new notifications",
                extra={
                    "event": "poller.check.found",
                    "count": count,
                    "cursor": self._last_check_time,
                },
            )
            self._notify_new(count)
            return count

    def _advance(self, rows: List[Notification]) -> None:
        newest = max(row.created_at for row in rows)
        with self._state_lock:
            if newest > self._last_check_time:
                self._last_check_time = newest

    def _notify_new(self, count: int) -> None:
        with self._state_lock:
            callbacks = list(self._listeners)
        if self.options.on_new_notifications is not None:
            callbacks.insert(0, self.options.on_new_notifications)

        for callback in callbacks:
            try:
                callback(count)
            except Exception as e:
                logger.warning(
                    f"on_new_notifications callback failed: {e}",
                    extra={"event": "poller.callback_failed", "error_type": type(e).__name__},
                    exc_info=True,
                )

    def _notify_error(self, error: Exception) -> None:
        callback = self.options.on_error
        if callback is None:
            return
        try:
            callback(error)
        except Exception as e:
            logger.warning(
                f"on_error callback failed: {e}",
                extra={"event": "poller.callback_failed", "error_type": type(e).__name__},
                exc_info=True,
            )
