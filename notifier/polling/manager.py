"""Registry enforcing at most one poller per user."""

import threading
from datetime import timezone
from typing import Callable, Dict, List, Optional

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.schedulers.base import BaseScheduler

from notifier.config.models import PollingConfig
from notifier.logging import get_logger
from notifier.persistence.database import get_session

from .models import DEFAULT_INTERVAL_MS, PollerOptions
from .poller import NotificationPoller, SessionProvider

logger = get_logger(__name__, component="poller_manager")


class PollerManager:
    """
    Thread-safe map of user ID to NotificationPoller.

    The manager is an ordinary object handed to whatever owns user sessions.
    Every poller it creates registers its timer on the manager's scheduler;
    when no scheduler is passed in, the manager creates a BackgroundScheduler,
    starts it on first use and shuts it down in ``shutdown()``.

    ``default_interval_ms`` is the poll interval for consumers that don't ask
    for one of their own.
    """

    def __init__(
        self,
        scheduler: Optional[BaseScheduler] = None,
        session_provider: SessionProvider = get_session,
        clock: Optional[Callable] = None,
        default_interval_ms: int = DEFAULT_INTERVAL_MS,
    ):
        if default_interval_ms <= 0:
            raise ValueError(f"default_interval_ms must be positive, got {default_interval_ms}")
        self.default_interval_ms = default_interval_ms
        self._owns_scheduler = scheduler is None
        self.scheduler = scheduler if scheduler is not None else BackgroundScheduler(
            job_defaults={"max_instances": 1, "coalesce": True},
            timezone=timezone.utc,
        )
        self.session_provider = session_provider
        self.clock = clock
        self._pollers: Dict[str, NotificationPoller] = {}
        self._consumers: Dict[str, int] = {}
        self._lock = threading.RLock()

    @classmethod
    def from_config(cls, config: PollingConfig, **kwargs) -> "PollerManager":
        """Build a manager whose pollers default to ``polling.interval_ms``."""
        return cls(default_interval_ms=config.interval_ms, **kwargs)

    def get_or_create(self, options: PollerOptions) -> NotificationPoller:
        """
        Return the user's poller, creating it if needed.

        A new poller is not started; the caller decides when. Options passed
        for a user that already has a poller are ignored.
        """
        with self._lock:
            poller = self._pollers.get(options.user_id)
            if poller is not None:
                return poller

            self._ensure_scheduler_running()

            kwargs = {"session_provider": self.session_provider}
            if self.clock is not None:
                kwargs["clock"] = self.clock
            poller = NotificationPoller(options, self.scheduler, **kwargs)
            self._pollers[options.user_id] = poller

        logger.debug(
            f"Poller created for {options.user_id}",
            extra={"event": "poller_manager.created", "user_id": options.user_id},
        )
        return poller

    def acquire(self, options: PollerOptions) -> NotificationPoller:
        """``get_or_create`` for a session-like consumer; pair with ``release``."""
        with self._lock:
            poller = self.get_or_create(options)
            self._consumers[options.user_id] = self._consumers.get(options.user_id, 0) + 1
            return poller

    def release(self, user_id: str) -> bool:
        """Drop one consumer; the last one out removes the poller.

        Returns:
            True if the poller was removed
        """
        with self._lock:
            remaining = self._consumers.get(user_id, 0) - 1
            if remaining > 0:
                self._consumers[user_id] = remaining
                return False
            self._consumers.pop(user_id, None)
        return self.remove(user_id)

    def consumer_count(self, user_id: str) -> int:
        with self._lock:
            return self._consumers.get(user_id, 0)

    def get(self, user_id: str) -> Optional[NotificationPoller]:
        with self._lock:
            return self._pollers.get(user_id)

    def remove(self, user_id: str) -> bool:
        """Stop and discard the user's poller.

        Returns:
            True if a poller was removed
        """
        with self._lock:
            poller = self._pollers.pop(user_id, None)
            self._consumers.pop(user_id, None)

        if poller is None:
            return False

        poller.stop()
        logger.debug(
            f"Poller removed for {user_id}",
            extra={"event": "poller_manager.removed", "user_id": user_id},
        )
        return True

    def stop_all(self) -> None:
        """Stop and discard every poller."""
        with self._lock:
            pollers = list(self._pollers.values())
            self._pollers.clear()
            self._consumers.clear()

        for poller in pollers:
            poller.stop()

        if pollers:
            logger.info(
                f"Stopped {len(pollers)} pollers",
                extra={"event": "poller_manager.stopped_all", "count": len(pollers)},
            )

    def shutdown(self) -> None:
        """Stop every poller and, if the manager owns it, the scheduler."""
        self.stop_all()
        if self._owns_scheduler and self.scheduler.running:
            self.scheduler.shutdown(wait=False)

    def user_ids(self) -> List[str]:
        with self._lock:
            return list(self._pollers)

    def __len__(self) -> int:
        with self._lock:
            return len(self._pollers)

    def __contains__(self, user_id: str) -> bool:
        with self._lock:
            return user_id in self._pollers

    def _ensure_scheduler_running(self) -> None:
        if self._owns_scheduler and not self.scheduler.running:
            self.scheduler.start()
