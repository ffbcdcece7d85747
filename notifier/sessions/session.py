"""Lifetime of one user's notification listeners.

A session wires the realtime channel, the user's poller and the module
aggregator together when the user signs in or opens the app, and tears all of
it down on logout or navigation away. Both channels are treated as plain
"something changed" signals: each one triggers a full recount, and
``on_change`` is called with no payload so that two channels reporting the
same row never turn into two different notifications on screen.
"""

from typing import Callable, Dict, Optional

from notifier.aggregation.aggregator import ModuleAggregator
from notifier.logging import get_logger
from notifier.persistence.database import get_session
from notifier.polling.manager import PollerManager
from notifier.polling.models import PollerOptions
from notifier.polling.poller import NotificationPoller, SessionProvider
from notifier.realtime.channel import RealtimeChannel

logger = get_logger(__name__, component="session")


class UserNotificationSession:
    """Realtime subscription + poller + module counts for one signed-in user."""

    def __init__(
        self,
        user_id: str,
        channel: RealtimeChannel,
        poller_manager: PollerManager,
        on_change: Optional[Callable[[], None]] = None,
        interval_ms: Optional[int] = None,
        session_provider: SessionProvider = get_session,
    ):
        self.user_id = user_id
        self.channel = channel
        self.poller_manager = poller_manager
        self.on_change = on_change
        self.interval_ms = interval_ms
        self.session_provider = session_provider

        self.aggregator: Optional[ModuleAggregator] = None
        self.poller: Optional[NotificationPoller] = None

    @property
    def is_open(self) -> bool:
        return self.aggregator is not None

    def open(self) -> "UserNotificationSession":
        """Subscribe, start polling and compute the initial counts. Idempotent."""
        if self.is_open:
            return self

        self.aggregator = ModuleAggregator(
            self.user_id,
            session_provider=self.session_provider,
            on_update=self._counts_changed,
        )
        self.poller = self.poller_manager.acquire(
            PollerOptions(
                user_id=self.user_id,
                interval_ms=self.interval_ms or self.poller_manager.default_interval_ms,
                on_error=self._poll_failed,
            )
        )
        self.aggregator.bind(channel=self.channel, poller=self.poller)
        self.poller.start()
        self.aggregator.refresh()

        logger.info(
            f"Notification session opened for {self.user_id}",
            extra={"event": "session.opened", "user_id": self.user_id},
        )
        return self

    def close(self) -> None:
        """Release the subscription and the poller. Idempotent."""
        if not self.is_open:
            return

        aggregator, self.aggregator = self.aggregator, None
        self.poller = None

        aggregator.close()
        self.poller_manager.release(self.user_id)

        logger.info(
            f"Notification session closed for {self.user_id}",
            extra={"event": "session.closed", "user_id": self.user_id},
        )

    def counts(self) -> Dict[str, int]:
        if self.aggregator is None:
            return {}
        return self.aggregator.counts()

    def __enter__(self):
        return self.open()

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False

    def _counts_changed(self, _counts: Dict[str, int]) -> None:
        if self.on_change is not None:
            self.on_change()

    def _poll_failed(self, error: Exception) -> None:
        logger.debug(
            f"Poll failed for {self.user_id}, retrying next interval: {error}",
            extra={"event": "session.poll_failed", "user_id": self.user_id},
        )
