"""Scheduler service for periodic queue promotion."""

import threading
from datetime import datetime, timezone
from typing import Callable, Optional

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.interval import IntervalTrigger

from notifier.logging import get_logger

logger = get_logger(__name__, component="scheduler")

PROMOTER_JOB_ID = "queue-promoter"


class SchedulerService:
    """
    Wraps APScheduler to run the queue promoter at the configured cadence.

    Uses BackgroundScheduler so jobs run on worker threads while the main
    thread handles signals and coordinates shutdown.
    """

    def __init__(
        self,
        job_callable: Callable[[], object],
        interval_seconds: int,
        shutdown_event: Optional[threading.Event] = None,
    ):
        """
        Initialize the scheduler service.

        Args:
            job_callable: Function to call on each tick (e.g. promoter.promote_queued)
            interval_seconds: Interval between runs in seconds
            shutdown_event: Optional event to set on shutdown for coordination
        """
        self.job_callable = job_callable
        self.interval_seconds = interval_seconds
        self.shutdown_event = shutdown_event

        self.scheduler = BackgroundScheduler(
            job_defaults={
                "max_instances": 1,  # Prevent overlapping runs
                "coalesce": True,  # If run is delayed, only execute once
                "misfire_grace_time": interval_seconds,
            },
            timezone=timezone.utc,
        )

    def start(self) -> None:
        """
        Register the promoter job and start the scheduler.

        The first run executes immediately, so rows that came due while the
        service was down are promoted at startup.
        """
        if self.scheduler.running:
            logger.warning(
                "Scheduler already running",
                extra={"event": "scheduler.already_running"},
            )
            return

        trigger = IntervalTrigger(
            seconds=self.interval_seconds,
            timezone=timezone.utc,
        )

        next_run = datetime.now(timezone.utc)
        self.scheduler.add_job(
            func=self.job_callable,
            trigger=trigger,
            id=PROMOTER_JOB_ID,
            name="Queued Notification Promotion",
            replace_existing=True,
            next_run_time=next_run,
        )

        self.scheduler.start()

        logger.info(
            f"Scheduler started with interval: {self.interval_seconds} seconds",
            extra={
                "event": "scheduler.started",
                "interval_seconds": self.interval_seconds,
                "next_run_time": next_run.isoformat(),
            },
        )

    def shutdown(self, wait: bool = False) -> None:
        """
        Shutdown the scheduler gracefully.

        Args:
            wait: If True, wait for a running promotion to complete before returning
        """
        logger.info(
            "Shutting down scheduler",
            extra={
                "event": "scheduler.stopping",
                "wait_for_jobs": wait,
            },
        )

        if self.scheduler.running:
            self.scheduler.shutdown(wait=wait)

        if self.shutdown_event:
            self.shutdown_event.set()

        logger.info(
            "Scheduler shutdown complete",
            extra={"event": "scheduler.stopped"}
        )

    def trigger_now(self) -> None:
        """Run the job synchronously in the current thread."""
        logger.info(
            "Triggering immediate promotion run",
            extra={"event": "scheduler.trigger_now"}
        )
        self.job_callable()

    def is_running(self) -> bool:
        return self.scheduler.running

    def get_next_run_time(self) -> Optional[datetime]:
        """
        Get the next scheduled run time.

        Returns:
            Next run time as a datetime, or None if not scheduled
        """
        job = self.scheduler.get_job(PROMOTER_JOB_ID)
        return job.next_run_time if job else None
