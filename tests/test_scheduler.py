"""Unit tests for the scheduler service.

Tests the SchedulerService including:
- Job registration with correct configuration
- Immediate first run (next_run_time set to now)
- Prevents overlapping runs (max_instances=1)
- Start/shutdown lifecycle
- Trigger now functionality
"""

import threading
import time
from datetime import datetime
from unittest.mock import Mock

from notifier.scheduler import PROMOTER_JOB_ID, SchedulerService


class TestSchedulerService:
    """Test suite for SchedulerService."""

    def test_scheduler_initialization(self):
        mock_callable = Mock()
        shutdown_event = threading.Event()

        scheduler = SchedulerService(
            job_callable=mock_callable,
            interval_seconds=60,
            shutdown_event=shutdown_event,
        )

        assert scheduler.interval_seconds == 60
        assert scheduler.job_callable == mock_callable
        assert scheduler.shutdown_event == shutdown_event
        assert not scheduler.is_running()

    def test_scheduler_start_and_shutdown(self):
        shutdown_event = threading.Event()
        scheduler = SchedulerService(
            job_callable=Mock(),
            interval_seconds=300,
            shutdown_event=shutdown_event,
        )

        scheduler.start()
        assert scheduler.is_running()

        scheduler.shutdown(wait=False)
        assert not scheduler.is_running()
        assert shutdown_event.is_set()

    def test_scheduler_registers_job_with_correct_config(self):
        """Promotion runs never overlap and missed ticks collapse into one."""
        scheduler = SchedulerService(job_callable=Mock(), interval_seconds=60)

        scheduler.start()
        try:
            job = scheduler.scheduler.get_job(PROMOTER_JOB_ID)
            assert job.max_instances == 1
            assert job.coalesce is True
            assert job.misfire_grace_time == 60
            assert job.trigger.interval.total_seconds() == 60
        finally:
            scheduler.shutdown(wait=False)

    def test_promoter_job_registered_under_fixed_id(self):
        scheduler = SchedulerService(job_callable=Mock(), interval_seconds=600)

        scheduler.start()
        try:
            job = scheduler.scheduler.get_job(PROMOTER_JOB_ID)
            assert job is not None
            assert job.name == "Queued Notification Promotion"
        finally:
            scheduler.shutdown(wait=False)

    def test_scheduler_immediate_first_run(self):
        """Rows that came due during downtime are promoted at startup."""
        ran = threading.Event()

        scheduler = SchedulerService(job_callable=ran.set, interval_seconds=600)
        scheduler.start()

        assert ran.wait(timeout=5)
        scheduler.shutdown(wait=True)

    def test_scheduler_prevents_concurrent_runs(self):
        active = []
        overlaps = []
        lock = threading.Lock()

        def slow_callable():
            with lock:
                if active:
                    overlaps.append(True)
                active.append(True)
            time.sleep(0.5)
            with lock:
                active.pop()

        scheduler = SchedulerService(job_callable=slow_callable, interval_seconds=1)

        scheduler.start()
        time.sleep(2.5)
        scheduler.shutdown(wait=True)

        assert overlaps == []

    def test_trigger_now_executes_immediately(self):
        mock_callable = Mock()
        scheduler = SchedulerService(job_callable=mock_callable, interval_seconds=3600)

        scheduler.trigger_now()

        mock_callable.assert_called_once_with()

    def test_get_next_run_time(self):
        scheduler = SchedulerService(job_callable=Mock(), interval_seconds=600)

        # Before starting, no job is registered
        assert scheduler.get_next_run_time() is None

        scheduler.start()
        try:
            assert isinstance(scheduler.get_next_run_time(), datetime)
        finally:
            scheduler.shutdown(wait=False)

    def test_multiple_start_calls_safe(self):
        scheduler = SchedulerService(job_callable=Mock(), interval_seconds=600)

        scheduler.start()
        scheduler.start()

        assert scheduler.is_running()
        assert len(scheduler.scheduler.get_jobs()) == 1

        scheduler.shutdown(wait=False)

    def test_shutdown_before_start_is_safe(self):
        shutdown_event = threading.Event()
        scheduler = SchedulerService(
            job_callable=Mock(), interval_seconds=60, shutdown_event=shutdown_event
        )

        scheduler.shutdown()

        assert shutdown_event.is_set()

    def test_scheduler_callable_exceptions_dont_stop_scheduler(self):
        call_count = [0]

        def failing_callable():
            call_count[0] += 1
            if call_count[0] == 1:
                raise RuntimeError("Intentional error")

        scheduler = SchedulerService(job_callable=failing_callable, interval_seconds=1)

        scheduler.start()
        time.sleep(2.5)
        scheduler.shutdown(wait=True)

        assert call_count[0] >= 2
