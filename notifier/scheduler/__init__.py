"""Scheduling module for periodic promotion of queued notifications."""

from .service import PROMOTER_JOB_ID, SchedulerService

__all__ = [
    "SchedulerService",
    "PROMOTER_JOB_ID",
]
