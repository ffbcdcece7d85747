"""Test helper utilities for case notifier tests."""

from .factories import BASE_TIME, make_event, make_notification, seconds_after
from .fakes import FakeClock, InMemoryDirectory, InMemoryPreferenceStore

__all__ = [
    "BASE_TIME",
    "make_event",
    "make_notification",
    "seconds_after",
    "FakeClock",
    "InMemoryDirectory",
    "InMemoryPreferenceStore",
]
