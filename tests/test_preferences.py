"""Unit tests for preference-based suppression."""

import pytest

from notifier.dispatch import suppression_reason
from notifier.domain.models import NotificationPreferences, Priority
from tests.helpers import make_event


class TestSuppressionReason:
    def test_no_preferences(self):
        assert suppression_reason(make_event(), None) is None

    def test_default_preferences_allow(self):
        assert suppression_reason(make_event(), NotificationPreferences()) is None

    def test_globally_disabled(self):
        preferences = NotificationPreferences(enabled=False)

        assert suppression_reason(make_event(), preferences) == "disabled"

    def test_category_disabled(self):
        preferences = NotificationPreferences(categories={"task": {"enabled": False}})

        assert suppression_reason(make_event(category="task"), preferences) == "category_disabled"

    def test_other_category_unaffected(self):
        preferences = NotificationPreferences(categories={"billing": {"enabled": False}})

        assert suppression_reason(make_event(category="task"), preferences) is None

    @pytest.mark.parametrize(
        "priority,expected",
        [
            (Priority.LOW, "below_priority_filter"),
            (Priority.NORMAL, "below_priority_filter"),
            (Priority.HIGH, None),
            (Priority.URGENT, None),
        ],
    )
    def test_priority_filter(self, priority, expected):
        preferences = NotificationPreferences(
            categories={"hearing": {"enabled": True, "priority_filter": "high"}}
        )
        event = make_event(event_type="hearing_scheduled", category="hearing", priority=priority)

        assert suppression_reason(event, preferences) == expected

    def test_event_type_disabled(self):
        preferences = NotificationPreferences(event_preferences={"task_assigned": False})

        assert suppression_reason(make_event(), preferences) == "event_type_disabled"

    def test_event_type_explicitly_enabled(self):
        preferences = NotificationPreferences(event_preferences={"task_assigned": True})

        assert suppression_reason(make_event(), preferences) is None

    def test_case_muted(self):
        preferences = NotificationPreferences(muted_cases=["case-17"])

        assert suppression_reason(make_event(case_id="case-17"), preferences) == "case_muted"
        assert suppression_reason(make_event(case_id="case-18"), preferences) is None

    def test_client_muted(self):
        preferences = NotificationPreferences(muted_clients=["client-4"])
        event = make_event(event_type="client_updated", metadata={"client_id": "client-4"})

        assert suppression_reason(event, preferences) == "client_muted"

    def test_user_muted(self):
        preferences = NotificationPreferences(muted_users=["user-9"])
        event = make_event(event_type="message_received", metadata={"user_id": "user-9"})

        assert suppression_reason(event, preferences) == "user_muted"

    def test_disabled_checked_first(self):
        preferences = NotificationPreferences(
            enabled=False, muted_cases=["case-17"], categories={"task": {"enabled": False}}
        )

        assert suppression_reason(make_event(case_id="case-17"), preferences) == "disabled"
