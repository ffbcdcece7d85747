"""Tests for module classification and unread-count aggregation."""

from contextlib import contextmanager
from unittest.mock import Mock

import pytest

from notifier.aggregation import (
    MODULES,
    ModuleAggregator,
    count_by_module,
    module_for_notification_type,
)
from notifier.persistence import (
    DatabaseConnectionError,
    NotificationRepository,
    get_session,
)
from notifier.realtime import RealtimeChannel
from tests.helpers import make_notification


def insert(*notifications):
    with get_session() as session:
        repo = NotificationRepository(session)
        for notification in notifications:
            repo.add(notification)


def non_zero(counts):
    return {module: count for module, count in counts.items() if count}


class TestModuleClassification:
    @pytest.mark.parametrize(
        "notification_type,module",
        [
            ("case_updated", "Cases"),
            ("case_closed", "Cases"),
            ("hearing_scheduled", "Hearings"),
            ("appointment_reminder", "Appointments"),
            ("task_assigned", "Tasks"),
            ("task_due_soon", "Tasks"),
            ("document_uploaded", "Documents"),
            ("client_added", "Clients"),
            ("contact_converted", "Clients"),
            ("lead_contact_updated", "Clients"),
            ("team_announcement", "Team"),
            ("note_added", "Notes"),
            ("message_received", "Chat"),
            ("new_direct_message", "Chat"),
        ],
    )
    def test_known_types(self, notification_type, module):
        assert module_for_notification_type(notification_type) == module

    @pytest.mark.parametrize("notification_type", ["unknown_type", "billing_due", "", "case"])
    def test_unclaimed_types(self, notification_type):
        assert module_for_notification_type(notification_type) is None

    def test_first_matching_rule_wins(self):
        # Starts with case_ even though it mentions a contact
        assert module_for_notification_type("case_contact_added") == "Cases"
        assert module_for_notification_type("client_direct_message") == "Clients"

    def test_rules_are_case_sensitive(self):
        assert module_for_notification_type("Task_assigned") is None


class TestCountByModule:
    def test_mixed_types(self):
        counts = count_by_module(["task_assigned", "hearing_scheduled", "unknown_type"])

        assert non_zero(counts) == {"Tasks": 1, "Hearings": 1}
        assert sum(counts.values()) == 2

    def test_zero_filled(self):
        assert count_by_module([]) == {module: 0 for module in MODULES}

    def test_no_contacts_bucket(self):
        assert "Contacts" not in count_by_module(["contact_converted"])


class TestModuleAggregator:
    def test_refresh_counts_unread_rows(self, database):
        insert(
            make_notification(notification_type="task_assigned"),
            make_notification(notification_type="hearing_scheduled"),
            make_notification(notification_type="unknown_type"),
            make_notification(notification_type="task_due_soon", read=True),
            make_notification(recipient_id="user-2", notification_type="case_updated"),
        )

        counts = ModuleAggregator("user-1").refresh()

        assert non_zero(counts) == {"Tasks": 1, "Hearings": 1}

    def test_counts_before_refresh_are_zero(self, database):
        assert ModuleAggregator("user-1").counts() == {module: 0 for module in MODULES}

    def test_counts_follow_reads(self, database):
        row = make_notification(notification_type="case_updated")
        insert(row)
        aggregator = ModuleAggregator("user-1")
        aggregator.refresh()

        with get_session() as session:
            NotificationRepository(session).mark_read(row.id)
        aggregator.refresh()

        assert aggregator.counts()["Cases"] == 0

    def test_on_update_receives_counts(self, database):
        on_update = Mock()
        insert(make_notification(notification_type="note_added"))

        ModuleAggregator("user-1", on_update=on_update).refresh()

        on_update.assert_called_once()
        assert on_update.call_args[0][0]["Notes"] == 1

    def test_failed_refresh_keeps_previous_counts(self, database):
        insert(make_notification(notification_type="document_uploaded"))
        healthy = True

        @contextmanager
        def flaky_session():
            if not healthy:
                raise DatabaseConnectionError("store offline")
            with get_session() as session:
                yield session

        on_update = Mock()
        aggregator = ModuleAggregator("user-1", session_provider=flaky_session, on_update=on_update)
        aggregator.refresh()

        healthy = False
        counts = aggregator.refresh()

        assert counts["Documents"] == 1
        assert on_update.call_count == 1

    def test_failing_on_update_does_not_break_refresh(self, database):
        aggregator = ModuleAggregator("user-1", on_update=Mock(side_effect=RuntimeError("ui")))
        insert(make_notification(notification_type="team_announcement"))

        assert aggregator.refresh()["Team"] == 1


class TestAggregatorSignals:
    def test_realtime_insert_triggers_recount(self, change_feed):
        aggregator = ModuleAggregator("user-1")
        aggregator.bind(channel=RealtimeChannel())

        insert(make_notification(notification_type="task_assigned"))

        assert aggregator.counts()["Tasks"] == 1

    def test_poller_hit_triggers_recount(self, database):
        poller = Mock()
        aggregator = ModuleAggregator("user-1")
        aggregator.bind(poller=poller)
        listener = poller.add_listener.call_args[0][0]
        insert(make_notification(notification_type="hearing_scheduled"))

        listener(1)

        assert aggregator.counts()["Hearings"] == 1

    def test_bind_is_idempotent(self, change_feed):
        channel = RealtimeChannel()
        poller = Mock()
        aggregator = ModuleAggregator("user-1")

        aggregator.bind(channel=channel, poller=poller)
        aggregator.bind(channel=channel, poller=poller)

        assert channel.active_subscriptions("user-1") == 1
        poller.add_listener.assert_called_once()

    def test_close_detaches(self, change_feed):
        channel = RealtimeChannel()
        poller = Mock()
        aggregator = ModuleAggregator("user-1")
        aggregator.bind(channel=channel, poller=poller)

        aggregator.close()
        aggregator.close()
        insert(make_notification(notification_type="task_assigned"))

        assert aggregator.counts()["Tasks"] == 0
        assert channel.active_subscriptions() == 0
        poller.remove_listener.assert_called_once_with(aggregator.signal)

    def test_duplicate_signals_converge(self, change_feed):
        """Realtime and polling reporting the same row still count it once."""
        aggregator = ModuleAggregator("user-1")
        aggregator.bind(channel=RealtimeChannel())
        insert(make_notification(notification_type="task_assigned"))

        aggregator.signal(1)
        aggregator.signal()

        assert aggregator.counts()["Tasks"] == 1
