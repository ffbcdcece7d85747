#!/usr/bin/env python3
"""Sample dispatch harness for end-to-end validation.

This script provides a manual way to watch the notification pipeline work
without running pytest. It dispatches a handful of case, hearing and team
events late in the evening against an in-memory membership directory, where
one user has quiet hours, then runs the queue promoter the next morning and
prints what was written at each step.

Usage:
    # Run with the example configuration
    python scripts/run_sample_dispatch.py --config config.example.yaml

    # Custom database path
    python scripts/run_sample_dispatch.py --config config.example.yaml --database /tmp/sample.db
"""

import argparse
import sys
from datetime import datetime, timezone
from pathlib import Path

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from dotenv import load_dotenv

from notifier.aggregation import ModuleAggregator
from notifier.config.loader import load_config
from notifier.dispatch import NotificationDispatcher, QuietHoursGate, RecipientResolver
from notifier.domain.models import RecipientStrategy
from notifier.logging.config import configure_logging
from notifier.persistence import (
    NotificationRepository,
    close_database,
    get_change_feed,
    get_session,
    init_database,
)
from notifier.polling import PollerManager
from notifier.promoter import QueuePromoter
from notifier.realtime import RealtimeChannel
from notifier.sessions import UserNotificationSession
from tests.helpers import FakeClock, InMemoryDirectory, InMemoryPreferenceStore, make_event

LATE_EVENING = datetime(2025, 11, 4, 23, 0, tzinfo=timezone.utc)
NEXT_MORNING = datetime(2025, 11, 5, 7, 0, tzinfo=timezone.utc)

USERS = ["attorney-1", "paralegal-2", "associate-3"]


def print_header(title: str):
    """Print a formatted section header."""
    width = 80
    print("\n" + "=" * width)
    print(f" {title}")
    print("=" * width + "\n")


def print_table(rows):
    max_label_width = max(len(label) for label, _ in rows)

    print("┌" + "─" * (max_label_width + 2) + "┬" + "─" * 22 + "┐")
    print(f"│ {'Metric':<{max_label_width}} │ {'Value':<20} │")
    print("├" + "─" * (max_label_width + 2) + "┼" + "─" * 22 + "┤")

    for label, value in rows:
        print(f"│ {label:<{max_label_width}} │ {str(value):<20} │")

    print("└" + "─" * (max_label_width + 2) + "┴" + "─" * 22 + "┘")


def print_counts(title: str):
    print(f"\n{title}")
    for user_id in USERS:
        counts = ModuleAggregator(user_id).refresh()
        non_zero = {module: count for module, count in counts.items() if count}
        print(f"  {user_id}: {non_zero or 'nothing unread'}")


def sample_events():
    return [
        make_event(
            event_type="case_updated",
            recipient_strategy=RecipientStrategy.CASE_MEMBERS,
            recipient_ids=None,
            reference_id="case-100",
            case_id="case-100",
            actor_id="attorney-1",
            title="Case Updated",
            message="Smith v. Jones: new filing recorded",
            category="case",
            occurred_at=LATE_EVENING,
        ),
        make_event(
            event_type="hearing_scheduled",
            recipient_strategy=RecipientStrategy.ASSIGNED_USERS,
            recipient_ids=None,
            reference_id="hearing-7",
            title="Hearing Scheduled",
            message="Motion hearing set for Monday 09:30",
            category="hearing",
            occurred_at=LATE_EVENING,
        ),
        make_event(
            event_type="team_announcement",
            recipient_strategy=RecipientStrategy.TEAM,
            recipient_ids=None,
            reference_id="announcement-1",
            title="Office Closure",
            message="The office is closed on Friday",
            category="team",
            occurred_at=LATE_EVENING,
        ),
    ]


def main():
    """Main entry point for the sample dispatch harness."""
    parser = argparse.ArgumentParser(
        description="Run a sample dispatch and promotion for end-to-end validation",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=Path("config.example.yaml"),
        help="Path to configuration file (default: config.example.yaml)",
    )
    parser.add_argument(
        "--database",
        type=Path,
        default=Path("data/sample_dispatch.db"),
        help="Path to SQLite database (default: data/sample_dispatch.db)",
    )
    parser.add_argument(
        "--log-level",
        default="WARNING",
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Log level (default: WARNING)",
    )

    args = parser.parse_args()

    load_dotenv()

    print_header("Case Notifier - Sample Dispatch Harness")

    print(f"Configuration file: {args.config}")
    print(f"Database: {args.database}")
    print(f"Log level: {args.log_level}")

    if not args.config.exists():
        print(f"\n❌ Error: Configuration file not found: {args.config}")
        return 1

    if args.database.exists():
        print(f"\n❌ Error: Database already exists: {args.database}")
        print(f"   Remove it first so the sample starts from an empty store.")
        return 1

    try:
        print("\n📋 Loading configuration...")
        app_config, env_config = load_config(args.config)

        configure_logging(
            level=args.log_level,
            format_type=app_config.logging.format,
            environment="validation",
        )

        database_url = f"sqlite:///{args.database.absolute()}"
        print(f"\n💾 Initializing database: {args.database}")
        init_database(database_url)
        print("✓ Database initialized")

        directory = InMemoryDirectory(
            teams={"firm-1": {"attorney-1": True, "paralegal-2": True, "associate-3": True}},
            cases={"case-100": ["attorney-1", "paralegal-2"]},
            assignments={"hearing-7": ["attorney-1", "associate-3"]},
        )
        preferences = InMemoryPreferenceStore()
        preferences.set_quiet_hours("paralegal-2", "22:00", "07:00")
        preferences.set_quiet_hours("associate-3", "21:00", "06:30", timezone="America/New_York")

        dispatcher = NotificationDispatcher(
            RecipientResolver(
                directory,
                exclude_actor_from_case_members=app_config.dispatch.exclude_actor_from_case_members,
            ),
            QuietHoursGate(
                preferences,
                default_timezone=app_config.dispatch.default_timezone,
                default_end=app_config.dispatch.quiet_hours_end,
            ),
            clock=FakeClock(LATE_EVENING),
        )

        # Watch one held recipient the way a signed-in client would
        poller_manager = PollerManager.from_config(app_config.polling)
        changes = []
        session = UserNotificationSession(
            "paralegal-2",
            RealtimeChannel(get_change_feed()),
            poller_manager,
            on_change=lambda: changes.append(datetime.now(timezone.utc)),
        ).open()
        print(f"✓ Session opened for paralegal-2 (polling every {poller_manager.default_interval_ms} ms)")

        print(f"\n🚀 Dispatching sample events at {LATE_EVENING.isoformat()}...")
        summary = {"delivered": 0, "queued": 0, "skipped": 0, "duplicates": 0, "failed": 0}
        for event in sample_events():
            result = dispatcher.dispatch(event)
            print(
                f"  {event.event_type}: {result.recipient_count} recipients, "
                f"{result.delivered} delivered, {result.queued} queued"
            )
            for key in summary:
                summary[key] += getattr(result, key)

        print_counts("Unread counts after dispatch:")

        promoter = QueuePromoter(batch_size=app_config.promoter.batch_size)

        print(f"\n⏰ Promoting at {LATE_EVENING.isoformat()} (still quiet hours)...")
        promoter.clock = FakeClock(LATE_EVENING)
        early = promoter.promote_queued()

        print(f"⏰ Promoting at {NEXT_MORNING.isoformat()}...")
        promoter.clock = FakeClock(NEXT_MORNING)
        morning = promoter.promote_queued()

        session_counts = {module: count for module, count in session.counts().items() if count}
        session.close()
        poller_manager.shutdown()

        with get_session() as db_session:
            status_counts = NotificationRepository(db_session).count_by_status()

        print_header("Sample Dispatch Summary")
        print_table(
            [
                ("Delivered Immediately", summary["delivered"]),
                ("Held By Quiet Hours", summary["queued"]),
                ("Suppressed", summary["skipped"]),
                ("Duplicates", summary["duplicates"]),
                ("Failed Recipients", summary["failed"]),
                ("Promoted During Quiet Hours", early.promoted),
                ("Promoted Next Morning", morning.promoted),
                ("Still Pending", status_counts["pending"]),
                ("Delivered Total", status_counts["delivered"]),
                ("Session Change Signals", len(changes)),
            ]
        )

        print(f"\nparalegal-2 session counts: {session_counts or 'nothing unread'}")

        print_header("Output Locations")
        print(f"Database: {args.database.absolute()}")
        print(f"\nTo inspect the database:")
        print(f"  sqlite3 {args.database.absolute()} 'SELECT recipient_id, notification_type, delivery_status, snoozed_until FROM notifications;'")

        print("\n" + "-" * 80)
        print(f"To clean up: rm {args.database.absolute()}")
        print("-" * 80 + "\n")

        close_database()

        return 1 if summary["failed"] or morning.failed or morning.error else 0

    except Exception as e:
        print(f"\n❌ Fatal error: {e}")
        import traceback
        traceback.print_exc()
        return 1


if __name__ == "__main__":
    sys.exit(main())
