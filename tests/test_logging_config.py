"""Tests for logging configuration and formatters."""

import json
import logging
import sys
from datetime import datetime, timezone

import pytest

from notifier.domain.models import DeliveryStatus
from notifier.logging import ComponentLoggerAdapter, get_logger
from notifier.logging.config import (
    NOISY_LOGGERS,
    ContextualFilter,
    JSONFormatter,
    KeyValueFormatter,
    configure_logging,
)
from notifier.logging.context import log_context


@pytest.fixture
def logger():
    """Create a test logger with handler for capturing output."""
    test_logger = logging.getLogger("test_logger")
    test_logger.setLevel(logging.DEBUG)
    test_logger.handlers.clear()

    yield test_logger

    test_logger.handlers.clear()


@pytest.fixture
def restore_root_logger():
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)


def make_record(logger, message="Test message", **extra):
    return logger.makeRecord(
        "test", logging.INFO, "test.py", 1, message, (), None, extra=extra or None
    )


def test_json_formatter_basic(logger):
    """Test JSONFormatter produces valid JSON with mandatory fields."""
    log_obj = json.loads(JSONFormatter().format(make_record(logger)))

    assert log_obj["level"] == "INFO"
    assert log_obj["message"] == "Test message"
    assert "timestamp" in log_obj


def test_json_formatter_with_extra_fields(logger):
    record = make_record(logger, event="promoter.run.completed", promoted=3, had_errors=False)

    log_obj = json.loads(JSONFormatter().format(record))

    assert log_obj["event"] == "promoter.run.completed"
    assert log_obj["promoted"] == 3
    assert log_obj["had_errors"] is False


def test_json_formatter_serialises_enums_and_datetimes(logger):
    hold = datetime(2025, 11, 5, 7, 0, tzinfo=timezone.utc)
    record = make_record(logger, status=DeliveryStatus.PENDING, snoozed_until=hold)

    log_obj = json.loads(JSONFormatter().format(record))

    assert log_obj["status"] == "pending"
    assert log_obj["snoozed_until"] == "2025-11-05T07:00:00+00:00"


def test_json_formatter_includes_exception(logger):
    try:
        raise RuntimeError("store unavailable")
    except RuntimeError:
        record = logger.makeRecord(
            "test", logging.ERROR, "test.py", 1, "failed", (), sys.exc_info()
        )

    log_obj = json.loads(JSONFormatter().format(record))

    assert "store unavailable" in log_obj["exc_info"]


def test_timestamp_format_in_json(logger):
    log_obj = json.loads(JSONFormatter().format(make_record(logger)))

    timestamp = log_obj["timestamp"]
    assert timestamp.endswith("Z")
    # YYYY-MM-DDTHH:MM:SS.sssZ
    assert len(timestamp) == 24


def test_json_formatter_no_duplicate_fields(logger):
    log_obj = json.loads(JSONFormatter().format(make_record(logger, event="test.event")))

    assert "name" not in log_obj
    assert "levelname" not in log_obj


def test_contextual_filter_adds_static_fields(logger):
    record = make_record(logger)

    ContextualFilter(service="test-service", environment="test").filter(record)

    assert record.service == "test-service"
    assert record.environment == "test"


def test_contextual_filter_adds_context_fields(logger):
    with log_context(promotion_id="abc123", user_id="user-1"):
        record = make_record(logger)
        ContextualFilter().filter(record)

    assert record.promotion_id == "abc123"
    assert record.user_id == "user-1"
    assert record.service == "case-notifier"


def test_contextual_filter_extra_wins_over_context(logger):
    with log_context(user_id="from-context"):
        record = make_record(logger, user_id="from-extra")
        ContextualFilter().filter(record)

    assert record.user_id == "from-extra"


def test_key_value_formatter_basic(logger):
    formatter = KeyValueFormatter(
        "%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    output = formatter.format(make_record(logger))

    assert "[INFO]" in output
    assert "Test message" in output


def test_key_value_formatter_with_extras(logger):
    formatter = KeyValueFormatter("%(message)s")
    record = make_record(
        logger,
        event="dispatch.completed",
        queued=2,
        reason="quiet hours",
        flag=True,
        missing=None,
    )

    output = formatter.format(record)

    assert output.startswith("Test message ")
    assert "event=dispatch.completed" in output
    assert "queued=2" in output
    assert 'reason="quiet hours"' in output
    assert "flag=true" in output
    assert "missing=null" in output


def test_key_value_formatter_skips_static_fields(logger):
    record = make_record(logger)
    ContextualFilter(service="svc", environment="env").filter(record)

    output = KeyValueFormatter("%(message)s").format(record)

    assert "service=" not in output
    assert "environment=" not in output


def test_configure_logging_invalid_level():
    with pytest.raises(ValueError, match="Invalid log level"):
        configure_logging(level="INVALID")


def test_configure_logging_invalid_format():
    with pytest.raises(ValueError, match="Invalid log format"):
        configure_logging(format_type="invalid")


def test_configure_logging_json_format(restore_root_logger):
    configure_logging(level="INFO", format_type="json", environment="test")

    root_logger = logging.getLogger()
    assert len(root_logger.handlers) == 1
    assert isinstance(root_logger.handlers[0].formatter, JSONFormatter)
    assert root_logger.level == logging.INFO


def test_configure_logging_key_value_format(restore_root_logger):
    configure_logging(level="DEBUG", format_type="key-value", environment="test")

    handler = logging.getLogger().handlers[0]
    assert isinstance(handler.formatter, KeyValueFormatter)


def test_configure_logging_quietens_scheduler_loggers(restore_root_logger):
    configure_logging(level="INFO", format_type="key-value")

    for name in NOISY_LOGGERS:
        assert logging.getLogger(name).level == logging.WARNING


def test_get_logger_adds_component(logger):
    adapter = get_logger("test_logger", component="promoter")

    assert isinstance(adapter, ComponentLoggerAdapter)
    msg, kwargs = adapter.process("hello", {"extra": {"event": "x"}})
    assert kwargs["extra"] == {"component": "promoter", "event": "x"}


def test_get_logger_without_component():
    assert isinstance(get_logger("plain"), logging.Logger)
