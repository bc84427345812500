"""Tests for logging configuration and formatters."""

import io
import json
import logging

import pytest

from matchtrust.domain.models import SortKey
from matchtrust.logging import ComponentLoggerAdapter, get_logger
from matchtrust.logging.config import (
    ContextualFilter,
    JSONFormatter,
    KeyValueFormatter,
    configure_logging,
)
from matchtrust.logging.context import clear_log_context, log_context


@pytest.fixture(autouse=True)
def clean_context():
    """Clear logging context before and after each test."""
    clear_log_context()
    yield
    clear_log_context()


@pytest.fixture
def logger():
    """Create a test logger with no handlers attached."""
    test_logger = logging.getLogger("test_logger")
    test_logger.setLevel(logging.DEBUG)
    test_logger.handlers.clear()

    yield test_logger

    test_logger.handlers.clear()


@pytest.fixture
def restore_root_logger():
    """Put the root logger back the way pytest configured it."""
    root = logging.getLogger()
    handlers = list(root.handlers)
    level = root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)


def test_json_formatter_basic(logger):
    """Test JSONFormatter produces valid JSON with mandatory fields."""
    record = logger.makeRecord("matching", logging.INFO, "engine.py", 1, "Search done", (), None)

    log_obj = json.loads(JSONFormatter().format(record))

    assert log_obj["level"] == "INFO"
    assert log_obj["message"] == "Search done"
    assert log_obj["logger"] == "matching"
    assert "timestamp" in log_obj
    assert "name" not in log_obj


def test_json_formatter_with_extra_fields(logger):
    """Test JSONFormatter includes extra fields and flattens enums and sets."""
    record = logger.makeRecord(
        "test",
        logging.INFO,
        "test.py",
        1,
        "Search done",
        (),
        None,
        extra={
            "event": "search.completed",
            "returned": 3,
            "degraded": False,
            "sort_by": SortKey.RATING,
            "skills": frozenset({"cooking"}),
        },
    )

    log_obj = json.loads(JSONFormatter().format(record))

    assert log_obj["event"] == "search.completed"
    assert log_obj["returned"] == 3
    assert log_obj["degraded"] is False
    assert log_obj["sort_by"] == "rating"
    assert log_obj["skills"] == ["cooking"]


def test_json_timestamp_has_millisecond_precision(logger):
    """Test that timestamps look like 2026-10-16T10:30:00.123Z."""
    record = logger.makeRecord("test", logging.INFO, "test.py", 1, "msg", (), None)

    timestamp = json.loads(JSONFormatter().format(record))["timestamp"]

    assert timestamp.endswith("Z")
    assert "T" in timestamp
    assert len(timestamp) == 24


def test_contextual_filter_adds_static_and_context_fields(logger):
    """Test ContextualFilter stamps service, environment, and scoped fields."""
    contextual = ContextualFilter(service="matchtrust", environment="test")

    with log_context(provider_id="p-1", run_id="run-1"):
        record = logger.makeRecord("test", logging.INFO, "test.py", 1, "msg", (), None)
        contextual.filter(record)

    assert record.service == "matchtrust"
    assert record.environment == "test"
    assert record.provider_id == "p-1"
    assert record.run_id == "run-1"


def test_contextual_filter_does_not_override_extra(logger):
    """Test that explicit extra fields win over context fields."""
    with log_context(provider_id="from-context"):
        record = logger.makeRecord(
            "test", logging.INFO, "test.py", 1, "msg", (), None,
            extra={"provider_id": "from-extra"},
        )
        ContextualFilter().filter(record)

    assert record.provider_id == "from-extra"


def test_key_value_formatter_with_extras(logger):
    """Test KeyValueFormatter appends sorted key=value pairs."""
    formatter = KeyValueFormatter("[%(levelname)s] %(name)s: %(message)s")
    record = logger.makeRecord(
        "test", logging.WARNING, "test.py", 1, "Degraded", (), None,
        extra={"event": "search.degraded_to_scan", "error": "geo index offline", "stale": None},
    )

    output = formatter.format(record)

    assert output.startswith("[WARNING] test: Degraded")
    assert "event=search.degraded_to_scan" in output
    assert 'error="geo index offline"' in output
    assert "stale=null" in output
    assert output.index("error=") < output.index("event=")


def test_key_value_formatter_skips_service_fields(logger):
    """Test that service and environment are left out of human-readable lines."""
    formatter = KeyValueFormatter("%(message)s")
    record = logger.makeRecord("test", logging.INFO, "test.py", 1, "msg", (), None)
    ContextualFilter(environment="production").filter(record)

    assert formatter.format(record) == "msg"


def test_configure_logging_invalid_level():
    """Test configure_logging rejects invalid log level."""
    with pytest.raises(ValueError, match="Invalid log level"):
        configure_logging(level="INVALID")


def test_configure_logging_invalid_format():
    """Test configure_logging rejects invalid format type."""
    with pytest.raises(ValueError, match="Invalid log format"):
        configure_logging(format_type="invalid")


def test_configure_logging_json_to_stream(restore_root_logger):
    """Test that configure_logging writes JSON records to the given stream."""
    stream = io.StringIO()
    configure_logging(level="INFO", format_type="json", environment="test", stream=stream)

    root_logger = logging.getLogger()
    assert len(root_logger.handlers) == 1
    assert isinstance(root_logger.handlers[0].formatter, JSONFormatter)

    get_logger("matchtrust.test", component="trust").info(
        "Trust recomputed", extra={"event": "trust.recomputed"}
    )
    lines = [json.loads(line) for line in stream.getvalue().splitlines()]
    last = lines[-1]
    assert last["event"] == "trust.recomputed"
    assert last["component"] == "trust"
    assert last["service"] == "matchtrust"
    assert last["environment"] == "test"


def test_configure_logging_key_value_format(restore_root_logger):
    """Test configure_logging with key-value format."""
    configure_logging(level="DEBUG", format_type="key-value", stream=io.StringIO())

    root_logger = logging.getLogger()
    assert root_logger.level == logging.DEBUG
    assert isinstance(root_logger.handlers[0].formatter, KeyValueFormatter)


class TestGetLogger:
    """Tests for component-bound loggers."""

    def test_plain_logger_without_component(self):
        assert isinstance(get_logger("matchtrust.x"), logging.Logger)

    def test_component_adapter_merges_extra(self, logger):
        adapter = get_logger("test_logger", component="matching")
        assert isinstance(adapter, ComponentLoggerAdapter)

        _, kwargs = adapter.process("msg", {"extra": {"event": "search.completed"}})

        assert kwargs["extra"] == {"component": "matching", "event": "search.completed"}

    def test_call_extra_wins_over_component(self):
        adapter = get_logger("test_logger", component="matching")

        _, kwargs = adapter.process("msg", {"extra": {"component": "override"}})

        assert kwargs["extra"]["component"] == "override"
