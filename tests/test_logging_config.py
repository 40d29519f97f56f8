"""Unit tests for logging configuration and formatters."""

import json
import logging
import sys

import pytest

from campusmatch.logging import ComponentLoggerAdapter, get_logger
from campusmatch.logging.config import (
    ContextualFilter,
    JSONFormatter,
    KeyValueFormatter,
    configure_logging,
)
from campusmatch.logging.context import clear_log_context, log_context


def make_record(msg="Match computed", **extra):
    record = logging.LogRecord(
        name="campusmatch.matching.resolver",
        level=logging.INFO,
        pathname=__file__,
        lineno=1,
        msg=msg,
        args=(),
        exc_info=None,
    )
    for key, value in extra.items():
        setattr(record, key, value)
    return record


@pytest.fixture(autouse=True)
def restore_root_logger():
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    clear_log_context()
    yield
    root.handlers[:] = handlers
    root.setLevel(level)
    clear_log_context()


class TestJSONFormatter:
    """Tests for JSONFormatter."""

    def test_basic_fields(self):
        output = json.loads(JSONFormatter().format(make_record()))

        assert output["level"] == "INFO"
        assert output["logger"] == "campusmatch.matching.resolver"
        assert output["message"] == "Match computed"
        assert output["timestamp"].endswith("Z")

    def test_extra_fields_are_included(self):
        record = make_record(event="match.computed", final_score=0.72, candidate_id="cand-1")

        output = json.loads(JSONFormatter().format(record))

        assert output["event"] == "match.computed"
        assert output["final_score"] == 0.72
        assert output["candidate_id"] == "cand-1"

    def test_non_serializable_values_become_strings(self):
        record = make_record(payload=object())

        output = json.loads(JSONFormatter().format(record))

        assert isinstance(output["payload"], str)


class TestKeyValueFormatter:
    """Tests for KeyValueFormatter."""

    def test_appends_sorted_pairs(self):
        formatter = KeyValueFormatter("%(levelname)s %(message)s")
        record = make_record(event="match.cache.hit", job_id="job-1")

        assert formatter.format(record) == "INFO Match computed event=match.cache.hit job_id=job-1"

    def test_quotes_values_with_spaces(self):
        formatter = KeyValueFormatter("%(message)s")

        line = formatter.format(make_record(reason="job is inactive"))

        assert 'reason="job is inactive"' in line

    def test_formats_booleans_and_none(self):
        formatter = KeyValueFormatter("%(message)s")

        line = formatter.format(make_record(cancelled=False, error=None))

        assert "cancelled=false" in line
        assert "error=null" in line

    def test_skips_service_and_environment(self):
        formatter = KeyValueFormatter("%(message)s")

        line = formatter.format(make_record(service="campusmatch", environment="local"))

        assert line == "Match computed"


class TestContextualFilter:
    """Tests for ContextualFilter."""

    def test_adds_service_environment_and_context(self):
        record = make_record()

        with log_context(sweep_id="s-1"):
            ContextualFilter(environment="staging").filter(record)

        assert record.service == "campusmatch"
        assert record.environment == "staging"
        assert record.sweep_id == "s-1"

    def test_explicit_extra_wins_over_context(self):
        record = make_record(job_id="explicit")

        with log_context(job_id="from-context"):
            ContextualFilter().filter(record)

        assert record.job_id == "explicit"


class TestGetLogger:
    def test_component_adapter(self):
        logger = get_logger("campusmatch.test", component="resolver")

        assert isinstance(logger, ComponentLoggerAdapter)
        _, kwargs = logger.process("msg", {"extra": {"event": "x"}})
        assert kwargs["extra"] == {"component": "resolver", "event": "x"}

    def test_call_level_extra_overrides_component(self):
        logger = get_logger("campusmatch.test", component="resolver")

        _, kwargs = logger.process("msg", {"extra": {"component": "override"}})

        assert kwargs["extra"]["component"] == "override"

    def test_plain_logger_without_component(self):
        assert isinstance(get_logger("campusmatch.test"), logging.Logger)


class TestConfigureLogging:
    """Tests for configure_logging."""

    def test_json_format_installs_single_handler(self):
        configure_logging(level="DEBUG", format_type="json", environment="test")

        root = logging.getLogger()
        assert root.level == logging.DEBUG
        assert len(root.handlers) == 1
        assert isinstance(root.handlers[0].formatter, JSONFormatter)

    def test_key_value_format(self):
        configure_logging(level="INFO", format_type="key-value")

        assert isinstance(logging.getLogger().handlers[0].formatter, KeyValueFormatter)

    def test_invalid_level_raises(self):
        with pytest.raises(ValueError, match="Invalid log level"):
            configure_logging(level="LOUD")

    def test_invalid_format_raises(self):
        with pytest.raises(ValueError, match="Invalid log format"):
            configure_logging(format_type="xml")

    def test_scheduler_logger_is_quieted(self):
        configure_logging(level="DEBUG")

        assert logging.getLogger("apscheduler").level >= logging.WARNING

    def test_logs_go_to_stderr(self):
        configure_logging()

        assert logging.getLogger().handlers[0].stream is sys.stderr
