import json
import logging
import os
import sys
import time
from contextlib import contextmanager
from io import StringIO
from unittest.mock import patch

import pytest

from interview_coach.core.logging import (
    ContextFilter,
    JsonFormatter,
    _coerce_level,
    init_logging,
    is_masking,
    log_event,
    mask_text,
    set_masking,
    set_request_id,
    set_run_id,
    set_user_id,
    short_uuid,
    span,
)

TEST_REQUEST_ID = "req-456"


@contextmanager
def clean_logging_context():
    """Reset logging context between tests."""
    set_run_id("")
    set_request_id(None)
    set_user_id(None)
    set_masking(False)

    root_logger = logging.getLogger()
    for handler in list(root_logger.handlers):
        root_logger.removeHandler(handler)

    yield

    for handler in list(root_logger.handlers):
        root_logger.removeHandler(handler)
    set_request_id(None)
    set_user_id(None)


@pytest.fixture
def json_logger_output():
    """Fixture that captures and parses JSON logger output."""
    with clean_logging_context():
        with patch("sys.stdout", new_callable=StringIO) as mock_stdout:
            logger = init_logging(fmt="json", level="INFO", use_stderr=False)
            yield logger, mock_stdout


def get_all_log_outputs(mock_stdout):
    lines = [line for line in mock_stdout.getvalue().strip().split("\n") if line]
    return [json.loads(line) for line in lines]


def make_record(msg: str = "test message") -> logging.LogRecord:
    record = logging.LogRecord(
        name="test", level=logging.INFO, pathname="/path/file.py", lineno=42, msg=msg, args=(), exc_info=None
    )
    record.created = time.time()
    return record


class TestContextVariables:
    def test_request_and_user_ids(self):
        with clean_logging_context():
            record = make_record()
            ContextFilter().filter(record)
            assert record.request_id is None
            assert record.user_id is None

            set_request_id(TEST_REQUEST_ID)
            set_user_id("user-1")
            record = make_record()
            ContextFilter().filter(record)

            assert record.request_id == TEST_REQUEST_ID
            assert record.user_id == "user-1"

    def test_masking(self):
        with clean_logging_context():
            assert mask_text("my answer") == "my answer"
            set_masking(True)
            assert is_masking() is True
            assert mask_text("my answer") == "[masked len=9]"


class TestUtilityFunctions:
    def test_short_uuid_format(self):
        value = short_uuid()
        assert len(value) == 12
        assert all(c in "0123456789abcdef" for c in value)

    def test_coerce_level(self):
        assert _coerce_level(logging.DEBUG) == logging.DEBUG
        assert _coerce_level("warning") == logging.WARNING
        assert _coerce_level("invalid") == logging.INFO
        assert _coerce_level(None) == logging.INFO
        assert _coerce_level("") == logging.INFO


class TestContextFilter:
    def test_fills_correlation_fields(self):
        with clean_logging_context():
            set_request_id(TEST_REQUEST_ID)
            set_user_id("user-from-request")
            record = make_record()

            assert ContextFilter().filter(record) is True
            assert record.request_id == TEST_REQUEST_ID
            assert record.user_id == "user-from-request"
            assert record.event == "test"

    def test_explicit_user_id_wins(self):
        with clean_logging_context():
            set_user_id("user-from-request")
            record = make_record()
            record.user_id = "explicit-user"

            ContextFilter().filter(record)

            assert record.user_id == "explicit-user"


class TestJsonFormatter:
    def test_required_and_extra_fields(self):
        record = make_record()
        record.event = "quota.exceeded"
        record.limit = 20

        parsed = json.loads(JsonFormatter().format(record))

        assert parsed["level"] == "info"
        assert parsed["message"] == "test message"
        assert parsed["timestamp"].endswith("Z")
        assert parsed["event"] == "quota.exceeded"
        assert parsed["limit"] == 20
        assert "pathname" not in parsed
        assert "lineno" not in parsed

    def test_non_serialisable_values_are_stringified(self):
        record = make_record()
        record.usage_date = object()

        parsed = json.loads(JsonFormatter().format(record))

        assert parsed["usage_date"].startswith("<object object")

    def test_includes_exception_text(self):
        try:
            raise RuntimeError("boom")
        except RuntimeError:
            record = logging.LogRecord("test", logging.ERROR, "", 0, "failed", (), sys.exc_info())

        parsed = json.loads(JsonFormatter().format(record))

        assert "RuntimeError: boom" in parsed["exception"]


class TestInitLogging:
    def test_defaults(self):
        with clean_logging_context():
            logger = init_logging()

            assert logger.name == "interview_coach"
            record = make_record()
            ContextFilter().filter(record)
            assert len(record.run_id) == 12

    def test_environment_variables(self):
        with clean_logging_context():
            env_vars = {
                "INTERVIEW_COACH_LOG_LEVEL": "DEBUG",
                "INTERVIEW_COACH_LOG_FORMAT": "json",
                "INTERVIEW_COACH_LOG_MASK": "true",
            }
            with patch.dict(os.environ, env_vars):
                init_logging()

                assert logging.getLogger().level == logging.DEBUG
                assert is_masking() is True

    def test_reinitialisation_replaces_handlers(self):
        with clean_logging_context():
            init_logging()
            init_logging()

            assert len(logging.getLogger().handlers) == 1

    def test_text_format(self):
        with clean_logging_context():
            with patch("sys.stdout", new_callable=StringIO) as mock_stdout:
                init_logging(fmt="text", use_stderr=False)
                log_event("difficulty.adjusted", user_id="u-1")

                assert "difficulty.adjusted" in mock_stdout.getvalue()
                assert "user=u-1" in mock_stdout.getvalue()


class TestSpanAndEvents:
    def test_log_event_carries_fields(self, json_logger_output):
        _, mock_stdout = json_logger_output
        set_request_id(TEST_REQUEST_ID)

        log_event("quota.prompt_tracked", component="quota", user_id="u-1", new_count=3)

        (entry,) = [e for e in get_all_log_outputs(mock_stdout) if e["event"] == "quota.prompt_tracked"]
        assert entry["component"] == "quota"
        assert entry["user_id"] == "u-1"
        assert entry["new_count"] == 3
        assert entry["request_id"] == TEST_REQUEST_ID

    def test_span_records_duration_and_status(self, json_logger_output):
        _, mock_stdout = json_logger_output

        with span("difficulty.adjust", component="difficulty", operation="adjust", user_id="u-1"):
            pass

        (entry,) = [e for e in get_all_log_outputs(mock_stdout) if e["event"] == "difficulty.adjust"]
        assert entry["status"] == "ok"
        assert entry["duration_ms"] >= 0
        assert entry["operation"] == "adjust"
        assert entry["span_id"]

    def test_span_records_error_and_reraises(self, json_logger_output):
        _, mock_stdout = json_logger_output

        with pytest.raises(ValueError):
            with span("quota.track_prompt", component="quota"):
                raise ValueError("bad input")

        (entry,) = [e for e in get_all_log_outputs(mock_stdout) if e["event"] == "quota.track_prompt"]
        assert entry["status"] == "error"
        assert entry["error_type"] == "ValueError"
        assert entry["error_msg"] == "bad input"

    def test_nested_spans_link_to_parent(self, json_logger_output):
        _, mock_stdout = json_logger_output

        with span("outer"):
            with span("inner"):
                pass

        entries = {e["event"]: e for e in get_all_log_outputs(mock_stdout) if e["event"] in ("outer", "inner")}
        assert entries["inner"]["parent_span_id"] == entries["outer"]["span_id"]
