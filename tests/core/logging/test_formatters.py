"""Tests for JSON and console log formatters."""

import json
import logging
import sys

import pytest

from wis2_subscriber.core.logging.context import (
    LogContext,
    clear_log_context,
    get_log_context,
    set_log_context,
)
from wis2_subscriber.core.logging.formatters import ConsoleFormatter, JSONFormatter
from wis2_subscriber.core.types import ErrorCategory


def _make_record(
    msg="test message",
    level=logging.INFO,
    name="test.logger",
    exc_info=None,
    **extras,
):
    record = logging.LogRecord(
        name=name,
        level=level,
        pathname="test.py",
        lineno=42,
        msg=msg,
        args=(),
        exc_info=exc_info,
    )
    for key, value in extras.items():
        setattr(record, key, value)
    return record


@pytest.fixture(autouse=True)
def clear_context():
    clear_log_context()
    yield
    clear_log_context()


class TestJSONFormatter:

    def test_formats_basic_json_with_required_fields(self):
        output = json.loads(JSONFormatter().format(_make_record()))

        assert output["level"] == "INFO"
        assert output["logger"] == "test.logger"
        assert output["message"] == "test message"
        assert output["ts"].endswith("Z")

    def test_includes_context(self):
        set_log_context(client_id="wis2-mqtt-subscriber", topic="cache/a/wis2/#")
        output = json.loads(JSONFormatter().format(_make_record()))

        assert output["client_id"] == "wis2-mqtt-subscriber"
        assert output["topic"] == "cache/a/wis2/#"
        assert "notification_id" not in output

    def test_includes_whitelisted_extras_only(self):
        record = _make_record(download_url="https://example.org/a.bin", unrelated="x")
        output = json.loads(JSONFormatter().format(record))

        assert output["download_url"] == "https://example.org/a.bin"
        assert "unrelated" not in output

    def test_coerces_numeric_fields(self):
        record = _make_record(bytes_downloaded="1024", duration_ms="12.5", status_code="bad")
        output = json.loads(JSONFormatter().format(record))

        assert output["bytes_downloaded"] == 1024
        assert output["duration_ms"] == 12.5
        assert output["status_code"] is None

    def test_sanitizes_url_fields(self):
        record = _make_record(download_url="https://example.org/a.bin?token=secret")
        output = json.loads(JSONFormatter().format(record))

        assert "secret" not in output["download_url"]
        assert "token=[REDACTED]" in output["download_url"]

    def test_sanitizes_urls_inside_error_text(self):
        record = _make_record(
            error="Cannot connect to https://example.org/a.bin?sig=abc123",
            error_message="Connection error: https://example.org/a.bin?token=secret",
        )
        output = json.loads(JSONFormatter().format(record))

        assert "abc123" not in output["error"]
        assert "secret" not in output["error_message"]
        assert output["error"].startswith("Cannot connect to https://example.org/a.bin?")

    def test_serializes_enums(self):
        record = _make_record(error_category=ErrorCategory.PERMANENT)
        output = json.loads(JSONFormatter().format(record))

        assert output["error_category"] == "permanent"

    def test_source_location_only_for_debug_and_errors(self):
        info = json.loads(JSONFormatter().format(_make_record(level=logging.INFO)))
        error = json.loads(JSONFormatter().format(_make_record(level=logging.ERROR)))

        assert "file" not in info
        assert error["file"] == "test.py:42"

    def test_exception_is_structured(self):
        try:
            raise ValueError("bad payload")
        except ValueError:
            exc_info = sys.exc_info()

        output = json.loads(JSONFormatter().format(_make_record(exc_info=exc_info)))

        assert output["exception"]["type"] == "ValueError"
        assert output["exception"]["message"] == "bad payload"
        assert "Traceback" in output["exception"]["stacktrace"]


class TestConsoleFormatter:

    def test_plain_format(self):
        formatter = ConsoleFormatter()
        formatter._use_colors = False

        output = formatter.format(_make_record(msg="Connected to MQTT broker"))

        assert " - INFO - test.logger - Connected to MQTT broker" in output

    def test_notification_id_tag(self):
        formatter = ConsoleFormatter()
        formatter._use_colors = False

        with LogContext(notification_id="ab12cd34"):
            output = formatter.format(_make_record(msg="Received message"))

        assert "[ab12cd34] Received message" in output

    def test_colors_level_on_tty(self):
        formatter = ConsoleFormatter()
        formatter._use_colors = True

        output = formatter.format(_make_record(level=logging.ERROR))

        assert "\033[31mERROR\033[0m" in output

    def test_appends_traceback(self):
        formatter = ConsoleFormatter()
        formatter._use_colors = False
        try:
            raise RuntimeError("kaput")
        except RuntimeError:
            exc_info = sys.exc_info()

        output = formatter.format(_make_record(exc_info=exc_info))

        assert "RuntimeError: kaput" in output


class TestLogContext:

    def test_restores_previous_context(self):
        set_log_context(topic="outer")

        with LogContext(topic="inner", notification_id="n1"):
            assert get_log_context()["topic"] == "inner"
            assert get_log_context()["notification_id"] == "n1"

        assert get_log_context()["topic"] == "outer"
        assert get_log_context()["notification_id"] == ""
