"""Log formatters for JSON and console output."""

import json
import logging
import sys
from datetime import UTC, datetime
from enum import Enum
from pathlib import Path
from typing import Any

from wis2_subscriber.core.logging.context import get_log_context
from wis2_subscriber.core.security.url_validation import sanitize_error_message, sanitize_url


def json_serializer(obj: Any) -> Any:
    """Serialize Path/Enum/datetime values; everything else becomes str."""
    if isinstance(obj, datetime):
        return obj.isoformat()
    if isinstance(obj, Path):
        return str(obj)
    if isinstance(obj, Enum):
        return obj.value
    return str(obj)


class JSONFormatter(logging.Formatter):
    """
    JSON log formatter with context injection.

    Produces one JSON object per line for easy parsing with jq/grep.
    Sanitizes URLs to remove sensitive tokens before logging.
    """

    # Fields to extract from LogRecord extras
    EXTRA_FIELDS = [
        # Broker session
        "broker",
        "client_id",
        "topic",
        "qos",
        "reason_code",
        "attempt",
        "delay_seconds",
        # Notification handling
        "links_total",
        "links_canonical",
        "fetches_succeeded",
        "fetches_failed",
        "fetches_cancelled",
        "in_flight",
        "payload_size",
        # Fetch
        "download_url",
        "destination_path",
        "bytes_downloaded",
        "content_type",
        "status_code",
        "duration_ms",
        "timeout_seconds",
        # Errors
        "error",
        "error_category",
        "error_message",
        "error_type",
        # Process
        "signal",
        "exit_code",
    ]

    # Numeric fields are coerced so log aggregators don't see them as strings
    NUMERIC_FIELDS = {
        "duration_ms": float,
        "delay_seconds": float,
        "timeout_seconds": float,
        "attempt": int,
        "qos": int,
        "links_total": int,
        "links_canonical": int,
        "fetches_succeeded": int,
        "fetches_failed": int,
        "fetches_cancelled": int,
        "in_flight": int,
        "payload_size": int,
        "bytes_downloaded": int,
        "status_code": int,
        "exit_code": int,
    }

    # Fields that contain URLs and should be sanitized
    URL_FIELDS = ["download_url", "broker"]

    # Free-text fields that may embed URLs from exception messages
    MESSAGE_FIELDS = ["error", "error_message"]

    def _sanitize_value(self, key: str, value: Any) -> Any:
        if key in self.URL_FIELDS and isinstance(value, str):
            return sanitize_url(value)
        if key in self.MESSAGE_FIELDS and isinstance(value, str):
            return sanitize_error_message(value)
        return value

    def _ensure_type(self, field: str, value: Any) -> Any:
        if field not in self.NUMERIC_FIELDS or value is None:
            return value

        try:
            return self.NUMERIC_FIELDS[field](value)
        except (ValueError, TypeError):
            return None

    @staticmethod
    def _base_log_entry(record: logging.LogRecord) -> dict[str, Any]:
        return {
            "ts": datetime.now(UTC).strftime("%Y-%m-%dT%H:%M:%S.%f")[:-3] + "Z",
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

    @staticmethod
    def _inject_context(log_entry: dict[str, Any], log_context: dict[str, Any]) -> None:
        for field, value in log_context.items():
            if value:
                log_entry[field] = value

    @staticmethod
    def _should_include_source_location(record: logging.LogRecord) -> bool:
        return record.levelno in (logging.DEBUG, logging.ERROR, logging.CRITICAL)

    def _inject_extra_fields(self, log_entry: dict[str, Any], record: logging.LogRecord) -> None:
        for field in self.EXTRA_FIELDS:
            value = getattr(record, field, None)
            if value is not None:
                typed_value = self._ensure_type(field, value)
                log_entry[field] = self._sanitize_value(field, typed_value)

    def _inject_exception(self, log_entry: dict[str, Any], record: logging.LogRecord) -> None:
        if not record.exc_info:
            return

        exc_type, exc_value, _ = record.exc_info
        log_entry["exception"] = {
            "type": exc_type.__name__ if exc_type else None,
            "message": str(exc_value) if exc_value else None,
            "stacktrace": self.formatException(record.exc_info),
        }

    def format(self, record: logging.LogRecord) -> str:
        log_entry = self._base_log_entry(record)

        self._inject_context(log_entry, get_log_context())

        if self._should_include_source_location(record):
            log_entry["file"] = f"{record.filename}:{record.lineno}"

        # Type coercion first, then URL sanitization
        self._inject_extra_fields(log_entry, record)
        self._inject_exception(log_entry, record)

        return json.dumps(log_entry, default=json_serializer, ensure_ascii=False)


class ConsoleFormatter(logging.Formatter):
    """
    Human-readable console formatter with color-coded log levels.

    Colors are auto-disabled when output is not a TTY (pipes, files).
    """

    # ANSI color codes
    COLORS = {
        logging.DEBUG: "\033[36m",  # Cyan
        logging.INFO: "\033[32m",  # Green
        logging.WARNING: "\033[33m",  # Yellow
        logging.ERROR: "\033[31m",  # Red
        logging.CRITICAL: "\033[35m",  # Magenta
    }
    RESET = "\033[0m"

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self._use_colors = sys.stdout.isatty()

    def _format_level_name(self, record: logging.LogRecord) -> str:
        level_name = record.levelname
        if not self._use_colors:
            return level_name

        color = self.COLORS.get(record.levelno, "")
        if not color:
            return level_name

        return f"{color}{level_name}{self.RESET}"

    @staticmethod
    def _build_tags(record: logging.LogRecord, log_context: dict[str, Any]) -> list[str]:
        notification_id = getattr(record, "notification_id", None) or log_context.get(
            "notification_id"
        )
        return [f"[{notification_id}]"] if notification_id else []

    def format(self, record: logging.LogRecord) -> str:
        """Format log record for console output with optional color coding."""
        log_context = get_log_context()

        prefix = " - ".join(
            [
                datetime.now().strftime("%Y-%m-%d %H:%M:%S"),
                self._format_level_name(record),
                record.name,
            ]
        )
        tags = self._build_tags(record, log_context)
        message = record.getMessage()
        if tags:
            message = f"{' '.join(tags)} {message}"

        output = f"{prefix} - {message}"
        if record.exc_info:
            output = f"{output}\n{self.formatException(record.exc_info)}"
        return output
