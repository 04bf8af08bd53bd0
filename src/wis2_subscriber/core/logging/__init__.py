"""
Structured logging module.

Provides JSON logging with per-notification correlation ids and context propagation.
"""

from wis2_subscriber.core.logging.context import (
    LogContext,
    clear_log_context,
    generate_notification_id,
    get_log_context,
    set_log_context,
)
from wis2_subscriber.core.logging.formatters import ConsoleFormatter, JSONFormatter
from wis2_subscriber.core.logging.setup import (
    ArchivingTimedRotatingFileHandler,
    get_log_file_path,
    setup_logging,
)

__all__ = [
    # Setup
    "setup_logging",
    "get_log_file_path",
    "ArchivingTimedRotatingFileHandler",
    # Formatters
    "JSONFormatter",
    "ConsoleFormatter",
    # Context
    "set_log_context",
    "get_log_context",
    "clear_log_context",
    "generate_notification_id",
    "LogContext",
]
