"""
Unified exception hierarchy for the subscriber.

Provides typed exceptions with an error category so that every failure
is logged with the same shape, whether it is fatal (configuration,
subscribe) or recovered locally (decode, fetch).
"""

import errno

from wis2_subscriber.core.security.url_validation import sanitize_error_message
from wis2_subscriber.core.types import ErrorCategory


class SubscriberError(Exception):
    """
    Base exception for all subscriber errors.

    Attributes:
        message: Human-readable error description
        category: Error classification
        cause: Original exception if wrapping
        context: Additional context dict for debugging
    """

    category: ErrorCategory = ErrorCategory.UNKNOWN

    def __init__(
        self,
        message: str,
        cause: Exception | None = None,
        context: dict | None = None,
    ):
        self.message = message
        self.cause = cause
        self.context = context or {}
        super().__init__(message)

    @property
    def is_transient(self) -> bool:
        return self.category == ErrorCategory.TRANSIENT

    def __str__(self) -> str:
        parts = [self.message]
        if self.cause:
            parts.append(f"Caused by: {sanitize_error_message(str(self.cause))}")
        return " | ".join(parts)


# =============================================================================
# Startup / Session Errors
# =============================================================================


class ConfigError(SubscriberError):
    """Missing required setting or unusable certificate material. Fatal."""

    category = ErrorCategory.PERMANENT


class ConnectError(SubscriberError):
    """Broker unreachable. Retried indefinitely, never fatal."""

    category = ErrorCategory.TRANSIENT


class SubscribeError(SubscriberError):
    """Subscribe rejected after a successful connect. Fatal."""

    category = ErrorCategory.PERMANENT


# =============================================================================
# Message Handling Errors
# =============================================================================


class DecodeError(SubscriberError):
    """Notification payload does not match the expected schema."""

    category = ErrorCategory.PERMANENT


class FetchError(SubscriberError):
    """
    Download of a single link failed.

    Covers non-200 responses, transport failures (cause holds the
    aiohttp/asyncio exception), unsafe target paths and local write errors.
    """

    def __init__(
        self,
        message: str,
        url: str,
        status_code: int | None = None,
        category: ErrorCategory = ErrorCategory.TRANSIENT,
        cause: Exception | None = None,
        context: dict | None = None,
    ):
        super().__init__(message, cause, context)
        self.url = url
        self.status_code = status_code
        self.category = category


# =============================================================================
# Error Classification Utilities
# =============================================================================


def classify_http_status(status_code: int) -> ErrorCategory:
    """Classify HTTP status code into error category."""
    if 200 <= status_code < 300:
        return ErrorCategory.UNKNOWN  # Not an error

    if status_code == 401:
        return ErrorCategory.AUTH

    if status_code == 429:
        return ErrorCategory.TRANSIENT  # Rate limited

    if 400 <= status_code < 500:
        return ErrorCategory.PERMANENT  # Client errors, won't fix with retry

    if status_code >= 500:
        return ErrorCategory.TRANSIENT  # Server errors, may recover

    return ErrorCategory.UNKNOWN


def classify_os_error(error: OSError) -> ErrorCategory:
    """
    Classify OSError by errno into error category.

    Conservative classification: only mark as PERMANENT if certain.
    Disk full (ENOSPC), read-only filesystem (EROFS), permission denied (EACCES/EPERM).
    """
    permanent_errnos = (errno.ENOSPC, errno.EROFS, errno.EACCES, errno.EPERM)
    return ErrorCategory.PERMANENT if error.errno in permanent_errnos else ErrorCategory.TRANSIENT


__all__ = [
    "SubscriberError",
    "ConfigError",
    "ConnectError",
    "SubscribeError",
    "DecodeError",
    "FetchError",
    "classify_http_status",
    "classify_os_error",
]
