"""
Core types shared across modules.

This module provides base enums used by the error hierarchy and the
download layer so every component classifies failures the same way.
"""

from enum import Enum


class ErrorCategory(Enum):
    """
    Classification of error types for handling decisions.

    Nothing in the subscriber retries a failed fetch, but the category is
    logged with every failure so operators can tell a dead link from a
    flaky mirror.

    Categories:
        TRANSIENT: Temporary failures that may succeed later
                   (e.g., network timeouts, 429/503 errors, broker unreachable)
        AUTH: Authentication failures (e.g., 401 errors)
        PERMANENT: Failures that won't succeed on retry
                   (e.g., 404, malformed payloads, configuration issues)
        UNKNOWN: Unclassified errors
    """

    TRANSIENT = "transient"
    AUTH = "auth"
    PERMANENT = "permanent"
    UNKNOWN = "unknown"


__all__ = ["ErrorCategory"]
