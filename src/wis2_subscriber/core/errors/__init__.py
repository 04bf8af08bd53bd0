"""
Error classification and exception hierarchy.

Provides:
- ErrorCategory enum for classifying errors
- SubscriberError hierarchy for typed exceptions
- Classification utilities for HTTP statuses and OS errors
"""

from wis2_subscriber.core.errors.exceptions import (
    ConfigError,
    ConnectError,
    DecodeError,
    FetchError,
    SubscribeError,
    # Base class
    SubscriberError,
    # Classification utilities
    classify_http_status,
    classify_os_error,
)
from wis2_subscriber.core.types import ErrorCategory

__all__ = [
    # Enums
    "ErrorCategory",
    # Base class
    "SubscriberError",
    # Fatal at startup / session
    "ConfigError",
    "ConnectError",
    "SubscribeError",
    # Recovered per message
    "DecodeError",
    "FetchError",
    # Classification utilities
    "classify_http_status",
    "classify_os_error",
]
