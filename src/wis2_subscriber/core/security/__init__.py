"""
Security validation module.

Provides input validation and sanitization for security-sensitive operations:
    - validate_download_url(): only http(s) links with a hostname are fetched
    - resolve_download_target(): path traversal prevention for derived filenames
    - sanitize_url() / sanitize_error_message(): remove tokens from logged URLs

The TLS context builder lives in core.security.tls and is imported from
there directly, since it raises the ConfigError of core.errors.
"""

from wis2_subscriber.core.security.exceptions import (
    UnsafeFilenameError,
    URLValidationError,
    ValidationError,
)
from wis2_subscriber.core.security.paths import (
    MAX_FILENAME_BYTES,
    extract_filename,
    resolve_download_target,
)
from wis2_subscriber.core.security.url_validation import (
    ALLOWED_SCHEMES,
    sanitize_error_message,
    sanitize_url,
    validate_download_url,
)

__all__ = [
    # Exceptions
    "ValidationError",
    "URLValidationError",
    "UnsafeFilenameError",
    # URL validation
    "validate_download_url",
    "ALLOWED_SCHEMES",
    "sanitize_url",
    "sanitize_error_message",
    # Paths
    "extract_filename",
    "resolve_download_target",
    "MAX_FILENAME_BYTES",
]
