"""
URL validation and sanitization for notification links.

Links arrive from a broker we do not control, so every href is checked
before a request is made, and every URL is scrubbed before it reaches a
log line.
"""

import re
from typing import Set
from urllib.parse import urlparse, urlunparse

from wis2_subscriber.core.security.exceptions import URLValidationError

# Only plain HTTP(S) links are fetched
ALLOWED_SCHEMES: Set[str] = {"https", "http"}


def validate_download_url(url: str) -> None:
    """
    Validate that a link can be fetched over HTTP(S).

    Raises:
        URLValidationError: If the URL is empty, unparseable, uses a scheme
            other than http/https, or has no hostname.

    Examples:
        validate_download_url("https://example.org/data/file.bufr4")  # ok
        validate_download_url("ftp://example.org/file.bin")  # raises
    """
    if not url:
        raise URLValidationError("Empty URL")

    try:
        parsed = urlparse(url)
    except ValueError as e:
        raise URLValidationError(f"Invalid URL format: {e}") from e

    scheme = parsed.scheme.lower()
    if scheme not in ALLOWED_SCHEMES:
        raise URLValidationError(f"Unsupported URL scheme: {scheme or '(none)'}")

    if not parsed.hostname:
        raise URLValidationError("No hostname in URL")


# ---------------------------------------------------------------------------
# URL Sanitization (for logging)
# ---------------------------------------------------------------------------

# Query parameters that may contain sensitive tokens
SENSITIVE_PARAMS = {
    "sig",
    "signature",
    "x-amz-signature",
    "x-amz-credential",
    "x-amz-security-token",  # AWS
    "token",
    "access_token",
    "api_key",
    "apikey",
    "key",
    "secret",
    "password",
    "pwd",
    "auth",
    "authorization",
}


def sanitize_url(url: str) -> str:
    """
    Remove sensitive query parameters and userinfo from URL.

    Preserves the path and structure for debugging while removing
    tokens that could grant access if exposed in logs.

    Returns URL with sensitive parameters replaced with [REDACTED].
    """
    if not url:
        return url

    try:
        parsed = urlparse(url)
    except ValueError:
        return url  # Return as-is if parsing fails

    if not parsed.password and not parsed.query:
        return url

    if parsed.password:
        netloc = f"{parsed.username}:[REDACTED]@{parsed.hostname}"
        if parsed.port:
            netloc = f"{netloc}:{parsed.port}"
        parsed = parsed._replace(netloc=netloc)

    if not parsed.query:
        return urlunparse(parsed)

    sanitized_params = []
    for param in parsed.query.split("&"):
        if "=" in param:
            key, _ = param.split("=", 1)
            if key.lower() in SENSITIVE_PARAMS:
                sanitized_params.append(f"{key}=[REDACTED]")
                continue
        sanitized_params.append(param)

    return urlunparse(parsed._replace(query="&".join(sanitized_params)))


# ---------------------------------------------------------------------------
# Error Message Sanitization
# ---------------------------------------------------------------------------

_URL_PATTERN = re.compile(r'https?://[^\s"\'<>]+')
_BEARER_PATTERN = re.compile(r"bearer\s+[a-zA-Z0-9\-_.]+", re.IGNORECASE)


def sanitize_error_message(msg: str, max_length: int = 500) -> str:
    """
    Remove potentially sensitive data from error messages.

    Sanitizes embedded URLs, redacts bearer tokens and truncates to max_length.
    """
    if not msg:
        return msg

    msg = _BEARER_PATTERN.sub("bearer [REDACTED]", msg)

    for match in _URL_PATTERN.finditer(msg):
        original_url = match.group(0)
        sanitized = sanitize_url(original_url)
        if sanitized != original_url:
            msg = msg.replace(original_url, sanitized)

    if len(msg) > max_length:
        msg = msg[: max_length - 3] + "..."

    return msg


__all__ = [
    "ALLOWED_SCHEMES",
    "SENSITIVE_PARAMS",
    "validate_download_url",
    "sanitize_url",
    "sanitize_error_message",
]
