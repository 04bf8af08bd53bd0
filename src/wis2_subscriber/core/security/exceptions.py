"""Security validation exceptions."""


class ValidationError(ValueError):
    """Base class for validation errors."""

    pass


class URLValidationError(ValidationError):
    """Raised when URL validation fails."""

    pass


class UnsafeFilenameError(ValidationError):
    """Raised when a URL does not yield a filename that stays inside the download directory."""

    pass
