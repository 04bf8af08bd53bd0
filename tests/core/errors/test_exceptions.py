"""Tests for the exception hierarchy and error classifiers."""

import errno

import pytest

from wis2_subscriber.core.errors import (
    ConfigError,
    ConnectError,
    DecodeError,
    ErrorCategory,
    FetchError,
    SubscribeError,
    SubscriberError,
    classify_http_status,
    classify_os_error,
)


class TestSubscriberError:

    def test_message_and_defaults(self):
        err = SubscriberError("boom")
        assert err.message == "boom"
        assert err.cause is None
        assert err.context == {}
        assert err.category == ErrorCategory.UNKNOWN
        assert str(err) == "boom"

    def test_str_includes_cause(self):
        err = SubscriberError("outer", cause=ValueError("inner"))
        assert str(err) == "outer | Caused by: inner"

    def test_str_redacts_tokens_in_cause(self):
        cause = ValueError("Cannot connect to https://h/a.bin?token=s3cr3t&x=1")
        err = FetchError("Failed to download https://h/a.bin", url="https://h/a.bin", cause=cause)

        assert "s3cr3t" not in str(err)
        assert "token=[REDACTED]" in str(err)

    def test_context_is_kept(self):
        err = SubscriberError("x", context={"topic": "a/b"})
        assert err.context == {"topic": "a/b"}

    @pytest.mark.parametrize(
        "cls,category",
        [
            (ConfigError, ErrorCategory.PERMANENT),
            (ConnectError, ErrorCategory.TRANSIENT),
            (SubscribeError, ErrorCategory.PERMANENT),
            (DecodeError, ErrorCategory.PERMANENT),
        ],
    )
    def test_subclass_categories(self, cls, category):
        err = cls("x")
        assert isinstance(err, SubscriberError)
        assert err.category == category
        assert err.is_transient == (category == ErrorCategory.TRANSIENT)


class TestFetchError:

    def test_carries_url_and_status(self):
        err = FetchError(
            "Failed to download",
            url="https://example.org/a.bin",
            status_code=404,
            category=ErrorCategory.PERMANENT,
        )
        assert err.url == "https://example.org/a.bin"
        assert err.status_code == 404
        assert err.category == ErrorCategory.PERMANENT
        assert not err.is_transient

    def test_defaults_to_transient(self):
        cause = ConnectionResetError("reset")
        err = FetchError("Failed", url="https://example.org/a.bin", cause=cause)
        assert err.status_code is None
        assert err.is_transient
        assert err.cause is cause


class TestClassifyHttpStatus:

    @pytest.mark.parametrize(
        "status,category",
        [
            (200, ErrorCategory.UNKNOWN),
            (401, ErrorCategory.AUTH),
            (403, ErrorCategory.PERMANENT),
            (404, ErrorCategory.PERMANENT),
            (410, ErrorCategory.PERMANENT),
            (429, ErrorCategory.TRANSIENT),
            (500, ErrorCategory.TRANSIENT),
            (503, ErrorCategory.TRANSIENT),
        ],
    )
    def test_classification(self, status, category):
        assert classify_http_status(status) == category


class TestClassifyOsError:

    @pytest.mark.parametrize("code", [errno.ENOSPC, errno.EROFS, errno.EACCES, errno.EPERM])
    def test_permanent_errnos(self, code):
        assert classify_os_error(OSError(code, "nope")) == ErrorCategory.PERMANENT

    def test_other_errnos_are_transient(self):
        assert classify_os_error(OSError(errno.EIO, "io")) == ErrorCategory.TRANSIENT

    def test_missing_errno_is_transient(self):
        assert classify_os_error(OSError("no errno")) == ErrorCategory.TRANSIENT
