"""Tests for notification decoding and canonical link selection."""

import json
import types

import pytest

from wis2_subscriber.core.errors import DecodeError
from wis2_subscriber.notifications import (
    Link,
    NotificationMessage,
    canonical_links,
    decode_notification,
)


class TestDecodeNotification:

    def test_preserves_link_count_and_order(self, make_notification):
        payload = make_notification(
            ("https://h/1.bin", "canonical"),
            ("https://h/2.bin", "via"),
            ("https://h/3.bin", "canonical"),
        )

        notification = decode_notification(payload)

        assert isinstance(notification, NotificationMessage)
        assert [link.href for link in notification.links] == [
            "https://h/1.bin",
            "https://h/2.bin",
            "https://h/3.bin",
        ]

    def test_accepts_str_payload(self):
        notification = decode_notification('{"links": [{"href": "https://h/a.bin"}]}')
        assert notification.links == [Link(href="https://h/a.bin")]

    def test_empty_links(self):
        assert decode_notification(b'{"links": []}').links == []

    def test_unknown_keys_ignored(self):
        payload = json.dumps(
            {
                "links": [{"href": "https://h/a.bin", "rel": "canonical", "length": 12}],
                "geometry": None,
                "extra": {"nested": True},
            }
        )

        link = decode_notification(payload).links[0]

        assert link.rel == "canonical"
        assert link.type is None

    @pytest.mark.parametrize(
        "payload",
        [
            b"",
            b"not json",
            b"\xff\xfe\x00",
            b"[]",
            b'"links"',
            b"{}",
            b'{"links": null}',
            b'{"links": {"href": "https://h/a.bin"}}',
            b'{"links": [{"rel": "canonical"}]}',
            b'{"links": [{"href": 42, "rel": "canonical"}]}',
            b'{"links": ["https://h/a.bin"]}',
        ],
    )
    def test_malformed_payload_raises_decode_error(self, payload):
        with pytest.raises(DecodeError) as exc_info:
            decode_notification(payload)

        assert exc_info.value.cause is not None
        assert exc_info.value.context["payload_size"] == len(payload)


class TestCanonicalLinks:

    def test_exact_canonical_subset_in_order(self, make_notification):
        payload = make_notification(
            ("https://h/1.bin", "canonical"),
            ("https://h/2.bin", "alternate"),
            ("https://h/3.bin", "Canonical"),
            ("https://h/4.bin", "CANONICAL"),
            ("https://h/5.bin", " canonical"),
        )

        links = canonical_links(decode_notification(payload))

        assert isinstance(links, types.GeneratorType)
        assert [link.href for link in links] == [
            "https://h/1.bin",
            "https://h/3.bin",
            "https://h/4.bin",
        ]

    def test_missing_rel_is_not_canonical(self):
        notification = decode_notification(b'{"links": [{"href": "https://h/a.bin"}]}')
        assert list(canonical_links(notification)) == []

    def test_no_links(self):
        assert list(canonical_links(NotificationMessage(links=[]))) == []
