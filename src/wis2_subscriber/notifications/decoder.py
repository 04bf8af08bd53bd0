"""Notification decoding and canonical link selection."""

from collections.abc import Iterator

from pydantic import ValidationError

from wis2_subscriber.core.errors.exceptions import DecodeError
from wis2_subscriber.notifications.schemas import Link, NotificationMessage


def decode_notification(payload: bytes | str) -> NotificationMessage:
    """
    Parse a raw message payload into a NotificationMessage.

    Links are kept in payload order, canonical or not.

    Raises:
        DecodeError: If the payload is not valid JSON, is not an object,
            lacks a ``links`` list, or contains a link without a string href
    """
    try:
        return NotificationMessage.model_validate_json(payload)
    except ValidationError as e:
        raise DecodeError(
            f"Malformed notification ({e.error_count()} validation errors)",
            cause=e,
            context={"payload_size": len(payload)},
        ) from e


def canonical_links(notification: NotificationMessage) -> Iterator[Link]:
    """Yield the links whose rel is case-insensitively "canonical", in order."""
    for link in notification.links:
        if link.is_canonical:
            yield link


__all__ = ["decode_notification", "canonical_links"]
