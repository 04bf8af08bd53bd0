"""
Notification handling.

Decoder -> canonical link filter -> fan-out dispatcher.
"""

from wis2_subscriber.notifications.decoder import canonical_links, decode_notification
from wis2_subscriber.notifications.dispatcher import DispatchSummary, NotificationDispatcher
from wis2_subscriber.notifications.schemas import CANONICAL_REL, Link, NotificationMessage

__all__ = [
    "CANONICAL_REL",
    "Link",
    "NotificationMessage",
    "decode_notification",
    "canonical_links",
    "DispatchSummary",
    "NotificationDispatcher",
]
