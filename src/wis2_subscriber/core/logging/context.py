"""Context variables for structured logging."""

import uuid
from contextvars import ContextVar
from typing import Dict, Optional

_client_id: ContextVar[str] = ContextVar("client_id", default="")
_topic: ContextVar[str] = ContextVar("topic", default="")
_notification_id: ContextVar[str] = ContextVar("notification_id", default="")


def set_log_context(
    client_id: Optional[str] = None,
    topic: Optional[str] = None,
    notification_id: Optional[str] = None,
) -> None:
    if client_id is not None:
        _client_id.set(client_id)
    if topic is not None:
        _topic.set(topic)
    if notification_id is not None:
        _notification_id.set(notification_id)


def get_log_context() -> Dict[str, str]:
    return {
        "client_id": _client_id.get(),
        "topic": _topic.get(),
        "notification_id": _notification_id.get(),
    }


def clear_log_context() -> None:
    _client_id.set("")
    _topic.set("")
    _notification_id.set("")


def generate_notification_id() -> str:
    """Short random id used to correlate all log lines of one notification."""
    return uuid.uuid4().hex[:8]


class LogContext:
    """
    Context manager for temporary log context.

    Usage:
        with LogContext(topic=msg_topic, notification_id=generate_notification_id()):
            # All logs in this block carry topic and notification_id
            await dispatch()
    """

    def __init__(
        self,
        client_id: Optional[str] = None,
        topic: Optional[str] = None,
        notification_id: Optional[str] = None,
    ):
        self.new_context = {
            "client_id": client_id,
            "topic": topic,
            "notification_id": notification_id,
        }
        self.old_context: Dict[str, str] = {}

    def __enter__(self) -> "LogContext":
        self.old_context = get_log_context()
        set_log_context(**self.new_context)
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        set_log_context(**self.old_context)
        return False
