"""
Notification message schemas.

Contains Pydantic models for WIS2 notification messages. Only the parts
the subscriber acts on are modelled; every other key of a notification
(id, geometry, properties, ...) is accepted and ignored.

Wire shape:
    {"links": [{"href": "https://...", "type": "...", "rel": "canonical"}]}
"""

from pydantic import BaseModel, ConfigDict, Field

CANONICAL_REL = "canonical"


class Link(BaseModel):
    """A single link of a notification."""

    model_config = ConfigDict(extra="ignore", frozen=True)

    href: str
    type: str | None = None
    rel: str | None = None

    @property
    def is_canonical(self) -> bool:
        return self.rel is not None and self.rel.casefold() == CANONICAL_REL


class NotificationMessage(BaseModel):
    """Decoded notification; lives only while its message is handled."""

    model_config = ConfigDict(extra="ignore")

    links: list[Link] = Field(...)


__all__ = ["CANONICAL_REL", "Link", "NotificationMessage"]
