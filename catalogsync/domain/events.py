"""Catalog lifecycle events.

Events arrive on the queue as ``{"eventType": ..., "data": {...}}``. Each known
event type maps to its own variant with an explicitly typed payload, so a
payload missing a required field is rejected while decoding rather than while
applying. Event types outside the known set decode to ``UnknownEvent``.
"""

from enum import Enum
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

from .book import BookChanges, BookRef, NewBook


class EventType(str, Enum):
    """The closed set of event types the catalog understands."""

    BOOK_CREATED = "BOOK_CREATED"
    BOOK_UPDATED = "BOOK_UPDATED"
    BOOK_DELETED = "BOOK_DELETED"


class CatalogEvent(BaseModel):
    """Base class of every decoded queue event.

    Attributes:
        event_type: Wire value of ``eventType``.
        data: Event payload.
    """

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    event_type: str = Field(alias="eventType")
    data: Any

    @property
    def book_id(self) -> str | None:
        """Identifier of the targeted book, when the payload carries one."""
        book_id = getattr(self.data, "book_id", None)
        if book_id is None and isinstance(self.data, dict):
            book_id = self.data.get("book_id")
        return book_id if isinstance(book_id, str) else None


class BookCreated(CatalogEvent):
    """A book was added to the catalog."""

    event_type: Literal["BOOK_CREATED"] = Field(default="BOOK_CREATED", alias="eventType")
    data: NewBook


class BookUpdated(CatalogEvent):
    """Some fields of a book changed."""

    event_type: Literal["BOOK_UPDATED"] = Field(default="BOOK_UPDATED", alias="eventType")
    data: BookChanges


class BookDeleted(CatalogEvent):
    """A book was removed from the catalog."""

    event_type: Literal["BOOK_DELETED"] = Field(default="BOOK_DELETED", alias="eventType")
    data: BookRef


class UnknownEvent(CatalogEvent):
    """An event whose type is not part of :class:`EventType`."""

    data: dict[str, Any] = Field(default_factory=dict)


EVENT_VARIANTS: dict[str, type[CatalogEvent]] = {
    EventType.BOOK_CREATED.value: BookCreated,
    EventType.BOOK_UPDATED.value: BookUpdated,
    EventType.BOOK_DELETED.value: BookDeleted,
}
