"""Idempotent application of catalog events to the projection store.

Delivery is at-least-once and carries no ordering guarantee between events
for the same book, so every transition is safe to repeat:

==============  =============  ==========================  ================
event           record exists  action                      result
==============  =============  ==========================  ================
BOOK_CREATED    no             insert full record          CREATED
BOOK_CREATED    yes            nothing                     ALREADY_EXISTS
BOOK_UPDATED    yes            merge provided fields       UPDATED
BOOK_UPDATED    no             nothing                     NOT_FOUND
BOOK_DELETED    yes            remove record               DELETED
BOOK_DELETED    no             nothing                     NOT_FOUND
unknown type    -              nothing                     UNRECOGNIZED
==============  =============  ==========================  ================

An update that arrives before its creation is dropped as NOT_FOUND; the
creation then inserts the full record and a redelivered update merges on top
of it.
"""

import logging
from enum import Enum

from ...context import get_context
from ...domain import (
    BookCreated,
    BookDeleted,
    BookUpdated,
    CatalogEvent,
    DataApplyError,
    StoreRejectedError,
    StoreUnavailableError,
    TransientApplyError,
)
from ...routing import handles_event
from ..store import ProjectionStore
from .processor import EventProcessor

LOGGER = logging.getLogger(__name__)


class ApplyResult(str, Enum):
    """Outcome of applying one event. None of these is a failure."""

    CREATED = "created"
    ALREADY_EXISTS = "already_exists"
    UPDATED = "updated"
    DELETED = "deleted"
    NOT_FOUND = "not_found"
    UNRECOGNIZED = "unrecognized"


_WARNING_RESULTS = (ApplyResult.NOT_FOUND, ApplyResult.UNRECOGNIZED)


class EventApplier(EventProcessor):
    """Applies decoded catalog events to a :class:`ProjectionStore`.

    The applier keeps no state of its own between calls; the store owns every
    record. Store failures are translated into the apply error taxonomy:
    :class:`~catalogsync.domain.TransientApplyError` when the store is
    unavailable (redelivery may succeed) and
    :class:`~catalogsync.domain.DataApplyError` when the store rejected the
    data (redelivery cannot succeed).

    Example:
        >>> applier = EventApplier(InMemoryProjectionStore())
        >>> await applier.apply(decode_event(body))
        <ApplyResult.CREATED: 'created'>
    """

    def __init__(self, store: ProjectionStore):
        self.store = store

    async def apply(self, event: CatalogEvent) -> ApplyResult:
        """Apply one event to the store.

        Args:
            event: The decoded event.

        Returns:
            The outcome of the transition.

        Raises:
            TransientApplyError: If the store could not be reached.
            DataApplyError: If the store rejected the event's data.
        """
        extra = {
            **get_context().as_log_extra(),
            "event_type": event.event_type,
            "book_id": event.book_id,
        }
        try:
            result = await self.handle(event)
        except StoreUnavailableError as err:
            raise TransientApplyError(
                f"Store unavailable while applying {event.event_type}: {err}",
                event_type=event.event_type,
                book_id=event.book_id,
            ) from err
        except StoreRejectedError as err:
            raise DataApplyError(
                f"Store rejected {event.event_type}: {err}",
                event_type=event.event_type,
                book_id=event.book_id,
            ) from err

        if not isinstance(result, ApplyResult):
            result = ApplyResult.UNRECOGNIZED

        extra["outcome"] = result.value
        if result in _WARNING_RESULTS:
            LOGGER.warning("Event had no effect", extra=extra)
        else:
            LOGGER.info("Event applied", extra=extra)
        return result

    @handles_event
    async def on_book_created(self, event: BookCreated) -> ApplyResult:
        # Existence is checked first; insert() is insert-if-absent as well,
        # which covers a concurrent creation between the two calls.
        if await self.store.find_one(event.data.book_id) is not None:
            return ApplyResult.ALREADY_EXISTS
        if await self.store.insert(event.data):
            return ApplyResult.CREATED
        return ApplyResult.ALREADY_EXISTS

    @handles_event
    async def on_book_updated(self, event: BookUpdated) -> ApplyResult:
        changes = event.data.changes()
        if not changes:
            found = await self.store.find_one(event.data.book_id) is not None
            return ApplyResult.UPDATED if found else ApplyResult.NOT_FOUND
        if await self.store.update_fields(event.data.book_id, changes):
            return ApplyResult.UPDATED
        return ApplyResult.NOT_FOUND

    @handles_event
    async def on_book_deleted(self, event: BookDeleted) -> ApplyResult:
        if await self.store.delete(event.data.book_id):
            return ApplyResult.DELETED
        return ApplyResult.NOT_FOUND

    @handles_event
    async def on_unrecognized(self, event: CatalogEvent) -> ApplyResult:
        return ApplyResult.UNRECOGNIZED
