"""Catalogsync - keeps a queryable book catalog in sync with a book event stream.

This module provides the public API of the catalog service.
"""

from .application import (
    ApplyResult,
    BookFilter,
    CatalogQueryService,
    CatalogService,
    Envelope,
    ErrorKind,
    EventApplier,
    InMemoryMessageTransport,
    InMemoryProjectionStore,
    ProjectionStore,
    QueueConsumer,
    decode_event,
)
from .config import ServiceSettings
from .domain import BookRecord, CatalogEvent, EventType
from .routing import handles_event, handles_query

__all__ = [
    # Service
    "CatalogService",
    "ServiceSettings",
    # Write side
    "ApplyResult",
    "EventApplier",
    "QueueConsumer",
    "decode_event",
    # Read side
    "CatalogQueryService",
    "Envelope",
    "ErrorKind",
    # Store
    "BookFilter",
    "InMemoryProjectionStore",
    "ProjectionStore",
    # Transport
    "InMemoryMessageTransport",
    # Domain primitives
    "BookRecord",
    "CatalogEvent",
    "EventType",
    # Decorators
    "handles_event",
    "handles_query",
]
