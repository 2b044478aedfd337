"""Domain primitives of the catalog projection.

- Book types: the stored record and the shapes derived from it
- Events: the tagged union consumed from the queue
- Queries: typed requests served by the read side
- Exceptions: the error taxonomy shared by every layer
"""

from .book import (
    Author,
    BookChanges,
    BookRecord,
    BookRef,
    BookSummary,
    Genre,
    NewBook,
    SearchHit,
)
from .events import (
    EVENT_VARIANTS,
    BookCreated,
    BookDeleted,
    BookUpdated,
    CatalogEvent,
    EventType,
    UnknownEvent,
)
from .exceptions import (
    ApplyError,
    AuthenticationError,
    CatalogSyncError,
    DataApplyError,
    DecodeError,
    StoreError,
    StoreRejectedError,
    StoreUnavailableError,
    TransientApplyError,
    TransportError,
)
from .query import (
    ListAllBooks,
    ListBooksByOwner,
    PageInfo,
    Query,
    SearchBooks,
    SearchPage,
)

__all__ = [
    # Books
    "Author",
    "BookChanges",
    "BookRecord",
    "BookRef",
    "BookSummary",
    "Genre",
    "NewBook",
    "SearchHit",
    # Events
    "EVENT_VARIANTS",
    "BookCreated",
    "BookDeleted",
    "BookUpdated",
    "CatalogEvent",
    "EventType",
    "UnknownEvent",
    # Queries
    "ListAllBooks",
    "ListBooksByOwner",
    "PageInfo",
    "Query",
    "SearchBooks",
    "SearchPage",
    # Exceptions
    "ApplyError",
    "AuthenticationError",
    "CatalogSyncError",
    "DataApplyError",
    "DecodeError",
    "StoreError",
    "StoreRejectedError",
    "StoreUnavailableError",
    "TransientApplyError",
    "TransportError",
]
