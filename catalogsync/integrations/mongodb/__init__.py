"""MongoDB integration for the catalog projection.

This module provides a MongoDB implementation of the ProjectionStore
interface using the async PyMongo driver.

Usage:
    >>> from catalogsync.integrations.mongodb import (
    ...     MongoConfiguration,
    ...     MongoProjectionStore,
    ... )
    >>>
    >>> config = MongoConfiguration(
    ...     uri="mongodb://localhost:27017",
    ...     database="catalog"
    ... )
    >>> store = MongoProjectionStore(config)
    >>> await store.on_startup()
"""

from .collection import IndexDirection, IndexedCollection, IndexSpec, WriteResult
from .config import MongoConfiguration
from .store import BOOK_INDEXES, MongoProjectionStore, build_query, translate_errors

__all__ = [
    "BOOK_INDEXES",
    "IndexDirection",
    "IndexSpec",
    "IndexedCollection",
    "MongoConfiguration",
    "MongoProjectionStore",
    "WriteResult",
    "build_query",
    "translate_errors",
]
