"""MongoDB collection wrapper with index management and query helpers.

This module provides an IndexedCollection class that wraps a MongoDB
AsyncCollection with automatic index management and helper methods for
the query patterns used by the book store.
"""

from collections.abc import AsyncIterator
from enum import IntEnum
from typing import Any

from pydantic import BaseModel
from pymongo import ASCENDING, DESCENDING
from pymongo.asynchronous.collection import AsyncCollection


class IndexDirection(IntEnum):
    """Sort direction for MongoDB index fields."""

    ASC = ASCENDING
    """Ascending order (1)."""

    DESC = DESCENDING
    """Descending order (-1)."""


class IndexSpec(BaseModel):
    """Specification for a MongoDB index.

    Example:
        >>> # Simple index
        >>> IndexSpec(keys=[("user_id", IndexDirection.ASC)])
        >>>
        >>> # Unique index
        >>> IndexSpec(keys=[("book_id", IndexDirection.ASC)], unique=True)
    """

    model_config = {"arbitrary_types_allowed": True}

    keys: list[tuple[str, IndexDirection]]
    """(field_name, direction) tuples."""

    unique: bool = False
    """If True, enforce uniqueness."""

    async def apply(self, collection: AsyncCollection[dict[str, Any]]) -> None:
        """Apply this index specification to a collection.

        Args:
            collection: The MongoDB collection to create the index on.
        """
        kwargs: dict[str, Any] = {}
        if self.unique:
            kwargs["unique"] = True

        await collection.create_index([(k, int(d)) for k, d in self.keys], **kwargs)


class WriteResult(BaseModel):
    """Result of an update or delete operation."""

    matched_count: int = 0
    """Number of documents matched by the filter."""

    modified_count: int = 0
    """Number of documents modified (or deleted)."""

    upserted_id: Any | None = None
    """ID of upserted document, if any."""


class IndexedCollection:
    """A MongoDB collection wrapper with automatic index management.

    IndexedCollection wraps an AsyncCollection and handles:
    - Lazy index creation (indexes created on first use)
    - Common query patterns (find one, paged find, count)
    - Upsert/update/delete operations

    This class is used by the store to separate concerns:
    - The store handles type conversion and error translation
    - IndexedCollection handles MongoDB operations and indexing

    Example:
        >>> collection = IndexedCollection(
        ...     config.books,
        ...     indexes=[
        ...         IndexSpec(keys=[("book_id", IndexDirection.ASC)], unique=True),
        ...         IndexSpec(keys=[("user_id", IndexDirection.ASC)]),
        ...     ]
        ... )
        >>>
        >>> # Indexes are created on first operation
        >>> async for doc in collection.find({"user_id": "u1"}):
        ...     print(doc)
    """

    def __init__(
        self,
        collection: AsyncCollection[dict[str, Any]],
        indexes: list[IndexSpec] | None = None,
    ) -> None:
        """Initialize the indexed collection.

        Args:
            collection: The underlying MongoDB AsyncCollection.
            indexes: List of index specifications to create.
        """
        self._collection = collection
        self._indexes = indexes or []
        self._indexes_created = False

    async def ensure_indexes(self) -> None:
        """Create indexes if not already created.

        Called automatically by other methods, but can be called
        explicitly for eager initialization.
        """
        if self._indexes_created:
            return

        for spec in self._indexes:
            await spec.apply(self._collection)

        self._indexes_created = True

    # ========== Find Operations ==========

    async def find_one(
        self,
        filter: dict[str, Any],
        projection: dict[str, Any] | None = None,
    ) -> dict[str, Any] | None:
        """Find a single document matching the filter.

        Args:
            filter: MongoDB query filter.
            projection: Optional projection to limit returned fields.

        Returns:
            The matching document or None.
        """
        await self.ensure_indexes()
        result: dict[str, Any] | None = await self._collection.find_one(
            filter, projection=projection
        )
        return result

    async def find(
        self,
        filter: dict[str, Any],
        projection: dict[str, Any] | None = None,
        sort: list[tuple[str, int]] | None = None,
        skip: int = 0,
        limit: int | None = None,
    ) -> AsyncIterator[dict[str, Any]]:
        """Find documents matching the filter.

        Args:
            filter: MongoDB query filter.
            projection: Optional projection to limit returned fields.
            sort: Optional list of (field, direction) tuples.
            skip: Number of matching documents to skip.
            limit: Optional maximum number of documents to return.

        Yields:
            Matching documents.
        """
        await self.ensure_indexes()

        cursor = self._collection.find(filter, projection=projection)

        if sort:
            cursor = cursor.sort(sort)
        if skip:
            cursor = cursor.skip(skip)
        if limit:
            cursor = cursor.limit(limit)

        async for doc in cursor:
            yield doc

    async def count(self, filter: dict[str, Any]) -> int:
        """Count documents matching the filter.

        Args:
            filter: MongoDB query filter.

        Returns:
            The number of matching documents.
        """
        await self.ensure_indexes()
        result: int = await self._collection.count_documents(filter)
        return result

    # ========== Update Operations ==========

    async def update_one(
        self,
        filter: dict[str, Any],
        update: dict[str, Any],
        upsert: bool = False,
    ) -> WriteResult:
        """Update a single document.

        Args:
            filter: MongoDB query filter.
            update: Update operations (e.g., {"$set": {...}}).
            upsert: If True, insert if no matching document exists.

        Returns:
            WriteResult with matched/modified counts and upserted_id.
        """
        await self.ensure_indexes()
        result = await self._collection.update_one(filter, update, upsert=upsert)
        return WriteResult(
            matched_count=result.matched_count,
            modified_count=result.modified_count,
            upserted_id=result.upserted_id,
        )

    # ========== Delete Operations ==========

    async def delete_one(self, filter: dict[str, Any]) -> WriteResult:
        """Delete a single document.

        Args:
            filter: MongoDB query filter.

        Returns:
            WriteResult whose modified_count is the number deleted.
        """
        await self.ensure_indexes()
        result = await self._collection.delete_one(filter)
        return WriteResult(
            matched_count=result.deleted_count,
            modified_count=result.deleted_count,
        )
