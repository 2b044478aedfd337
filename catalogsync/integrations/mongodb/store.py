"""MongoDB-backed projection store."""

import logging
import re
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any

from bson.errors import InvalidDocument
from pymongo.errors import (
    ConnectionFailure,
    DuplicateKeyError,
    ExecutionTimeout,
    PyMongoError,
    WTimeoutError,
)

from ...application.store import BookFilter, ProjectionStore, load_record
from ...domain import BookRecord, StoreRejectedError, StoreUnavailableError
from .collection import IndexDirection, IndexedCollection, IndexSpec
from .config import MongoConfiguration

LOGGER = logging.getLogger(__name__)

BOOK_INDEXES = [
    IndexSpec(keys=[("book_id", IndexDirection.ASC)], unique=True),
    IndexSpec(keys=[("user_id", IndexDirection.ASC)]),
    IndexSpec(keys=[("title", IndexDirection.ASC)]),
    IndexSpec(keys=[("author.name", IndexDirection.ASC)]),
    IndexSpec(keys=[("genre.name", IndexDirection.ASC)]),
]

_PROJECTION = {"_id": False}
_SORT = [("book_id", int(IndexDirection.ASC))]
_UNAVAILABLE = (ConnectionFailure, ExecutionTimeout, WTimeoutError)


def _prefix_pattern(prefix: str) -> re.Pattern[str]:
    return re.compile("^" + re.escape(prefix), re.IGNORECASE)


def build_query(filter: BookFilter) -> dict[str, Any]:
    """Translate a :class:`BookFilter` into a MongoDB query document.

    Prefixes are escaped so that user input is always matched literally.

    Examples:
        >>> build_query(BookFilter(user_id="u1"))
        {'user_id': 'u1'}
        >>> build_query(BookFilter(title_prefix="a.b"))["title"].pattern
        '^a\\\\.b'
    """
    query: dict[str, Any] = {}
    if filter.user_id is not None:
        query["user_id"] = filter.user_id
    if filter.title_prefix:
        query["title"] = _prefix_pattern(filter.title_prefix)
    if filter.author_prefix:
        query["author.name"] = _prefix_pattern(filter.author_prefix)
    if filter.genre_prefixes:
        query["genre.name"] = {"$in": [_prefix_pattern(p) for p in filter.genre_prefixes]}
    return query


@contextmanager
def translate_errors(operation: str) -> Iterator[None]:
    """Map driver exceptions onto the store error taxonomy."""
    try:
        yield
    except _UNAVAILABLE as err:
        LOGGER.warning("MongoDB unavailable", extra={"operation": operation, "error": str(err)})
        raise StoreUnavailableError(f"{operation} failed: {err}") from err
    except (PyMongoError, InvalidDocument) as err:
        raise StoreRejectedError(f"{operation} rejected: {err}") from err


class MongoProjectionStore(ProjectionStore):
    """Projection store keeping one document per book in a MongoDB collection.

    Documents are keyed by a unique index on ``book_id``; MongoDB's own
    ``_id`` never leaves the store. Each operation touches a single document,
    so per-document atomicity of the server is all the applier relies on.

    Example:
        >>> store = MongoProjectionStore(MongoConfiguration())
        >>> await store.on_startup()
        >>> await store.find(BookFilter(title_prefix="dune"), limit=4)
    """

    def __init__(self, config: MongoConfiguration):
        self.config = config
        self.collection = IndexedCollection(config.books, indexes=BOOK_INDEXES)

    async def on_startup(self) -> None:
        """Check connectivity and create indexes eagerly.

        An unreachable server does not fail the startup: events keep being
        requeued until it comes back, and indexes are then created on first
        use.
        """
        if not await self.config.verify_connectivity():
            LOGGER.warning(
                "MongoDB is not reachable at startup", extra={"database": self.config.database}
            )
            return
        try:
            with translate_errors("ensure_indexes"):
                await self.collection.ensure_indexes()
        except StoreUnavailableError:
            LOGGER.warning("Index creation deferred until MongoDB is reachable")
            return
        LOGGER.info(
            "MongoDB projection store ready",
            extra={"database": self.config.database, "collection": self.config.books_collection},
        )

    async def on_shutdown(self) -> None:
        await self.config.on_shutdown()

    async def find_one(self, book_id: str) -> BookRecord | None:
        with translate_errors("find_one"):
            document = await self.collection.find_one({"book_id": book_id}, _PROJECTION)
        if document is None:
            return None
        return load_record(document)

    async def insert(self, record: BookRecord) -> bool:
        document = record.to_document()
        try:
            with translate_errors("insert"):
                result = await self.collection.update_one(
                    {"book_id": record.book_id}, {"$setOnInsert": document}, upsert=True
                )
        except StoreRejectedError as err:
            # Two concurrent upserts of the same book_id: the loser hits the
            # unique index.
            if isinstance(err.__cause__, DuplicateKeyError):
                return False
            raise
        return result.upserted_id is not None

    async def update_fields(self, book_id: str, fields: dict[str, Any]) -> bool:
        fields = {k: v for k, v in fields.items() if k not in ("_id", "book_id")}
        if not fields:
            return await self.find_one(book_id) is not None
        with translate_errors("update_fields"):
            result = await self.collection.update_one({"book_id": book_id}, {"$set": fields})
        return result.matched_count > 0

    async def delete(self, book_id: str) -> bool:
        with translate_errors("delete"):
            result = await self.collection.delete_one({"book_id": book_id})
        return result.modified_count > 0

    async def find(
        self,
        filter: BookFilter,
        skip: int = 0,
        limit: int | None = None,
    ) -> list[BookRecord]:
        with translate_errors("find"):
            documents = [
                document
                async for document in self.collection.find(
                    build_query(filter), _PROJECTION, sort=_SORT, skip=skip, limit=limit
                )
            ]
        return [load_record(document) for document in documents]

    async def count(self, filter: BookFilter) -> int:
        with translate_errors("count"):
            return await self.collection.count(build_query(filter))
