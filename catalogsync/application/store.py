"""Projection store interface and in-memory implementation.

The event applier and the query service depend only on
:class:`ProjectionStore`. Adapters translate the store-agnostic
:class:`BookFilter` into their own query language and raise
:class:`~catalogsync.domain.StoreUnavailableError` or
:class:`~catalogsync.domain.StoreRejectedError` on failure.
"""

import copy
from abc import ABC, abstractmethod
from typing import Any

from pydantic import BaseModel, Field, ValidationError

from ..domain import BookRecord, StoreRejectedError


def load_record(document: dict[str, Any]) -> BookRecord:
    """Build a record from a stored document.

    Raises:
        StoreRejectedError: If the stored document is not a valid record.
    """
    try:
        return BookRecord.from_document(document)
    except ValidationError as err:
        book_id = document.get("book_id")
        raise StoreRejectedError(f"Stored document {book_id!r} is not a valid book: {err}") from err


def _has_prefix(value: str | None, prefix: str) -> bool:
    return value is not None and value.casefold().startswith(prefix.casefold())


class BookFilter(BaseModel):
    """Conjunctive filter over book records.

    Unset attributes place no constraint. Prefix comparisons are
    case-insensitive and literal (no pattern syntax).

    Attributes:
        title_prefix: Title must start with this text.
        author_prefix: Author name must start with this text.
        genre_prefixes: Genre name must start with at least one of these.
        user_id: Owner must equal this identifier.
    """

    title_prefix: str | None = None
    author_prefix: str | None = None
    genre_prefixes: list[str] = Field(default_factory=list)
    user_id: str | None = None

    def matches(self, record: BookRecord) -> bool:
        """Evaluate the filter against a single record."""
        if self.user_id is not None and record.user_id != self.user_id:
            return False
        if self.title_prefix and not _has_prefix(record.title, self.title_prefix):
            return False
        if self.author_prefix:
            author = record.author.name if record.author else None
            if not _has_prefix(author, self.author_prefix):
                return False
        if self.genre_prefixes:
            genre = record.genre.name if record.genre else None
            if not any(_has_prefix(genre, prefix) for prefix in self.genre_prefixes):
                return False
        return True


class ProjectionStore(ABC):
    """Document store of book records keyed by ``book_id``.

    Implementations guarantee per-document atomicity and never hold two
    records with the same ``book_id``. Results of :meth:`find` are ordered by
    ``book_id`` so that consecutive pages partition the matching set.
    """

    @abstractmethod
    async def find_one(self, book_id: str) -> BookRecord | None:
        """Return the record with ``book_id`` or None."""
        ...

    @abstractmethod
    async def insert(self, record: BookRecord) -> bool:
        """Insert ``record`` unless a record with its ``book_id`` exists.

        Returns:
            True if the record was inserted, False if one already existed.
        """
        ...

    @abstractmethod
    async def update_fields(self, book_id: str, fields: dict[str, Any]) -> bool:
        """Overwrite the given top-level fields of an existing record.

        Fields not listed are left untouched.

        Returns:
            True if a record with ``book_id`` exists, False otherwise.
        """
        ...

    @abstractmethod
    async def delete(self, book_id: str) -> bool:
        """Remove the record with ``book_id``.

        Returns:
            True if a record was removed, False if none existed.
        """
        ...

    @abstractmethod
    async def find(
        self,
        filter: BookFilter,
        skip: int = 0,
        limit: int | None = None,
    ) -> list[BookRecord]:
        """Return matching records ordered by ``book_id``."""
        ...

    @abstractmethod
    async def count(self, filter: BookFilter) -> int:
        """Count matching records, ignoring pagination."""
        ...


class InMemoryProjectionStore(ProjectionStore):
    """Dictionary-backed store for tests and single-process use.

    Documents are copied on the way in and out so callers can never mutate
    stored state by accident.
    """

    def __init__(self) -> None:
        self.documents: dict[str, dict[str, Any]] = {}

    async def find_one(self, book_id: str) -> BookRecord | None:
        document = self.documents.get(book_id)
        if document is None:
            return None
        return load_record(copy.deepcopy(document))

    async def insert(self, record: BookRecord) -> bool:
        if record.book_id in self.documents:
            return False
        self.documents[record.book_id] = copy.deepcopy(record.to_document())
        return True

    async def update_fields(self, book_id: str, fields: dict[str, Any]) -> bool:
        document = self.documents.get(book_id)
        if document is None:
            return False
        document.update(copy.deepcopy(fields))
        document["book_id"] = book_id
        return True

    async def delete(self, book_id: str) -> bool:
        return self.documents.pop(book_id, None) is not None

    async def find(
        self,
        filter: BookFilter,
        skip: int = 0,
        limit: int | None = None,
    ) -> list[BookRecord]:
        matching = [record for record in self._records() if filter.matches(record)]
        end = None if limit is None else skip + limit
        return matching[skip:end]

    async def count(self, filter: BookFilter) -> int:
        return sum(1 for record in self._records() if filter.matches(record))

    def _records(self) -> list[BookRecord]:
        return [
            load_record(copy.deepcopy(self.documents[book_id]))
            for book_id in sorted(self.documents)
        ]
