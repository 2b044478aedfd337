"""Queries served by the read side of the catalog.

Queries represent requests for data and are dispatched to projections.
Unlike events, queries do not mutate state - they return data.
"""

from typing import Generic, TypeVar

from pydantic import BaseModel, ConfigDict, Field, field_validator
from ulid import ULID

from .book import BookSummary, SearchHit

TResponse = TypeVar("TResponse")


class Query(BaseModel, Generic[TResponse]):
    """Base class for all queries in the system.

    Each query is generic over its response type, providing type safety
    for query handlers.

    Type Parameters:
        TResponse: The type returned by query handlers for this query

    Attributes:
        query_id: Unique identifier for this query instance, used to
            correlate log records of a single request.

    Examples:
        >>> class GetBook(Query[BookSummary | None]):
        ...     book_id: str
        >>>
        >>> class CatalogQueries(Projection):
        ...     @handles_query
        ...     async def get_book(self, query: GetBook) -> BookSummary | None:
        ...         ...
    """

    query_id: ULID = Field(default_factory=ULID)


class ListAllBooks(Query[list[BookSummary]]):
    """Every book in the catalog, up to the configured cap."""


class ListBooksByOwner(Query[list[BookSummary]]):
    """Books owned by a single user."""

    owner_id: str = Field(min_length=1)


class PageInfo(BaseModel):
    """Pagination metadata of a search response."""

    model_config = ConfigDict(populate_by_name=True)

    total_results: int = Field(alias="totalResults")
    total_pages: int = Field(alias="totalPages")
    current_page: int = Field(alias="currentPage")
    limit: int


class SearchPage(BaseModel):
    """One page of search results."""

    model_config = ConfigDict(populate_by_name=True)

    books: list[SearchHit]
    page_info: PageInfo = Field(alias="pageInfo")


class SearchBooks(Query[SearchPage]):
    """Filtered, paginated search.

    ``title`` and ``author`` are case-insensitive prefixes. ``genre`` accepts
    one value or several; a book matches when its genre starts with any of
    them. Filters combine with AND, and a missing filter places no
    constraint. ``page`` is 1-indexed.
    """

    title: str | None = None
    author: str | None = None
    genre: list[str] = Field(default_factory=list)
    page: int = Field(default=1, ge=1)
    limit: int = Field(default=4, ge=1)

    @field_validator("title", "author", mode="before")
    @classmethod
    def _blank_is_absent(cls, value: object) -> object:
        if isinstance(value, str) and not value.strip():
            return None
        return value

    @field_validator("genre", mode="before")
    @classmethod
    def _one_or_many(cls, value: object) -> object:
        if value is None:
            return []
        if isinstance(value, str):
            value = [value]
        if isinstance(value, (list, tuple, set)):
            return [g for g in value if not (isinstance(g, str) and not g.strip())]
        return value
