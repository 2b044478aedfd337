"""Catalog queries: list all, list by owner, and filtered search."""

import logging
import math
from typing import Any

from pydantic import ValidationError

from ...config import ServiceSettings
from ...domain import (
    AuthenticationError,
    BookSummary,
    ListAllBooks,
    ListBooksByOwner,
    PageInfo,
    SearchBooks,
    SearchHit,
    SearchPage,
    StoreError,
)
from ...routing import handles_query
from ..auth import IdentityVerifier, RejectingVerifier
from ..envelope import Envelope, ErrorKind
from ..store import BookFilter, ProjectionStore
from .projection import Projection

LOGGER = logging.getLogger(__name__)

FETCH_FAILED = "Failed to fetch books. Please try again later."
SEARCH_FAILED = "Failed to search books. Please try again later."
UNAUTHORIZED = "Unauthorized: valid credentials are required"
FORBIDDEN = "Forbidden: Access to this user's books is not allowed"


class CatalogQueryService(Projection):
    """Read-only access to the catalog projection.

    The public methods (:meth:`list_all`, :meth:`list_by_owner`,
    :meth:`search`) return :class:`Envelope` objects and never raise; they
    are what an HTTP layer calls. The typed queries behind them can also be
    dispatched directly with :meth:`query`, in which case store errors
    propagate.

    Attributes:
        store: Projection store to read from.
        verifier: Identity verification for owner-scoped listings.
        settings: Pagination defaults and result caps.
    """

    def __init__(
        self,
        store: ProjectionStore,
        verifier: IdentityVerifier | None = None,
        settings: ServiceSettings | None = None,
    ) -> None:
        self.store = store
        self.verifier = verifier or RejectingVerifier()
        self.settings = settings or ServiceSettings()

    async def list_all(self) -> Envelope[list[BookSummary]]:
        """All books, capped at ``settings.list_all_cap``."""
        query = ListAllBooks()
        try:
            books = await self.query(query)
        except StoreError:
            LOGGER.exception("Fetch all books failed", extra={"query_id": str(query.query_id)})
            return Envelope.failure(ErrorKind.UNAVAILABLE, FETCH_FAILED)
        return Envelope.ok(books)

    async def list_by_owner(
        self, owner_id: str, credentials: str | None
    ) -> Envelope[list[BookSummary]]:
        """Books owned by ``owner_id``, visible only to that owner.

        Args:
            owner_id: Owner whose books are requested.
            credentials: Request credentials handed to the verifier.

        Returns:
            The owner's books (possibly none), or a failure envelope with
            ``UNAUTHORIZED`` when credentials do not verify and ``FORBIDDEN``
            when they belong to somebody else.
        """
        try:
            identity = await self.verifier.verify(credentials)
        except AuthenticationError as err:
            LOGGER.info("Rejected owner listing", extra={"reason": str(err)})
            return Envelope.failure(ErrorKind.UNAUTHORIZED, UNAUTHORIZED)

        if identity.user_id != owner_id:
            LOGGER.info(
                "Forbidden owner listing",
                extra={"user_id": identity.user_id, "owner_id": owner_id},
            )
            return Envelope.failure(ErrorKind.FORBIDDEN, FORBIDDEN)

        try:
            query = ListBooksByOwner(owner_id=owner_id)
        except ValidationError:
            return Envelope.failure(ErrorKind.INVALID_REQUEST, "Owner id must not be empty")

        try:
            books = await self.query(query)
        except StoreError:
            LOGGER.exception("Fetch user books failed", extra={"query_id": str(query.query_id)})
            return Envelope.failure(ErrorKind.UNAVAILABLE, FETCH_FAILED)
        return Envelope.ok(books)

    async def search(
        self,
        title: str | None = None,
        author: str | None = None,
        genre: str | list[str] | None = None,
        page: int | str | None = None,
        limit: int | str | None = None,
    ) -> Envelope[SearchPage]:
        """Filtered, paginated search.

        Arguments may arrive as raw query-string values; ``page`` and
        ``limit`` are coerced to integers. Omitted values take the defaults
        from ``settings``.

        Returns:
            A page of results, an ``INVALID_REQUEST`` failure for unusable
            parameters, or an ``UNAVAILABLE`` failure when the store fails.
        """
        params: dict[str, Any] = {
            "title": title,
            "author": author,
            "genre": genre,
            "page": self.settings.default_page if page in (None, "") else page,
            "limit": self.settings.default_limit if limit in (None, "") else limit,
        }
        try:
            query = SearchBooks.model_validate(params)
        except ValidationError as err:
            fields = ", ".join(sorted({str(e["loc"][0]) for e in err.errors() if e["loc"]}))
            return Envelope.failure(
                ErrorKind.INVALID_REQUEST, f"Invalid search parameters: {fields}"
            )
        if query.limit > self.settings.max_limit:
            return Envelope.failure(
                ErrorKind.INVALID_REQUEST,
                f"Invalid search parameters: limit must not exceed {self.settings.max_limit}",
            )

        try:
            result = await self.query(query)
        except StoreError:
            LOGGER.exception("Search failed", extra={"query_id": str(query.query_id)})
            return Envelope.failure(ErrorKind.UNAVAILABLE, SEARCH_FAILED)
        return Envelope.ok(result)

    @handles_query
    async def list_all_books(self, query: ListAllBooks) -> list[BookSummary]:
        records = await self.store.find(BookFilter(), limit=self.settings.list_all_cap)
        return [BookSummary.from_record(record) for record in records]

    @handles_query
    async def list_books_by_owner(self, query: ListBooksByOwner) -> list[BookSummary]:
        records = await self.store.find(BookFilter(user_id=query.owner_id))
        return [BookSummary.from_record(record) for record in records]

    @handles_query
    async def search_books(self, query: SearchBooks) -> SearchPage:
        filter = BookFilter(
            title_prefix=query.title,
            author_prefix=query.author,
            genre_prefixes=query.genre,
        )
        total_results = await self.store.count(filter)
        total_pages = math.ceil(total_results / query.limit)

        books: list[SearchHit] = []
        if query.page <= total_pages:
            records = await self.store.find(
                filter, skip=(query.page - 1) * query.limit, limit=query.limit
            )
            books = [SearchHit.from_record(record) for record in records]

        return SearchPage(
            books=books,
            page_info=PageInfo(
                total_results=total_results,
                total_pages=total_pages,
                current_page=query.page,
                limit=query.limit,
            ),
        )
