"""Projection base class for serving typed queries."""

import inspect
from typing import TYPE_CHECKING, ClassVar, TypeVar

from ...domain import Query
from ...routing import setup_query_routing

if TYPE_CHECKING:
    from ...routing import MessageRouter

T = TypeVar("T")


class Projection:
    """Base class for read-side services answering queries from a store.

    Projections are the read side of the catalog. They never mutate the
    store; the event applier keeps it current.

    **Query Handling:**
    Use @handles_query to mark methods that serve queries:

    ```python
    @handles_query
    async def list_all(self, query: ListAllBooks) -> list[BookSummary]:
        return [BookSummary.from_record(r) for r in await self.store.find(BookFilter())]
    ```

    **State Management:**
    Projections hold no records themselves. Inject the store via the
    constructor:

    ```python
    class CatalogQueryService(Projection):
        def __init__(self, store: ProjectionStore):
            self.store = store
    ```

    Attributes:
        _query_router: Routing table for query handlers
    """

    _query_router: ClassVar["MessageRouter"]

    def __init_subclass__(cls, **kwargs: object) -> None:
        """Set up query routing when a subclass is defined."""
        super().__init_subclass__(**kwargs)
        cls._query_router = setup_query_routing(cls)

    async def query(self, query: Query[T]) -> T:
        """Route a query to its registered handler method.

        Args:
            query: The query to handle.

        Returns:
            The query result as declared by the Query's type parameter.

        Raises:
            NotImplementedError: If no handler is registered for the query.
        """
        result = self._query_router.route(self, query)

        if inspect.iscoroutine(result):
            result = await result
        return result  # type: ignore[return-value]
