"""MongoDB configuration using pydantic-settings."""

from functools import cached_property
from typing import Any

from pydantic import Field
from pydantic_settings import BaseSettings
from pymongo.asynchronous.collection import AsyncCollection
from pymongo.asynchronous.database import AsyncDatabase
from pymongo.asynchronous.mongo_client import AsyncMongoClient
from pymongo.errors import PyMongoError


class MongoConfiguration(BaseSettings):
    """Configuration and factory for MongoDB resources.

    Implements the HasLifecycle protocol for integration with the service
    lifecycle. The client is closed on shutdown.

    All settings can be configured via environment variables with the
    CATALOG_MONGO_ prefix. For example:
    - CATALOG_MONGO_URI=mongodb://localhost:27017
    - CATALOG_MONGO_DATABASE=catalog
    - CATALOG_MONGO_BOOKS_COLLECTION=books

    The configuration also acts as a factory, providing lazy-initialized
    properties for the MongoDB client, database, and collection.

    Attributes:
        uri: MongoDB connection URI.
        database: Database name to use.
        books_collection: Collection name of the book projection.
        server_selection_timeout_ms: How long an operation waits for a
            usable server before failing.
        connect_timeout_ms: Connection timeout in milliseconds.
        socket_timeout_ms: Socket timeout in milliseconds (None for no timeout).

    Example:
        >>> config = MongoConfiguration()
        >>>
        >>> # Access the collection
        >>> books = config.books
        >>>
        >>> # Lifecycle managed by the service
        >>> async with CatalogService.from_settings(mongo=config, ...) as service:
        ...     ...
    """

    # Connection settings
    uri: str = "mongodb://localhost:27017"
    database: str = "catalog"

    # Collection names
    books_collection: str = "books"

    # Timeouts
    server_selection_timeout_ms: int = Field(default=30000, ge=0)
    connect_timeout_ms: int = Field(default=20000, ge=0)
    socket_timeout_ms: int | None = Field(default=None, ge=0)

    model_config = {"env_prefix": "CATALOG_MONGO_"}

    @cached_property
    def client(self) -> AsyncMongoClient[dict[str, Any]]:
        """Get the MongoDB async client.

        The client is lazily created and cached for reuse.
        """
        kwargs: dict[str, Any] = {
            "serverSelectionTimeoutMS": self.server_selection_timeout_ms,
            "connectTimeoutMS": self.connect_timeout_ms,
        }
        if self.socket_timeout_ms is not None:
            kwargs["socketTimeoutMS"] = self.socket_timeout_ms
        return AsyncMongoClient(self.uri, **kwargs)

    @cached_property
    def db(self) -> AsyncDatabase[dict[str, Any]]:
        """Get the MongoDB async database.

        Uses the database name from configuration.
        """
        return self.client[self.database]

    @cached_property
    def books(self) -> AsyncCollection[dict[str, Any]]:
        """Get the books collection."""
        return self.db[self.books_collection]

    async def verify_connectivity(self) -> bool:
        """Ping the server.

        Returns:
            True if the server answered, False otherwise.
        """
        try:
            await self.client.admin.command("ping")
        except PyMongoError:
            return False
        return True

    # HasLifecycle protocol implementation

    async def on_startup(self) -> None:
        """Called when the service starts.

        No-op for MongoDB - connections are established lazily.
        """
        pass

    async def on_shutdown(self) -> None:
        """Called when the service shuts down.

        Closes the MongoDB client connection if it was created.
        """
        if "client" in self.__dict__:
            await self.client.close()
            for name in ("client", "db", "books"):
                self.__dict__.pop(name, None)
