"""Pytest fixtures for MongoDB integration tests."""

from collections.abc import AsyncIterator

import pytest
import pytest_asyncio
from testcontainers.mongodb import MongoDbContainer

from catalogsync.integrations.mongodb import MongoConfiguration, MongoProjectionStore


@pytest.fixture(scope="module")
def mongodb_container():
    """Start MongoDB container for tests."""
    container = MongoDbContainer("mongo:7")
    with container:
        yield container


@pytest_asyncio.fixture
async def mongo_config(
    request: pytest.FixtureRequest, mongodb_container: MongoDbContainer
) -> AsyncIterator[MongoConfiguration]:
    """Create a MongoConfiguration with a fresh database per test."""
    config = MongoConfiguration(
        uri=mongodb_container.get_connection_url(),
        database=f"test_{request.node.name}"[:63],
        server_selection_timeout_ms=5000,
    )
    await config.client.drop_database(config.database)
    try:
        yield config
    finally:
        await config.on_shutdown()


@pytest_asyncio.fixture
async def mongo_store(mongo_config: MongoConfiguration) -> MongoProjectionStore:
    store = MongoProjectionStore(mongo_config)
    await store.on_startup()
    return store
