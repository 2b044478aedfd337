"""Central test fixtures."""

import pytest

from catalogsync.application import (
    CatalogQueryService,
    EventApplier,
    InMemoryMessageTransport,
    InMemoryProjectionStore,
    QueueConsumer,
)
from catalogsync.config import ServiceSettings
from tests.fixtures.catalog import TokenVerifier


@pytest.fixture
def store() -> InMemoryProjectionStore:
    """Create an empty in-memory projection store."""
    return InMemoryProjectionStore()


@pytest.fixture
def transport() -> InMemoryMessageTransport:
    """Create an in-memory message transport."""
    return InMemoryMessageTransport()


@pytest.fixture
def applier(store: InMemoryProjectionStore) -> EventApplier:
    return EventApplier(store)


@pytest.fixture
def consumer(transport: InMemoryMessageTransport, applier: EventApplier) -> QueueConsumer:
    """Create a consumer that reconnects without waiting."""
    return QueueConsumer(transport, applier, queue_name="messages", reconnect_delay=0)


@pytest.fixture
def settings() -> ServiceSettings:
    return ServiceSettings()


@pytest.fixture
def verifier() -> TokenVerifier:
    """Create a verifier knowing one token for each of users u1 and u2."""
    return TokenVerifier({"token-u1": "u1", "token-u2": "u2"})


@pytest.fixture
def queries(
    store: InMemoryProjectionStore, verifier: TokenVerifier, settings: ServiceSettings
) -> CatalogQueryService:
    return CatalogQueryService(store, verifier, settings)


@pytest.fixture(autouse=True)
def clear_delivery_context():
    """Automatically clear the delivery context after each test."""
    yield
    from catalogsync.context import clear_context

    clear_context()
