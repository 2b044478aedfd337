"""Service wiring for the catalog projection.

This package contains the write side (event decoding, idempotent
application, queue consumption), the read side (catalog queries and
response envelopes), the projection store interface, and the service
lifecycle that ties them together.
"""

from .application import CatalogService, HasLifecycle
from .auth import Identity, IdentityVerifier, RejectingVerifier
from .envelope import Envelope, ErrorKind
from .events import (
    ApplyResult,
    ConsumerState,
    DeliveredMessage,
    EventApplier,
    EventProcessor,
    InMemoryMessageTransport,
    MessageOutcome,
    MessageSubscription,
    MessageTransport,
    QueueConsumer,
    decode_event,
    encode_event,
)
from .projections import CatalogQueryService, Projection
from .store import BookFilter, InMemoryProjectionStore, ProjectionStore, load_record

__all__ = [
    # Service
    "CatalogService",
    "HasLifecycle",
    # Auth
    "Identity",
    "IdentityVerifier",
    "RejectingVerifier",
    # Envelopes
    "Envelope",
    "ErrorKind",
    # Events
    "ApplyResult",
    "ConsumerState",
    "DeliveredMessage",
    "EventApplier",
    "EventProcessor",
    "InMemoryMessageTransport",
    "MessageOutcome",
    "MessageSubscription",
    "MessageTransport",
    "QueueConsumer",
    "decode_event",
    "encode_event",
    # Projections
    "CatalogQueryService",
    "Projection",
    # Store
    "BookFilter",
    "InMemoryProjectionStore",
    "ProjectionStore",
    "load_record",
]
