"""Write side of the catalog projection.

This package provides:
- decode_event / encode_event: Wire codec for queue payloads
- EventProcessor: Base class routing events to @handles_event methods
- EventApplier: Idempotent application of events to the projection store
- MessageTransport: Broker connection interface (+ in-memory implementation)
- QueueConsumer: Acknowledgment policy and reconnect loop
"""

from .applier import ApplyResult, EventApplier
from .codec import decode_event, encode_event
from .consumer import ConsumerState, MessageOutcome, QueueConsumer
from .processor import EventProcessor
from .transport import (
    DeliveredMessage,
    InMemoryMessage,
    InMemoryMessageTransport,
    MessageSubscription,
    MessageTransport,
)

__all__ = [
    # Codec
    "decode_event",
    "encode_event",
    # Application
    "ApplyResult",
    "EventApplier",
    "EventProcessor",
    # Consumption
    "ConsumerState",
    "MessageOutcome",
    "QueueConsumer",
    # Transport
    "DeliveredMessage",
    "InMemoryMessage",
    "InMemoryMessageTransport",
    "MessageSubscription",
    "MessageTransport",
]
