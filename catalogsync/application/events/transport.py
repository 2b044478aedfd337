"""Message transport interfaces and in-memory implementation.

This module provides:
- DeliveredMessage: A message handed out by the broker, acknowledged once
- MessageSubscription: Async iterator over deliveries from one queue
- MessageTransport: Connection to a broker hosting durable queues
- InMemoryMessageTransport: Queue-per-name implementation for testing
"""

import asyncio
from abc import ABC, abstractmethod
from collections.abc import AsyncIterator
from itertools import count

from ...domain import TransportError


class DeliveredMessage(ABC):
    """A message received from a queue, awaiting its acknowledgment.

    Exactly one of :meth:`ack` or :meth:`nack` is expected per delivery.
    Both raise :class:`~catalogsync.domain.TransportError` when the broker
    connection is gone; the broker then redelivers the message to the next
    consumer.
    """

    @property
    @abstractmethod
    def body(self) -> bytes:
        """Raw message payload."""
        ...

    @property
    @abstractmethod
    def message_id(self) -> str | None:
        """Broker message identifier, when available."""
        ...

    @property
    @abstractmethod
    def redelivered(self) -> bool:
        """True if this delivery is a redelivery."""
        ...

    @abstractmethod
    async def ack(self) -> None:
        """Confirm processing; the broker forgets the message."""
        ...

    @abstractmethod
    async def nack(self, requeue: bool) -> None:
        """Refuse the message.

        Args:
            requeue: If True the broker redelivers the message, otherwise it
                is discarded (or dead-lettered when the queue is set up so).
        """
        ...


class MessageSubscription(ABC):
    """Async iterator of deliveries from a single queue.

    Iteration ends when the subscription is closed or the underlying channel
    goes away. It raises :class:`~catalogsync.domain.TransportError` if the
    connection fails while waiting for the next message.
    """

    def __aiter__(self) -> AsyncIterator[DeliveredMessage]:
        return self

    @abstractmethod
    async def __anext__(self) -> DeliveredMessage:
        ...

    @abstractmethod
    async def close(self) -> None:
        """Stop receiving; pending iteration ends with StopAsyncIteration."""
        ...


class MessageTransport(ABC):
    """Abstract connection to a message broker.

    Implementations might use:
    - In-memory queues (for testing or single-process apps)
    - Message brokers (RabbitMQ, AWS SQS)

    The transport owns one connection at a time. :meth:`close` is safe to
    call whether or not a connection is open, so a consumer can always call
    it before reconnecting.
    """

    @abstractmethod
    async def connect(self) -> None:
        """Open the broker connection.

        Raises:
            TransportError: If the broker cannot be reached.
        """
        ...

    @abstractmethod
    async def subscribe(self, queue_name: str) -> MessageSubscription:
        """Declare ``queue_name`` as a durable queue and start consuming it.

        Raises:
            TransportError: If not connected or the broker refused.
        """
        ...

    @abstractmethod
    async def close(self) -> None:
        """Close the connection if one is open."""
        ...


class InMemoryMessage(DeliveredMessage):
    """Delivery from :class:`InMemoryMessageTransport`.

    Attributes:
        settled: None until acknowledged, then "ack", "requeue" or "reject".
    """

    def __init__(
        self,
        transport: "InMemoryMessageTransport",
        queue_name: str,
        body: bytes,
        message_id: str,
        redelivered: bool = False,
    ) -> None:
        self._transport = transport
        self._queue_name = queue_name
        self._body = body
        self._message_id = message_id
        self._redelivered = redelivered
        self.settled: str | None = None

    @property
    def body(self) -> bytes:
        return self._body

    @property
    def message_id(self) -> str | None:
        return self._message_id

    @property
    def redelivered(self) -> bool:
        return self._redelivered

    async def ack(self) -> None:
        self._settle("ack")

    async def nack(self, requeue: bool) -> None:
        self._settle("requeue" if requeue else "reject")
        if requeue:
            self._transport.enqueue(
                self._queue_name,
                InMemoryMessage(
                    self._transport,
                    self._queue_name,
                    self._body,
                    self._message_id,
                    redelivered=True,
                ),
            )
        else:
            self._transport.rejected.append(self)

    def _settle(self, outcome: str) -> None:
        if self.settled is not None:
            raise RuntimeError(f"Message {self._message_id} already settled ({self.settled})")
        self.settled = outcome


class InMemorySubscription(MessageSubscription):
    """Subscription reading from one of the transport's asyncio queues."""

    def __init__(self, queue: "asyncio.Queue[InMemoryMessage]") -> None:
        self._queue = queue
        self._closed = asyncio.Event()

    async def __anext__(self) -> DeliveredMessage:
        if self._closed.is_set():
            raise StopAsyncIteration

        get = asyncio.ensure_future(self._queue.get())
        closed = asyncio.ensure_future(self._closed.wait())
        done, pending = await asyncio.wait({get, closed}, return_when=asyncio.FIRST_COMPLETED)
        for task in pending:
            task.cancel()

        if get in done:
            return get.result()
        raise StopAsyncIteration

    async def close(self) -> None:
        self._closed.set()


class InMemoryMessageTransport(MessageTransport):
    """Simple in-memory transport for testing.

    Each queue name maps to an ``asyncio.Queue``. Messages published before a
    subscription exists wait in the queue. Requeued messages go to the back
    of the queue flagged as redelivered; rejected messages are collected in
    :attr:`rejected`.

    This is a minimal implementation for testing - it doesn't support:
    - More than one subscription per queue
    - Prefetch limits
    """

    def __init__(self) -> None:
        self.queues: dict[str, asyncio.Queue[InMemoryMessage]] = {}
        self.rejected: list[InMemoryMessage] = []
        self.connected = False
        self._ids = count(1)
        self._subscriptions: list[InMemorySubscription] = []

    def publish(self, queue_name: str, body: bytes, message_id: str | None = None) -> InMemoryMessage:
        """Put a message on ``queue_name`` and return it."""
        message = InMemoryMessage(
            self,
            queue_name,
            body,
            message_id or f"msg-{next(self._ids)}",
        )
        self.enqueue(queue_name, message)
        return message

    def enqueue(self, queue_name: str, message: InMemoryMessage) -> None:
        self._queue(queue_name).put_nowait(message)

    def pending(self, queue_name: str) -> int:
        """Number of messages waiting in ``queue_name``."""
        return self._queue(queue_name).qsize()

    async def connect(self) -> None:
        self.connected = True

    async def subscribe(self, queue_name: str) -> MessageSubscription:
        if not self.connected:
            raise TransportError("Transport is not connected")
        subscription = InMemorySubscription(self._queue(queue_name))
        self._subscriptions.append(subscription)
        return subscription

    async def close(self) -> None:
        for subscription in self._subscriptions:
            await subscription.close()
        self._subscriptions.clear()
        self.connected = False

    def _queue(self, queue_name: str) -> "asyncio.Queue[InMemoryMessage]":
        if queue_name not in self.queues:
            self.queues[queue_name] = asyncio.Queue()
        return self.queues[queue_name]
