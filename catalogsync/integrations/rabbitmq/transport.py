"""RabbitMQ message transport using aio-pika.

The transport opens a plain (non-robust) connection: reconnection is driven
by :class:`~catalogsync.application.events.QueueConsumer`, which closes the
transport and connects again after its reconnect delay.
"""

import asyncio
import logging
from contextlib import suppress

import aio_pika
from aio_pika.abc import (
    AbstractChannel,
    AbstractConnection,
    AbstractIncomingMessage,
    AbstractQueueIterator,
)
from aio_pika.exceptions import AMQPError, ChannelInvalidStateError

from ...application.events.transport import (
    DeliveredMessage,
    MessageSubscription,
    MessageTransport,
)
from ...domain import TransportError
from .config import RabbitMQConfiguration

LOGGER = logging.getLogger(__name__)

_CONNECTION_ERRORS = (AMQPError, ChannelInvalidStateError, OSError, asyncio.TimeoutError)


class RabbitMQMessage(DeliveredMessage):
    """Adapter exposing an aio-pika delivery as a :class:`DeliveredMessage`."""

    def __init__(self, message: AbstractIncomingMessage) -> None:
        self._message = message

    @property
    def body(self) -> bytes:
        return self._message.body

    @property
    def message_id(self) -> str | None:
        # Producers are not required to set a message id.
        if self._message.message_id:
            return self._message.message_id
        if self._message.delivery_tag is not None:
            return str(self._message.delivery_tag)
        return None

    @property
    def redelivered(self) -> bool:
        return bool(self._message.redelivered)

    async def ack(self) -> None:
        try:
            await self._message.ack()
        except _CONNECTION_ERRORS as err:
            raise TransportError(f"Failed to ack message: {err}") from err

    async def nack(self, requeue: bool) -> None:
        try:
            await self._message.nack(requeue=requeue)
        except _CONNECTION_ERRORS as err:
            raise TransportError(f"Failed to nack message: {err}") from err


class RabbitMQSubscription(MessageSubscription):
    """Subscription over an aio-pika queue iterator."""

    def __init__(self, iterator: AbstractQueueIterator) -> None:
        self._iterator = iterator
        self._closed = False

    async def __anext__(self) -> DeliveredMessage:
        if self._closed:
            raise StopAsyncIteration
        try:
            message = await self._iterator.__anext__()
        except _CONNECTION_ERRORS as err:
            raise TransportError(f"Connection lost while consuming: {err}") from err
        return RabbitMQMessage(message)

    async def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        with suppress(*_CONNECTION_ERRORS):
            await self._iterator.close()


class RabbitMQTransport(MessageTransport):
    """Message transport backed by a RabbitMQ broker.

    Queues are declared durable so that messages survive broker restarts,
    and the channel prefetch limits how many unacknowledged deliveries the
    consumer holds at once.

    Example:
        >>> transport = RabbitMQTransport(RabbitMQConfiguration())
        >>> await transport.connect()
        >>> async for message in await transport.subscribe("messages"):
        ...     await message.ack()
    """

    def __init__(self, config: RabbitMQConfiguration):
        self.config = config
        self._connection: AbstractConnection | None = None
        self._channel: AbstractChannel | None = None

    @property
    def is_connected(self) -> bool:
        return self._connection is not None and not self._connection.is_closed

    async def connect(self) -> None:
        if self.is_connected:
            return
        try:
            self._connection = await aio_pika.connect(
                self.config.url, timeout=self.config.connection_timeout_seconds
            )
            self._channel = await self._connection.channel()
            await self._channel.set_qos(prefetch_count=self.config.prefetch_count)
        except _CONNECTION_ERRORS as err:
            await self.close()
            raise TransportError(f"Cannot connect to RabbitMQ: {err}") from err
        LOGGER.info("Connected to RabbitMQ", extra={"prefetch_count": self.config.prefetch_count})

    async def subscribe(self, queue_name: str) -> MessageSubscription:
        if self._channel is None or not self.is_connected:
            raise TransportError("Transport is not connected")
        try:
            queue = await self._channel.declare_queue(queue_name, durable=True)
        except _CONNECTION_ERRORS as err:
            raise TransportError(f"Cannot declare queue {queue_name}: {err}") from err
        return RabbitMQSubscription(queue.iterator())

    async def close(self) -> None:
        connection, self._connection, self._channel = self._connection, None, None
        if connection is None or connection.is_closed:
            return
        with suppress(*_CONNECTION_ERRORS):
            await connection.close()
