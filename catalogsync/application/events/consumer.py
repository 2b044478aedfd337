"""Queue consumer driving deliveries through the codec and the applier."""

import asyncio
import logging
from contextlib import suppress
from enum import Enum

from ...context import DeliveryContext, delivery_context, get_context
from ...domain import ApplyError, DecodeError, TransportError
from .applier import EventApplier
from .codec import decode_event
from .transport import DeliveredMessage, MessageSubscription, MessageTransport

LOGGER = logging.getLogger(__name__)


class ConsumerState(str, Enum):
    """Lifecycle state of a :class:`QueueConsumer`."""

    IDLE = "idle"
    CONNECTING = "connecting"
    CONSUMING = "consuming"
    RECONNECTING = "reconnecting"
    STOPPED = "stopped"


class MessageOutcome(str, Enum):
    """How a delivery was settled with the broker."""

    ACKNOWLEDGED = "acknowledged"
    """Applied (whatever the ApplyResult) and acknowledged."""

    DROPPED = "dropped"
    """Acknowledged without effect; redelivery could never succeed."""

    REQUEUED = "requeued"
    """Negatively acknowledged with requeue after a transient failure."""

    REJECTED = "rejected"
    """Negatively acknowledged without requeue after an unexpected error."""


class QueueConsumer:
    """Consumes catalog events from a durable queue and applies them.

    The consumer owns the broker connection through a
    :class:`MessageTransport` and processes one delivery at a time:

    - undecodable payload: acknowledge and drop
    - :class:`~catalogsync.domain.DataApplyError`: acknowledge and drop
    - :class:`~catalogsync.domain.TransientApplyError`: nack with requeue,
      the broker redelivers the message
    - any other error: nack without requeue, so a poison message cannot loop
    - success, including no-op results: acknowledge

    **Reconnection:**
    When the connection cannot be established or is lost, :meth:`run` waits
    ``reconnect_delay`` seconds and tries again, indefinitely. Progress is
    observable through :attr:`state` and :attr:`connection_attempts`. Only
    :meth:`stop` ends the loop.

    Attributes:
        transport: Broker connection.
        applier: Applies decoded events to the store.
        queue_name: Durable queue to consume.
        reconnect_delay: Seconds to wait between connection attempts.
        state: Current lifecycle state.
        connection_attempts: Connection attempts made since :meth:`run`
            started, including the first.

    Example:
        >>> consumer = QueueConsumer(transport, EventApplier(store), "messages")
        >>> task = asyncio.create_task(consumer.run())
        >>> ...
        >>> await consumer.stop()
        >>> await task
    """

    def __init__(
        self,
        transport: MessageTransport,
        applier: EventApplier,
        queue_name: str = "messages",
        reconnect_delay: float = 5.0,
    ) -> None:
        self.transport = transport
        self.applier = applier
        self.queue_name = queue_name
        self.reconnect_delay = reconnect_delay
        self.state = ConsumerState.IDLE
        self.connection_attempts = 0
        self._stop_requested = asyncio.Event()
        self._subscription: MessageSubscription | None = None

    async def handle(self, message: DeliveredMessage) -> MessageOutcome:
        """Decode, apply and settle a single delivery.

        Args:
            message: The delivery to process.

        Returns:
            How the delivery was settled.

        Raises:
            TransportError: If the connection was lost while settling. The
                broker redelivers the message after reconnection.
        """
        ctx = DeliveryContext(
            message_id=message.message_id,
            redelivered=message.redelivered,
            queue_name=self.queue_name,
        )
        with delivery_context(ctx):
            return await self._handle(message)

    async def _handle(self, message: DeliveredMessage) -> MessageOutcome:
        extra = get_context().as_log_extra()
        LOGGER.debug("Received message", extra={**extra, "size": len(message.body)})

        try:
            event = decode_event(message.body)
        except DecodeError as err:
            LOGGER.warning("Dropping undecodable message", extra={**extra, "reason": str(err)})
            await message.ack()
            return MessageOutcome.DROPPED

        extra = {**extra, "event_type": event.event_type, "book_id": event.book_id}
        try:
            await self.applier.apply(event)
        except ApplyError as err:
            if err.retryable:
                LOGGER.error("Requeueing message", extra={**extra, "reason": str(err)})
                await message.nack(requeue=True)
                return MessageOutcome.REQUEUED
            LOGGER.warning("Dropping message with rejected data", extra={**extra, "reason": str(err)})
            await message.ack()
            return MessageOutcome.DROPPED
        except Exception:
            LOGGER.exception("Rejecting message after unexpected error", extra=extra)
            await message.nack(requeue=False)
            return MessageOutcome.REJECTED

        await message.ack()
        return MessageOutcome.ACKNOWLEDGED

    async def run(self) -> None:
        """Consume until :meth:`stop` is called.

        Connection failures never escape this method; they are logged and
        followed by a new attempt after ``reconnect_delay`` seconds.
        """
        self.connection_attempts = 0
        try:
            while not self._stop_requested.is_set():
                await self._consume_once()
                if self._stop_requested.is_set():
                    break
                self.state = ConsumerState.RECONNECTING
                await self._sleep(self.reconnect_delay)
        finally:
            self._subscription = None
            self.state = ConsumerState.STOPPED

    async def stop(self) -> None:
        """Ask :meth:`run` to return and end the active subscription."""
        self._stop_requested.set()
        if self._subscription is not None:
            await self._subscription.close()

    async def _consume_once(self) -> None:
        self.state = ConsumerState.CONNECTING
        self.connection_attempts += 1
        extra = {"queue": self.queue_name, "attempt": self.connection_attempts}
        try:
            await self.transport.connect()
            self._subscription = await self.transport.subscribe(self.queue_name)
            self.state = ConsumerState.CONSUMING
            LOGGER.info("Consumer is listening", extra=extra)

            async for message in self._subscription:
                await self.handle(message)
                if self._stop_requested.is_set():
                    break
            else:
                if not self._stop_requested.is_set():
                    LOGGER.warning("Subscription ended unexpectedly", extra=extra)
        except TransportError as err:
            LOGGER.error(
                "Broker connection error",
                extra={**extra, "reason": str(err), "retry_in": self.reconnect_delay},
            )
        finally:
            self._subscription = None
            await self.transport.close()

    async def _sleep(self, delay: float) -> None:
        # Returns early when stop() is called during the wait.
        with suppress(asyncio.TimeoutError):
            await asyncio.wait_for(self._stop_requested.wait(), timeout=delay)
