"""Tests for the queue consumer: acknowledgment policy and reconnection."""

import asyncio
import logging
from collections.abc import Callable
from unittest.mock import AsyncMock

import pytest

from catalogsync.application.events import (
    ConsumerState,
    EventApplier,
    InMemoryMessageTransport,
    MessageOutcome,
    QueueConsumer,
)
from catalogsync.domain import DataApplyError, TransientApplyError, TransportError
from tests.fixtures.catalog import created_body, deleted_body, updated_body


class FlakyTransport(InMemoryMessageTransport):
    """Transport refusing the first ``failures`` connection attempts."""

    def __init__(self, failures: int):
        super().__init__()
        self.failures = failures
        self.attempts = 0

    async def connect(self) -> None:
        self.attempts += 1
        if self.attempts <= self.failures:
            raise TransportError("Connection refused")
        await super().connect()


async def wait_until(predicate: Callable[[], bool], timeout: float = 2.0) -> None:
    async with asyncio.timeout(timeout):
        while not predicate():
            await asyncio.sleep(0.01)


# ==================== Acknowledgment policy ====================


@pytest.mark.asyncio
async def test_applied_message_is_acknowledged(consumer, transport, store):
    message = transport.publish("messages", created_body("b1"))

    assert await consumer.handle(message) is MessageOutcome.ACKNOWLEDGED
    assert message.settled == "ack"
    assert "b1" in store.documents


@pytest.mark.asyncio
async def test_noop_result_is_acknowledged(consumer, transport):
    message = transport.publish("messages", deleted_body("missing"))

    assert await consumer.handle(message) is MessageOutcome.ACKNOWLEDGED
    assert message.settled == "ack"


@pytest.mark.asyncio
async def test_undecodable_message_is_dropped(consumer, transport, caplog):
    message = transport.publish("messages", b"{not json")

    with caplog.at_level(logging.WARNING):
        outcome = await consumer.handle(message)

    assert outcome is MessageOutcome.DROPPED
    assert message.settled == "ack"
    assert "Dropping undecodable message" in caplog.text


@pytest.mark.asyncio
async def test_update_with_dotted_field_name_is_dropped(consumer, transport, store):
    await consumer.handle(transport.publish("messages", created_body("b1", author="Herbert")))
    message = transport.publish("messages", updated_body("b1", **{"author.name": 5}))

    assert await consumer.handle(message) is MessageOutcome.DROPPED
    assert message.settled == "ack"
    assert store.documents["b1"]["author"] == {"name": "Herbert"}


@pytest.mark.asyncio
async def test_transient_failure_requeues(transport, store):
    applier = EventApplier(store)
    applier.apply = AsyncMock(side_effect=TransientApplyError("store down"))
    consumer = QueueConsumer(transport, applier)
    message = transport.publish("messages", created_body("b1"))
    transport.queues["messages"].get_nowait()

    assert await consumer.handle(message) is MessageOutcome.REQUEUED

    assert message.settled == "requeue"
    redelivery = transport.queues["messages"].get_nowait()
    assert redelivery.redelivered
    assert redelivery.message_id == message.message_id


@pytest.mark.asyncio
async def test_data_failure_is_dropped(transport, store):
    applier = EventApplier(store)
    applier.apply = AsyncMock(side_effect=DataApplyError("bad data"))
    consumer = QueueConsumer(transport, applier)
    message = transport.publish("messages", created_body("b1"))

    assert await consumer.handle(message) is MessageOutcome.DROPPED
    assert message.settled == "ack"


@pytest.mark.asyncio
async def test_unexpected_error_rejects_without_requeue(transport, store, caplog):
    applier = EventApplier(store)
    applier.apply = AsyncMock(side_effect=RuntimeError("boom"))
    consumer = QueueConsumer(transport, applier)
    message = transport.publish("messages", created_body("b1"))

    with caplog.at_level(logging.ERROR):
        outcome = await consumer.handle(message)

    assert outcome is MessageOutcome.REJECTED
    assert message.settled == "reject"
    assert transport.rejected == [message]
    assert "Rejecting message after unexpected error" in caplog.text


@pytest.mark.asyncio
async def test_log_records_carry_delivery_context(consumer, transport, caplog):
    message = transport.publish("messages", created_body("b1"), message_id="m-42")

    with caplog.at_level(logging.INFO):
        await consumer.handle(message)

    record = next(r for r in caplog.records if r.getMessage() == "Event applied")
    assert record.message_id == "m-42"
    assert record.queue == "messages"


# ==================== Run loop ====================


@pytest.mark.asyncio
async def test_run_applies_messages_in_order(consumer, transport, store):
    messages = [
        transport.publish("messages", created_body("b1", title="Dune")),
        transport.publish("messages", updated_body("b1", title="Dune Messiah")),
        transport.publish("messages", created_body("b2")),
        transport.publish("messages", deleted_body("b2")),
    ]

    task = asyncio.create_task(consumer.run())
    await wait_until(lambda: all(m.settled == "ack" for m in messages))
    await consumer.stop()
    await task

    assert store.documents["b1"]["title"] == "Dune Messiah"
    assert consumer.state is ConsumerState.STOPPED


@pytest.mark.asyncio
async def test_requeued_message_is_redelivered(transport, store):
    applier = EventApplier(store)
    real_apply = applier.apply
    consumer = QueueConsumer(transport, applier, reconnect_delay=0)
    transport.publish("messages", created_body("b1"))

    calls: list[bool] = []

    async def flaky_apply(event):
        calls.append(True)
        if len(calls) == 1:
            raise TransientApplyError("store down")
        return await real_apply(event)

    applier.apply = flaky_apply

    task = asyncio.create_task(consumer.run())
    await wait_until(lambda: "b1" in store.documents)
    await consumer.stop()
    await task

    assert len(calls) == 2


@pytest.mark.asyncio
async def test_reconnects_until_broker_is_reachable(applier, store, caplog):
    transport = FlakyTransport(failures=2)
    consumer = QueueConsumer(transport, applier, reconnect_delay=0)
    transport.publish("messages", created_body("b1"))

    with caplog.at_level(logging.ERROR):
        task = asyncio.create_task(consumer.run())
        await wait_until(lambda: "b1" in store.documents)
        await consumer.stop()
        await task

    assert consumer.connection_attempts == 3
    errors = [r for r in caplog.records if r.getMessage() == "Broker connection error"]
    assert len(errors) == 2
    assert errors[0].retry_in == 0


@pytest.mark.asyncio
async def test_reconnects_after_subscription_is_lost(consumer, transport, store, caplog):
    task = asyncio.create_task(consumer.run())
    await wait_until(lambda: consumer.state is ConsumerState.CONSUMING)

    with caplog.at_level(logging.WARNING):
        await transport.close()
        await wait_until(lambda: consumer.connection_attempts == 2)
        await wait_until(lambda: consumer.state is ConsumerState.CONSUMING)

    transport.publish("messages", created_body("b1"))
    await wait_until(lambda: "b1" in store.documents)
    await consumer.stop()
    await task

    assert "Subscription ended unexpectedly" in caplog.text


@pytest.mark.asyncio
async def test_stop_interrupts_reconnect_delay(applier):
    transport = FlakyTransport(failures=1000)
    consumer = QueueConsumer(transport, applier, reconnect_delay=60)

    task = asyncio.create_task(consumer.run())
    await wait_until(lambda: consumer.state is ConsumerState.RECONNECTING)
    await consumer.stop()
    await asyncio.wait_for(task, timeout=1)

    assert consumer.state is ConsumerState.STOPPED
    assert consumer.connection_attempts == 1


@pytest.mark.asyncio
async def test_stop_before_run_returns_immediately(consumer):
    await consumer.stop()
    await asyncio.wait_for(consumer.run(), timeout=1)

    assert consumer.state is ConsumerState.STOPPED
    assert consumer.connection_attempts == 0


def test_initial_state_is_idle(consumer):
    assert consumer.state is ConsumerState.IDLE
    assert consumer.connection_attempts == 0
