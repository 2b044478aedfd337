"""Tests for the in-memory message transport."""

import asyncio

import pytest

from catalogsync.application.events import InMemoryMessageTransport
from catalogsync.domain import TransportError


@pytest.mark.asyncio
async def test_subscribe_requires_connection(transport):
    with pytest.raises(TransportError):
        await transport.subscribe("messages")


@pytest.mark.asyncio
async def test_messages_published_before_subscribing_are_delivered(transport):
    transport.publish("messages", b"one")
    transport.publish("messages", b"two")
    await transport.connect()

    subscription = await transport.subscribe("messages")

    first = await subscription.__anext__()
    second = await subscription.__anext__()
    assert [first.body, second.body] == [b"one", b"two"]
    assert first.message_id == "msg-1"
    assert not first.redelivered


@pytest.mark.asyncio
async def test_requeue_redelivers_with_flag(transport):
    message = transport.publish("messages", b"body", message_id="m-1")
    await transport.connect()
    subscription = await transport.subscribe("messages")
    delivered = await subscription.__anext__()

    await delivered.nack(requeue=True)

    redelivered = await subscription.__anext__()
    assert redelivered.redelivered
    assert redelivered.message_id == "m-1"
    assert delivered is message


@pytest.mark.asyncio
async def test_reject_collects_message(transport):
    message = transport.publish("messages", b"body")

    await message.nack(requeue=False)

    assert transport.rejected == [message]
    assert message.settled == "reject"


@pytest.mark.asyncio
async def test_message_can_only_be_settled_once(transport):
    message = transport.publish("messages", b"body")
    await message.ack()

    with pytest.raises(RuntimeError):
        await message.ack()


@pytest.mark.asyncio
async def test_close_ends_waiting_iteration(transport):
    await transport.connect()
    subscription = await transport.subscribe("messages")

    async def drain() -> list[bytes]:
        return [message.body async for message in subscription]

    task = asyncio.create_task(drain())
    await asyncio.sleep(0)
    await transport.close()

    assert await asyncio.wait_for(task, timeout=1) == []
    assert not transport.connected


@pytest.mark.asyncio
async def test_closed_subscription_leaves_messages_queued():
    transport = InMemoryMessageTransport()
    await transport.connect()
    subscription = await transport.subscribe("messages")
    await subscription.close()

    transport.publish("messages", b"later")

    assert transport.pending("messages") == 1
    with pytest.raises(StopAsyncIteration):
        await subscription.__anext__()
