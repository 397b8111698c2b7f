import asyncio
import json
from unittest.mock import AsyncMock, MagicMock

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError

from dm_threads.application.services.thread_events import (
    RefreshThreads,
    ThreadEventBus,
    ThreadIdChanged,
)
from dm_threads.infrastructure.events import RedisThreadEventRelay


@pytest.fixture()
def bus():
    return ThreadEventBus()


@pytest.fixture()
def redis():
    client = AsyncMock()
    client.pubsub = MagicMock()
    return client


@pytest.fixture()
def relay(bus, redis):
    relay = RedisThreadEventRelay(bus, redis, channel="test:thread-events", origin="here")
    relay.attach()
    yield relay
    relay.detach()


def envelope(origin, event):
    return json.dumps({"origin": origin, "event": event})


@pytest.mark.asyncio
async def test_local_events_are_published_to_redis(bus, redis, relay):
    bus.publish(ThreadIdChanged(old_id="profile-bob", new_id="c1"))
    await bus.drain()

    redis.publish.assert_awaited_once()
    channel, payload = redis.publish.await_args.args
    assert channel == "test:thread-events"
    assert json.loads(payload) == {
        "origin": "here",
        "event": {"kind": "thread-id-changed", "old_id": "profile-bob", "new_id": "c1"},
    }


@pytest.mark.asyncio
async def test_remote_events_reach_local_bus_without_echo(bus, redis, relay):
    seen = []
    bus.subscribe(RefreshThreads, seen.append)

    applied = await relay.handle_message(envelope("elsewhere", {"kind": "refresh-threads"}))
    await bus.drain()

    assert applied is True
    assert seen == [RefreshThreads()]
    redis.publish.assert_not_awaited()


@pytest.mark.asyncio
async def test_own_envelopes_are_ignored(bus, relay):
    seen = []
    bus.subscribe(RefreshThreads, seen.append)

    assert await relay.handle_message(envelope("here", {"kind": "refresh-threads"})) is False
    assert seen == []


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "raw",
    [
        "not json",
        json.dumps(["a", "list"]),
        json.dumps({"origin": "elsewhere"}),
        envelope("elsewhere", {"kind": "typing"}),
        envelope("elsewhere", {"kind": "thread-id-changed"}),
    ],
)
async def test_malformed_envelopes_are_dropped(relay, raw, caplog):
    assert await relay.handle_message(raw) is False
    assert "Ignoring malformed envelope" in caplog.text


@pytest.mark.asyncio
async def test_publish_failure_is_logged_not_raised(redis, relay, caplog):
    redis.publish.side_effect = RedisConnectionError("redis is down")

    delivered = await relay.publish_remote(RefreshThreads())

    assert delivered is False
    assert "Failed to publish refresh-threads" in caplog.text


@pytest.mark.asyncio
async def test_listener_applies_channel_messages_until_stopped(bus, redis):
    pubsub = MagicMock()
    pubsub.subscribe = AsyncMock()
    pubsub.unsubscribe = AsyncMock()
    pubsub.aclose = AsyncMock()

    async def listen():
        yield {"type": "subscribe", "data": 1}
        yield {"type": "message", "data": envelope("elsewhere", {"kind": "refresh-threads"})}
        await asyncio.Event().wait()

    pubsub.listen = listen
    redis.pubsub.return_value = pubsub
    received = asyncio.Event()
    bus.subscribe(RefreshThreads, lambda event: received.set())

    relay = RedisThreadEventRelay(bus, redis, channel="test:thread-events", origin="here")
    relay.start()
    await asyncio.wait_for(received.wait(), timeout=1)
    await relay.stop()

    pubsub.subscribe.assert_awaited_once_with("test:thread-events")
    pubsub.aclose.assert_awaited_once()
    assert bus.subscriber_count(RefreshThreads) == 1
