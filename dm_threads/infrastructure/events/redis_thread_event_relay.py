"""
Redis Thread Event Relay - carries ThreadEventBus events between processes.

Local events are published to a Redis pub/sub channel as JSON envelopes:

    {"origin": "<relay id>", "event": {"kind": "thread-created", ...}}

Envelopes coming back from Redis are re-published on the local bus unless
they originated from this relay. Delivery stays best effort: a failed
publish is logged and dropped, just like an unmounted surface missing an
event on the local bus.
"""

import asyncio
import json
import logging
from typing import Callable, Optional, Union
from uuid import uuid4

from redis.asyncio import Redis
from redis.exceptions import RedisError

from dm_threads.application.services.thread_events import (
    EVENT_TYPES,
    ThreadEvent,
    ThreadEventBus,
    event_from_dict,
    event_to_dict,
)
from dm_threads.config.settings import Config

logger = logging.getLogger(__name__)


class RedisThreadEventRelay:
    def __init__(
        self,
        bus: ThreadEventBus,
        redis: Redis,
        channel: str = Config.THREAD_EVENTS_CHANNEL,
        origin: Optional[str] = None,
    ):
        self._bus = bus
        self._redis = redis
        self._channel = channel
        self._origin = origin or uuid4().hex
        self._applying_remote = False
        self._unsubscribers: list[Callable[[], None]] = []
        self._listener: Optional[asyncio.Task] = None

    @property
    def origin(self) -> str:
        return self._origin

    def attach(self) -> None:
        """Forward every local event kind to Redis."""
        if self._unsubscribers:
            return
        self._unsubscribers = [
            self._bus.subscribe(event_type, self._forward)
            for event_type in EVENT_TYPES.values()
        ]

    def detach(self) -> None:
        for unsubscribe in self._unsubscribers:
            unsubscribe()
        self._unsubscribers = []

    def _forward(self, event: ThreadEvent):
        # Events received from Redis are already on the channel
        if self._applying_remote:
            return None
        return self.publish_remote(event)

    async def publish_remote(self, event: ThreadEvent) -> bool:
        envelope = json.dumps({"origin": self._origin, "event": event_to_dict(event)})
        try:
            await self._redis.publish(self._channel, envelope)
        except RedisError as e:
            logger.warning(f"[ThreadEventRelay] Failed to publish {event.kind}: {e}")
            return False
        return True

    async def handle_message(self, raw: Union[str, bytes]) -> bool:
        """Apply one envelope from Redis. Returns True if it reached the local bus."""
        try:
            envelope = json.loads(raw)
            if envelope.get("origin") == self._origin:
                return False
            event = event_from_dict(envelope["event"])
        except (ValueError, KeyError, TypeError, AttributeError) as e:
            logger.warning(f"[ThreadEventRelay] Ignoring malformed envelope: {e}")
            return False

        self._applying_remote = True
        try:
            self._bus.publish(event)
        finally:
            self._applying_remote = False
        return True

    async def run(self) -> None:
        """Listen on the channel until cancelled."""
        pubsub = self._redis.pubsub()
        await pubsub.subscribe(self._channel)
        logger.info(f"[ThreadEventRelay] Listening on {self._channel}")
        try:
            async for message in pubsub.listen():
                if message.get("type") != "message":
                    continue
                await self.handle_message(message["data"])
        finally:
            await pubsub.unsubscribe(self._channel)
            await pubsub.aclose()

    def start(self) -> asyncio.Task:
        self.attach()
        if self._listener is None or self._listener.done():
            self._listener = asyncio.create_task(self.run())
        return self._listener

    async def stop(self) -> None:
        self.detach()
        if self._listener is None:
            return
        self._listener.cancel()
        try:
            await self._listener
        except asyncio.CancelledError:
            pass
        self._listener = None
        logger.info("[ThreadEventRelay] Stopped")
