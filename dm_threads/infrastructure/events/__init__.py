"""Cross-process delivery of thread events."""

from dm_threads.infrastructure.events.redis_thread_event_relay import (
    RedisThreadEventRelay,
)

__all__ = ["RedisThreadEventRelay"]
