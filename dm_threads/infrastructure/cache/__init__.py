"""
Cache Layer - Redis client used by the thread event relay.
"""

from dm_threads.infrastructure.cache.redis_client import (
    close_redis_client,
    create_redis_client,
)

__all__ = [
    "close_redis_client",
    "create_redis_client",
]
