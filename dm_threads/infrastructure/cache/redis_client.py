"""
Async Redis Client Factory.

Creates Redis client with connection pooling for DI container.
Uses redis.asyncio so pub/sub runs on the same event loop as the app.
"""

import logging
from typing import Optional

import redis.asyncio as redis
from redis.asyncio import Redis

from dm_threads.config.settings import Config

logger = logging.getLogger(__name__)


async def create_redis_client(url: Optional[str] = None) -> Redis:
    """
    Create async Redis client with connection pool.

    Raises:
        redis.ConnectionError: If Redis is not reachable
    """
    url = url or Config.REDIS_URL
    client = redis.from_url(
        url,
        encoding="utf-8",
        decode_responses=True,
        socket_connect_timeout=5.0,
    )

    # Test connection
    await client.ping()
    logger.info(f"[Redis] Connected to {url}")

    return client


async def close_redis_client(client: Optional[Redis]) -> None:
    """Close Redis client connection. Called on application shutdown."""
    if client:
        await client.aclose()
        logger.info("[Redis] Connection closed")
