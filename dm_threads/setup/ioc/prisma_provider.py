"""
Storage provider: Prisma repositories plus the Redis event relay.

Requires a generated Prisma client (prisma generate --schema prisma/schema.prisma).
"""

from typing import AsyncIterable

from dishka import Provider, Scope, provide
from prisma import Prisma
from redis.asyncio import Redis

from dm_threads.application.services.thread_events import ThreadEventBus
from dm_threads.domain.ports.repositories import (
    ConversationRepository,
    MessageRepository,
)
from dm_threads.infrastructure.cache.redis_client import (
    close_redis_client,
    create_redis_client,
)
from dm_threads.infrastructure.events.redis_thread_event_relay import (
    RedisThreadEventRelay,
)
from dm_threads.infrastructure.persistence import (
    PrismaConversationRepository,
    PrismaMessageRepository,
)
from dm_threads.config.settings import Config


class PrismaProvider(Provider):
    # ==================== DATABASE ====================

    @provide(scope=Scope.APP)
    async def get_prisma(self) -> AsyncIterable[Prisma]:
        """
        Provide Prisma client (singleton, app-scoped).

        - connected on first use, disconnected when the container closes
        """
        prisma = Prisma()
        await prisma.connect()
        yield prisma
        await prisma.disconnect()

    # ==================== REDIS ====================

    @provide(scope=Scope.APP)
    async def get_redis(self) -> AsyncIterable[Redis]:
        client = await create_redis_client(Config.REDIS_URL)
        yield client
        await close_redis_client(client)

    @provide(scope=Scope.APP)
    async def get_event_relay(
        self, bus: ThreadEventBus, redis: Redis
    ) -> AsyncIterable[RedisThreadEventRelay]:
        relay = RedisThreadEventRelay(bus, redis, channel=Config.THREAD_EVENTS_CHANNEL)
        yield relay
        await relay.stop()

    # ==================== REPOSITORIES ====================

    @provide(scope=Scope.REQUEST)
    def get_conversation_repository(self, prisma: Prisma) -> ConversationRepository:
        """
        - Return type is ABSTRACT (ConversationRepository)
        - Implementation is CONCRETE (PrismaConversationRepository)
        """
        return PrismaConversationRepository(prisma)

    @provide(scope=Scope.REQUEST)
    def get_message_repository(self, prisma: Prisma) -> MessageRepository:
        return PrismaMessageRepository(prisma)
