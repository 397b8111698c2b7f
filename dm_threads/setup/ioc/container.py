"""
Dishka DI Container Setup.

- HandlerProvider: event bus, resolver, synchronizer and CQRS handlers. It
  only asks for the abstract repository ports.
- PrismaProvider (prisma_provider.py): Prisma client, Prisma repositories,
  Redis client and the thread event relay.

Tests pair HandlerProvider with a provider serving in-memory repositories.

Dishka concepts:
- Provider: Class that defines how to create dependencies
- @provide: Decorator to mark factory methods
- Scope: Lifecycle of dependency (APP = singleton, REQUEST = per-request)
- make_async_container: Creates the container
"""

from dishka import AsyncContainer, Provider, Scope, make_async_container, provide

from dm_threads.application.commands.chat import SendMessageHandler
from dm_threads.application.commands.conversations import (
    CreateConversationHandler,
    ResolveThreadHandler,
)
from dm_threads.application.queries.chat import GetMessagesHandler
from dm_threads.application.queries.conversations import (
    GetConversationHandler,
    ListConversationsHandler,
)
from dm_threads.application.services.thread_events import ThreadEventBus
from dm_threads.application.services.thread_resolver import ThreadResolver
from dm_threads.application.services.thread_sync import ThreadSynchronizer
from dm_threads.domain.ports.repositories import (
    ConversationRepository,
    MessageRepository,
)
from dm_threads.config.settings import Config


class HandlerProvider(Provider):
    """Application-level dependencies, independent of the storage backend."""

    # ==================== EVENTS ====================

    @provide(scope=Scope.APP)
    def get_event_bus(self) -> ThreadEventBus:
        """One bus per process; the Redis relay bridges processes."""
        return ThreadEventBus()

    @provide(scope=Scope.REQUEST)
    def get_thread_synchronizer(self, bus: ThreadEventBus) -> ThreadSynchronizer:
        # No browser history on the server side
        return ThreadSynchronizer(bus)

    # ==================== SERVICES ====================

    @provide(scope=Scope.REQUEST)
    def get_thread_resolver(
        self, conversation_repository: ConversationRepository
    ) -> ThreadResolver:
        return ThreadResolver(
            conversation_repository, retry_delay=Config.RESOLVE_RETRY_DELAY_SECONDS
        )

    # ==================== HANDLERS ====================

    @provide(scope=Scope.REQUEST)
    def get_create_conversation_handler(
        self, conversation_repository: ConversationRepository
    ) -> CreateConversationHandler:
        return CreateConversationHandler(conversation_repository)

    @provide(scope=Scope.REQUEST)
    def get_resolve_thread_handler(self, resolver: ThreadResolver) -> ResolveThreadHandler:
        return ResolveThreadHandler(resolver)

    @provide(scope=Scope.REQUEST)
    def get_list_conversations_handler(
        self, conversation_repository: ConversationRepository
    ) -> ListConversationsHandler:
        return ListConversationsHandler(conversation_repository)

    @provide(scope=Scope.REQUEST)
    def get_get_conversation_handler(
        self, conversation_repository: ConversationRepository
    ) -> GetConversationHandler:
        return GetConversationHandler(conversation_repository)

    @provide(scope=Scope.REQUEST)
    def get_messages_handler(
        self,
        conversation_repository: ConversationRepository,
        message_repository: MessageRepository,
    ) -> GetMessagesHandler:
        return GetMessagesHandler(
            conv_repo=conversation_repository,
            msg_repo=message_repository,
        )

    @provide(scope=Scope.REQUEST)
    def get_send_message_handler(
        self,
        conversation_repository: ConversationRepository,
        message_repository: MessageRepository,
    ) -> SendMessageHandler:
        return SendMessageHandler(
            conv_repo=conversation_repository,
            msg_repo=message_repository,
        )


def create_container(*providers: Provider) -> AsyncContainer:
    """
    Create and configure the DI container.

    Without explicit providers the Prisma/Redis provider is used. Call this
    ONCE at app startup.
    """
    if not providers:
        # Needs a generated Prisma client, so only imported when used
        from dm_threads.setup.ioc.prisma_provider import PrismaProvider

        providers = (PrismaProvider(),)
    return make_async_container(HandlerProvider(), *providers)
