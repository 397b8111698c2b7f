"""
Persistence Layer - Database implementations.

Contains Prisma repository implementations for domain ports.
Requires a generated Prisma client (prisma generate).
"""

from dm_threads.infrastructure.persistence.prisma_conversation_repository import (
    PrismaConversationRepository,
)
from dm_threads.infrastructure.persistence.prisma_message_repository import (
    PrismaMessageRepository,
)

__all__ = [
    "PrismaConversationRepository",
    "PrismaMessageRepository",
]
