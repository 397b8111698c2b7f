"""
REPOSITORY PORTS - Data persistence interfaces

Each repository port:
- Is an abstract base class (ABC)
- Defines methods the domain needs
- Does NOT specify implementation (Prisma, HTTP API, ...)

Infrastructure layer provides implementations.
"""

from dm_threads.domain.ports.repositories.conversation_repository import (
    ConversationRepository,
)
from dm_threads.domain.ports.repositories.message_repository import MessageRepository

__all__ = [
    "ConversationRepository",
    "MessageRepository",
]
