"""
Conversation Repository Port - Interface for the conversation store.
Implementations:
- dm_threads/infrastructure/persistence/prisma_conversation_repository.py (server)
- dm_threads/infrastructure/http/api_repositories.py (thread API client)
"""

from abc import ABC, abstractmethod
from typing import Iterable, Optional
from dm_threads.domain.entities.conversation import Conversation
from dm_threads.domain.value_objects.conversation_id import ConversationId
from dm_threads.domain.value_objects.person_id import PersonId


class ConversationRepository(ABC):
    @abstractmethod
    async def get_by_id(
        self, conversation_id: ConversationId
    ) -> Optional[Conversation]:
        """Return the conversation, or None when the store has no such id."""
        ...

    @abstractmethod
    async def get_by_user(
        self, person_id: PersonId, limit: Optional[int] = None
    ) -> list[Conversation]:
        """Conversations the person participates in, newest activity first,
        each with its cached last message."""
        ...

    @abstractmethod
    async def create(
        self,
        participant_ids: Iterable[PersonId],
        created_by: PersonId,
        related_post_id: Optional[str] = None,
    ) -> tuple[Conversation, bool]:
        """
        Persist a new conversation and report whether a row was inserted.

        For a two-person participant set the store keeps at most one
        conversation; when one already exists it is returned with False.
        Raises EntityNotFoundError when a participant does not exist.
        """
        ...
