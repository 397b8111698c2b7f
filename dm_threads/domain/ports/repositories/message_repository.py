"""
Message Repository Port - Interface for append-only message persistence.
"""

from abc import ABC, abstractmethod

from dm_threads.domain.entities.message import Message
from dm_threads.domain.value_objects.conversation_id import ConversationId


class MessageRepository(ABC):
    @abstractmethod
    async def get_by_conversation(
        self, conversation_id: ConversationId, limit: int = 200
    ) -> list[Message]: ...

    @abstractmethod
    async def save(self, message: Message) -> Message: ...
