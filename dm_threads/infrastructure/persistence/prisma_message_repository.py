"""
Prisma Message Repository Implementation.

Messages are append-only: save() only ever creates. The owning thread's
last_activity_at is bumped in the same transaction so thread lists stay
ordered by their latest message.
"""

import logging

from prisma import Prisma
from prisma.errors import ForeignKeyViolationError
from prisma.models import Message as PrismaMessage

from dm_threads.domain.entities.message import Message
from dm_threads.domain.exceptions import ConversationNotFoundError
from dm_threads.domain.ports.repositories.message_repository import MessageRepository
from dm_threads.domain.value_objects.conversation_id import ConversationId
from dm_threads.domain.value_objects.message_id import MessageId
from dm_threads.domain.value_objects.person_id import PersonId

logger = logging.getLogger(__name__)


class PrismaMessageRepository(MessageRepository):
    """
    Prisma implementation of MessageRepository.

    Handles persistence of Message entities to PostgreSQL via Prisma.
    """

    _prisma: Prisma

    def __init__(self, prisma: Prisma):
        """
        Initialize repository with Prisma client.

        Args:
            prisma: Connected Prisma client (injected by DI container)
        """
        self._prisma = prisma

    def _to_entity(self, record: PrismaMessage) -> Message:
        return Message(
            id=MessageId(record.id),
            conversation_id=ConversationId(record.thread_id),
            sender_id=PersonId(record.sender_user_id),
            type=record.type,
            text=record.text,
            created_at=record.created_at,
        )

    async def get_by_conversation(
        self, conversation_id: ConversationId, limit: int = 200
    ) -> list[Message]:
        """
        Get messages for a thread, ordered chronologically (oldest first).

        Args:
            conversation_id: ConversationId value object
            limit: Maximum number of messages to return (the most recent ones)

        Returns:
            List of Message entities in chronological order (oldest first)
        """
        records = await self._prisma.message.find_many(
            where={"thread_id": conversation_id.value},
            order={"created_at": "desc"},
            take=limit,
        )
        records.reverse()  # Now oldest first
        return [self._to_entity(record) for record in records]

    async def save(self, message: Message) -> Message:
        """
        Append a message and bump the thread's last activity.

        Raises:
            ConversationNotFoundError: If the thread no longer exists
        """
        try:
            async with self._prisma.tx() as transaction:
                record = await transaction.message.create(
                    data={
                        "id": message.id.value,
                        "thread_id": message.conversation_id.value,
                        "sender_user_id": message.sender_id.value,
                        "type": message.type.value,
                        "text": message.text,
                        "created_at": message.created_at,
                    }
                )
                await transaction.thread.update(
                    where={"id": message.conversation_id.value},
                    data={"last_activity_at": message.created_at},
                )
        except ForeignKeyViolationError as e:
            raise ConversationNotFoundError(message.conversation_id.value) from e

        logger.debug(
            f"[PrismaMessageRepository] Saved message {record.id} in {record.thread_id}"
        )
        return self._to_entity(record)
