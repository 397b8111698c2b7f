"""
Prisma Conversation Repository Implementation.

Implements the ConversationRepository port on top of the Thread,
ThreadParticipant and Message models (prisma/schema.prisma).

Mapping:
- Prisma Thread.id (str)              ←→ Domain Conversation.id (ConversationId)
- Prisma ThreadParticipant.user_id    ←→ Domain participant_ids (frozenset[PersonId])
- latest Prisma Message               ←→ Domain last_message (MessageSummary)

Two-person threads carry a unique pair_key, so concurrent creates for the
same pair collapse onto one row: the loser of the race gets a
UniqueViolationError and returns the winner's thread with inserted=False.
"""

import logging
from typing import Iterable, Optional

from prisma import Prisma
from prisma.errors import ForeignKeyViolationError, UniqueViolationError
from prisma.models import Thread as PrismaThread

from dm_threads.domain.entities.conversation import Conversation
from dm_threads.domain.exceptions import EntityNotFoundError
from dm_threads.domain.ports.repositories import ConversationRepository
from dm_threads.domain.value_objects.conversation_id import ConversationId
from dm_threads.domain.value_objects.message_summary import MessageSummary
from dm_threads.domain.value_objects.person_id import PersonId

logger = logging.getLogger(__name__)

# Participants plus the latest message, for list rendering
THREAD_INCLUDE = {
    "participants": True,
    "messages": {
        "order_by": {"created_at": "desc"},
        "take": 1,
    },
}


class PrismaConversationRepository(ConversationRepository):
    _prisma: Prisma

    def __init__(self, prisma: Prisma):
        self._prisma = prisma

    def _to_entity(self, record: PrismaThread) -> Conversation:
        """Map Prisma record to domain entity."""
        last = record.messages[0] if record.messages else None
        return Conversation(
            id=ConversationId(record.id),
            participant_ids=frozenset(
                PersonId(p.user_id) for p in (record.participants or [])
            ),
            created_by=PersonId(record.created_by),
            created_at=record.created_at,
            related_post_id=record.related_post_id,
            last_message=(
                MessageSummary(
                    text=last.text,
                    created_at=last.created_at,
                    sender_id=last.sender_user_id,
                    message_id=last.id,
                    message_type=last.type,
                )
                if last
                else None
            ),
        )

    async def get_by_id(
        self, conversation_id: ConversationId
    ) -> Optional[Conversation]:
        record = await self._prisma.thread.find_unique(
            where={"id": conversation_id.value},
            include=THREAD_INCLUDE,
        )
        return self._to_entity(record) if record else None

    async def get_by_user(
        self, person_id: PersonId, limit: Optional[int] = None
    ) -> list[Conversation]:
        """Threads the person participates in, most recent activity first."""
        records = await self._prisma.thread.find_many(
            where={"participants": {"some": {"user_id": person_id.value}}},
            order=[{"last_activity_at": "desc"}, {"created_at": "desc"}],
            take=limit,
            include=THREAD_INCLUDE,
        )
        return [self._to_entity(record) for record in records]

    async def create(
        self,
        participant_ids: Iterable[PersonId],
        created_by: PersonId,
        related_post_id: Optional[str] = None,
    ) -> tuple[Conversation, bool]:
        conversation = Conversation.create(
            participant_ids=participant_ids,
            created_by=created_by,
            related_post_id=related_post_id,
        )
        pair_key = conversation.pair_key

        try:
            record = await self._prisma.thread.create(
                data={
                    "id": conversation.id.value,
                    "created_by": created_by.value,
                    "related_post_id": related_post_id,
                    "pair_key": pair_key,
                    "created_at": conversation.created_at,
                    "last_activity_at": conversation.created_at,
                    "participants": {
                        "create": [
                            {"user_id": p.value}
                            for p in sorted(
                                conversation.participant_ids, key=lambda p: p.value
                            )
                        ]
                    },
                },
                include=THREAD_INCLUDE,
            )
        except UniqueViolationError:
            if pair_key is None:
                raise
            existing = await self._prisma.thread.find_unique(
                where={"pair_key": pair_key}, include=THREAD_INCLUDE
            )
            if existing is None:
                raise
            logger.info(
                f"[PrismaConversationRepository] Pair {pair_key} already has thread {existing.id}"
            )
            return self._to_entity(existing), False
        except ForeignKeyViolationError as e:
            raise EntityNotFoundError(
                "One or more participants do not exist"
            ) from e

        logger.debug(f"[PrismaConversationRepository] Created thread {record.id}")
        return self._to_entity(record), True
