"""Get Conversation Query - a single thread, visible to its participants only."""

from dataclasses import dataclass

from dm_threads.application.common.interfaces import Query, QueryHandler
from dm_threads.domain.entities.conversation import Conversation
from dm_threads.domain.exceptions import AccessDeniedError, ConversationNotFoundError
from dm_threads.domain.ports.repositories import ConversationRepository
from dm_threads.domain.value_objects.conversation_id import ConversationId
from dm_threads.domain.value_objects.person_id import PersonId


@dataclass(frozen=True)
class GetConversationQuery(Query[Conversation]):
    conversation_id: ConversationId
    person_id: PersonId


class GetConversationHandler(QueryHandler[Conversation]):
    def __init__(self, conversation_repository: ConversationRepository):
        self._conversation_repository = conversation_repository

    async def execute(self, query: GetConversationQuery) -> Conversation:
        conversation = await self._conversation_repository.get_by_id(
            query.conversation_id
        )
        if not conversation:
            raise ConversationNotFoundError(query.conversation_id.value)
        if not conversation.has_participant(query.person_id):
            raise AccessDeniedError("You don't have access to this thread")
        return conversation
