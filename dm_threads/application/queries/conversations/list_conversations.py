"""List Conversations Query."""

from dataclasses import dataclass
from typing import Optional

from dm_threads.application.common.interfaces import Query, QueryHandler
from dm_threads.domain.entities.conversation import Conversation
from dm_threads.domain.ports.repositories.conversation_repository import (
    ConversationRepository,
)
from dm_threads.domain.value_objects.person_id import PersonId
from dm_threads.config.settings import Config


@dataclass(frozen=True)
class ListConversationsQuery(Query[list[Conversation]]):
    person_id: PersonId
    limit: Optional[int] = Config.CONVERSATION_USER_LIMIT


class ListConversationsHandler(QueryHandler[list[Conversation]]):
    def __init__(self, conversation_repository: ConversationRepository):
        self._conversation_repository = conversation_repository

    async def execute(self, query: ListConversationsQuery) -> list[Conversation]:
        return await self._conversation_repository.get_by_user(
            query.person_id, query.limit
        )
