"""
GetMessages Query - messages of a thread, oldest first.

Used by the active thread pane when a conversation is opened or adopted.
"""

from dataclasses import dataclass

from dm_threads.application.common.interfaces import Query, QueryHandler
from dm_threads.domain.entities.message import Message
from dm_threads.domain.exceptions import AccessDeniedError, ConversationNotFoundError
from dm_threads.domain.ports.repositories import ConversationRepository, MessageRepository
from dm_threads.domain.value_objects.conversation_id import ConversationId
from dm_threads.domain.value_objects.person_id import PersonId
from dm_threads.config.settings import Config


@dataclass(frozen=True)
class GetMessagesQuery(Query[list[Message]]):
    conversation_id: ConversationId
    person_id: PersonId
    limit: int = Config.CONVERSATION_MESSAGE_LIMIT


class GetMessagesHandler(QueryHandler[list[Message]]):
    def __init__(
        self,
        conv_repo: ConversationRepository,
        msg_repo: MessageRepository,
    ):
        self._conv_repo = conv_repo
        self._msg_repo = msg_repo

    async def execute(self, query: GetMessagesQuery) -> list[Message]:
        """
        Raises:
            ConversationNotFoundError: If the thread doesn't exist
            AccessDeniedError: If the caller is not a participant
        """
        conversation = await self._conv_repo.get_by_id(query.conversation_id)
        if not conversation:
            raise ConversationNotFoundError(query.conversation_id.value)
        if not conversation.has_participant(query.person_id):
            raise AccessDeniedError("You don't have access to this thread")

        return await self._msg_repo.get_by_conversation(
            query.conversation_id, limit=query.limit
        )
