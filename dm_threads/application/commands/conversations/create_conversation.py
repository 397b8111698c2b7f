"""
Create Conversation Command.

The caller is always added to the participant set. For a two-person set the
store keeps a single thread, so creating the same pair twice returns the
existing conversation with created=False.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from dm_threads.application.common.interfaces import Command, CommandHandler
from dm_threads.domain.entities.conversation import Conversation
from dm_threads.domain.exceptions import SelfConversationForbiddenError
from dm_threads.domain.ports.repositories import ConversationRepository
from dm_threads.domain.services import find_direct_conversation
from dm_threads.domain.value_objects.person_id import PersonId

logger = logging.getLogger(__name__)


@dataclass
class CreateConversationResult:
    conversation: Conversation
    created: bool


@dataclass(frozen=True)
class CreateConversationCommand(Command[CreateConversationResult]):
    created_by: PersonId
    participant_ids: tuple[PersonId, ...]
    related_post_id: Optional[str] = None


class CreateConversationHandler(CommandHandler[CreateConversationResult]):
    _conversation_repository: ConversationRepository

    def __init__(self, conversation_repository: ConversationRepository):
        self._conversation_repository = conversation_repository

    async def execute(
        self, command: CreateConversationCommand
    ) -> CreateConversationResult:
        participants = frozenset(command.participant_ids) | {command.created_by}
        if participants == {command.created_by}:
            raise SelfConversationForbiddenError(command.created_by.value)

        if len(participants) == 2:
            (other,) = participants - {command.created_by}
            existing = find_direct_conversation(
                await self._conversation_repository.get_by_user(command.created_by),
                command.created_by,
                other,
            )
            if existing is not None:
                logger.debug(
                    f"[CreateConversation] Pair already has thread {existing.id.value}"
                )
                return CreateConversationResult(conversation=existing, created=False)

        conversation, inserted = await self._conversation_repository.create(
            participant_ids=sorted(participants, key=lambda p: p.value),
            created_by=command.created_by,
            related_post_id=command.related_post_id,
        )
        if inserted:
            logger.info(f"[CreateConversation] Created thread {conversation.id.value}")
        else:
            logger.info(
                f"[CreateConversation] Lost create race, using thread {conversation.id.value}"
            )
        return CreateConversationResult(conversation=conversation, created=inserted)
