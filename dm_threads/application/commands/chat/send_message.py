"""
SendMessage Command - append a message to a thread.

Handler:
1. Load conversation from repo
2. Verify the sender participates in it
3. Save the message (append-only)
4. Return the stored message
"""

import logging
from dataclasses import dataclass
from typing import Optional

from dm_threads.application.common.interfaces import Command, CommandHandler
from dm_threads.domain.entities.message import Message, MessageType
from dm_threads.domain.exceptions import AccessDeniedError, ConversationNotFoundError
from dm_threads.domain.ports.repositories import (
    ConversationRepository,
    MessageRepository,
)
from dm_threads.domain.value_objects.conversation_id import ConversationId
from dm_threads.domain.value_objects.person_id import PersonId

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SendMessageCommand(Command[Message]):
    conversation_id: ConversationId
    sender_id: PersonId
    text: Optional[str]
    type: MessageType = MessageType.TEXT


class SendMessageHandler(CommandHandler[Message]):
    def __init__(
        self,
        conv_repo: ConversationRepository,
        msg_repo: MessageRepository,
    ):
        self._conv_repo = conv_repo
        self._msg_repo = msg_repo

    async def execute(self, command: SendMessageCommand) -> Message:
        """
        Raises:
            ConversationNotFoundError: If the thread doesn't exist
            AccessDeniedError: If the sender is not a participant
            DomainValidationError: If a text message has no text
        """
        conversation = await self._conv_repo.get_by_id(command.conversation_id)
        if not conversation:
            raise ConversationNotFoundError(command.conversation_id.value)
        if not conversation.has_participant(command.sender_id):
            raise AccessDeniedError("You don't have access to this thread")

        message = Message.create(
            conversation_id=command.conversation_id,
            sender_id=command.sender_id,
            text=command.text,
            type=command.type,
        )
        saved = await self._msg_repo.save(message)
        logger.debug(
            f"[SendMessage] {saved.sender_id.value} → thread {saved.conversation_id.value}"
        )
        return saved
