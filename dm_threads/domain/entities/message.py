"""
Message Entity - A single immutable message in a conversation.
"""

from __future__ import annotations
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Optional
from uuid import uuid4

from dm_threads.domain.exceptions.validation_error import DomainValidationError
from dm_threads.domain.value_objects.conversation_id import ConversationId
from dm_threads.domain.value_objects.message_id import MessageId
from dm_threads.domain.value_objects.message_summary import MessageSummary
from dm_threads.domain.value_objects.person_id import PersonId


class MessageType(str, Enum):
    TEXT = "text"
    IMAGE = "image"
    FILE = "file"
    CONTRACT = "contract"
    NDA = "nda"


@dataclass(frozen=True)
class Message:
    id: MessageId
    conversation_id: ConversationId
    sender_id: PersonId
    type: MessageType
    text: Optional[str]
    created_at: datetime

    def __post_init__(self):
        try:
            object.__setattr__(self, "type", MessageType(self.type))
        except ValueError as e:
            raise DomainValidationError(f"Invalid message type: {self.type}") from e
        if self.type == MessageType.TEXT and not (self.text and self.text.strip()):
            raise DomainValidationError("Text messages require non-empty text")

    @classmethod
    def create(
        cls,
        conversation_id: ConversationId,
        sender_id: PersonId,
        text: Optional[str],
        type: MessageType | str = MessageType.TEXT,
    ) -> Message:
        """Factory method to create a new Message with a generated ID and timestamp."""
        return cls(
            id=MessageId(str(uuid4())),
            conversation_id=conversation_id,
            sender_id=sender_id,
            type=type,
            text=text,
            created_at=datetime.now(timezone.utc),
        )

    def summary(self) -> MessageSummary:
        return MessageSummary(
            text=self.text,
            created_at=self.created_at,
            sender_id=self.sender_id.value,
            message_id=self.id.value,
            message_type=self.type.value,
        )
