"""Message DTOs for API request/response."""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel

from dm_threads.domain.entities.message import Message
from dm_threads.domain.value_objects.conversation_id import ConversationId
from dm_threads.domain.value_objects.message_id import MessageId
from dm_threads.domain.value_objects.person_id import PersonId


class MessageDTO(BaseModel):
    """DTO for message data returned to the messaging surfaces."""

    id: str
    thread_id: str
    sender_user_id: str
    type: str
    text: Optional[str] = None
    created_at: datetime


def message_to_dto(message: Message) -> MessageDTO:
    return MessageDTO(
        id=message.id.value,
        thread_id=message.conversation_id.value,
        sender_user_id=message.sender_id.value,
        type=message.type.value,
        text=message.text,
        created_at=message.created_at,
    )


def message_from_dto(dto: MessageDTO) -> Message:
    return Message(
        id=MessageId(dto.id),
        conversation_id=ConversationId(dto.thread_id),
        sender_id=PersonId(dto.sender_user_id),
        type=dto.type,
        text=dto.text,
        created_at=dto.created_at,
    )
