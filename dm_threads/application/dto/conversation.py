"""Conversation DTOs for API request/response and event payloads."""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel

from dm_threads.domain.entities.conversation import Conversation
from dm_threads.domain.value_objects.conversation_id import ConversationId
from dm_threads.domain.value_objects.message_summary import MessageSummary
from dm_threads.domain.value_objects.person_id import PersonId


class MessageSummaryDTO(BaseModel):
    id: Optional[str] = None
    sender_user_id: Optional[str] = None
    type: str = "text"
    text: Optional[str] = None
    created_at: datetime


class ConversationDTO(BaseModel):
    id: str
    created_by: str
    related_post_id: Optional[str] = None
    created_at: datetime
    participant_ids: list[str]
    last_message: Optional[MessageSummaryDTO] = None


class ConversationListDTO(BaseModel):
    threads: list[ConversationDTO]
    total: int


def summary_to_dto(summary: MessageSummary) -> MessageSummaryDTO:
    return MessageSummaryDTO(
        id=summary.message_id,
        sender_user_id=summary.sender_id,
        type=summary.message_type,
        text=summary.text,
        created_at=summary.created_at,
    )


def summary_from_dto(dto: MessageSummaryDTO) -> MessageSummary:
    return MessageSummary(
        text=dto.text,
        created_at=dto.created_at,
        sender_id=dto.sender_user_id,
        message_id=dto.id,
        message_type=dto.type,
    )


def conversation_to_dto(conversation: Conversation) -> ConversationDTO:
    return ConversationDTO(
        id=conversation.id.value,
        created_by=conversation.created_by.value,
        related_post_id=conversation.related_post_id,
        created_at=conversation.created_at,
        participant_ids=sorted(p.value for p in conversation.participant_ids),
        last_message=(
            summary_to_dto(conversation.last_message)
            if conversation.last_message
            else None
        ),
    )


def conversation_from_dto(dto: ConversationDTO) -> Conversation:
    return Conversation(
        id=ConversationId(dto.id),
        participant_ids=frozenset(PersonId(p) for p in dto.participant_ids),
        created_by=PersonId(dto.created_by),
        created_at=dto.created_at,
        related_post_id=dto.related_post_id,
        last_message=summary_from_dto(dto.last_message) if dto.last_message else None,
    )
