"""
Messages API Router - read and append messages of a thread.

Messages are append-only. Sending one broadcasts last-message-updated so
thread lists can refresh their preview without refetching.
"""

from logging import getLogger
from typing import Optional

from dishka.integrations.fastapi import FromDishka, inject
from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel

from dm_threads.application.commands.chat import SendMessageCommand, SendMessageHandler
from dm_threads.application.dto.chat import MessageDTO, message_to_dto
from dm_threads.application.queries.chat import GetMessagesHandler, GetMessagesQuery
from dm_threads.application.services.thread_sync import ThreadSynchronizer
from dm_threads.domain.entities.message import MessageType
from dm_threads.domain.exceptions import (
    AccessDeniedError,
    DomainValidationError,
    EntityNotFoundError,
)
from dm_threads.domain.value_objects.conversation_id import ConversationId
from dm_threads.presentation.dependencies.auth import AuthUser, get_current_user
from dm_threads.config.settings import Config

logger = getLogger(__name__)


class SendMessageRequest(BaseModel):
    thread_id: str
    type: str = MessageType.TEXT.value
    text: Optional[str] = None


router = APIRouter(prefix="/api/messages", tags=["messages"])


def _parse_thread_id(thread_id: str) -> ConversationId:
    if not ConversationId.matches(thread_id):
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Conversation {thread_id} not found",
        )
    return ConversationId(thread_id)


@router.get(
    "",
    response_model=list[MessageDTO],
    status_code=status.HTTP_200_OK,
)
@inject
async def get_messages(
    thread_id: str,
    handler: FromDishka[GetMessagesHandler],
    current_user: AuthUser = Depends(get_current_user),
    limit: int = Config.CONVERSATION_MESSAGE_LIMIT,
):
    """Messages of a thread, oldest first. Participants only."""
    try:
        messages = await handler.execute(
            GetMessagesQuery(
                conversation_id=_parse_thread_id(thread_id),
                person_id=current_user.person_id,
                limit=limit,
            )
        )
    except EntityNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e)) from e
    except AccessDeniedError as e:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=str(e)) from e

    return [message_to_dto(m) for m in messages]


@router.post(
    "",
    response_model=MessageDTO,
    status_code=status.HTTP_201_CREATED,
)
@inject
async def send_message(
    request: SendMessageRequest,
    handler: FromDishka[SendMessageHandler],
    synchronizer: FromDishka[ThreadSynchronizer],
    current_user: AuthUser = Depends(get_current_user),
):
    try:
        try:
            message_type = MessageType(request.type)
        except ValueError as e:
            raise DomainValidationError(f"Invalid message type: {request.type}") from e

        message = await handler.execute(
            SendMessageCommand(
                conversation_id=_parse_thread_id(request.thread_id),
                sender_id=current_user.person_id,
                text=request.text,
                type=message_type,
            )
        )
    except EntityNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e)) from e
    except AccessDeniedError as e:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=str(e)) from e
    except DomainValidationError as e:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(e)
        ) from e

    synchronizer.announce_last_message(message)
    return message_to_dto(message)
