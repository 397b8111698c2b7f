"""
Threads API Router - FastAPI endpoints for direct-message threads.

Thin layer: only handles HTTP concerns (request/response). Handlers come
from dishka; domain errors are mapped to status codes here.

Flow:
  HTTP Request → Router → Command/Query → Handler → Repository → Database
                                              ↓
  HTTP Response ← Router ← Result ← (ThreadSynchronizer broadcasts outcome)
"""

from logging import getLogger
from typing import Optional

from dishka.integrations.fastapi import FromDishka, inject
from fastapi import APIRouter, Depends, HTTPException, Response, status
from pydantic import BaseModel

from dm_threads.application.commands.conversations import (
    CreateConversationCommand,
    CreateConversationHandler,
    ResolveThreadCommand,
    ResolveThreadHandler,
)
from dm_threads.application.dto.conversation import (
    ConversationDTO,
    ConversationListDTO,
    conversation_to_dto,
)
from dm_threads.application.queries.conversations import (
    GetConversationHandler,
    GetConversationQuery,
    ListConversationsHandler,
    ListConversationsQuery,
)
from dm_threads.application.services.thread_events import ThreadCreated
from dm_threads.application.services.thread_sync import ThreadSynchronizer
from dm_threads.domain.exceptions import (
    AccessDeniedError,
    DomainValidationError,
    EntityNotFoundError,
    TransientNetworkError,
)
from dm_threads.domain.value_objects.conversation_id import ConversationId
from dm_threads.domain.value_objects.person_id import PersonId
from dm_threads.presentation.dependencies.auth import AuthUser, get_current_user
from dm_threads.config.settings import Config

logger = getLogger(__name__)


# ==================== REQUEST/RESPONSE MODELS ====================


class CreateThreadRequest(BaseModel):
    """The caller is always added to participant_ids."""

    participant_ids: list[str]
    related_post_id: Optional[str] = None


class ResolveThreadRequest(BaseModel):
    identifier: str


class ResolveThreadResponse(BaseModel):
    """
    {
        "conversation_id": "uuid",
        "requested": "<raw identifier>",
        "created": false,
        "via_fallback": false,
        "thread": {...}
    }
    """

    conversation_id: str
    requested: str
    created: bool
    via_fallback: bool
    thread: ConversationDTO


# ==================== ROUTER ====================

router = APIRouter(prefix="/api/threads", tags=["threads"])


def _thread_not_found(thread_id: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_404_NOT_FOUND,
        detail=f"Conversation {thread_id} not found",
    )


# ==================== ENDPOINTS ====================


@router.get(
    "",
    response_model=ConversationListDTO,
    status_code=status.HTTP_200_OK,
)
@inject
async def list_threads(
    handler: FromDishka[ListConversationsHandler],
    current_user: AuthUser = Depends(get_current_user),
    limit: int = Config.CONVERSATION_USER_LIMIT,
):
    """Caller's threads, most recent activity first, with their last message."""
    conversations = await handler.execute(
        ListConversationsQuery(person_id=current_user.person_id, limit=limit)
    )
    threads = [conversation_to_dto(c) for c in conversations]
    return ConversationListDTO(threads=threads, total=len(threads))


@router.post(
    "",
    response_model=ConversationDTO,
    status_code=status.HTTP_201_CREATED,
)
@inject
async def create_thread(
    request: CreateThreadRequest,
    response: Response,
    handler: FromDishka[CreateConversationHandler],
    synchronizer: FromDishka[ThreadSynchronizer],
    current_user: AuthUser = Depends(get_current_user),
):
    """
    Create a thread. A two-person thread that already exists is returned
    with 200 instead of 201.
    """
    try:
        command = CreateConversationCommand(
            created_by=current_user.person_id,
            participant_ids=tuple(PersonId(p) for p in request.participant_ids),
            related_post_id=request.related_post_id,
        )
        result = await handler.execute(command)
    except (DomainValidationError, ValueError) as e:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(e)
        ) from e
    except EntityNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e)) from e

    if result.created:
        synchronizer.bus.publish(
            ThreadCreated(
                conversation_id=result.conversation.id.value,
                conversation=result.conversation,
            )
        )
    else:
        response.status_code = status.HTTP_200_OK

    return conversation_to_dto(result.conversation)


@router.post(
    "/resolve",
    response_model=ResolveThreadResponse,
    status_code=status.HTTP_200_OK,
)
@inject
async def resolve_thread(
    request: ResolveThreadRequest,
    handler: FromDishka[ResolveThreadHandler],
    synchronizer: FromDishka[ThreadSynchronizer],
    current_user: AuthUser = Depends(get_current_user),
):
    """Resolve a thread id or a person id to the caller's canonical thread."""
    try:
        outcome = await handler.execute(
            ResolveThreadCommand(
                identifier=request.identifier, current_user_id=current_user.person_id
            )
        )
    except EntityNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e)) from e
    except DomainValidationError as e:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(e)
        ) from e
    except TransientNetworkError as e:
        logger.error(f"[ThreadsAPI] Resolve of {request.identifier} failed: {e}")
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(e)
        ) from e

    synchronizer.apply_outcome(outcome)

    return ResolveThreadResponse(
        conversation_id=outcome.canonical_id,
        requested=outcome.requested,
        created=outcome.created,
        via_fallback=outcome.via_fallback,
        thread=conversation_to_dto(outcome.conversation),
    )


@router.get(
    "/{thread_id}",
    response_model=ConversationDTO,
    status_code=status.HTTP_200_OK,
)
@inject
async def get_thread(
    thread_id: str,
    handler: FromDishka[GetConversationHandler],
    current_user: AuthUser = Depends(get_current_user),
):
    """404 when the thread does not exist, 403 when the caller is not in it."""
    if not ConversationId.matches(thread_id):
        raise _thread_not_found(thread_id)
    try:
        conversation = await handler.execute(
            GetConversationQuery(
                conversation_id=ConversationId(thread_id),
                person_id=current_user.person_id,
            )
        )
    except EntityNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e)) from e
    except AccessDeniedError as e:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=str(e)) from e

    return conversation_to_dto(conversation)
