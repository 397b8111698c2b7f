"""
Thread API gateway - repository ports backed by the Conversation/Message API.

Used by the messaging surfaces when they run outside the API process. Status
codes are mapped back onto the domain taxonomy:

- 404                       → None (get) / EntityNotFoundError (create, send)
- 403                       → AccessDeniedError
- 422                       → DomainValidationError
- 5xx, timeouts, transport  → TransientNetworkError
"""

import logging
from typing import Any, Iterable, Optional

import httpx

from dm_threads.application.dto.chat import MessageDTO, message_from_dto
from dm_threads.application.dto.conversation import (
    ConversationDTO,
    ConversationListDTO,
    conversation_from_dto,
)
from dm_threads.config.settings import Config
from dm_threads.domain.entities.conversation import Conversation
from dm_threads.domain.entities.message import Message
from dm_threads.domain.exceptions import (
    AccessDeniedError,
    ConversationNotFoundError,
    DomainValidationError,
    EntityNotFoundError,
    TransientNetworkError,
)
from dm_threads.domain.ports.repositories import (
    ConversationRepository,
    MessageRepository,
)
from dm_threads.domain.value_objects.conversation_id import ConversationId
from dm_threads.domain.value_objects.person_id import PersonId

logger = logging.getLogger(__name__)


def _error_detail(response: httpx.Response) -> str:
    try:
        data = response.json()
    except ValueError:
        return response.text
    if isinstance(data, dict):
        detail = data.get("detail") or data.get("error")
        if detail:
            return str(detail)
    return response.text


class ThreadApiClient:
    """Thin async wrapper around httpx.AsyncClient for the thread API."""

    def __init__(
        self,
        base_url: str = Config.API_BASE_URL,
        token: Optional[str] = None,
        timeout: float = Config.API_TIMEOUT,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        headers = {"Authorization": f"Bearer {token}"} if token else {}
        self._client = httpx.AsyncClient(
            base_url=base_url,
            headers=headers,
            timeout=timeout,
            transport=transport,
        )

    async def __aenter__(self) -> "ThreadApiClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    async def request(self, method: str, path: str, **kwargs: Any) -> httpx.Response:
        """
        Send a request and translate failures.

        404 responses are returned to the caller, which knows whether a
        missing resource means None or an error.
        """
        try:
            response = await self._client.request(method, path, **kwargs)
        except httpx.TransportError as e:
            logger.warning(f"[ThreadApiClient] {method} {path} failed: {e}")
            raise TransientNetworkError(f"{method} {path} failed: {e}") from e

        status = response.status_code
        if status >= 500:
            logger.warning(f"[ThreadApiClient] {method} {path} → {status}")
            raise TransientNetworkError(
                f"{method} {path} returned {status}: {_error_detail(response)}"
            )
        if status == 403:
            raise AccessDeniedError(_error_detail(response))
        if status == 422:
            raise DomainValidationError(_error_detail(response))
        if status >= 400 and status != 404:
            response.raise_for_status()
        return response


class ApiConversationRepository(ConversationRepository):
    def __init__(self, client: ThreadApiClient):
        self._client = client

    async def get_by_id(
        self, conversation_id: ConversationId
    ) -> Optional[Conversation]:
        response = await self._client.request(
            "GET", f"/api/threads/{conversation_id.value}"
        )
        if response.status_code == 404:
            return None
        return conversation_from_dto(ConversationDTO.model_validate(response.json()))

    async def get_by_user(
        self, person_id: PersonId, limit: Optional[int] = None
    ) -> list[Conversation]:
        # The API derives the user from the bearer token
        params = {"limit": limit} if limit else None
        response = await self._client.request("GET", "/api/threads", params=params)
        if response.status_code == 404:
            return []
        listing = ConversationListDTO.model_validate(response.json())
        return [conversation_from_dto(dto) for dto in listing.threads]

    async def create(
        self,
        participant_ids: Iterable[PersonId],
        created_by: PersonId,
        related_post_id: Optional[str] = None,
    ) -> tuple[Conversation, bool]:
        payload: dict[str, Any] = {
            "participant_ids": sorted({p.value for p in participant_ids} | {created_by.value})
        }
        if related_post_id:
            payload["related_post_id"] = related_post_id

        response = await self._client.request("POST", "/api/threads", json=payload)
        if response.status_code == 404:
            raise EntityNotFoundError(_error_detail(response))
        conversation = conversation_from_dto(ConversationDTO.model_validate(response.json()))
        # 200 means the pair already had a thread
        return conversation, response.status_code == 201


class ApiMessageRepository(MessageRepository):
    def __init__(self, client: ThreadApiClient):
        self._client = client

    async def get_by_conversation(
        self, conversation_id: ConversationId, limit: int = 200
    ) -> list[Message]:
        response = await self._client.request(
            "GET",
            "/api/messages",
            params={"thread_id": conversation_id.value, "limit": limit},
        )
        if response.status_code == 404:
            raise ConversationNotFoundError(conversation_id.value)
        return [
            message_from_dto(MessageDTO.model_validate(item)) for item in response.json()
        ]

    async def save(self, message: Message) -> Message:
        response = await self._client.request(
            "POST",
            "/api/messages",
            json={
                "thread_id": message.conversation_id.value,
                "type": message.type.value,
                "text": message.text,
            },
        )
        if response.status_code == 404:
            raise ConversationNotFoundError(message.conversation_id.value)
        return message_from_dto(MessageDTO.model_validate(response.json()))
