"""HTTP gateway implementing the repository ports against the thread API."""

from dm_threads.infrastructure.http.api_repositories import (
    ApiConversationRepository,
    ApiMessageRepository,
    ThreadApiClient,
)

__all__ = [
    "ApiConversationRepository",
    "ApiMessageRepository",
    "ThreadApiClient",
]
