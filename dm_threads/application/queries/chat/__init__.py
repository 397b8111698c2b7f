"""Chat-related queries."""

from dm_threads.application.queries.chat.get_messages import (
    GetMessagesHandler,
    GetMessagesQuery,
)

__all__ = [
    "GetMessagesHandler",
    "GetMessagesQuery",
]
