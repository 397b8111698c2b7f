"""Conversation commands."""

from .create_conversation import (
    CreateConversationCommand,
    CreateConversationHandler,
    CreateConversationResult,
)
from .resolve_thread import ResolveThreadCommand, ResolveThreadHandler

__all__ = [
    "CreateConversationCommand",
    "CreateConversationHandler",
    "CreateConversationResult",
    "ResolveThreadCommand",
    "ResolveThreadHandler",
]
