"""Pure domain services (no I/O)."""

from dm_threads.domain.services.identifier_classifier import (
    ClassifiedIdentifier,
    classify,
    is_conversation_id_shape,
)
from dm_threads.domain.services.direct_conversations import find_direct_conversation

__all__ = [
    "ClassifiedIdentifier",
    "classify",
    "is_conversation_id_shape",
    "find_direct_conversation",
]
