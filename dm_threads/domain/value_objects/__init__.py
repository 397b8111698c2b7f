"""
VALUE OBJECTS - Immutable domain types

Each value object:
- Has no identity (compared by value, not by ID)
- Is immutable (frozen dataclass)
- Validates itself on creation
- Pure Python (no framework dependencies)
"""

from dm_threads.domain.value_objects.conversation_id import ConversationId
from dm_threads.domain.value_objects.person_id import PersonId
from dm_threads.domain.value_objects.message_id import MessageId
from dm_threads.domain.value_objects.message_summary import MessageSummary

__all__ = [
    "ConversationId",
    "PersonId",
    "MessageId",
    "MessageSummary",
]
