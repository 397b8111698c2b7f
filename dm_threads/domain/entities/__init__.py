"""
ENTITIES - Business objects with identity

Each entity:
- Has a unique identifier
- Has behavior (methods)
- Pure Python dataclasses (no ORM, no Pydantic)
"""

from dm_threads.domain.entities.conversation import Conversation
from dm_threads.domain.entities.message import Message, MessageType

__all__ = [
    "Conversation",
    "Message",
    "MessageType",
]
