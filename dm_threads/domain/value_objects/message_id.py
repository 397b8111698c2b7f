"""
MessageId Value Object - identity of one message in a thread.
"""

from dataclasses import dataclass
from uuid import UUID


@dataclass(frozen=True)
class MessageId:
    value: str  # Message.id column, UUID string

    def __post_init__(self):
        if not self.value:
            raise ValueError("Message ID cannot be empty")
        UUID(self.value)  # raises ValueError for anything that is not a UUID

    def __str__(self) -> str:
        return self.value
