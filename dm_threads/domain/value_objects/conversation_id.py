"""
ConversationId Value Object - canonical identity of a conversation thread.
"""

import re
from dataclasses import dataclass

# 8-4-4-4-12 hyphenated hex groups, 36 characters in total
CONVERSATION_ID_PATTERN = re.compile(
    r"^[0-9a-fA-F]{8}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{12}$"
)


@dataclass(frozen=True)
class ConversationId:
    value: str  # thread id, presented as UUID string

    def __post_init__(self):
        if not self.matches(self.value):
            raise ValueError(f"Invalid conversation ID: {self.value!r}")

    @staticmethod
    def matches(value: str) -> bool:
        """Check if string has the canonical conversation-id shape."""
        return isinstance(value, str) and bool(CONVERSATION_ID_PATTERN.match(value))

    def __str__(self) -> str:
        return self.value
