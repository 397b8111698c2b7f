"""
MessageSummary Value Object - cached last message shown in thread lists.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Optional


@dataclass(frozen=True)
class MessageSummary:
    text: Optional[str]
    created_at: datetime
    sender_id: Optional[str] = None
    message_id: Optional[str] = None
    message_type: str = "text"

    @property
    def preview(self) -> str:
        return (self.text or "")[:50]
