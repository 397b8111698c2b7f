"""
Conversation Entity - A messaging thread between marketplace participants.
"""

from __future__ import annotations
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Iterable, Optional
from uuid import uuid4

from dm_threads.domain.exceptions.validation_error import (
    DomainValidationError,
    SelfConversationForbiddenError,
)
from dm_threads.domain.value_objects.conversation_id import ConversationId
from dm_threads.domain.value_objects.message_summary import MessageSummary
from dm_threads.domain.value_objects.person_id import PersonId


@dataclass
class Conversation:
    id: ConversationId
    participant_ids: frozenset[PersonId]
    created_by: PersonId
    created_at: datetime
    related_post_id: Optional[str] = None
    last_message: Optional[MessageSummary] = None

    def __post_init__(self):
        self.participant_ids = frozenset(self.participant_ids)
        if len(self.participant_ids) < 2:
            raise DomainValidationError("A conversation needs at least two participants")
        if self.created_by not in self.participant_ids:
            raise DomainValidationError("Conversation creator must be a participant")

    @classmethod
    def create(
        cls,
        participant_ids: Iterable[PersonId],
        created_by: PersonId,
        related_post_id: Optional[str] = None,
    ) -> Conversation:
        """Factory method to create a new Conversation with a generated ID and timestamp."""
        participants = frozenset(participant_ids) | {created_by}
        if participants == {created_by}:
            raise SelfConversationForbiddenError(created_by.value)
        return cls(
            id=ConversationId(str(uuid4())),
            participant_ids=participants,
            created_by=created_by,
            created_at=datetime.now(timezone.utc),
            related_post_id=related_post_id,
        )

    @staticmethod
    def pair_key_for(participant_ids: Iterable[PersonId]) -> Optional[str]:
        """Order-independent key for a two-person participant set, else None."""
        ids = sorted({p.value for p in participant_ids})
        if len(ids) != 2:
            return None
        return ":".join(ids)

    @property
    def pair_key(self) -> Optional[str]:
        return self.pair_key_for(self.participant_ids)

    @property
    def is_direct(self) -> bool:
        return len(self.participant_ids) == 2

    def has_participant(self, person_id: PersonId) -> bool:
        return person_id in self.participant_ids

    def is_direct_between(self, first: PersonId, second: PersonId) -> bool:
        return first != second and self.participant_ids == frozenset({first, second})

    def other_participant(self, person_id: PersonId) -> Optional[PersonId]:
        if not self.is_direct or person_id not in self.participant_ids:
            return None
        (other,) = self.participant_ids - {person_id}
        return other

    def update_last_message(self, summary: MessageSummary) -> None:
        if self.last_message and summary.created_at < self.last_message.created_at:
            return
        self.last_message = summary

    @property
    def last_activity_at(self) -> datetime:
        return self.last_message.created_at if self.last_message else self.created_at
