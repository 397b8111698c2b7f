"""Lookup helpers for two-person (direct message) conversations."""

from typing import Iterable, Optional

from dm_threads.domain.entities.conversation import Conversation
from dm_threads.domain.value_objects.person_id import PersonId


def find_direct_conversation(
    conversations: Iterable[Conversation], first: PersonId, second: PersonId
) -> Optional[Conversation]:
    """Return the conversation whose participant set is exactly {first, second}.

    When a store has somehow kept duplicates, the oldest one wins so every
    caller lands on the same thread.
    """
    matches = [c for c in conversations if c.is_direct_between(first, second)]
    if not matches:
        return None
    return min(matches, key=lambda c: (c.created_at, c.id.value))
