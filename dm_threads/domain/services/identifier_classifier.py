"""
Identifier Classifier - decides what a raw messaging identifier denotes.

A deep link such as /messages/{identifier} may carry either a thread id or
the id of the person to message. Anything shaped like a canonical thread id
(36 characters, 8-4-4-4-12 hex groups) is a ConversationId; everything else
is treated as a PersonId. Whether the id belongs to the current user is not
decided here.
"""

from typing import Union

from dm_threads.domain.exceptions.validation_error import DomainValidationError
from dm_threads.domain.value_objects.conversation_id import ConversationId
from dm_threads.domain.value_objects.person_id import PersonId

ClassifiedIdentifier = Union[ConversationId, PersonId]


def is_conversation_id_shape(value: str) -> bool:
    return ConversationId.matches(value)


def classify(identifier: str) -> ClassifiedIdentifier:
    """
    Total over non-blank identifiers: every one is a ConversationId or a PersonId.

    A blank identifier names nobody (PersonId cannot be empty), so it raises
    DomainValidationError instead of being classified.
    """
    if identifier is None or not identifier.strip():
        raise DomainValidationError("Identifier cannot be empty")

    identifier = identifier.strip()
    if is_conversation_id_shape(identifier):
        return ConversationId(identifier)
    return PersonId(identifier)
