"""
DOMAIN EXCEPTIONS - Business rule violations

These exceptions are raised by domain logic and caught by presentation layer.
Presentation layer maps them to HTTP status codes.
"""

from dm_threads.domain.exceptions.entity_not_found import (
    EntityNotFoundError,
    ConversationNotFoundError,
)
from dm_threads.domain.exceptions.access_denied import AccessDeniedError
from dm_threads.domain.exceptions.validation_error import (
    DomainValidationError,
    SelfConversationForbiddenError,
)
from dm_threads.domain.exceptions.transient_network import TransientNetworkError

__all__ = [
    "EntityNotFoundError",
    "ConversationNotFoundError",
    "AccessDeniedError",
    "DomainValidationError",
    "SelfConversationForbiddenError",
    "TransientNetworkError",
]
