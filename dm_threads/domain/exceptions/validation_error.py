"""
DomainValidationError - Raised when a business rule is violated.
Maps to: HTTP 422 Unprocessable Entity
"""


class DomainValidationError(Exception):
    """Exception raised for domain validation errors."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class SelfConversationForbiddenError(DomainValidationError):
    """Raised when a direct conversation would have the current user on both ends."""

    def __init__(self, person_id: str):
        super().__init__(f"Cannot open a conversation with yourself ({person_id})")
        self.person_id = person_id
