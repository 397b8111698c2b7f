"""
EntityNotFoundError - Raised when a requested entity does not exist.
Maps to: HTTP 404 Not Found
"""


class EntityNotFoundError(Exception):
    """Exception raised when a requested entity is not found."""

    def __init__(self, message: str = "The requested entity was not found."):
        super().__init__(message)


class ConversationNotFoundError(EntityNotFoundError):
    """Raw identifier does not resolve to any conversation, even after fallback."""

    def __init__(self, identifier: str, message: str | None = None):
        super().__init__(message or f"Conversation {identifier} not found")
        self.identifier = identifier
