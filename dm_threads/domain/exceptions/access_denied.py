"""
AccessDeniedError - Raised when the caller is not a participant of a thread.
Maps to: HTTP 403 Forbidden
"""


class AccessDeniedError(Exception):
    """Caller may not read or write this conversation."""

    def __init__(self, message: str = "You don't have access to this thread"):
        super().__init__(message)
