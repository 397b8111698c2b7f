"""
TransientNetworkError - Raised when fetching or creating a conversation fails
for a reason that is not otherwise classified.
Maps to: HTTP 503 Service Unavailable
"""


class TransientNetworkError(Exception):
    """Retryable failure talking to the conversation store."""

    def __init__(self, message: str = "Conversation store request failed"):
        super().__init__(message)
