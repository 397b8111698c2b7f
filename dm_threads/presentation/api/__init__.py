"""
API Routers - FastAPI endpoint definitions.
"""

from dm_threads.presentation.api.threads import router as threads_router
from dm_threads.presentation.api.messages import router as messages_router

__all__ = [
    "threads_router",
    "messages_router",
]
