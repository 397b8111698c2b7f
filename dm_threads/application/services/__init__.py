"""Messaging services: thread resolution, resolution guard, cross-surface sync."""

from dm_threads.application.services.thread_resolver import (
    PairLocks,
    ResolutionOutcome,
    ThreadResolver,
)
from dm_threads.application.services.resolution_guard import (
    ResolutionGuard,
    ResolutionState,
    ResolutionStatus,
)
from dm_threads.application.services.thread_events import (
    LastMessageUpdated,
    RefreshThreads,
    ThreadCreated,
    ThreadEvent,
    ThreadEventBus,
    ThreadIdChanged,
)
from dm_threads.application.services.thread_sync import ThreadSynchronizer
from dm_threads.application.services.navigation import NavigationHistory
from dm_threads.application.services.localization import localized_error
from dm_threads.application.services.surfaces import (
    ActiveThreadSurface,
    MessagingPage,
    ThreadListSurface,
)

__all__ = [
    "PairLocks",
    "ResolutionOutcome",
    "ThreadResolver",
    "ResolutionGuard",
    "ResolutionState",
    "ResolutionStatus",
    "LastMessageUpdated",
    "RefreshThreads",
    "ThreadCreated",
    "ThreadEvent",
    "ThreadEventBus",
    "ThreadIdChanged",
    "ThreadSynchronizer",
    "NavigationHistory",
    "localized_error",
    "ActiveThreadSurface",
    "MessagingPage",
    "ThreadListSurface",
]
