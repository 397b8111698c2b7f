"""
Thread Synchronizer - turns resolution outcomes into bus events and history writes.

Per outcome:
- history: the canonical id is mirrored with replace(), never push(), so
  back/forward walk conversations rather than intermediate identifiers
- created          → ThreadCreated (+ RefreshThreads when reached by fallback)
- requested ≠ id   → ThreadIdChanged(requested, canonical)
- found by id      → nothing beyond the resolved state itself
"""

import logging
from typing import Optional

from dm_threads.application.services.navigation import (
    NavigationHistory,
    conversation_path,
)
from dm_threads.application.services.thread_events import (
    LastMessageUpdated,
    RefreshThreads,
    ThreadCreated,
    ThreadEventBus,
    ThreadIdChanged,
)
from dm_threads.application.services.thread_resolver import ResolutionOutcome
from dm_threads.config.settings import Config
from dm_threads.domain.entities.message import Message

logger = logging.getLogger(__name__)


class ThreadSynchronizer:
    def __init__(
        self,
        bus: ThreadEventBus,
        history: Optional[NavigationHistory] = None,
        prefix: str = Config.MESSAGES_PATH_PREFIX,
    ):
        self._bus = bus
        self._history = history
        self._prefix = prefix

    @property
    def bus(self) -> ThreadEventBus:
        return self._bus

    @property
    def history(self) -> Optional[NavigationHistory]:
        return self._history

    def apply_outcome(self, outcome: ResolutionOutcome) -> None:
        canonical_id = outcome.canonical_id

        # History first, so listeners reading it see the canonical id
        self.mirror_history(canonical_id)

        if outcome.created:
            logger.info(f"[ThreadSynchronizer] Thread created: {canonical_id}")
            self._bus.publish(
                ThreadCreated(conversation_id=canonical_id, conversation=outcome.conversation)
            )
            if outcome.via_fallback:
                self._bus.publish(RefreshThreads())

        if outcome.id_changed:
            logger.debug(
                f"[ThreadSynchronizer] Thread id changed: {outcome.requested} → {canonical_id}"
            )
            self._bus.publish(ThreadIdChanged(old_id=outcome.requested, new_id=canonical_id))

    def mirror_history(self, conversation_id: str) -> bool:
        """Point the current history entry at conversation_id. Returns True if rewritten."""
        if self._history is None:
            return False
        if self._history.current_conversation_identifier == conversation_id:
            return False
        self._history.replace(conversation_path(conversation_id, self._prefix))
        return True

    def announce_last_message(self, message: Message) -> int:
        return self._bus.publish(
            LastMessageUpdated(
                conversation_id=message.conversation_id.value, summary=message.summary()
            )
        )

    def request_refresh(self) -> int:
        return self._bus.publish(RefreshThreads())
