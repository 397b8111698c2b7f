"""
Resolution Guard - one in-flight thread resolution per messaging surface.

State machine:
    IDLE → RESOLVING → RESOLVED
                     → ERROR
    RESOLVED / ERROR → RESOLVING  only for a genuinely new identifier

Rules:
- A request that arrives while RESOLVING is dropped, not queued. The owner
  re-invokes with pending_identifier once the in-flight call settles.
- An identifier equal to last_processed_identifier is not resolved again.
  On success the memo is re-armed with the canonical id, so the follow-up
  request carrying that id (after history is rewritten) is a no-op.
- Cancellation is cooperative: after every await the guard checks that its
  surface is still mounted. After teardown a completion mutates nothing and
  reports nothing. If the requested identifier changed meanwhile, the busy
  flag is cleared but the stale result is not applied.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional, Union

from dm_threads.application.services.thread_resolver import (
    ResolutionOutcome,
    ThreadResolver,
)
from dm_threads.domain.value_objects.person_id import PersonId

logger = logging.getLogger(__name__)


class ResolutionStatus(str, Enum):
    IDLE = "idle"
    RESOLVING = "resolving"
    RESOLVED = "resolved"
    ERROR = "error"


@dataclass
class ResolutionState:
    requested_identifier: Optional[str] = None
    resolved_conversation_id: Optional[str] = None
    is_resolving: bool = False
    last_processed_identifier: Optional[str] = None
    status: ResolutionStatus = ResolutionStatus.IDLE
    error: Optional[Exception] = None


class ResolutionGuard:
    def __init__(
        self,
        resolver: ThreadResolver,
        current_user_id: Union[PersonId, str],
        on_resolved: Optional[Callable[[ResolutionOutcome], None]] = None,
    ):
        self._resolver = resolver
        self._current_user_id = (
            current_user_id
            if isinstance(current_user_id, PersonId)
            else PersonId(current_user_id)
        )
        self._on_resolved = on_resolved
        self._state = ResolutionState()
        self._mounted = True

    @property
    def state(self) -> ResolutionState:
        return self._state

    @property
    def is_mounted(self) -> bool:
        return self._mounted

    @property
    def pending_identifier(self) -> Optional[str]:
        """Latest requested identifier that still needs a resolution pass."""
        state = self._state
        if (
            not self._mounted
            or state.is_resolving
            or not state.requested_identifier
            or state.requested_identifier == state.last_processed_identifier
        ):
            return None
        return state.requested_identifier

    async def resolve(self, identifier: str) -> Optional[ResolutionOutcome]:
        """
        Resolve identifier unless the guard says the work is redundant.

        Returns:
            The outcome, or None when the request was dropped or discarded.

        Raises:
            Whatever the resolver raised, after recording it in state.
        """
        if not self._mounted:
            logger.debug(f"[ResolutionGuard] Torn down, ignoring {identifier}")
            return None

        identifier = identifier.strip()
        state = self._state
        state.requested_identifier = identifier

        if state.is_resolving:
            logger.debug(f"[ResolutionGuard] Already resolving, dropping {identifier}")
            return None
        if identifier == state.last_processed_identifier:
            logger.debug(f"[ResolutionGuard] {identifier} already processed, skipping")
            return None

        state.is_resolving = True
        state.status = ResolutionStatus.RESOLVING
        state.error = None
        logger.info(f"[ResolutionGuard] Resolving {identifier}")

        try:
            outcome = await self._resolver.resolve_outcome(
                identifier, self._current_user_id
            )
        except Exception as e:
            if not self._mounted:
                logger.debug(
                    f"[ResolutionGuard] Discarding failure for {identifier} after teardown"
                )
                return None
            state.is_resolving = False
            if state.requested_identifier != identifier:
                logger.debug(f"[ResolutionGuard] Stale failure for {identifier} dropped")
                return None
            state.status = ResolutionStatus.ERROR
            state.error = e
            # Memoize failures too, so a re-render does not retry in a loop
            state.last_processed_identifier = identifier
            logger.warning(f"[ResolutionGuard] Resolution of {identifier} failed: {e}")
            raise

        if not self._mounted:
            logger.debug(
                f"[ResolutionGuard] Discarding result for {identifier} after teardown"
            )
            return None

        state.is_resolving = False
        if state.requested_identifier != identifier:
            logger.debug(f"[ResolutionGuard] Stale result for {identifier} dropped")
            return None

        canonical_id = outcome.canonical_id
        # Memo first, so updating the requested id cannot trigger another pass
        state.last_processed_identifier = canonical_id
        state.resolved_conversation_id = canonical_id
        state.requested_identifier = canonical_id
        state.status = ResolutionStatus.RESOLVED

        if self._on_resolved is not None:
            self._on_resolved(outcome)
        return outcome

    def mark_processed(self, conversation_id: str) -> None:
        """Adopt an already-known conversation (e.g. picked from the list)."""
        if not self._mounted:
            return
        state = self._state
        state.requested_identifier = conversation_id
        state.last_processed_identifier = conversation_id
        state.resolved_conversation_id = conversation_id
        state.error = None
        if not state.is_resolving:
            state.status = ResolutionStatus.RESOLVED

    def reset(self) -> None:
        """Forget the memo and the resolved id (back to the thread list)."""
        if not self._mounted:
            return
        was_resolving = self._state.is_resolving
        self._state = ResolutionState(is_resolving=was_resolving)
        if was_resolving:
            self._state.status = ResolutionStatus.RESOLVING

    def teardown(self) -> None:
        self._mounted = False
        logger.debug("[ResolutionGuard] Torn down")
