"""
Thread Resolver - turns a raw messaging identifier into one canonical conversation.

Flow:
    identifier → classify()
        ConversationId → fetch → (not found) wait once, fetch again
                               → (still not found) treat id as a person, find-or-create
        PersonId       → search the user's threads for {me, person} → create if missing

Guarantees:
- Idempotent: resolving the same person twice lands on the same conversation.
- Never creates a second direct thread for a pair. Find-or-create runs under a
  per-pair asyncio.Lock within the process; across processes the store's
  unique pair key makes create() return the existing thread, which is
  then reported as not created.
- Only one bounded retry (RESOLVE_RETRY_DELAY_MS). Anything else is retried by
  the caller, not here.
"""

from __future__ import annotations

import asyncio
import logging
from collections import Counter
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import AsyncIterator, Awaitable, Callable, Optional, Union

from dm_threads.config.settings import Config
from dm_threads.domain.entities.conversation import Conversation
from dm_threads.domain.exceptions import (
    AccessDeniedError,
    ConversationNotFoundError,
    DomainValidationError,
    EntityNotFoundError,
    SelfConversationForbiddenError,
    TransientNetworkError,
)
from dm_threads.domain.ports.repositories import ConversationRepository
from dm_threads.domain.services import classify, find_direct_conversation
from dm_threads.domain.value_objects.conversation_id import ConversationId
from dm_threads.domain.value_objects.person_id import PersonId

logger = logging.getLogger(__name__)

Sleep = Callable[[float], Awaitable[None]]


@dataclass(frozen=True)
class ResolutionOutcome:
    """Result of one resolution: the canonical conversation and how it was reached."""

    requested: str
    conversation: Conversation
    created: bool = False
    via_fallback: bool = False

    @property
    def canonical_id(self) -> str:
        return self.conversation.id.value

    @property
    def id_changed(self) -> bool:
        return self.requested != self.canonical_id


class PairLocks:
    """asyncio locks keyed by an unordered participant pair.

    Locks are dropped once nobody holds or waits on them.
    """

    def __init__(self):
        self._locks: dict[frozenset[str], asyncio.Lock] = {}
        self._users: Counter = Counter()

    @asynccontextmanager
    async def hold(self, first: PersonId, second: PersonId) -> AsyncIterator[None]:
        key = frozenset({first.value, second.value})
        lock = self._locks.setdefault(key, asyncio.Lock())
        self._users[key] += 1
        try:
            async with lock:
                yield
        finally:
            self._users[key] -= 1
            if self._users[key] <= 0:
                del self._users[key]
                self._locks.pop(key, None)

    def __len__(self) -> int:
        return len(self._locks)


# Shared by every resolver in the process unless one is injected
default_pair_locks = PairLocks()


class ThreadResolver:
    def __init__(
        self,
        conversation_repository: ConversationRepository,
        retry_delay: float = Config.RESOLVE_RETRY_DELAY_SECONDS,
        pair_locks: Optional[PairLocks] = None,
        sleep: Sleep = asyncio.sleep,
    ):
        self._conversation_repository = conversation_repository
        self._retry_delay = retry_delay
        self._pair_locks = pair_locks if pair_locks is not None else default_pair_locks
        self._sleep = sleep

    async def resolve(
        self, identifier: str, current_user_id: Union[PersonId, str]
    ) -> Conversation:
        outcome = await self.resolve_outcome(identifier, current_user_id)
        return outcome.conversation

    async def resolve_outcome(
        self, identifier: str, current_user_id: Union[PersonId, str]
    ) -> ResolutionOutcome:
        """
        Resolve identifier for current_user_id.

        Raises:
            ConversationNotFoundError: nothing to resolve to, even after fallback
            SelfConversationForbiddenError: the person is the current user
            TransientNetworkError: the store failed (retry window exhausted)
        """
        current_user = (
            current_user_id
            if isinstance(current_user_id, PersonId)
            else PersonId(current_user_id)
        )
        classified = classify(identifier)

        if isinstance(classified, ConversationId):
            return await self._resolve_conversation_id(classified, current_user)
        return await self._resolve_person(classified, current_user)

    # ==================== CONVERSATION ID PATH ====================

    async def _resolve_conversation_id(
        self, conversation_id: ConversationId, current_user: PersonId
    ) -> ResolutionOutcome:
        conversation = await self._fetch_with_retry(conversation_id)
        if conversation is not None:
            logger.debug(f"[ThreadResolver] Found conversation {conversation_id.value}")
            return ResolutionOutcome(
                requested=conversation_id.value, conversation=conversation
            )

        if conversation_id.value == current_user.value:
            raise ConversationNotFoundError(conversation_id.value)

        # The id may really be a person id routed here because it is UUID-shaped
        logger.info(
            f"[ThreadResolver] Conversation {conversation_id.value} not found after retry, "
            "retrying as person id"
        )
        try:
            conversation, created = await self._find_or_create_direct(
                current_user, PersonId(conversation_id.value)
            )
        except EntityNotFoundError as e:
            raise ConversationNotFoundError(conversation_id.value) from e

        return ResolutionOutcome(
            requested=conversation_id.value,
            conversation=conversation,
            created=created,
            via_fallback=True,
        )

    async def _fetch_with_retry(
        self, conversation_id: ConversationId
    ) -> Optional[Conversation]:
        try:
            conversation = await self._fetch(conversation_id)
            if conversation is not None:
                return conversation
            logger.debug(
                f"[ThreadResolver] {conversation_id.value} not found, waiting "
                f"{self._retry_delay}s before retry"
            )
        except TransientNetworkError as e:
            logger.warning(
                f"[ThreadResolver] Fetch of {conversation_id.value} failed ({e}), retrying once"
            )

        await self._sleep(self._retry_delay)

        try:
            return await self._fetch(conversation_id)
        except TransientNetworkError as e:
            logger.error(
                f"[ThreadResolver] Fetch of {conversation_id.value} failed after retry: {e}"
            )
            raise TransientNetworkError(
                f"Failed to fetch conversation {conversation_id.value}"
            ) from e

    async def _fetch(self, conversation_id: ConversationId) -> Optional[Conversation]:
        try:
            return await self._conversation_repository.get_by_id(conversation_id)
        except AccessDeniedError:
            # A thread the user cannot see is not a thread for this user
            return None
        except TransientNetworkError:
            raise
        except Exception as e:
            raise TransientNetworkError(str(e) or type(e).__name__) from e

    # ==================== PERSON ID PATH ====================

    async def _resolve_person(
        self, person_id: PersonId, current_user: PersonId
    ) -> ResolutionOutcome:
        try:
            conversation, created = await self._find_or_create_direct(
                current_user, person_id
            )
        except EntityNotFoundError as e:
            raise ConversationNotFoundError(person_id.value) from e

        return ResolutionOutcome(
            requested=person_id.value, conversation=conversation, created=created
        )

    async def _find_or_create_direct(
        self, current_user: PersonId, person_id: PersonId
    ) -> tuple[Conversation, bool]:
        if person_id == current_user:
            raise SelfConversationForbiddenError(person_id.value)

        async with self._pair_locks.hold(current_user, person_id):
            try:
                conversations = await self._conversation_repository.get_by_user(
                    current_user
                )
            except TransientNetworkError:
                raise
            except Exception as e:
                raise TransientNetworkError(str(e) or type(e).__name__) from e

            existing = find_direct_conversation(conversations, current_user, person_id)
            if existing is not None:
                logger.debug(
                    f"[ThreadResolver] Reusing direct thread {existing.id.value} "
                    f"with {person_id.value}"
                )
                return existing, False

            try:
                conversation, inserted = await self._conversation_repository.create(
                    participant_ids=[current_user, person_id], created_by=current_user
                )
            except (EntityNotFoundError, DomainValidationError, TransientNetworkError):
                raise
            except Exception as e:
                raise TransientNetworkError(str(e) or type(e).__name__) from e

        if not inserted:
            logger.info(
                f"[ThreadResolver] Store already had thread {conversation.id.value} "
                f"for {current_user.value} and {person_id.value}"
            )
            return conversation, False

        logger.info(
            f"[ThreadResolver] Created direct thread {conversation.id.value} "
            f"for {current_user.value} and {person_id.value}"
        )
        return conversation, True
