"""
Thread events - broadcast channel shared by the messaging surfaces.

Any component may publish, any component may subscribe. Delivery is
synchronous fan-out, at most once, with no persistence or replay: a surface
that is not subscribed when an event is published never sees it and catches
up on its next full refresh.

Handlers may be plain callables or coroutine functions. Coroutines are
scheduled on the running loop; the bus keeps a reference until they finish.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
from collections import defaultdict
from dataclasses import dataclass
from typing import Any, Callable, ClassVar, Optional, Union

from dm_threads.application.dto.conversation import (
    conversation_from_dto,
    conversation_to_dto,
    summary_from_dto,
    summary_to_dto,
    ConversationDTO,
    MessageSummaryDTO,
)
from dm_threads.domain.entities.conversation import Conversation
from dm_threads.domain.value_objects.message_summary import MessageSummary

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ThreadCreated:
    kind: ClassVar[str] = "thread-created"

    conversation_id: str
    conversation: Optional[Conversation] = None


@dataclass(frozen=True)
class ThreadIdChanged:
    kind: ClassVar[str] = "thread-id-changed"

    old_id: str
    new_id: str


@dataclass(frozen=True)
class LastMessageUpdated:
    kind: ClassVar[str] = "last-message-updated"

    conversation_id: str
    summary: MessageSummary


@dataclass(frozen=True)
class RefreshThreads:
    kind: ClassVar[str] = "refresh-threads"


ThreadEvent = Union[ThreadCreated, ThreadIdChanged, LastMessageUpdated, RefreshThreads]
EVENT_TYPES: dict[str, type] = {
    cls.kind: cls
    for cls in (ThreadCreated, ThreadIdChanged, LastMessageUpdated, RefreshThreads)
}

Handler = Callable[[Any], Any]


def invoke_listener(listener: Callable[..., Any], *args: Any) -> Optional[asyncio.Task]:
    """Call listener; if it returns an awaitable, schedule it on the running loop."""
    result = listener(*args)
    if inspect.isawaitable(result):
        return asyncio.ensure_future(result)
    return None


class ThreadEventBus:
    def __init__(self):
        self._handlers: dict[type, list[Handler]] = defaultdict(list)
        self._tasks: set[asyncio.Task] = set()

    def subscribe(self, event_type: type, handler: Handler) -> Callable[[], None]:
        """Register handler for event_type. Returns a callable that unsubscribes."""
        if event_type not in EVENT_TYPES.values():
            raise ValueError(f"Unknown thread event type: {event_type!r}")
        self._handlers[event_type].append(handler)

        def unsubscribe() -> None:
            self.unsubscribe(event_type, handler)

        return unsubscribe

    def unsubscribe(self, event_type: type, handler: Handler) -> None:
        handlers = self._handlers.get(event_type, [])
        if handler in handlers:
            handlers.remove(handler)

    def subscriber_count(self, event_type: type) -> int:
        return len(self._handlers.get(event_type, []))

    def publish(self, event: ThreadEvent) -> int:
        """Deliver event to current subscribers. Returns how many were reached."""
        # Snapshot so handlers may unsubscribe while being called
        handlers = list(self._handlers.get(type(event), []))
        logger.debug(f"[ThreadEventBus] {event.kind} → {len(handlers)} subscriber(s)")

        delivered = 0
        for handler in handlers:
            try:
                task = invoke_listener(handler, event)
            except Exception:
                logger.exception(f"[ThreadEventBus] Handler failed for {event.kind}")
                continue
            delivered += 1
            if task is not None:
                self._tasks.add(task)
                task.add_done_callback(self._on_task_done)
        return delivered

    def _on_task_done(self, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        if not task.cancelled() and task.exception() is not None:
            logger.error(
                "[ThreadEventBus] Async handler failed", exc_info=task.exception()
            )

    async def drain(self) -> None:
        """Wait for scheduled async handlers (including ones they schedule)."""
        while True:
            pending = [t for t in self._tasks if not t.done()]
            if not pending:
                return
            await asyncio.gather(*pending, return_exceptions=True)


# ==================== SERIALIZATION ====================


def event_to_dict(event: ThreadEvent) -> dict:
    data: dict[str, Any] = {"kind": event.kind}
    if isinstance(event, ThreadCreated):
        data["conversation_id"] = event.conversation_id
        data["conversation"] = (
            conversation_to_dto(event.conversation).model_dump(mode="json")
            if event.conversation
            else None
        )
    elif isinstance(event, ThreadIdChanged):
        data["old_id"] = event.old_id
        data["new_id"] = event.new_id
    elif isinstance(event, LastMessageUpdated):
        data["conversation_id"] = event.conversation_id
        data["summary"] = summary_to_dto(event.summary).model_dump(mode="json")
    return data


def event_from_dict(data: dict) -> ThreadEvent:
    kind = data.get("kind")
    if kind == ThreadCreated.kind:
        conversation = data.get("conversation")
        return ThreadCreated(
            conversation_id=data["conversation_id"],
            conversation=(
                conversation_from_dto(ConversationDTO.model_validate(conversation))
                if conversation
                else None
            ),
        )
    if kind == ThreadIdChanged.kind:
        return ThreadIdChanged(old_id=data["old_id"], new_id=data["new_id"])
    if kind == LastMessageUpdated.kind:
        return LastMessageUpdated(
            conversation_id=data["conversation_id"],
            summary=summary_from_dto(MessageSummaryDTO.model_validate(data["summary"])),
        )
    if kind == RefreshThreads.kind:
        return RefreshThreads()
    raise ValueError(f"Unknown thread event kind: {kind!r}")
