"""
Messaging surfaces - the thread list, the active thread pane and the page
that wires them to navigation history.

Surfaces never call each other. They react to ThreadEventBus events, and
the page only forwards user intents (select, back to list, back/forward).
Every surface checks its liveness after each await; once unmounted or torn
down, late completions are dropped without touching state.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import replace
from typing import Any, Callable, Optional, Union

from dm_threads.application.commands.chat.send_message import (
    SendMessageCommand,
    SendMessageHandler,
)
from dm_threads.application.queries.chat.get_messages import (
    GetMessagesHandler,
    GetMessagesQuery,
)
from dm_threads.application.queries.conversations.get_conversation import (
    GetConversationHandler,
    GetConversationQuery,
)
from dm_threads.application.queries.conversations.list_conversations import (
    ListConversationsHandler,
    ListConversationsQuery,
)
from dm_threads.application.services.localization import localized_error
from dm_threads.application.services.navigation import (
    NavigationHistory,
    conversation_path,
    parse_conversation_identifier,
)
from dm_threads.application.services.resolution_guard import ResolutionGuard
from dm_threads.application.services.thread_events import (
    LastMessageUpdated,
    RefreshThreads,
    ThreadCreated,
    ThreadEventBus,
    ThreadIdChanged,
    invoke_listener,
)
from dm_threads.application.services.thread_resolver import ThreadResolver
from dm_threads.application.services.thread_sync import ThreadSynchronizer
from dm_threads.config.settings import Config
from dm_threads.domain.entities.conversation import Conversation
from dm_threads.domain.entities.message import Message, MessageType
from dm_threads.domain.services import classify
from dm_threads.domain.value_objects.conversation_id import ConversationId
from dm_threads.domain.value_objects.person_id import PersonId

logger = logging.getLogger(__name__)


def _as_person(value: Union[PersonId, str]) -> PersonId:
    return value if isinstance(value, PersonId) else PersonId(value)


class _TaskSet:
    """Keeps scheduled callback tasks alive until they finish."""

    def __init__(self):
        self._tasks: set[asyncio.Task] = set()

    def track(self, task: Optional[asyncio.Task]) -> Optional[asyncio.Task]:
        if task is not None:
            self._tasks.add(task)
            task.add_done_callback(self._tasks.discard)
        return task

    async def drain(self) -> None:
        while True:
            pending = [t for t in self._tasks if not t.done()]
            if not pending:
                return
            await asyncio.gather(*pending, return_exceptions=True)


# ==================== THREAD LIST ====================


class ThreadListSurface:
    def __init__(
        self,
        current_user_id: Union[PersonId, str],
        list_handler: ListConversationsHandler,
        bus: ThreadEventBus,
        on_select: Optional[Callable[[str], Any]] = None,
        locale: Optional[str] = None,
    ):
        self._current_user_id = _as_person(current_user_id)
        self._list_handler = list_handler
        self._bus = bus
        self.on_select = on_select
        self._locale = locale

        self.threads: list[Conversation] = []
        self.selected_id: Optional[str] = None
        self.is_loading = False
        self.error: Optional[str] = None

        self._mounted = False
        self._generation = 0
        self._unsubscribers: list[Callable[[], None]] = []
        self._tasks = _TaskSet()

    @property
    def is_mounted(self) -> bool:
        return self._mounted

    def mount(self) -> None:
        if self._mounted:
            return
        self._mounted = True
        self._unsubscribers = [
            self._bus.subscribe(ThreadCreated, self._on_thread_created),
            self._bus.subscribe(LastMessageUpdated, self._on_last_message_updated),
            self._bus.subscribe(RefreshThreads, self._on_refresh),
            self._bus.subscribe(ThreadIdChanged, self._on_thread_id_changed),
        ]

    def unmount(self) -> None:
        self._mounted = False
        for unsubscribe in self._unsubscribers:
            unsubscribe()
        self._unsubscribers = []

    async def load(self) -> None:
        """Fetch the full thread list. Only the latest load is applied."""
        if not self._mounted:
            return
        self._generation += 1
        generation = self._generation
        self.is_loading = True

        try:
            threads = await self._list_handler.execute(
                ListConversationsQuery(person_id=self._current_user_id)
            )
        except Exception as e:
            if not self._is_current(generation):
                return
            logger.error(f"[ThreadListSurface] Failed to load threads: {e}")
            self.error = localized_error(e, self._locale, "threads_fetch_failed")
            self.is_loading = False
            return

        if not self._is_current(generation):
            logger.debug("[ThreadListSurface] Dropping stale thread list")
            return
        self.threads = list(threads)
        self.error = None
        self.is_loading = False

    def _is_current(self, generation: int) -> bool:
        return self._mounted and generation == self._generation

    def select(self, conversation_id: str) -> Optional[asyncio.Task]:
        self.selected_id = conversation_id
        if self.on_select is None:
            return None
        return self._tasks.track(invoke_listener(self.on_select, conversation_id))

    def find(self, conversation_id: str) -> Optional[Conversation]:
        return next((t for t in self.threads if t.id.value == conversation_id), None)

    async def drain(self) -> None:
        await self._tasks.drain()

    # ==================== EVENT HANDLERS ====================

    def _on_thread_created(self, event: ThreadCreated):
        if not self._mounted:
            return None
        if self.find(event.conversation_id) is not None:
            return None
        conversation = event.conversation
        if conversation is None:
            return self.load()
        if not conversation.has_participant(self._current_user_id):
            # Relayed from a pair this user is not part of
            return None
        self.threads.insert(0, replace(conversation))
        logger.debug(f"[ThreadListSurface] Inserted thread {event.conversation_id}")
        return None

    def _on_last_message_updated(self, event: LastMessageUpdated):
        if not self._mounted:
            return None
        conversation = self.find(event.conversation_id)
        if conversation is None:
            # A thread this list has not seen yet
            return self.load()
        conversation.update_last_message(event.summary)
        self.threads.remove(conversation)
        self.threads.insert(0, conversation)
        return None

    def _on_refresh(self, event: RefreshThreads):
        if not self._mounted:
            return None
        return self.load()

    def _on_thread_id_changed(self, event: ThreadIdChanged) -> None:
        if self._mounted and self.selected_id == event.old_id:
            self.selected_id = event.new_id


# ==================== ACTIVE THREAD ====================


class ActiveThreadSurface:
    def __init__(
        self,
        current_user_id: Union[PersonId, str],
        resolver: ThreadResolver,
        synchronizer: ThreadSynchronizer,
        conversation_handler: GetConversationHandler,
        messages_handler: GetMessagesHandler,
        send_handler: SendMessageHandler,
        locale: Optional[str] = None,
        on_back: Optional[Callable[[], Any]] = None,
    ):
        self._current_user_id = _as_person(current_user_id)
        self._synchronizer = synchronizer
        self._bus = synchronizer.bus
        self._conversation_handler = conversation_handler
        self._messages_handler = messages_handler
        self._send_handler = send_handler
        self._locale = locale
        self.on_back = on_back

        self._guard = ResolutionGuard(
            resolver, self._current_user_id, on_resolved=synchronizer.apply_outcome
        )

        self.conversation: Optional[Conversation] = None
        self.messages: list[Message] = []
        self.is_loading = False
        self.error: Optional[str] = None

        self._view_generation = 0
        self._unsubscribers: list[Callable[[], None]] = []
        self._tasks = _TaskSet()

    @property
    def guard(self) -> ResolutionGuard:
        return self._guard

    @property
    def is_mounted(self) -> bool:
        return self._guard.is_mounted

    @property
    def conversation_id(self) -> Optional[str]:
        return self.conversation.id.value if self.conversation else None

    def mount(self) -> None:
        if self._unsubscribers or not self.is_mounted:
            return
        self._unsubscribers = [
            self._bus.subscribe(ThreadCreated, self._on_thread_created),
            self._bus.subscribe(ThreadIdChanged, self._on_thread_id_changed),
        ]

    def teardown(self) -> None:
        self._guard.teardown()
        for unsubscribe in self._unsubscribers:
            unsubscribe()
        self._unsubscribers = []

    async def open(self, identifier: str) -> Optional[Conversation]:
        """
        Resolve identifier and show the resulting thread.

        A call that arrives while another resolution is in flight only records
        the identifier; the in-flight call picks it up when it settles.
        """
        current: Optional[str] = identifier
        while current:
            if self._guard.state.is_resolving:
                # Recorded as the latest request; the in-flight call picks it up
                await self._guard.resolve(current)
                return None

            self.is_loading = True
            self.error = None
            try:
                outcome = await self._guard.resolve(current)
            except Exception as e:
                if not self.is_mounted:
                    return None
                self._show_error(localized_error(e, self._locale))
                current = self._guard.pending_identifier
                continue

            if not self.is_mounted:
                return None
            if outcome is not None:
                await self._show(outcome.conversation, fetch_messages=not outcome.created)
            current = self._guard.pending_identifier

        if self.is_mounted and not self._guard.state.is_resolving:
            self.is_loading = False
        return self.conversation

    async def adopt(self, conversation: Union[Conversation, str]) -> Optional[Conversation]:
        """Show an already-canonical conversation without running resolution."""
        if not self.is_mounted:
            return None
        conversation_id = (
            conversation.id.value if isinstance(conversation, Conversation) else conversation
        )
        self._guard.mark_processed(conversation_id)

        if not isinstance(conversation, Conversation):
            self.is_loading = True
            generation = self._next_view()
            try:
                conversation = await self._conversation_handler.execute(
                    GetConversationQuery(
                        conversation_id=ConversationId(conversation_id),
                        person_id=self._current_user_id,
                    )
                )
            except Exception as e:
                if self._is_current_view(generation):
                    logger.warning(f"[ActiveThreadSurface] Adopting {conversation_id} failed: {e}")
                    self._show_error(localized_error(e, self._locale))
                return None
            if not self._is_current_view(generation):
                return None

        self.is_loading = True
        await self._show(conversation)
        if self.is_mounted and not self._guard.state.is_resolving:
            self.is_loading = False
        return self.conversation

    async def send_message(
        self, text: Optional[str], type: MessageType = MessageType.TEXT
    ) -> Optional[Message]:
        if self.conversation is None or not self.is_mounted:
            return None
        conversation = self.conversation
        try:
            message = await self._send_handler.execute(
                SendMessageCommand(
                    conversation_id=conversation.id,
                    sender_id=self._current_user_id,
                    text=text,
                    type=type,
                )
            )
        except Exception as e:
            if self.is_mounted:
                logger.error(f"[ActiveThreadSurface] Send failed: {e}")
                self.error = localized_error(e, self._locale, "send_failed")
            return None

        if not self.is_mounted:
            return message
        if self.conversation is conversation:
            self.messages.append(message)
            conversation.update_last_message(message.summary())
        self._synchronizer.announce_last_message(message)
        return message

    def back(self) -> None:
        """Leave the active thread and return to the list."""
        self.clear()
        if self.on_back is not None:
            self._tasks.track(invoke_listener(self.on_back))

    def clear(self) -> None:
        if not self.is_mounted:
            return
        self._next_view()
        self._guard.reset()
        self.conversation = None
        self.messages = []
        self.error = None
        self.is_loading = False

    async def drain(self) -> None:
        await self._tasks.drain()

    # ==================== INTERNALS ====================

    def _next_view(self) -> int:
        self._view_generation += 1
        return self._view_generation

    def _is_current_view(self, generation: int) -> bool:
        return self.is_mounted and generation == self._view_generation

    async def _show(self, conversation: Conversation, fetch_messages: bool = True) -> None:
        generation = self._next_view()
        self.conversation = conversation
        self.messages = []
        self.error = None
        if not fetch_messages:
            return

        try:
            messages = await self._messages_handler.execute(
                GetMessagesQuery(
                    conversation_id=conversation.id, person_id=self._current_user_id
                )
            )
        except Exception as e:
            if self._is_current_view(generation):
                logger.error(
                    f"[ActiveThreadSurface] Failed to load messages for {conversation.id.value}: {e}"
                )
                self.error = localized_error(e, self._locale, "messages_fetch_failed")
            return

        if self._is_current_view(generation):
            self.messages = list(messages)

    def _show_error(self, message: str) -> None:
        self._next_view()
        self.conversation = None
        self.messages = []
        self.error = message
        self.is_loading = False

    def _waiting_for_person(self) -> Optional[PersonId]:
        """The person id this pane is still resolving, if any."""
        requested = self._guard.state.requested_identifier
        if not requested or self.conversation_id == requested:
            return None
        classified = classify(requested)
        return classified if isinstance(classified, PersonId) else None

    def _on_thread_created(self, event: ThreadCreated):
        if not self.is_mounted or event.conversation is None:
            return None
        if event.conversation_id in (
            self.conversation_id,
            self._guard.state.resolved_conversation_id,
        ):
            return None
        person = self._waiting_for_person()
        if person is None or not event.conversation.is_direct_between(
            self._current_user_id, person
        ):
            return None
        logger.debug(f"[ActiveThreadSurface] Adopting created thread {event.conversation_id}")
        return self.adopt(event.conversation)

    def _on_thread_id_changed(self, event: ThreadIdChanged):
        if not self.is_mounted or event.new_id == self.conversation_id:
            return None
        state = self._guard.state
        if event.old_id not in (state.requested_identifier, self.conversation_id):
            return None
        logger.debug(
            f"[ActiveThreadSurface] Following id change {event.old_id} → {event.new_id}"
        )
        return self.adopt(event.new_id)


# ==================== PAGE ====================


class MessagingPage:
    """
    The /messages page: thread list, active pane and browser history.

    - selecting a thread pushes /messages/{id} and adopts it without resolution
    - going back to the list replaces the entry with /messages
    - back/forward re-enters resolution with the historical identifier
    """

    def __init__(
        self,
        list_surface: ThreadListSurface,
        active_surface: ActiveThreadSurface,
        history: NavigationHistory,
        prefix: str = Config.MESSAGES_PATH_PREFIX,
    ):
        self.list_surface = list_surface
        self.active_surface = active_surface
        self.history = history
        self._prefix = prefix

        list_surface.on_select = self.select
        active_surface.on_back = self._on_active_back
        self._stop_listening: Optional[Callable[[], None]] = None

    async def start(self) -> None:
        self.list_surface.mount()
        self.active_surface.mount()
        self._stop_listening = self.history.on_navigate(self._on_navigate)

        await self.list_surface.load()
        identifier = self.history.current_conversation_identifier
        if identifier:
            await self.active_surface.open(identifier)

    def stop(self) -> None:
        if self._stop_listening is not None:
            self._stop_listening()
            self._stop_listening = None
        self.list_surface.unmount()
        self.active_surface.teardown()

    async def select(self, conversation_id: str) -> Optional[Conversation]:
        self.list_surface.selected_id = conversation_id
        self.history.push(conversation_path(conversation_id, self._prefix))
        known = self.list_surface.find(conversation_id)
        return await self.active_surface.adopt(known or conversation_id)

    def back_to_list(self) -> None:
        self.active_surface.back()

    def _on_active_back(self) -> None:
        self.list_surface.selected_id = None
        self.history.replace(conversation_path(None, self._prefix))

    def _on_navigate(self, path: str):
        identifier = parse_conversation_identifier(path, self._prefix)
        logger.debug(f"[MessagingPage] History moved to {path}")
        if not identifier:
            self.list_surface.selected_id = None
            self.active_surface.clear()
            return None
        self.list_surface.selected_id = identifier
        return self.active_surface.open(identifier)
