import asyncio
from datetime import datetime, timezone

import pytest

from dm_threads.application.services.navigation import NavigationHistory
from dm_threads.application.services.thread_events import (
    LastMessageUpdated,
    RefreshThreads,
    ThreadCreated,
    ThreadEventBus,
    ThreadIdChanged,
    event_from_dict,
    event_to_dict,
)
from dm_threads.application.services.thread_resolver import ResolutionOutcome
from dm_threads.application.services.thread_sync import ThreadSynchronizer
from dm_threads.domain.entities.message import Message
from dm_threads.domain.value_objects.message_summary import MessageSummary
from dm_threads.domain.value_objects.person_id import PersonId

from fakes import make_conversation

ALICE = "profile-alice"
BOB = "profile-bob"


class Recorder:
    def __init__(self, bus, *event_types):
        self.events = []
        for event_type in event_types:
            bus.subscribe(event_type, self.events.append)

    @property
    def kinds(self):
        return [e.kind for e in self.events]


ALL_EVENTS = (ThreadCreated, ThreadIdChanged, LastMessageUpdated, RefreshThreads)


# ==================== BUS ====================


def test_publish_reaches_every_subscriber_of_that_type():
    bus = ThreadEventBus()
    first = Recorder(bus, ThreadCreated)
    second = Recorder(bus, ThreadCreated)
    other = Recorder(bus, RefreshThreads)

    delivered = bus.publish(ThreadCreated(conversation_id="c1"))

    assert delivered == 2
    assert first.kinds == ["thread-created"]
    assert second.kinds == ["thread-created"]
    assert other.events == []


def test_unsubscribed_handler_misses_later_events():
    bus = ThreadEventBus()
    seen = []
    unsubscribe = bus.subscribe(RefreshThreads, seen.append)

    bus.publish(RefreshThreads())
    unsubscribe()
    bus.publish(RefreshThreads())

    assert len(seen) == 1
    assert bus.subscriber_count(RefreshThreads) == 0


def test_failing_handler_does_not_stop_delivery(caplog):
    bus = ThreadEventBus()
    seen = []

    def broken(event):
        raise RuntimeError("boom")

    bus.subscribe(RefreshThreads, broken)
    bus.subscribe(RefreshThreads, seen.append)

    delivered = bus.publish(RefreshThreads())

    assert delivered == 1
    assert len(seen) == 1
    assert "Handler failed for refresh-threads" in caplog.text


def test_handler_may_unsubscribe_during_delivery():
    bus = ThreadEventBus()
    seen = []

    def once(event):
        seen.append(event)
        unsubscribe()

    unsubscribe = bus.subscribe(RefreshThreads, once)
    bus.subscribe(RefreshThreads, seen.append)

    assert bus.publish(RefreshThreads()) == 2
    assert bus.publish(RefreshThreads()) == 1


def test_unknown_event_type_is_rejected():
    with pytest.raises(ValueError):
        ThreadEventBus().subscribe(dict, print)


@pytest.mark.asyncio
async def test_coroutine_handlers_are_scheduled():
    bus = ThreadEventBus()
    seen = []

    async def handler(event):
        await asyncio.sleep(0)
        seen.append(event.new_id)

    bus.subscribe(ThreadIdChanged, handler)
    bus.publish(ThreadIdChanged(old_id="a", new_id="b"))
    assert seen == []

    await bus.drain()
    assert seen == ["b"]


def test_events_round_trip_through_dicts():
    conversation = make_conversation(ALICE, BOB)
    summary = MessageSummary(
        text="hello", created_at=datetime(2025, 1, 2, tzinfo=timezone.utc), sender_id=ALICE
    )

    created = event_from_dict(
        event_to_dict(ThreadCreated(conversation.id.value, conversation))
    )
    updated = event_from_dict(event_to_dict(LastMessageUpdated("c1", summary)))

    assert created.conversation.id == conversation.id
    assert created.conversation.participant_ids == conversation.participant_ids
    assert updated.summary == summary
    assert event_from_dict({"kind": "refresh-threads"}) == RefreshThreads()
    with pytest.raises(ValueError):
        event_from_dict({"kind": "typing"})


# ==================== SYNCHRONIZER ====================


def test_created_thread_is_broadcast_and_mirrored_into_history():
    bus = ThreadEventBus()
    recorder = Recorder(bus, *ALL_EVENTS)
    history = NavigationHistory("/messages")
    history.push(f"/messages/{BOB}")
    conversation = make_conversation(ALICE, BOB)

    ThreadSynchronizer(bus, history).apply_outcome(
        ResolutionOutcome(requested=BOB, conversation=conversation, created=True)
    )

    assert recorder.kinds == ["thread-created", "thread-id-changed"]
    assert recorder.events[0].conversation_id == conversation.id.value
    assert recorder.events[1] == ThreadIdChanged(old_id=BOB, new_id=conversation.id.value)
    # Rewritten in place, no new entry
    assert history.entries == ["/messages", f"/messages/{conversation.id.value}"]


def test_fallback_creation_also_requests_refresh():
    bus = ThreadEventBus()
    recorder = Recorder(bus, *ALL_EVENTS)
    conversation = make_conversation(ALICE, BOB)

    ThreadSynchronizer(bus).apply_outcome(
        ResolutionOutcome(
            requested="7c9e6679-7425-40de-944b-e07fc1f90ae7",
            conversation=conversation,
            created=True,
            via_fallback=True,
        )
    )

    assert recorder.kinds == ["thread-created", "refresh-threads", "thread-id-changed"]


def test_found_by_id_emits_nothing():
    bus = ThreadEventBus()
    recorder = Recorder(bus, *ALL_EVENTS)
    conversation = make_conversation(ALICE, BOB)
    history = NavigationHistory(f"/messages/{conversation.id.value}")

    ThreadSynchronizer(bus, history).apply_outcome(
        ResolutionOutcome(requested=conversation.id.value, conversation=conversation)
    )

    assert recorder.events == []
    assert history.entries == [f"/messages/{conversation.id.value}"]


def test_existing_pair_reached_by_person_id_changes_id_only():
    bus = ThreadEventBus()
    recorder = Recorder(bus, *ALL_EVENTS)
    conversation = make_conversation(ALICE, BOB)

    ThreadSynchronizer(bus).apply_outcome(
        ResolutionOutcome(requested=BOB, conversation=conversation, created=False)
    )

    assert recorder.kinds == ["thread-id-changed"]


def test_history_is_rewritten_before_listeners_run():
    bus = ThreadEventBus()
    history = NavigationHistory(f"/messages/{BOB}")
    conversation = make_conversation(ALICE, BOB)
    seen_paths = []
    bus.subscribe(ThreadCreated, lambda event: seen_paths.append(history.current_path))

    ThreadSynchronizer(bus, history).apply_outcome(
        ResolutionOutcome(requested=BOB, conversation=conversation, created=True)
    )

    assert seen_paths == [f"/messages/{conversation.id.value}"]


def test_announce_last_message():
    bus = ThreadEventBus()
    recorder = Recorder(bus, LastMessageUpdated)
    conversation = make_conversation(ALICE, BOB)
    message = Message.create(conversation.id, PersonId(ALICE), "hi there")

    ThreadSynchronizer(bus).announce_last_message(message)

    (event,) = recorder.events
    assert event.conversation_id == conversation.id.value
    assert event.summary.text == "hi there"
    assert event.summary.sender_id == ALICE


def test_request_refresh():
    bus = ThreadEventBus()
    recorder = Recorder(bus, RefreshThreads)

    assert ThreadSynchronizer(bus).request_refresh() == 1
    assert recorder.kinds == ["refresh-threads"]
