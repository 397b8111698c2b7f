import asyncio

import pytest

from dm_threads.application.services.thread_events import ThreadCreated, ThreadEventBus
from dm_threads.application.services.thread_resolver import PairLocks, ThreadResolver
from dm_threads.application.services.thread_sync import ThreadSynchronizer
from dm_threads.domain.exceptions import (
    AccessDeniedError,
    ConversationNotFoundError,
    SelfConversationForbiddenError,
    TransientNetworkError,
)
from dm_threads.domain.value_objects.person_id import PersonId

from fakes import InMemoryConversationRepository, T0, make_conversation

ALICE = "profile-alice"
BOB = "profile-bob"
# A person whose profile id happens to be UUID-shaped
UUID_PERSON = "7c9e6679-7425-40de-944b-e07fc1f90ae7"
MISSING_THREAD = "9b2d4f5e-1111-4c3d-8e9f-0a1b2c3d4e5f"


@pytest.fixture()
def sleeps():
    return []


@pytest.fixture()
def resolver(conversation_repository, sleeps):
    async def fake_sleep(delay):
        sleeps.append(delay)

    return ThreadResolver(
        conversation_repository,
        retry_delay=0.2,
        pair_locks=PairLocks(),
        sleep=fake_sleep,
    )


# ==================== PERSON ID PATH ====================


@pytest.mark.asyncio
async def test_resolving_person_twice_is_idempotent(resolver, conversation_repository):
    first = await resolver.resolve(BOB, ALICE)
    second = await resolver.resolve(BOB, ALICE)

    assert first.id == second.id
    assert conversation_repository.create_calls == 1
    assert conversation_repository.count_between(ALICE, BOB) == 1


@pytest.mark.asyncio
async def test_person_resolution_creates_thread_with_both_participants(resolver):
    outcome = await resolver.resolve_outcome(BOB, ALICE)

    assert outcome.created is True
    assert outcome.via_fallback is False
    assert outcome.requested == BOB
    assert outcome.id_changed is True
    assert outcome.conversation.participant_ids == frozenset(
        {PersonId(ALICE), PersonId(BOB)}
    )
    assert outcome.conversation.created_by == PersonId(ALICE)


@pytest.mark.asyncio
async def test_existing_pair_is_reused_without_create(resolver, conversation_repository):
    existing = conversation_repository.add(make_conversation(BOB, ALICE))

    outcome = await resolver.resolve_outcome(BOB, ALICE)

    assert outcome.conversation.id == existing.id
    assert outcome.created is False
    assert conversation_repository.create_calls == 0


@pytest.mark.asyncio
async def test_group_thread_with_same_people_is_not_a_direct_match(
    resolver, conversation_repository
):
    group = make_conversation(ALICE, BOB)
    group.participant_ids = frozenset(
        {PersonId(ALICE), PersonId(BOB), PersonId("profile-carol")}
    )
    conversation_repository.add(group)

    outcome = await resolver.resolve_outcome(BOB, ALICE)

    assert outcome.created is True
    assert outcome.conversation.id != group.id


@pytest.mark.asyncio
async def test_oldest_duplicate_wins(resolver, conversation_repository):
    older = conversation_repository.add(make_conversation(ALICE, BOB, created_at=T0))
    conversation_repository.add(
        make_conversation(ALICE, BOB, created_at=T0.replace(year=2026))
    )

    conversation = await resolver.resolve(BOB, ALICE)

    assert conversation.id == older.id


@pytest.mark.asyncio
async def test_self_conversation_is_rejected_before_any_call(
    resolver, conversation_repository
):
    with pytest.raises(SelfConversationForbiddenError):
        await resolver.resolve(ALICE, ALICE)

    assert conversation_repository.get_by_user_calls == 0
    assert conversation_repository.create_calls == 0


@pytest.mark.asyncio
async def test_unknown_person_is_not_found(sleeps):
    repository = InMemoryConversationRepository(known_people={ALICE})
    resolver = ThreadResolver(repository, retry_delay=0.2, pair_locks=PairLocks())

    with pytest.raises(ConversationNotFoundError) as exc_info:
        await resolver.resolve(BOB, ALICE)

    assert exc_info.value.identifier == BOB


@pytest.mark.asyncio
async def test_store_failure_on_person_path_is_transient(
    resolver, conversation_repository
):
    conversation_repository.get_by_user_errors.append(RuntimeError("connection reset"))

    with pytest.raises(TransientNetworkError):
        await resolver.resolve(BOB, ALICE)

    assert conversation_repository.create_calls == 0


@pytest.mark.asyncio
async def test_create_failure_is_transient(resolver, conversation_repository):
    conversation_repository.create_errors.append(OSError("socket closed"))

    with pytest.raises(TransientNetworkError):
        await resolver.resolve(BOB, ALICE)


# ==================== CONCURRENCY ====================


@pytest.mark.asyncio
async def test_concurrent_resolutions_for_a_pair_create_once(conversation_repository):
    locks = PairLocks()
    from_alice = ThreadResolver(conversation_repository, pair_locks=locks)
    from_bob = ThreadResolver(conversation_repository, pair_locks=locks)

    results = await asyncio.gather(
        from_alice.resolve(BOB, ALICE),
        from_bob.resolve(ALICE, BOB),
        from_alice.resolve(BOB, ALICE),
    )

    assert len({c.id for c in results}) == 1
    assert conversation_repository.create_calls == 1
    assert len(locks) == 0


@pytest.mark.asyncio
async def test_store_keeps_pair_unique_across_processes(conversation_repository):
    # Separate lock tables behave like separate processes
    first = ThreadResolver(conversation_repository, pair_locks=PairLocks())
    second = ThreadResolver(conversation_repository, pair_locks=PairLocks())

    a, b = await asyncio.gather(first.resolve(BOB, ALICE), second.resolve(ALICE, BOB))

    assert a.id == b.id
    assert conversation_repository.count_between(ALICE, BOB) == 1


@pytest.mark.asyncio
async def test_losing_a_cross_process_create_race_is_not_a_creation(
    conversation_repository,
):
    first = ThreadResolver(conversation_repository, pair_locks=PairLocks())
    second = ThreadResolver(conversation_repository, pair_locks=PairLocks())
    bus = ThreadEventBus()
    created_events = []
    bus.subscribe(ThreadCreated, created_events.append)
    synchronizer = ThreadSynchronizer(bus)

    outcomes = await asyncio.gather(
        first.resolve_outcome(BOB, ALICE), second.resolve_outcome(ALICE, BOB)
    )
    for outcome in outcomes:
        synchronizer.apply_outcome(outcome)

    # Both resolvers reached the store; only one of them inserted
    assert conversation_repository.create_calls == 2
    assert [o.created for o in outcomes].count(True) == 1
    assert outcomes[0].canonical_id == outcomes[1].canonical_id
    assert [e.conversation_id for e in created_events] == [outcomes[0].canonical_id]


# ==================== CONVERSATION ID PATH ====================


@pytest.mark.asyncio
async def test_existing_conversation_id_passes_through(
    resolver, conversation_repository, sleeps
):
    existing = conversation_repository.add(make_conversation(ALICE, BOB))

    outcome = await resolver.resolve_outcome(existing.id.value, ALICE)

    assert outcome.conversation.id == existing.id
    assert outcome.created is False
    assert outcome.id_changed is False
    assert conversation_repository.get_by_id_calls == 1
    assert conversation_repository.get_by_user_calls == 0
    assert conversation_repository.create_calls == 0
    assert sleeps == []


@pytest.mark.asyncio
async def test_lazily_materialized_conversation_is_found_after_one_retry(
    resolver, conversation_repository, sleeps
):
    pending = make_conversation(ALICE, BOB)
    conversation_repository.materialize_later(pending, on_call=2)

    outcome = await resolver.resolve_outcome(pending.id.value, ALICE)

    assert outcome.conversation.id == pending.id
    assert outcome.via_fallback is False
    assert sleeps == [0.2]
    assert conversation_repository.get_by_id_calls == 2
    assert conversation_repository.create_calls == 0


@pytest.mark.asyncio
async def test_missing_conversation_id_falls_back_to_person(
    resolver, conversation_repository, sleeps
):
    outcome = await resolver.resolve_outcome(UUID_PERSON, ALICE)

    assert outcome.via_fallback is True
    assert outcome.created is True
    assert outcome.id_changed is True
    assert outcome.conversation.participant_ids == frozenset(
        {PersonId(ALICE), PersonId(UUID_PERSON)}
    )
    assert sleeps == [0.2]
    assert conversation_repository.get_by_id_calls == 2


@pytest.mark.asyncio
async def test_fallback_reuses_existing_pair(resolver, conversation_repository):
    existing = conversation_repository.add(make_conversation(ALICE, UUID_PERSON))

    outcome = await resolver.resolve_outcome(UUID_PERSON, ALICE)

    assert outcome.conversation.id == existing.id
    assert outcome.created is False
    assert outcome.via_fallback is True
    assert conversation_repository.create_calls == 0


@pytest.mark.asyncio
async def test_fallback_to_unknown_person_is_not_found():
    repository = InMemoryConversationRepository(known_people={ALICE})
    resolver = ThreadResolver(repository, retry_delay=0, pair_locks=PairLocks())

    with pytest.raises(ConversationNotFoundError) as exc_info:
        await resolver.resolve(MISSING_THREAD, ALICE)

    assert exc_info.value.identifier == MISSING_THREAD


@pytest.mark.asyncio
async def test_own_id_as_conversation_id_is_not_found(conversation_repository):
    resolver = ThreadResolver(conversation_repository, retry_delay=0, pair_locks=PairLocks())

    with pytest.raises(ConversationNotFoundError):
        await resolver.resolve(UUID_PERSON, UUID_PERSON)

    assert conversation_repository.create_calls == 0


@pytest.mark.asyncio
async def test_transient_failure_is_retried_once(resolver, conversation_repository, sleeps):
    existing = conversation_repository.add(make_conversation(ALICE, BOB))
    conversation_repository.get_by_id_errors.append(RuntimeError("timeout"))

    conversation = await resolver.resolve(existing.id.value, ALICE)

    assert conversation.id == existing.id
    assert sleeps == [0.2]


@pytest.mark.asyncio
async def test_second_transient_failure_is_terminal(
    resolver, conversation_repository, sleeps
):
    conversation_repository.get_by_id_errors.extend(
        [RuntimeError("timeout"), RuntimeError("timeout")]
    )

    with pytest.raises(TransientNetworkError):
        await resolver.resolve(MISSING_THREAD, ALICE)

    assert conversation_repository.get_by_id_calls == 2
    assert conversation_repository.create_calls == 0
    assert sleeps == [0.2]


@pytest.mark.asyncio
async def test_thread_the_user_cannot_see_counts_as_missing(
    resolver, conversation_repository
):
    conversation_repository.get_by_id_errors.extend(
        [AccessDeniedError(), AccessDeniedError()]
    )

    outcome = await resolver.resolve_outcome(UUID_PERSON, ALICE)

    assert outcome.via_fallback is True
