import pytest

from pagesnap.capture.cleanup import CleanupRegistry
from pagesnap.capture.context_tracker import (
    CONTEXT_CREATED_EVENT,
    CONTEXT_DESTROYED_EVENT,
    ContextResolver,
    ExecutionContextTracker,
    make_engine_probe,
)
from pagesnap.capture.errors import NoContextFound
from pagesnap.capture.protocol import ProtocolSession


def test_tracker_keeps_live_ids_in_observation_order():
    tracker = ExecutionContextTracker()
    for context_id in (7, 3, 9):
        tracker.record_created(context_id)
    tracker.record_destroyed(3)
    tracker.record_created(4)

    assert tracker.snapshot() == [7, 9, 4]
    assert len(tracker) == 3


def test_tracker_ignores_unknown_destruction():
    tracker = ExecutionContextTracker()
    tracker.record_created(1)
    tracker.record_destroyed(42)
    assert tracker.snapshot() == [1]


@pytest.mark.asyncio
async def test_tracker_follows_protocol_events_until_detached(make_session):
    fake = make_session()
    session = ProtocolSession(fake)
    registry = CleanupRegistry(session)
    tracker = ExecutionContextTracker()

    tracker.attach(session, registry)
    assert registry.pending == 2

    fake._emit(CONTEXT_CREATED_EVENT, {"context": {"id": 11}})
    fake._emit(CONTEXT_CREATED_EVENT, {"context": {"id": 12}})
    fake._emit(CONTEXT_DESTROYED_EVENT, {"executionContextId": 11})
    assert tracker.snapshot() == [12]

    await tracker.detach()
    assert registry.pending == 0
    assert CONTEXT_CREATED_EVENT not in fake.listeners

    fake._emit(CONTEXT_CREATED_EVENT, {"context": {"id": 13}})
    assert tracker.snapshot() == [12]


@pytest.mark.asyncio
async def test_resolver_returns_first_passing_candidate_and_caches():
    probed = []

    async def probe(context_id):
        probed.append(context_id)
        return context_id in (5, 6)

    resolver = ContextResolver(probe)
    assert await resolver.resolve([4, 5, 6]) == 5
    assert probed == [4, 5]

    assert await resolver.resolve([6]) == 5
    assert probed == [4, 5]
    assert resolver.context_id == 5


@pytest.mark.asyncio
async def test_resolver_caches_context_zero():
    async def probe(context_id):
        return True

    resolver = ContextResolver(probe)
    assert await resolver.resolve([0]) == 0
    assert await resolver.resolve([]) == 0


@pytest.mark.asyncio
async def test_resolver_raises_when_no_candidate_passes():
    async def probe(context_id):
        return False

    with pytest.raises(NoContextFound) as excinfo:
        await ContextResolver(probe).resolve([1, 2])
    assert excinfo.value.candidates == [1, 2]

    with pytest.raises(NoContextFound):
        await ContextResolver(probe).resolve([])


@pytest.mark.asyncio
async def test_engine_probe_treats_failures_as_negative(make_session):
    fake = make_session(frames=3, engine_frame=2, dead_frames=[0])
    fake.runtime_enabled = True
    session = ProtocolSession(fake)
    fake._Page_addScriptToEvaluateOnNewDocument({"source": "", "worldName": "singlefile", "runImmediately": True})
    main_id, dead_id, plain_id, engine_id = fake.live_contexts

    probe = make_engine_probe(session)

    assert await probe(main_id) is False
    assert await probe(dead_id) is False
    assert await probe(plain_id) is False
    assert await probe(engine_id) is True
