import asyncio

import pytest

from fishing_map.engine.loader import EngineLoader, EngineLoadState

from fakes import FakeTransport, SleepRecorder


def make_loader(transport, sleep=None):
    return EngineLoader(transport, state=EngineLoadState(), settle_ms=100, sleep=sleep or SleepRecorder())


@pytest.mark.asyncio
async def test_loads_on_first_attempt():
    transport = FakeTransport()
    loader = make_loader(transport)

    status = await loader.ensure_loaded("key")

    assert status.state == "ready"
    assert status.attempts == 1
    assert loader.surface is transport.provider
    assert transport.loads == 1


@pytest.mark.asyncio
async def test_two_failures_then_success():
    sleep = SleepRecorder()
    transport = FakeTransport(failures=2)
    loader = make_loader(transport, sleep)

    status = await loader.ensure_loaded("key", max_retries=3, retry_delay_ms=2000)

    assert status.state == "ready"
    assert status.attempts == 3
    assert transport.loads == 3
    assert sleep.calls.count(2.0) == 2


@pytest.mark.asyncio
async def test_permanent_failure_exhausts_retries():
    sleep = SleepRecorder()
    transport = FakeTransport(failures=100)
    loader = make_loader(transport, sleep)

    status = await loader.ensure_loaded("key", max_retries=3, retry_delay_ms=2000)

    assert status.state == "failed"
    assert status.reason == "exhausted_retries"
    assert status.attempts == 3
    assert transport.loads == 3
    assert sleep.calls.count(2.0) == 2
    assert "3 attempts" in status.message

    # terminal: no further attempts until reset
    again = await loader.ensure_loaded("key", max_retries=3, retry_delay_ms=2000)
    assert again.state == "failed"
    assert transport.loads == 3


@pytest.mark.asyncio
async def test_missing_credentials_fail_without_an_attempt():
    sleep = SleepRecorder()
    transport = FakeTransport()
    loader = make_loader(transport, sleep)

    status = await loader.ensure_loaded(None)

    assert status.state == "failed"
    assert status.reason == "missing_credentials"
    assert status.attempts == 0
    assert transport.loads == 0
    assert sleep.calls == []


@pytest.mark.asyncio
async def test_detached_surface_after_settle_counts_as_failure():
    sleep = SleepRecorder()
    transport = FakeTransport(attach=False)
    loader = make_loader(transport, sleep)

    status = await loader.ensure_loaded("key", max_retries=2, retry_delay_ms=500)

    assert status.state == "failed"
    assert status.reason == "exhausted_retries"
    assert transport.loads == 2
    assert sleep.calls.count(0.1) == 2  # settle delay after each load signal
    assert sleep.calls.count(0.5) == 1


@pytest.mark.asyncio
async def test_already_loaded_engine_is_ready_immediately():
    transport = FakeTransport()
    transport._surface = transport.provider
    loader = make_loader(transport)

    status = await loader.ensure_loaded("key")

    assert status.state == "ready"
    assert transport.loads == 0


@pytest.mark.asyncio
async def test_concurrent_callers_share_one_load():
    gate = asyncio.Event()
    transport = FakeTransport(gate=gate)
    state = EngineLoadState()
    a = EngineLoader(transport, state=state, sleep=SleepRecorder())
    b = EngineLoader(transport, state=state, sleep=SleepRecorder())

    first = asyncio.create_task(a.ensure_loaded("key"))
    await asyncio.sleep(0)
    assert state.in_flight
    second = asyncio.create_task(b.ensure_loaded("key"))
    await asyncio.sleep(0)
    gate.set()

    s1, s2 = await asyncio.gather(first, second)

    assert s1.state == s2.state == "ready"
    assert transport.loads == 1
    assert b.surface is transport.provider


@pytest.mark.asyncio
async def test_waiter_takes_over_when_the_owning_load_is_cancelled():
    gate = asyncio.Event()
    transport = FakeTransport(gate=gate)
    state = EngineLoadState()
    owner = EngineLoader(transport, state=state, sleep=SleepRecorder())
    other = EngineLoader(transport, state=state, sleep=SleepRecorder())

    first = asyncio.create_task(owner.ensure_loaded("key"))
    await asyncio.sleep(0)
    second = asyncio.create_task(other.ensure_loaded("key"))
    await asyncio.sleep(0)
    first.cancel()
    with pytest.raises(asyncio.CancelledError):
        await first

    gate.set()
    status = await second

    assert status.state == "ready"
    assert transport.loads == 2
    assert other.surface is transport.provider


@pytest.mark.asyncio
async def test_loading_marker_without_future_falls_back_to_polling():
    state = EngineLoadState()
    state.status = state.status.model_copy(update={"state": "loading"})
    sleep = SleepRecorder()
    loader = EngineLoader(FakeTransport(), state=state, poll_ms=100, sleep=sleep)

    async def finish_later():
        while len(sleep.calls) < 3:
            await asyncio.sleep(0)
        state.status = state.status.model_copy(update={"state": "ready"})

    helper = asyncio.create_task(finish_later())
    status = await loader.ensure_loaded("key")
    await helper

    assert status.state == "ready"
    assert all(s == pytest.approx(0.1) for s in sleep.calls)


@pytest.mark.asyncio
async def test_reset_allows_a_fresh_load():
    transport = FakeTransport(failures=3)
    loader = make_loader(transport)

    assert (await loader.ensure_loaded("key", max_retries=3)).state == "failed"
    loader.state.reset()
    status = await loader.ensure_loaded("key", max_retries=3)

    assert status.state == "ready"
    assert transport.loads == 4


def test_reset_is_refused_mid_load():
    state = EngineLoadState()
    state.status = state.status.model_copy(update={"state": "loading"})
    with pytest.raises(RuntimeError):
        state.reset()
