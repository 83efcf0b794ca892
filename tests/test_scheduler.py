from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator

import pytest

from tabscope.backend.protocol import BackendError, TabEvent, TabEventKind
from tabscope.domain.access_times import AccessTimeTracker
from tabscope.domain.scheduler import Debouncer, LiveUpdateScheduler

DELAY = 0.05


class Recorder:
    def __init__(self, hold: float = 0.0) -> None:
        self.calls: list[float] = []
        self.hold = hold

    async def __call__(self) -> None:
        self.calls.append(asyncio.get_running_loop().time())
        if self.hold:
            await asyncio.sleep(self.hold)


@pytest.mark.asyncio
async def test_burst_of_triggers_runs_once_after_last() -> None:
    recorder = Recorder()
    debouncer = Debouncer(DELAY, recorder)
    loop = asyncio.get_running_loop()

    for i in range(5):
        if i:
            await asyncio.sleep(DELAY / 5)
        debouncer.arm()
    last_arm = loop.time()
    await asyncio.sleep(DELAY / 2)
    assert recorder.calls == []

    await asyncio.sleep(DELAY * 4)
    assert len(recorder.calls) == 1
    assert recorder.calls[0] >= last_arm + DELAY * 0.9
    assert not debouncer.pending


@pytest.mark.asyncio
async def test_cancel_drops_pending_run() -> None:
    recorder = Recorder()
    debouncer = Debouncer(DELAY, recorder)
    debouncer.arm()
    assert debouncer.pending
    debouncer.cancel()
    await asyncio.sleep(DELAY * 3)
    assert recorder.calls == []


@pytest.mark.asyncio
async def test_trigger_during_run_coalesces_into_one_follow_up() -> None:
    recorder = Recorder(hold=DELAY * 4)
    debouncer = Debouncer(DELAY, recorder)

    debouncer.arm()
    await asyncio.sleep(DELAY * 1.5)
    assert debouncer.running

    # Two timers fire while the first run is still in flight.
    debouncer.arm()
    await asyncio.sleep(DELAY * 1.2)
    debouncer.arm()
    await asyncio.sleep(DELAY * 1.2)
    assert len(recorder.calls) == 1

    await asyncio.sleep(DELAY * 8)
    assert len(recorder.calls) == 2
    assert not debouncer.running


@pytest.mark.asyncio
async def test_failing_callback_does_not_break_debouncer() -> None:
    calls: list[int] = []

    async def flaky() -> None:
        calls.append(1)
        raise RuntimeError("provider exploded")

    debouncer = Debouncer(DELAY, flaky)
    debouncer.arm()
    await asyncio.sleep(DELAY * 3)
    debouncer.arm()
    await asyncio.sleep(DELAY * 3)
    assert len(calls) == 2


@pytest.mark.asyncio
async def test_aclose_waits_for_in_flight_run_and_ignores_new_arms() -> None:
    recorder = Recorder(hold=DELAY)
    debouncer = Debouncer(DELAY, recorder)
    debouncer.arm()
    await asyncio.sleep(DELAY * 1.5)
    await debouncer.aclose()
    assert not debouncer.running

    debouncer.arm()
    assert not debouncer.pending
    assert len(recorder.calls) == 1


@pytest.mark.asyncio
async def test_activation_updates_access_time_before_refresh() -> None:
    tracker = AccessTimeTracker(clock=lambda: 123.0)
    recorder = Recorder()
    scheduler = LiveUpdateScheduler(recorder, tracker, delay=DELAY)

    scheduler.notify(TabEvent(kind=TabEventKind.ACTIVATED, tab_id="9"))
    assert tracker.get("9") == 123.0
    assert recorder.calls == []

    scheduler.notify(TabEvent(kind=TabEventKind.UPDATED, tab_id="9"))
    scheduler.query_changed()
    scheduler.sort_changed()
    await asyncio.sleep(DELAY * 4)
    assert len(recorder.calls) == 1


@pytest.mark.asyncio
async def test_listen_consumes_events_and_closes_stream() -> None:
    tracker = AccessTimeTracker(clock=lambda: 5.0)
    recorder = Recorder()
    scheduler = LiveUpdateScheduler(recorder, tracker, delay=DELAY)
    queue: asyncio.Queue[TabEvent] = asyncio.Queue()
    closed: list[bool] = []

    async def stream() -> AsyncIterator[TabEvent]:
        try:
            while True:
                yield await queue.get()
        finally:
            closed.append(True)

    async with scheduler.listen(stream):
        queue.put_nowait(TabEvent(kind=TabEventKind.CREATED, tab_id="1"))
        queue.put_nowait(TabEvent(kind=TabEventKind.ACTIVATED, tab_id="2"))
        await asyncio.sleep(DELAY * 4)
        assert tracker.get("2") == 5.0
        assert len(recorder.calls) == 1

    assert closed == [True]


@pytest.mark.asyncio
async def test_listen_cancels_pending_timer_on_exit() -> None:
    recorder = Recorder()
    scheduler = LiveUpdateScheduler(recorder, AccessTimeTracker(), delay=DELAY)

    async def stream() -> AsyncIterator[TabEvent]:
        yield TabEvent(kind=TabEventKind.REMOVED, tab_id="1")
        await asyncio.Event().wait()

    async with scheduler.listen(stream):
        await asyncio.sleep(0)
        await asyncio.sleep(0)
        assert scheduler.debouncer.pending

    assert not scheduler.debouncer.pending
    await asyncio.sleep(DELAY * 3)
    assert recorder.calls == []


@pytest.mark.asyncio
async def test_listen_resubscribes_after_stream_failure() -> None:
    tracker = AccessTimeTracker(clock=lambda: 7.0)
    recorder = Recorder()
    scheduler = LiveUpdateScheduler(recorder, tracker, delay=DELAY, retry_delay=DELAY)
    subscriptions: list[int] = []

    async def stream() -> AsyncIterator[TabEvent]:
        subscriptions.append(len(subscriptions))
        if len(subscriptions) == 1:
            raise BackendError("bridge restarted")
        yield TabEvent(kind=TabEventKind.ACTIVATED, tab_id="9")
        await asyncio.Event().wait()

    async with scheduler.listen(stream):
        await asyncio.sleep(DELAY * 6)
        assert len(subscriptions) == 2
        assert tracker.get("9") == 7.0
        assert len(recorder.calls) >= 1
