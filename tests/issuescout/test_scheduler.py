"""Unit tests for PhaseLoop and Scheduler."""

from __future__ import annotations

import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest

from issuescout.engines.crawler.models import PhaseReport
from issuescout.scheduler import PhaseLoop, Scheduler, create_scheduler


@pytest.fixture
def make_loop():
    """Factory for creating PhaseLoop instances with a controllable run_fn."""

    def _make(
        *,
        name: str = "test",
        return_value: int = 0,
        interval: float = 100,
        initial_delay: float = 0.0,
        side_effect: Exception | None = None,
    ) -> tuple[PhaseLoop, list[int]]:
        calls: list[int] = []

        async def run_fn() -> int:
            calls.append(1)
            if side_effect is not None:
                raise side_effect
            return return_value

        loop = PhaseLoop(name, run_fn, interval, initial_delay=initial_delay)
        return loop, calls

    return _make


@pytest.mark.asyncio
async def test_loop_runs_on_timeout(make_loop):
    """Loop fires again after its interval when no trigger is set."""
    loop, calls = make_loop(interval=0.05)

    task = asyncio.create_task(loop.loop())
    try:
        await asyncio.wait_for(_wait_until(lambda: len(calls) >= 2), timeout=1.0)
        assert len(calls) >= 2
    finally:
        task.cancel()
        await asyncio.gather(task, return_exceptions=True)


@pytest.mark.asyncio
async def test_initial_delay_holds_first_run(make_loop):
    """Nothing runs before the initial delay elapses."""
    loop, calls = make_loop(initial_delay=100)

    task = asyncio.create_task(loop.loop())
    try:
        await asyncio.sleep(0.05)
        assert calls == []
    finally:
        task.cancel()
        await asyncio.gather(task, return_exceptions=True)


@pytest.mark.asyncio
async def test_loop_runs_on_trigger(make_loop):
    """Setting trigger wakes the loop immediately, even during the initial delay."""
    loop, calls = make_loop(interval=100, initial_delay=100)

    task = asyncio.create_task(loop.loop())
    try:
        await asyncio.sleep(0.01)
        loop.trigger.set()
        await asyncio.wait_for(_wait_until(lambda: len(calls) >= 1), timeout=1.0)
        assert len(calls) == 1
        assert not loop.trigger.is_set()
    finally:
        task.cancel()
        await asyncio.gather(task, return_exceptions=True)


@pytest.mark.asyncio
async def test_overlapping_run_is_skipped():
    """A second invocation while the first is active does not run."""
    release = asyncio.Event()
    calls: list[int] = []

    async def run_fn() -> int:
        calls.append(1)
        await release.wait()
        return 3

    loop = PhaseLoop("ingest", run_fn, interval=100)
    first = asyncio.create_task(loop.run_once())
    await _wait_until(lambda: loop.running)

    assert await loop.run_once() is None
    assert len(calls) == 1

    release.set()
    assert await first == 3
    assert not loop.running


@pytest.mark.asyncio
async def test_exception_does_not_crash(make_loop):
    """run_fn raising an exception does not crash the loop; it continues."""
    loop, calls = make_loop(interval=0.05, side_effect=RuntimeError("boom"))

    task = asyncio.create_task(loop.loop())
    try:
        await asyncio.wait_for(_wait_until(lambda: len(calls) >= 2), timeout=2.0)
        assert len(calls) >= 2
        assert not loop.running
    finally:
        task.cancel()
        await asyncio.gather(task, return_exceptions=True)


@pytest.mark.asyncio
async def test_scheduler_start_stop(make_loop):
    """Scheduler lifecycle: start creates tasks, stop cancels them cleanly."""
    loop1, calls1 = make_loop(name="a", interval=0.05)
    loop2, calls2 = make_loop(name="b", interval=0.05)

    scheduler = Scheduler([loop1, loop2])
    await scheduler.start()

    await asyncio.wait_for(
        _wait_until(lambda: len(calls1) >= 1 and len(calls2) >= 1),
        timeout=2.0,
    )

    await scheduler.stop()
    assert scheduler._tasks == []


@pytest.mark.asyncio
async def test_scheduler_trigger(make_loop):
    loop, calls = make_loop(name="refresh", initial_delay=100)
    scheduler = Scheduler([loop])
    await scheduler.start()
    try:
        assert scheduler.trigger("refresh")
        assert not scheduler.trigger("compact")
        await asyncio.wait_for(_wait_until(lambda: len(calls) >= 1), timeout=1.0)
    finally:
        await scheduler.stop()


def test_create_scheduler_cadence(monkeypatch):
    monkeypatch.setenv("ISSUESCOUT_INGEST_INTERVAL", "5")
    monkeypatch.setenv("ISSUESCOUT_INGEST_DELAY", "0")
    for key in ("REFRESH_INTERVAL", "REFRESH_DELAY", "PRUNE_INTERVAL", "PRUNE_DELAY"):
        monkeypatch.delenv(f"ISSUESCOUT_{key}", raising=False)

    scheduler = create_scheduler(MagicMock(), MagicMock())

    assert [loop.name for loop in scheduler.loops] == ["ingest", "refresh", "prune"]
    ingest = scheduler.get("ingest")
    assert (ingest.initial_delay, ingest.interval) == (0.0, 5.0)
    refresh = scheduler.get("refresh")
    assert (refresh.initial_delay, refresh.interval) == (3600.0, 7200.0)
    prune = scheduler.get("prune")
    assert (prune.initial_delay, prune.interval) == (43200.0, 43200.0)


@pytest.mark.asyncio
async def test_create_scheduler_runs_engine_phase():
    factory = MagicMock()
    engine = MagicMock()
    engine.prune = AsyncMock(return_value=PhaseReport(phase="prune", repos_deleted=4))
    engine.refresh = AsyncMock(
        return_value=PhaseReport(phase="refresh", repos_saved=2, repos_deleted=1, rate_limited=True)
    )

    scheduler = create_scheduler(factory, engine)

    assert await scheduler.get("prune").run_once() == 4
    assert await scheduler.get("refresh").run_once() == 3
    engine.prune.assert_awaited_once_with(factory)


async def _wait_until(predicate, poll: float = 0.01):
    """Poll until predicate returns True."""
    while not predicate():
        await asyncio.sleep(poll)
