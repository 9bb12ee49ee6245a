"""Scheduler — one fixed-delay loop per crawl phase."""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable

import structlog
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from issuescout.core.settings import env_float
from issuescout.engines.crawler.engine import CrawlEngine
from issuescout.engines.crawler.models import PhaseReport

logger = structlog.get_logger("issuescout.scheduler")

_MINUTE = 60.0
_HOUR = 60 * _MINUTE


class PhaseLoop:
    """Single phase scheduling loop.

    Waits *initial_delay*, then runs the phase, then waits *interval* after
    each run finishes (or until ``trigger`` is set). At most one run of the
    phase is active at a time; an overlapping invocation is skipped.
    """

    def __init__(
        self,
        name: str,
        run_fn: Callable[[], Awaitable[int]],
        interval: float,
        initial_delay: float = 0.0,
    ) -> None:
        self.name = name
        self.run_fn = run_fn
        self.interval = interval
        self.initial_delay = initial_delay
        self.trigger = asyncio.Event()
        self._lock = asyncio.Lock()

    @property
    def running(self) -> bool:
        return self._lock.locked()

    async def run_once(self) -> int | None:
        """Run the phase unless a run is already active. Returns None when skipped."""
        if self._lock.locked():
            logger.warning("phase.skipped_overlap", phase=self.name)
            return None
        async with self._lock:
            processed = await self.run_fn()
            logger.info("phase.cycle", phase=self.name, processed=processed)
            return processed

    async def loop(self) -> None:
        """Run the phase forever on its fixed delay."""
        await self._wait(self.initial_delay)
        while True:
            try:
                await self.run_once()
            except Exception:
                logger.exception("phase.error", phase=self.name)
            await self._wait(self.interval)

    async def _wait(self, timeout: float) -> None:
        try:
            await asyncio.wait_for(self.trigger.wait(), timeout=timeout)
        except asyncio.TimeoutError:
            pass
        self.trigger.clear()


class Scheduler:
    """Manages lifecycle of all PhaseLoop tasks."""

    def __init__(self, loops: list[PhaseLoop]) -> None:
        self._loops = {loop.name: loop for loop in loops}
        self._tasks: list[asyncio.Task[None]] = []

    @property
    def loops(self) -> list[PhaseLoop]:
        return list(self._loops.values())

    def get(self, name: str) -> PhaseLoop | None:
        return self._loops.get(name)

    def trigger(self, name: str) -> bool:
        """Wake a phase loop early. Returns False for an unknown phase."""
        loop = self._loops.get(name)
        if loop is None:
            return False
        loop.trigger.set()
        return True

    async def start(self) -> None:
        """Start all phase loops as asyncio tasks."""
        self._tasks = [
            asyncio.create_task(loop.loop(), name=f"phase-{loop.name}") for loop in self.loops
        ]
        logger.info(
            "scheduler.started",
            phases={loop.name: (loop.initial_delay, loop.interval) for loop in self.loops},
        )

    async def stop(self) -> None:
        """Cancel all phase loops and wait for them to exit."""
        for task in self._tasks:
            task.cancel()
        await asyncio.gather(*self._tasks, return_exceptions=True)
        self._tasks.clear()
        logger.info("scheduler.stopped")


def create_scheduler(
    session_factory: async_sessionmaker[AsyncSession],
    engine: CrawlEngine,
) -> Scheduler:
    """Build a Scheduler with the ingest, refresh and prune loops.

    Delays and intervals are in seconds and read from
    ``ISSUESCOUT_<PHASE>_DELAY`` / ``ISSUESCOUT_<PHASE>_INTERVAL``.
    """
    cadence = {
        "ingest": (30 * _MINUTE, 4 * _HOUR),
        "refresh": (1 * _HOUR, 2 * _HOUR),
        "prune": (12 * _HOUR, 12 * _HOUR),
    }
    phase_fns: dict[str, Callable[..., Awaitable[PhaseReport]]] = {
        "ingest": engine.ingest,
        "refresh": engine.refresh,
        "prune": engine.prune,
    }

    def _adapter(fn: Callable[..., Awaitable[PhaseReport]]) -> Callable[[], Awaitable[int]]:
        async def _run() -> int:
            report = await fn(session_factory)
            if report.rate_limited:
                logger.info("phase.rate_limited", phase=report.phase)
            if report.errors:
                logger.warning("phase.item_errors", phase=report.phase, count=len(report.errors))
            return report.processed

        return _run

    loops = []
    for name, (delay, interval) in cadence.items():
        key = name.upper()
        loops.append(
            PhaseLoop(
                name,
                _adapter(phase_fns[name]),
                interval=env_float(f"ISSUESCOUT_{key}_INTERVAL", interval),
                initial_delay=env_float(f"ISSUESCOUT_{key}_DELAY", delay),
            )
        )
    return Scheduler(loops)
