"""
Refresh Scheduler

Runs a fetch-join-publish cycle immediately on start and then on a fixed
interval. A SingleFlight supervisor owns the in-flight cycle: ticks that
arrive while a cycle is running are skipped, never queued. After stop(), any
cycle still in flight may finish its I/O but its result is discarded.
"""

import asyncio
from typing import Any, Awaitable, Callable, Optional

from loguru import logger

from processing.errors import WardMapError

DEFAULT_INTERVAL = 15.0


class SingleFlight:
    """At most one running task; launches while busy are refused."""

    def __init__(self):
        self._task: Optional[asyncio.Task] = None

    @property
    def in_flight(self) -> bool:
        return self._task is not None and not self._task.done()

    def launch(self, factory: Callable[[], Awaitable[Any]]) -> Optional[asyncio.Task]:
        """Start factory() as a task unless one is already running."""
        if self.in_flight:
            return None
        self._task = asyncio.ensure_future(factory())
        return self._task

    async def wait(self) -> None:
        """Wait for the current task, if any, to finish."""
        if self._task is not None and not self._task.done():
            await asyncio.wait([self._task])


class RefreshScheduler:
    """
    Periodic single-flight refresh for one election year.

    Args:
        year: Election year the scheduler refreshes
        cycle: Coroutine function building the dataset for a year
        publish: Called with each cycle result while the scheduler is live
        interval: Seconds between ticks
        on_error: Called with the exception of a failed cycle
    """

    def __init__(
        self,
        year: str,
        cycle: Callable[[str], Awaitable[Any]],
        publish: Callable[[Any], Any],
        interval: float = DEFAULT_INTERVAL,
        on_error: Optional[Callable[[Exception], Any]] = None,
    ):
        self.year = str(year)
        self.cycle = cycle
        self.publish = publish
        self.interval = interval
        self.on_error = on_error
        self.cycles_started = 0
        self.cycles_skipped = 0
        self._alive = False
        self._ticker: Optional[asyncio.Task] = None
        self._flight = SingleFlight()

    @property
    def running(self) -> bool:
        return self._alive

    @property
    def in_flight(self) -> bool:
        return self._flight.in_flight

    def start(self) -> None:
        """Run one cycle now and schedule the rest. Needs a running event loop."""
        if self._alive:
            return
        self._alive = True
        logger.info(f"🔁 Refreshing {self.year} every {self.interval:g}s")
        self.trigger()
        self._ticker = asyncio.ensure_future(self._tick_loop())

    def trigger(self) -> bool:
        """Request a cycle; returns False if skipped because one is in flight."""
        if not self._alive:
            return False
        if self._flight.launch(self._run_cycle) is None:
            self.cycles_skipped += 1
            logger.debug(f"⏭️ Refresh for {self.year} skipped, previous cycle still running")
            return False
        self.cycles_started += 1
        return True

    def stop(self) -> None:
        """Cancel the ticker; in-flight results will be discarded."""
        if not self._alive:
            return
        self._alive = False
        if self._ticker is not None:
            self._ticker.cancel()
            self._ticker = None
        logger.debug(f"🛑 Refresh for {self.year} stopped")

    async def wait_idle(self) -> None:
        await self._flight.wait()

    async def _tick_loop(self) -> None:
        while self._alive:
            await asyncio.sleep(self.interval)
            if not self._alive:
                break
            self.trigger()

    async def _run_cycle(self) -> None:
        try:
            result = await self.cycle(self.year)
        except WardMapError as e:
            self._report(e)
            return
        except Exception as e:
            logger.exception(f"Unexpected error refreshing {self.year}")
            self._report(e)
            return

        if not self._alive:
            logger.debug(f"🗑️ Discarding {self.year} result that resolved after teardown")
            return
        try:
            self.publish(result)
        except Exception as e:
            logger.exception(f"Publishing {self.year} failed")
            self._report(e)

    def _report(self, error: Exception) -> None:
        if not self._alive:
            logger.debug(f"Ignoring error from torn-down {self.year} cycle: {error}")
            return
        logger.error(f"❌ Refresh for {self.year} failed: {error}")
        if self.on_error is not None:
            try:
                self.on_error(error)
            except Exception:
                logger.exception(f"Error handler for {self.year} failed")
