"""
Periodic poll scheduling.

Runs one cycle right away, then one every ``interval_minutes``. A trigger
that fires while the previous cycle is still running is dropped.
"""
from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Callable

logger = logging.getLogger(__name__)


class PollScheduler:
    """
    Drive poll cycles on a fixed interval.

    Usage:
        scheduler = PollScheduler(service.run_cycle, interval_minutes=5)
        await scheduler.start()

        # Later...
        await scheduler.stop()
    """

    def __init__(
        self,
        callback: Callable[[], Awaitable[Any]],
        interval_minutes: float = 5,
        run_immediately: bool = True,
    ):
        """
        Initialize scheduler.

        Args:
            callback: Coroutine function running one cycle
            interval_minutes: Time between triggers
            run_immediately: Fire once at start instead of waiting an interval
        """
        self._callback = callback
        self._interval_seconds = interval_minutes * 60
        self._run_immediately = run_immediately
        self._task: asyncio.Task | None = None
        self._cycles: set[asyncio.Task] = set()
        self._running = False
        self._in_progress = False

    async def start(self) -> None:
        """Start the schedule loop"""
        if self._running:
            logger.warning("Scheduler already running")
            return

        self._running = True
        self._task = asyncio.create_task(self._loop())
        logger.info(f"Server status updates scheduled every {self._interval_seconds / 60:g} minutes")

    async def stop(self) -> None:
        """Stop the loop and cancel a cycle still in flight"""
        self._running = False

        tasks = [t for t in [self._task, *self._cycles] if t is not None]
        for task in tasks:
            task.cancel()
        for task in tasks:
            try:
                await task
            except asyncio.CancelledError:
                pass
        self._task = None
        self._cycles.clear()

        logger.info("Scheduler stopped")

    def is_running(self) -> bool:
        return self._running

    def is_cycle_in_progress(self) -> bool:
        return self._in_progress

    def trigger(self) -> asyncio.Task | None:
        """Start a cycle now unless one is already running.

        Returns:
            The cycle task, or None if the trigger was dropped
        """
        if self._in_progress:
            logger.warning("Previous status update still running, skipping this trigger")
            return None

        self._in_progress = True
        task = asyncio.create_task(self._run_cycle())
        self._cycles.add(task)
        task.add_done_callback(self._cycles.discard)
        return task

    async def _loop(self) -> None:
        if self._run_immediately:
            self.trigger()

        while self._running:
            try:
                await asyncio.sleep(self._interval_seconds)
                self.trigger()
            except asyncio.CancelledError:
                break

    async def _run_cycle(self) -> None:
        try:
            await self._callback()
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.error(f"Status update cycle failed: {e}", exc_info=True)
        finally:
            self._in_progress = False
