"""
Timing tracker for running jobs.

A stoppable stopwatch plus a periodic tick task. The tick task exists only
while the stopwatch runs; stop() cancels it and bumps a generation counter so
a tick already past its sleep cannot fire afterwards.
"""

import asyncio
import logging
import time
from typing import Awaitable, Callable, Optional


logger = logging.getLogger(__name__)

DEFAULT_TICK_INTERVAL_SECONDS = 10.0

TickCallback = Callable[[], Awaitable[None]]


class TimingTracker:
    """Elapsed active time for a job, with periodic tick notifications."""

    def __init__(
        self,
        interval: float = DEFAULT_TICK_INTERVAL_SECONDS,
        on_tick: Optional[TickCallback] = None,
        elapsed_ms: int = 0,
        clock: Callable[[], float] = time.monotonic,
    ):
        """
        Args:
            interval: Seconds between ticks (0 disables ticking)
            on_tick: Coroutine function awaited on each tick
            elapsed_ms: Initial elapsed time, used when restoring a job
            clock: Monotonic clock in seconds (injectable for testing)
        """
        self.interval = interval
        self._on_tick = on_tick
        self._clock = clock
        self._base_ms = elapsed_ms
        self._started_at: Optional[float] = None
        self._generation = 0
        self._tick_task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._started_at is not None

    @property
    def elapsed_ms(self) -> int:
        """Elapsed active milliseconds. Frozen while stopped."""
        if self._started_at is None:
            return self._base_ms
        return self._base_ms + int((self._clock() - self._started_at) * 1000)

    def set_on_tick(self, on_tick: Optional[TickCallback]) -> None:
        self._on_tick = on_tick

    def start(self) -> None:
        """Resume counting from the last stopped value. No-op if running."""
        if self._started_at is not None:
            return

        self._started_at = self._clock()
        self._generation += 1

        if self._on_tick is not None and self.interval > 0:
            self._tick_task = asyncio.get_running_loop().create_task(
                self._tick_loop(self._generation)
            )

    def stop(self) -> None:
        """Freeze the elapsed time and cancel the tick task. No-op if stopped."""
        if self._started_at is None:
            return

        self._base_ms = self.elapsed_ms
        self._started_at = None
        self._generation += 1

        if self._tick_task is not None:
            self._tick_task.cancel()
            self._tick_task = None

    async def aclose(self) -> None:
        """Stop and wait for the tick task to finish unwinding."""
        task = self._tick_task
        self.stop()
        if task is not None:
            try:
                await task
            except asyncio.CancelledError:
                pass

    async def _tick_loop(self, generation: int) -> None:
        while True:
            await asyncio.sleep(self.interval)

            if generation != self._generation or self._on_tick is None:
                return

            try:
                await self._on_tick()
            except asyncio.CancelledError:
                raise
            except Exception as e:
                logger.error(f"Timing tick callback failed: {e}")
