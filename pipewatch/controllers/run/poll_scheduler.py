"""PollScheduler - repeating refresh lifecycle for a live run.

The scheduler owns a single asyncio task acting as the repeating timer. The
timer waits one period, runs the injected tick, and only then starts waiting
again, so ticks never overlap. Lifecycle:

- ``start()`` ticks immediately and arms the timer unless the run is terminal
- ``suspend()`` disarms without ticking (window backgrounded)
- ``resume()`` behaves like ``start()`` but is a no-op while armed
- ``stop()`` disarms permanently

A tick that raises is logged and reported but keeps the timer armed. A tick
that returns True (terminal run) disarms the scheduler for good.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from contextlib import suppress

from pipewatch.constants.timeouts import POLL_INTERVAL_SECONDS

logger = logging.getLogger(__name__)

TickFunc = Callable[[], Awaitable[bool]]
ErrorCallback = Callable[[Exception], None]


class PollScheduler:
    """Start/suspend/resume/stop lifecycle around a repeating tick."""

    def __init__(
        self,
        tick: TickFunc,
        *,
        interval: float = POLL_INTERVAL_SECONDS,
        on_error: ErrorCallback | None = None,
    ) -> None:
        """Initialize the scheduler.

        Args:
            tick: Async refresh returning True once the run is terminal
            interval: Seconds between the end of one tick and the next
            on_error: Optional callback receiving tick failures
        """
        self._tick = tick
        self._interval = interval
        self._on_error = on_error
        self._timer: asyncio.Task[None] | None = None
        self._tick_task: asyncio.Task[bool] | None = None
        self._terminated = False
        self.tick_count = 0

    @property
    def interval(self) -> float:
        return self._interval

    @property
    def is_armed(self) -> bool:
        return self._timer is not None and not self._timer.done()

    @property
    def is_terminated(self) -> bool:
        return self._terminated

    @property
    def is_ticking(self) -> bool:
        return self._tick_task is not None and not self._tick_task.done()

    # =========================================================================
    # Lifecycle
    # =========================================================================

    async def start(self) -> None:
        """Tick once now, then arm the timer if the run is still live."""
        if self._terminated:
            return
        if self.is_ticking:
            # The in-flight tick stands in for the immediate one
            self._arm()
            return
        terminal = await self._run_tick()
        if not terminal:
            self._arm()

    async def resume(self) -> None:
        """Resume after suspend. No-op while armed or after termination."""
        if self._terminated or self.is_armed:
            return
        await self.start()

    def suspend(self) -> None:
        """Disarm the timer without ticking. Idempotent."""
        self._disarm()

    def stop(self) -> None:
        """Disarm permanently. Later start/resume calls do nothing."""
        self._terminated = True
        self._disarm()

    async def poll_now(self) -> bool:
        """Run one tick outside the timer, e.g. for a manual refresh.

        Returns whether the run is terminal. A tick already in flight is
        awaited instead of starting a second one.
        """
        if self.is_ticking and self._tick_task is not None:
            return await asyncio.shield(self._tick_task)
        return await self._run_tick()

    # =========================================================================
    # Internals
    # =========================================================================

    def _arm(self) -> None:
        if self._terminated or self.is_armed:
            return
        self._timer = asyncio.create_task(self._timer_loop(), name="poll-scheduler-timer")

    def _disarm(self) -> None:
        timer = self._timer
        self._timer = None
        if timer is not None and not timer.done() and timer is not asyncio.current_task():
            timer.cancel()

    async def _timer_loop(self) -> None:
        while True:
            await asyncio.sleep(self._interval)
            if self.is_ticking:
                continue
            terminal = await self._run_tick()
            if terminal:
                return

    async def _run_tick(self) -> bool:
        # Shielded so disarming the timer never cancels a fetch mid-flight
        self._tick_task = asyncio.ensure_future(self._guarded_tick())
        return await asyncio.shield(self._tick_task)

    async def _guarded_tick(self) -> bool:
        self.tick_count += 1
        try:
            terminal = bool(await self._tick())
        except Exception as exc:
            logger.warning("Poll tick failed, keeping refresh armed: %s", exc)
            if self._on_error is not None:
                with suppress(Exception):
                    self._on_error(exc)
            return False

        if terminal:
            logger.info("Run reached a terminal phase, stopping refresh")
            self.stop()
        return terminal


__all__ = ["PollScheduler"]
