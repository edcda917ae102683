"""Refresh scheduler: one repeating timer that drives dashboard refreshes.

Example:
    >>> scheduler = RefreshScheduler(service.refresh, interval_ms=30000, enabled=True)
    >>> scheduler.start()            # fires now, then every 30s
    >>> scheduler.set_interval(10000)  # re-armed, fires now again
    >>> await scheduler.close()
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from enum import Enum
from typing import Any, Awaitable, Callable

from . import DEFAULT_REFRESH_INTERVAL_MS, REFRESH_INTERVALS_MS

logger = logging.getLogger(__name__)


class SchedulerState(Enum):
    """Refresh timer states."""
    STOPPED = "stopped"
    ARMED = "armed"


def validate_interval(interval_ms: int) -> int:
    """Return ``interval_ms`` if it is one of the selectable periods."""
    if interval_ms not in REFRESH_INTERVALS_MS:
        raise ValueError(
            f"Refresh interval must be one of {list(REFRESH_INTERVALS_MS)}, got {interval_ms}"
        )
    return interval_ms


class RefreshScheduler:
    """Single repeating timer with single-flight ticks.

    Arming fires a tick immediately and then every ``interval_ms``. When a
    timer firing finds the previous tick still running, it is skipped, so
    two refreshes never overlap. ``trigger()`` runs a tick on demand and
    joins the running one if there is one.
    """

    def __init__(
        self,
        on_tick: Callable[[], Awaitable[Any]],
        interval_ms: int = DEFAULT_REFRESH_INTERVAL_MS,
        enabled: bool = True,
    ) -> None:
        """Initialize the scheduler. Nothing runs until ``start()``.

        Args:
            on_tick: Coroutine function run on every tick
            interval_ms: Refresh period, one of ``REFRESH_INTERVALS_MS``
            enabled: Master switch; no periodic ticks while False
        """
        self._on_tick = on_tick
        self.interval_ms = validate_interval(interval_ms)
        self.enabled = enabled
        self.tick_count = 0
        self.skipped_ticks = 0
        self._timer: asyncio.Task | None = None
        self._tick: asyncio.Task | None = None
        self._closed = False

    @property
    def state(self) -> SchedulerState:
        if self._timer is not None and not self._timer.done():
            return SchedulerState.ARMED
        return SchedulerState.STOPPED

    @property
    def armed(self) -> bool:
        return self.state == SchedulerState.ARMED

    @property
    def timer(self) -> asyncio.Task | None:
        """The active timer task, None when stopped."""
        return self._timer

    @property
    def in_flight(self) -> bool:
        return self._tick is not None and not self._tick.done()

    def start(self) -> None:
        """Arm the timer if enabled. Must be called from a running loop."""
        if self.enabled and not self.armed and not self._closed:
            self._arm()

    def set_enabled(self, enabled: bool) -> None:
        """Arm (firing immediately) or stop the timer."""
        self.enabled = enabled
        if self._closed:
            return
        if enabled and not self.armed:
            self._arm()
        elif not enabled and self.armed:
            self._disarm()
            logger.info("Refresh timer stopped")

    def set_interval(self, interval_ms: int) -> None:
        """Change the refresh period.

        While armed the old timer is torn down and a new one armed, which
        fires immediately. While stopped the value is only remembered.
        """
        validate_interval(interval_ms)
        if interval_ms == self.interval_ms:
            return
        self.interval_ms = interval_ms
        if self.armed and not self._closed:
            self._disarm()
            self._arm()

    def trigger(self) -> asyncio.Task:
        """Run a tick now, or return the tick that is already running."""
        if self.in_flight:
            return self._tick
        self._tick = asyncio.get_running_loop().create_task(self._run_tick())
        return self._tick

    async def close(self) -> None:
        """Stop the timer for good and cancel a running tick."""
        self._closed = True
        self._disarm()
        if self.in_flight:
            self._tick.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._tick

    def _arm(self) -> None:
        period = self.interval_ms / 1000
        self._timer = asyncio.get_running_loop().create_task(self._run_timer(period))
        logger.info("Refresh timer armed every %.0fs", period)

    def _disarm(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    async def _run_timer(self, period: float) -> None:
        while True:
            if self.in_flight:
                self.skipped_ticks += 1
                logger.debug("Previous refresh still running, skipping tick")
            else:
                self.trigger()
            await asyncio.sleep(period)

    async def _run_tick(self) -> None:
        self.tick_count += 1
        try:
            await self._on_tick()
        except Exception:
            # A failed tick must not stop the timer
            logger.exception("Refresh tick failed")
