"""
Refresh Scheduler

Arms a background refresh after each successful fetch and stops the cycle
once it has run unattended past the ceiling.
"""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Awaitable, Callable, Optional, Union

from .errors import RefreshLimitReachedError


RefreshCallback = Callable[[], Union[None, Awaitable[None]]]
HaltCallback = Callable[[RefreshLimitReachedError], None]


class RefreshScheduler:
    """Single-timer scheduler with an unattended-refresh ceiling.

    The ceiling clock starts at the last user-driven fetch (`reset_ceiling`).
    When a timer fires past the ceiling the cycle halts until the next reset.
    """

    def __init__(
        self,
        interval_seconds: float = 30.0,
        ceiling_seconds: float = 120.0,
        *,
        clock: Callable[[], float] = time.time,
        on_halt: Optional[HaltCallback] = None,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self.interval_seconds = interval_seconds
        self.ceiling_seconds = ceiling_seconds
        self._clock = clock
        self._on_halt = on_halt
        self._logger = logger or logging.getLogger(__name__)
        self._task: Optional[asyncio.Task] = None
        self._cycle_started_at: Optional[float] = None
        self._halted = False

    @property
    def armed(self) -> bool:
        return self._task is not None and not self._task.done()

    @property
    def halted(self) -> bool:
        return self._halted

    def reset_ceiling(self) -> None:
        """Restart the unattended window after a user-driven action."""
        self._cycle_started_at = self._clock()
        self._halted = False

    def arm(self, callback: RefreshCallback) -> None:
        """Schedule `callback` after the interval, replacing any pending timer."""
        self.cancel()
        if self._halted:
            return
        if self._cycle_started_at is None:
            self._cycle_started_at = self._clock()
        self._task = asyncio.create_task(self._fire_later(callback), name="quote-refresh-timer")

    def cancel(self) -> None:
        if self._task and not self._task.done():
            self._task.cancel()
        self._task = None

    def _ceiling_reached(self) -> bool:
        if self._cycle_started_at is None:
            return False
        return self._clock() - self._cycle_started_at >= self.ceiling_seconds

    async def _fire_later(self, callback: RefreshCallback) -> None:
        try:
            await asyncio.sleep(self.interval_seconds)
        except asyncio.CancelledError:
            return

        self._task = None
        if self._ceiling_reached():
            elapsed = self._clock() - (self._cycle_started_at or self._clock())
            self._halted = True
            error = RefreshLimitReachedError(elapsed, self.ceiling_seconds)
            self._logger.info("Auto-refresh halted: %s", error.message)
            if self._on_halt:
                self._on_halt(error)
            return

        result = callback()
        if asyncio.iscoroutine(result):
            await result
