"""
Timer scheduling for the lock controller.
- AsyncioScheduler: one-shot callbacks on an asyncio event loop (production).
- VirtualScheduler: manual clock for tests and offline simulation.
Both return handles whose cancel() is idempotent.
"""

from __future__ import annotations

import asyncio
import heapq
import itertools
from typing import Callable, List, Optional, Protocol, Tuple


class TimerHandle(Protocol):
    def cancel(self) -> None: ...


class Scheduler(Protocol):
    def call_later(self, delay: float, callback: Callable[[], None]) -> TimerHandle: ...


class AsyncioScheduler:
    """Schedules callbacks with loop.call_later on the given (or running) loop."""

    def __init__(self, loop: Optional[asyncio.AbstractEventLoop] = None):
        self._loop = loop

    @property
    def loop(self) -> asyncio.AbstractEventLoop:
        if self._loop is None:
            self._loop = asyncio.get_running_loop()
        return self._loop

    def call_later(self, delay: float, callback: Callable[[], None]) -> asyncio.TimerHandle:
        return self.loop.call_later(max(0.0, float(delay)), callback)


class VirtualTimer:
    def __init__(self, due: float, callback: Callable[[], None]):
        self.due = due
        self.callback = callback
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True


class VirtualScheduler:
    """
    Deterministic scheduler driven by advance().
    Timers due at the same instant fire in scheduling order; timers scheduled
    from a callback fire within the same advance() if they fall inside it.
    """

    def __init__(self, start: float = 0.0):
        self.now = float(start)
        self._queue: List[Tuple[float, int, VirtualTimer]] = []
        self._seq = itertools.count()

    def call_later(self, delay: float, callback: Callable[[], None]) -> VirtualTimer:
        timer = VirtualTimer(self.now + max(0.0, float(delay)), callback)
        heapq.heappush(self._queue, (timer.due, next(self._seq), timer))
        return timer

    def pending(self) -> int:
        """Number of scheduled, non-cancelled timers."""
        return sum(1 for _, _, t in self._queue if not t.cancelled)

    def advance(self, seconds: float) -> None:
        target = self.now + float(seconds)
        while self._queue and self._queue[0][0] <= target:
            due, _, timer = heapq.heappop(self._queue)
            if timer.cancelled:
                continue
            self.now = due
            timer.callback()
        self.now = target
