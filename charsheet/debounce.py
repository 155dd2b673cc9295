"""
Single-slot debounced callbacks.

A Debouncer holds at most one pending callback. Scheduling again cancels the
pending one and restarts the delay, so a burst of calls produces exactly one
invocation, delay seconds after the last call in the burst.

Timers come from a scheduler exposing ``call_later(delay, callback)`` that
returns a handle with ``cancel()``. LoopScheduler uses the running asyncio
loop; ManualScheduler keeps a virtual clock that is advanced explicitly, for
synchronous hosts such as the command line.
"""

import asyncio
import heapq
import itertools
import logging
from typing import Callable, Optional, Protocol

logger = logging.getLogger(__name__)


class TimerHandle(Protocol):
    def cancel(self) -> None: ...


class Scheduler(Protocol):
    def call_later(self, delay: float, callback: Callable[[], None]) -> TimerHandle: ...


class LoopScheduler:
    """Schedules callbacks on the asyncio loop running at call time."""

    def call_later(self, delay: float, callback: Callable[[], None]) -> asyncio.TimerHandle:
        return asyncio.get_running_loop().call_later(delay, callback)


class _ManualHandle:
    def __init__(self, due: float, callback: Callable[[], None]):
        self.due = due
        self.callback = callback
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True


class ManualScheduler:
    """Virtual-time scheduler. Nothing runs until advance() or run_all() is called."""

    def __init__(self):
        self.now = 0.0
        self._queue: list = []
        self._counter = itertools.count()

    def call_later(self, delay: float, callback: Callable[[], None]) -> _ManualHandle:
        handle = _ManualHandle(self.now + delay, callback)
        heapq.heappush(self._queue, (handle.due, next(self._counter), handle))
        return handle

    @property
    def pending(self) -> int:
        return sum(1 for _, _, h in self._queue if not h.cancelled)

    def advance(self, seconds: float) -> None:
        """Move the clock forward, running every callback that falls due."""
        target = self.now + seconds
        while self._queue and self._queue[0][0] <= target:
            due, _, handle = heapq.heappop(self._queue)
            self.now = due
            if not handle.cancelled:
                handle.callback()
        self.now = target

    def run_all(self) -> None:
        while self._queue:
            due, _, handle = heapq.heappop(self._queue)
            self.now = max(self.now, due)
            if not handle.cancelled:
                handle.callback()


class Debouncer:
    def __init__(self, delay: float, scheduler: Scheduler):
        self.delay = delay
        self.scheduler = scheduler
        self._handle: Optional[TimerHandle] = None
        self._callback: Optional[Callable[[], None]] = None

    @property
    def pending(self) -> bool:
        return self._callback is not None

    def schedule(self, callback: Callable[[], None]) -> None:
        """Replace any pending callback with this one and restart the delay."""
        if self._handle is not None:
            self._handle.cancel()
        self._callback = callback
        self._handle = self.scheduler.call_later(self.delay, self._fire)

    def cancel(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
        self._handle = None
        self._callback = None

    def flush(self) -> None:
        """Run the pending callback now, if there is one."""
        if self._callback is None:
            return
        self._handle.cancel()
        self._fire()

    def _fire(self) -> None:
        callback = self._callback
        self._handle = None
        self._callback = None
        if callback is not None:
            logger.debug("Running debounced callback")
            callback()
