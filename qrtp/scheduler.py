from __future__ import annotations
import asyncio
import heapq
import itertools
from abc import ABC, abstractmethod
from typing import Callable, List, Optional, Tuple

Task = Callable[[], None]


class Handle:
    """Cancellable reference to a scheduled task."""

    __slots__ = ("due_ms", "_fn", "_cancelled", "_native")

    def __init__(self, due_ms: float, fn: Task):
        self.due_ms = due_ms
        self._fn = fn
        self._cancelled = False
        self._native: Optional[asyncio.Handle] = None

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def cancel(self) -> None:
        self._cancelled = True
        if self._native is not None:
            self._native.cancel()

    def _run(self) -> None:
        if not self._cancelled:
            self._cancelled = True  # one-shot
            self._fn()


class Scheduler(ABC):
    """
    Single-threaded timer service. Every protocol callback runs on the
    scheduler's thread, one at a time.
    """

    @abstractmethod
    def now_ms(self) -> float:
        raise NotImplementedError

    @abstractmethod
    def schedule(self, after_ms: float, fn: Task) -> Handle:
        """Run fn once, after_ms from now."""
        raise NotImplementedError

    def cancel(self, handle: Optional[Handle]) -> None:
        if handle is not None:
            handle.cancel()

    def post(self, fn: Task) -> Handle:
        """Run fn as soon as possible on the scheduler's thread."""
        return self.schedule(0, fn)


class VirtualScheduler(Scheduler):
    """Deterministic clock: time only moves inside advance()/run_until()."""

    def __init__(self, start_ms: float = 0.0):
        self._now = float(start_ms)
        self._queue: List[Tuple[float, int, Handle]] = []
        self._seq = itertools.count()

    def now_ms(self) -> float:
        return self._now

    def schedule(self, after_ms: float, fn: Task) -> Handle:
        h = Handle(self._now + max(0.0, after_ms), fn)
        heapq.heappush(self._queue, (h.due_ms, next(self._seq), h))
        return h

    @property
    def pending(self) -> int:
        return sum(1 for _, _, h in self._queue if not h.cancelled)

    def _pop_due(self, deadline: float) -> Optional[Handle]:
        while self._queue and self._queue[0][0] <= deadline:
            _, _, h = heapq.heappop(self._queue)
            if not h.cancelled:
                return h
        return None

    def advance(self, ms: float) -> int:
        """Move the clock forward by ms, running due tasks in order. Returns tasks run."""
        deadline = self._now + ms
        ran = 0
        while True:
            h = self._pop_due(deadline)
            if h is None:
                break
            self._now = max(self._now, h.due_ms)
            h._run()
            ran += 1
        self._now = deadline
        return ran

    def run_until(self, predicate: Callable[[], bool], limit_ms: float, step_ms: float = 10.0) -> bool:
        """Advance in steps until predicate() holds or limit_ms elapses."""
        end = self._now + limit_ms
        while not predicate():
            if self._now >= end:
                return False
            self.advance(min(step_ms, end - self._now))
        return True


class AsyncioScheduler(Scheduler):

    def __init__(self, loop: Optional[asyncio.AbstractEventLoop] = None):
        # without an explicit loop this must be created inside a running loop
        self.loop = loop or asyncio.get_running_loop()

    def now_ms(self) -> float:
        return self.loop.time() * 1000.0

    def schedule(self, after_ms: float, fn: Task) -> Handle:
        h = Handle(self.now_ms() + after_ms, fn)
        h._native = self.loop.call_later(max(0.0, after_ms) / 1000.0, h._run)
        return h

    def post(self, fn: Task) -> Handle:
        # safe from transport threads
        h = Handle(self.now_ms(), fn)
        h._native = self.loop.call_soon_threadsafe(h._run)
        return h
