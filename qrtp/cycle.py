from __future__ import annotations
import logging
from enum import StrEnum
from typing import Callable, Iterable, Optional, Sequence

from .ranges import RangeSet
from .scheduler import Handle, Scheduler

log = logging.getLogger(__name__)

class Phase(StrEnum):
    IDLE    = "idle"
    CYCLING = "cycling"
    DONE    = "done"


class CycleScheduler:
    """
    Rotates the displayed chunk over indices the receiver has not
    acknowledged yet, one step per tick. Reaches DONE (cursor == total)
    when every index is acknowledged, from a tick or from learn().
    """

    def __init__(self, total: int, scheduler: Scheduler, interval_ms: float,
                 on_advance: Callable[[int], None], on_done: Callable[[], None],
                 on_learn: Optional[Callable[[int], None]] = None):
        if total <= 0:
            raise ValueError("nothing to cycle over")
        if interval_ms <= 0:
            raise ValueError("cycle interval must be positive")
        self.total = total
        self.scheduler = scheduler
        self.interval_ms = interval_ms
        self.learned = RangeSet()
        self.phase = Phase.IDLE
        self.cursor = 0
        self.ticks = 0
        self._on_advance = on_advance
        self._on_done = on_done
        self._on_learn = on_learn
        self._timer: Optional[Handle] = None

    def start(self) -> None:
        if self.phase is not Phase.IDLE:
            return
        self.phase = Phase.CYCLING
        self.cursor = 0
        self._timer = self.scheduler.schedule(self.interval_ms, self._tick)

    def _tick(self) -> None:
        self._timer = None
        if self.phase is not Phase.CYCLING:
            return
        self.ticks += 1
        nxt = self.learned.next_missing(self.cursor + 1, self.total)
        if nxt is None:
            self._finish()
            return
        self.cursor = nxt
        self._timer = self.scheduler.schedule(self.interval_ms, self._tick)
        self._on_advance(nxt)

    def learn(self, ranges: Iterable[Sequence[int]]) -> int:
        """Union acknowledged ranges in; indices outside [0, total) are stale and ignored."""
        if self.phase is Phase.DONE:
            return 0
        added = 0
        for start, end in ranges:
            start, end = max(0, start), min(self.total - 1, end)
            if start <= end:
                added += self.learned.add_range(start, end)
        if added and self._on_learn is not None:
            self._on_learn(added)
        if self.phase is not Phase.DONE and self.learned.is_complete(self.total):
            self._finish()
        return added

    @property
    def remaining(self) -> int:
        return self.total - self.learned.count()

    def _finish(self) -> None:
        if self.phase is Phase.DONE:
            return
        self.phase = Phase.DONE
        self.cursor = self.total
        self.scheduler.cancel(self._timer)
        self._timer = None
        log.info("all %d chunks acknowledged after %d ticks", self.total, self.ticks)
        self._on_done()

    def stop(self) -> None:
        self.scheduler.cancel(self._timer)
        self._timer = None
