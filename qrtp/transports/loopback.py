from __future__ import annotations
import logging
import random
from dataclasses import dataclass, field
from functools import partial
from typing import List, Optional

from ..channel import BackwardChannel, ForwardChannel, FrameCallback, Link, SendDone
from ..exceptions import ChannelSendFailure
from ..scheduler import Scheduler

log = logging.getLogger(__name__)

DEFAULT_AIRTIME_MS = 250.0   # one short acoustic burst

@dataclass
class Impairment:
    """Lossy-medium model; seeded so test runs are reproducible."""
    loss_rate: float = 0.0       # chance a transmission is never observed
    delay_ms: float = 0.0        # added before an observed frame is delivered
    failure_rate: float = 0.0    # backward only: chance the send itself reports failure
    seed: Optional[int] = None
    _rng: random.Random = field(init=False, repr=False, compare=False)

    def __post_init__(self):
        for name in ("loss_rate", "failure_rate"):
            if not 0.0 <= getattr(self, name) <= 1.0:
                raise ValueError(f"{name} must be within [0, 1]")
        if self.delay_ms < 0:
            raise ValueError("delay_ms must be >= 0")
        self._rng = random.Random(self.seed)

    def lose(self) -> bool:
        return self.loss_rate > 0 and self._rng.random() < self.loss_rate

    def fail(self) -> bool:
        return self.failure_rate > 0 and self._rng.random() < self.failure_rate


class _Medium:
    """Broadcast to every subscriber, always from a scheduled task."""

    def __init__(self, scheduler: Scheduler, impairment: Optional[Impairment]):
        self.scheduler = scheduler
        self.impairment = impairment or Impairment()
        self._subs: List[FrameCallback] = []
        self._drop = 0
        self.delivered = 0
        self.dropped = 0

    def subscribe(self, cb: FrameCallback) -> None:
        if cb not in self._subs:
            self._subs.append(cb)

    def unsubscribe(self, cb: FrameCallback) -> None:
        if cb in self._subs:
            self._subs.remove(cb)

    def drop_next(self, n: int = 1) -> None:
        """Lose the next n transmissions regardless of the impairment model."""
        if n < 0:
            raise ValueError("n must be >= 0")
        self._drop += n

    def _transmit(self, frame: str) -> None:
        if self._drop > 0:
            self._drop -= 1
            self.dropped += 1
            log.debug("dropping %r (forced)", frame)
            return
        if self.impairment.lose():
            self.dropped += 1
            log.debug("dropping %r", frame)
            return
        self.scheduler.schedule(self.impairment.delay_ms, partial(self._fanout, frame))

    def _fanout(self, frame: str) -> None:
        self.delivered += 1
        for cb in list(self._subs):
            cb(frame)


class LoopbackForward(_Medium, ForwardChannel):

    def __init__(self, scheduler: Scheduler, impairment: Optional[Impairment] = None):
        super().__init__(scheduler, impairment)
        self.current: Optional[str] = None
        self.shown = 0

    def show(self, frame: str) -> None:
        self.current = frame
        self.shown += 1
        self._transmit(frame)


class LoopbackBackward(_Medium, BackwardChannel):

    def __init__(self, scheduler: Scheduler, impairment: Optional[Impairment] = None,
                 airtime_ms: float = DEFAULT_AIRTIME_MS):
        super().__init__(scheduler, impairment)
        if airtime_ms < 0:
            raise ValueError("airtime_ms must be >= 0")
        self.airtime_ms = airtime_ms
        self.history: List[str] = []     # every frame handed to send(), in order
        self.last_volume: Optional[int] = None
        self._busy = False
        self._fail = 0

    @property
    def busy(self) -> bool:
        return self._busy

    def fail_next(self, n: int = 1) -> None:
        """Make the next n sends report ChannelSendFailure."""
        if n < 0:
            raise ValueError("n must be >= 0")
        self._fail += n

    def send(self, frame: str, volume: int, done: SendDone) -> None:
        if self._busy:
            raise ChannelSendFailure("backward channel busy")
        self._busy = True
        self.history.append(frame)
        self.last_volume = volume
        failed = False
        if self._fail > 0:
            self._fail -= 1
            failed = True
        elif self.impairment.fail():
            failed = True
        self.scheduler.schedule(self.airtime_ms, partial(self._finished, frame, failed, done))

    def _finished(self, frame: str, failed: bool, done: SendDone) -> None:
        self._busy = False
        if failed:
            log.debug("send of %r failed", frame)
            done(ChannelSendFailure(f"transmission of {frame!r} failed"))
            return
        self._transmit(frame)
        done(None)


class LoopbackLink(Link):
    """Both media in one process, on one scheduler. Used by tests and the demo."""

    def __init__(self, scheduler: Scheduler,
                 forward: Optional[Impairment] = None,
                 backward: Optional[Impairment] = None,
                 airtime_ms: float = DEFAULT_AIRTIME_MS):
        self._forward = LoopbackForward(scheduler, forward)
        self._backward = LoopbackBackward(scheduler, backward, airtime_ms)

    @property
    def forward(self) -> LoopbackForward:
        return self._forward

    @property
    def backward(self) -> LoopbackBackward:
        return self._backward

    def close(self) -> None:
        self._forward._subs.clear()
        self._backward._subs.clear()
