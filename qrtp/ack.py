from __future__ import annotations
import logging
from collections import deque
from functools import partial
from typing import Any, Callable, Deque, List, Optional

from .channel import BackwardChannel
from .events import EventKind, TransmissionEvent
from .exceptions import ChannelSendFailure
from .options import ProtocolOptions
from .ranges import Range, RangeSet
from .scheduler import Handle, Scheduler

log = logging.getLogger(__name__)

Batch = List[Range]


def _covered(batch: Batch) -> int:
    return sum(e - s + 1 for s, e in batch)


class AckScheduler:

    # Receiver side of the backward channel:
    # - confirmed indices collect in `pending` until the debounce window is quiet
    # - a flush moves them onto the send queue as batches
    # - a batch joins `acknowledged` once it was actually on air (or polled, without a channel)
    # - the queue drains serially, one transmission on air, send_gap_ms between sends
    # - a backlog over backlog_threshold batches is compacted into minimal ranges
    # - finish() sends everything now and once more after final_ack_delay_ms

    def __init__(self, channel: Optional[BackwardChannel], scheduler: Scheduler,
                 encode: Callable[[Batch], str], options: ProtocolOptions,
                 emit: Callable[[EventKind, Any], None]):
        self.channel = channel
        self.scheduler = scheduler
        self.encode = encode
        self.options = options
        self._emit = emit

        self.pending = RangeSet()
        self.acknowledged = RangeSet()     # exposed at least once
        self.queue: Deque[Batch] = deque()

        self._on_air: Optional[Batch] = None
        self._on_air_frame: Optional[str] = None
        self._ready_at = 0.0
        self._debounce: Optional[Handle] = None
        self._drain: Optional[Handle] = None
        self._final: Optional[Handle] = None
        self._finished = False
        self._closed = False

        self.sends = 0
        self.failures = 0

    @property
    def in_flight(self) -> bool:
        return self._on_air is not None

    @property
    def finished(self) -> bool:
        return self._finished

    def confirm(self, index: int) -> None:
        """A chunk was received for the first time."""
        if self._closed:
            return
        if self.pending.insert(index):
            self._arm()

    def reannounce(self, index: int) -> None:
        """An acknowledged chunk showed up again: the sender missed our ack."""
        if self._closed:
            return
        if self.pending.insert(index):
            log.debug("re-announcing chunk %d", index)
            self._arm()

    def _arm(self) -> None:
        self.scheduler.cancel(self._debounce)
        self._debounce = self.scheduler.schedule(self.options.debounce_ms, self.flush)

    def flush(self) -> int:
        """Move pending indices onto the send queue. Returns batches queued."""
        self.scheduler.cancel(self._debounce)
        self._debounce = None
        if self._closed or not self.pending:
            return 0
        batches = self.pending.to_batches(self.options.max_ranges_per_batch)
        self.pending.clear()
        for batch in batches:
            self._enqueue(batch)
        self._pump()
        return len(batches)

    def finish(self, received: RangeSet) -> None:
        """Everything arrived: acknowledge it all now, once more later, then stop."""
        if self._closed or self._finished:
            return
        self._finished = True
        self.scheduler.cancel(self._debounce)
        self._debounce = None
        self.pending.clear()
        everything = received.copy()
        log.info("all %d chunks received; sending final acknowledgment", everything.count())
        self._announce_all(everything)
        self._final = self.scheduler.schedule(
            self.options.final_ack_delay_ms, partial(self._final_fired, everything))

    def _final_fired(self, everything: RangeSet) -> None:
        self._final = None
        if not self._closed:
            self._announce_all(everything)

    def _announce_all(self, everything: RangeSet) -> None:
        # covering every index supersedes whatever is still queued
        self.queue = deque(everything.to_batches(self.options.max_ranges_per_batch))
        self._pump()

    def _enqueue(self, batch: Batch, front: bool = False) -> None:
        if front:
            self.queue.appendleft(batch)
        else:
            self.queue.append(batch)
        if len(self.queue) > self.options.backlog_threshold:
            self._compact()

    def _compact(self) -> None:
        merged = RangeSet.from_ranges(r for batch in self.queue for r in batch)
        log.warning("ack backlog of %d batches; compacting %d ranges",
                    len(self.queue), len(merged.ranges()))
        self.queue = deque(merged.to_batches(self.options.max_ranges_per_batch))

    # ---- serial drain ----
    def _pump(self) -> None:
        if self._closed or self.channel is None or self._on_air is not None or not self.queue:
            return
        wait = self._ready_at - self.scheduler.now_ms()
        if wait > 0:
            if self._drain is None:
                self._drain = self.scheduler.schedule(wait, self._drain_fired)
            return

        batch = self.queue.popleft()
        frame = self.encode(batch)
        self._on_air, self._on_air_frame = batch, frame
        self._emit(EventKind.SENDING, TransmissionEvent(tuple(batch), _covered(batch)))
        log.debug("sending ack %s", frame)
        try:
            self.channel.send(frame, self.options.volume, partial(self._sent, batch))
        except ChannelSendFailure as e:
            self._sent(batch, e)

    def _drain_fired(self) -> None:
        self._drain = None
        self._pump()

    def _sent(self, batch: Batch, error: Optional[BaseException] = None) -> None:
        if self._closed or self._on_air is not batch:
            return  # stale completion
        self._on_air, self._on_air_frame = None, None
        self._ready_at = self.scheduler.now_ms() + self.options.send_gap_ms
        if error is not None:
            self.failures += 1
            log.warning("ack transmission failed (%s); requeueing %s", error, batch)
            self._enqueue(batch, front=True)
        else:
            self.sends += 1
            self._mark(batch)
            self._emit(EventKind.SENT, TransmissionEvent(tuple(batch), _covered(batch)))
        # never recurse into the next send, even if `done` fired synchronously
        if self.queue and self._drain is None and not self._closed:
            self._drain = self.scheduler.schedule(self.options.send_gap_ms, self._drain_fired)

    def _mark(self, batch: Batch) -> None:
        for s, e in batch:
            self.acknowledged.add_range(s, e)

    def current_frame(self) -> Optional[str]:
        """
        With a channel: the frame on air, else the next queued one.
        Without one the queue is an outbox: each call exposes the head batch
        and rotates it to the back, so every batch gets its turn.
        """
        if self._on_air_frame is not None:
            return self._on_air_frame
        if not self.queue:
            return None
        if self.channel is not None:
            return self.encode(self.queue[0])
        batch = self.queue.popleft()
        self.queue.append(batch)
        self._mark(batch)
        return self.encode(batch)

    def close(self) -> None:
        self._closed = True
        for h in (self._debounce, self._drain, self._final):
            self.scheduler.cancel(h)
        self._debounce = self._drain = self._final = None
        self.queue.clear()
        self.pending.clear()
        self._on_air = self._on_air_frame = None
