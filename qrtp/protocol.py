from __future__ import annotations
import logging
from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any, Callable, List, Optional, Tuple, Union

from .ack import AckScheduler, Batch
from .channel import Link
from .codecs import Codec, Codecs
from .cycle import CycleScheduler, Phase
from .events import (
    AckEvent,
    AllAcknowledgedEvent,
    ChunkEvent,
    EventBus,
    EventKind,
    FrameEvent,
    InitEvent,
)
from .exceptions import MalformedFrame
from .options import ProtocolOptions
from .ranges import Range, RangeSet
from .reassembler import Reassembler
from .scheduler import AsyncioScheduler, Scheduler
from .segmenter import Message

log = logging.getLogger(__name__)

class Role(StrEnum):
    IDLE     = "idle"
    SENDER   = "sender"
    RECEIVER = "receiver"

@dataclass
class SenderState:
    message: Message
    cycle: CycleScheduler

@dataclass
class ReceiverState:
    ack: AckScheduler
    received: RangeSet = field(default_factory=RangeSet)
    reassembler: Reassembler = field(default_factory=Reassembler)
    total: int = 0           # learned from the first valid frame


def _is_uint(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool) and value >= 0


def _valid_ranges(value: Any) -> Optional[List[Range]]:
    if not isinstance(value, (list, tuple)):
        return None
    out: List[Range] = []
    for pair in value:
        if not isinstance(pair, (list, tuple)) or len(pair) != 2:
            return None
        start, end = pair
        if not (_is_uint(start) and _is_uint(end)) or start > end:
            return None
        out.append((start, end))
    return out


class Protocol:

    # Notes:
    # - One instance plays one role at a time: configure_sender / configure_receiver
    # - Sender shows one forward frame at a time and learns acks from the backward channel
    # - Receiver stores chunks from forward frames and announces index ranges back
    # - Each role's state lives in one value (SenderState / ReceiverState); reset() drops it
    # - Bad input never raises out of parse_*: it is logged at DEBUG and dropped
    # Works with or without a Link: parse_* / current_* are usable directly

    def __init__(self, link: Optional[Link] = None, scheduler: Optional[Scheduler] = None, *,
                 codec: Union[str, Tuple[Codec, Codec]] = "header",
                 options: Optional[ProtocolOptions] = None,
                 owns_link: bool = False):
        self.link = link
        self.scheduler = scheduler or AsyncioScheduler()
        self.options = options or ProtocolOptions()
        if isinstance(codec, str):
            self._fwd, self._bwd = Codecs.pair(codec)
        else:
            self._fwd, self._bwd = codec
        self._owns_link = owns_link
        self.events = EventBus()

        self.role = Role.IDLE
        self._sender: Optional[SenderState] = None
        self._receiver: Optional[ReceiverState] = None

    # ---- events ----
    def on(self, kind: str, handler: Callable[[Any], None]) -> Callable[[Any], None]:
        """Subscribe to an event kind (see EventKind); returns the handler."""
        return self.events.on(kind, handler)

    def off(self, kind: str, handler: Callable[[Any], None]) -> bool:
        return self.events.off(kind, handler)

    # ---- configuration ----
    def configure_sender(self, data: str, chunk_size: Optional[int] = None,
                         cycle_interval_ms: Optional[float] = None) -> None:
        if chunk_size is None:
            chunk_size = self.options.default_chunk_size
        if cycle_interval_ms is None:
            cycle_interval_ms = self.options.default_cycle_interval_ms
        if not isinstance(data, str) or not data:
            raise ValueError("data must be a non-empty string")
        if cycle_interval_ms <= 0:
            raise ValueError("cycle interval must be positive")
        message = Message(data, chunk_size)

        self.reset()
        cycle = CycleScheduler(message.total, self.scheduler, cycle_interval_ms,
                               on_advance=self._show, on_done=self._all_acknowledged,
                               on_learn=self._acknowledged)
        self._sender = SenderState(message, cycle)
        self.role = Role.SENDER
        if self.link is not None:
            self.link.backward.subscribe(self._on_backward)

        log.info("sender configured; chunks=%d size=%d length=%d",
                 message.total, chunk_size, len(data))
        self.events.emit(EventKind.INIT, InitEvent(message.total, chunk_size, len(data)))
        if self._sender is not None and self._sender.cycle is cycle:
            cycle.start()
            self._show(cycle.cursor)

    def configure_receiver(self) -> None:
        self.reset()
        ack = AckScheduler(self.link.backward if self.link is not None else None,
                           self.scheduler, self._encode_ack, self.options, self.events.emit)
        self._receiver = ReceiverState(ack)
        self.role = Role.RECEIVER
        if self.link is not None:
            self.link.forward.subscribe(self._on_forward)
        log.info("receiver configured")

    # ---- forward channel ----
    def current_forward_frame(self) -> Optional[str]:
        st = self._sender
        if st is None or st.cycle.phase is Phase.DONE:
            return None
        chunk = st.message.get_chunk(st.cycle.cursor)
        if chunk is None:
            return None
        return self._fwd.encode({"index": chunk.index, "total": st.message.total,
                                 "payload": chunk.payload})

    def parse_forward_frame(self, raw: str) -> bool:
        """Receiver: feed one observed forward frame. True if it carried a new chunk."""
        st = self._receiver
        if st is None:
            return False
        try:
            fields = self._fwd.decode(raw)
        except MalformedFrame as e:
            log.debug("dropping malformed forward frame: %s", e)
            return False

        index, total, payload = fields.get("index"), fields.get("total"), fields.get("payload")
        if not (_is_uint(index) and _is_uint(total)) or not isinstance(payload, str) or not payload:
            log.debug("dropping forward frame with bad fields: %r", raw)
            return False
        if index >= total:
            log.debug("dropping out-of-range chunk %d/%d", index, total)
            return False
        if st.total == 0:
            st.total = st.reassembler.total = total
        elif total != st.total:
            log.debug("dropping chunk from another session (total %d, expected %d)", total, st.total)
            return False

        if index in st.received:
            if index in st.ack.acknowledged:
                st.ack.reannounce(index)
            return False

        st.received.insert(index)
        st.reassembler.add(index, payload)
        st.ack.confirm(index)
        log.debug("chunk %d/%d; holding %d", index, total, st.received.count())
        self.events.emit(EventKind.CHUNK, ChunkEvent(index, total, payload, st.received.count()))
        if self._receiver is not st:
            return True  # reset from a handler

        if st.received.is_complete(st.total):
            event = st.reassembler.complete()
            if event is not None:
                log.info("message complete; chunks=%d length=%d crc=%s",
                         event.total, len(event.data), event.checksum)
                self.events.emit(EventKind.COMPLETE, event)
            st.ack.finish(st.received)
        return True

    def _on_forward(self, raw: str) -> None:
        self.parse_forward_frame(raw)

    def _show(self, index: int) -> None:
        frame = self.current_forward_frame()
        if frame is None:
            return
        if self.link is not None:
            self.link.forward.show(frame)
        self.events.emit(EventKind.FRAME, FrameEvent(frame, index, self.total))

    # ---- backward channel ----
    def current_backward_frame(self) -> Optional[str]:
        st = self._receiver
        if st is None:
            return None
        return st.ack.current_frame()

    def parse_backward_frame(self, raw: str) -> bool:
        """Sender: feed one received acknowledgment. True if it acknowledged something new."""
        st = self._sender
        if st is None:
            return False
        try:
            fields = self._bwd.decode(raw)
        except MalformedFrame as e:
            log.debug("dropping malformed backward frame: %s", e)
            return False
        ranges = _valid_ranges(fields.get("ranges"))
        if ranges is None:
            log.debug("dropping backward frame with bad ranges: %r", raw)
            return False
        return st.cycle.learn(ranges) > 0

    def _on_backward(self, raw: str) -> None:
        self.parse_backward_frame(raw)

    def _encode_ack(self, batch: Batch) -> str:
        return self._bwd.encode({"ranges": [tuple(r) for r in batch]})

    def _acknowledged(self, added: int) -> None:
        st = self._sender
        if st is None:
            return
        log.debug("learned %d acknowledgments; %d remaining", added, st.cycle.remaining)
        self.events.emit(EventKind.ACK, AckEvent(tuple(st.cycle.learned.indices()),
                                                 st.cycle.remaining))

    def _all_acknowledged(self) -> None:
        st = self._sender
        if st is None:
            return
        self.events.emit(EventKind.ALL_ACKNOWLEDGED, AllAcknowledgedEvent(st.message.total))

    # ---- introspection ----
    @property
    def phase(self) -> Phase:
        return self._sender.cycle.phase if self._sender is not None else Phase.IDLE

    @property
    def cursor(self) -> int:
        return self._sender.cycle.cursor if self._sender is not None else 0

    @property
    def total(self) -> int:
        if self._sender is not None:
            return self._sender.message.total
        if self._receiver is not None:
            return self._receiver.total
        return 0

    @property
    def is_complete(self) -> bool:
        if self._sender is not None:
            return self._sender.cycle.phase is Phase.DONE
        if self._receiver is not None:
            return self._receiver.received.is_complete(self._receiver.total)
        return False

    @property
    def acknowledged(self) -> Tuple[Range, ...]:
        """Sender: ranges learned from the receiver. Receiver: ranges announced so far."""
        if self._sender is not None:
            return self._sender.cycle.learned.ranges()
        if self._receiver is not None:
            return self._receiver.ack.acknowledged.ranges()
        return ()

    @property
    def sender_state(self) -> Optional[SenderState]:
        return self._sender

    @property
    def receiver_state(self) -> Optional[ReceiverState]:
        return self._receiver

    def received_message(self) -> str:
        if self._receiver is None:
            return ""
        return self._receiver.reassembler.join()

    # ---- teardown ----
    def reset(self) -> None:
        """Cancel timers, drop queues and listeners, back to IDLE."""
        if self._sender is not None:
            self._sender.cycle.stop()
        if self._receiver is not None:
            self._receiver.ack.close()
        if self.link is not None:
            self.link.forward.unsubscribe(self._on_forward)
            self.link.backward.unsubscribe(self._on_backward)
        self._sender = None
        self._receiver = None
        self.role = Role.IDLE

    def dispose(self) -> None:
        self.reset()
        self.events.clear()
        if self._owns_link and self.link is not None:
            self.link.close()
