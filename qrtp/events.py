from __future__ import annotations
import logging
from dataclasses import dataclass
from enum import StrEnum
from typing import Any, Callable, Dict, List, Tuple

log = logging.getLogger(__name__)

Ranges = Tuple[Tuple[int, int], ...]

# Event kinds emitted to the application layer
class EventKind(StrEnum):
    INIT             = "init"
    FRAME            = "frame"
    CHUNK            = "chunk"
    ACK              = "ack"
    COMPLETE         = "complete"
    ALL_ACKNOWLEDGED = "allAcknowledged"
    SENDING          = "sending"
    SENT             = "sent"

@dataclass(frozen=True)
class InitEvent:
    total: int                   # number of chunks
    size: int                    # chunk size in characters
    data_length: int

@dataclass(frozen=True)
class FrameEvent:
    data: str                    # encoded forward frame now on display
    index: int
    total: int

@dataclass(frozen=True)
class ChunkEvent:
    index: int
    total: int
    payload: str
    received: int                # distinct chunks held so far

@dataclass(frozen=True)
class AckEvent:
    acknowledged: Tuple[int, ...]
    remaining: int

@dataclass(frozen=True)
class CompleteEvent:
    data: str
    total: int
    checksum: str                # crc32, 8 hex chars

@dataclass(frozen=True)
class AllAcknowledgedEvent:
    total: int

@dataclass(frozen=True)
class TransmissionEvent:
    """Payload of both `sending` and `sent`."""
    ranges: Ranges
    count: int                   # indices covered by the ranges


Handler = Callable[[Any], None]


class EventBus:
    """One observer list per event kind."""

    def __init__(self):
        self._handlers: Dict[EventKind, List[Handler]] = {k: [] for k in EventKind}

    def on(self, kind: str, handler: Handler) -> Handler:
        self._handlers[EventKind(kind)].append(handler)
        return handler

    def off(self, kind: str, handler: Handler) -> bool:
        handlers = self._handlers[EventKind(kind)]
        if handler in handlers:
            handlers.remove(handler)
            return True
        return False

    def emit(self, kind: EventKind, payload: Any) -> None:
        # copy: handlers may unsubscribe while being called
        for h in list(self._handlers[kind]):
            try:
                h(payload)
            except Exception:
                log.exception("%s handler %r failed", kind, h)

    def clear(self) -> None:
        for handlers in self._handlers.values():
            handlers.clear()
