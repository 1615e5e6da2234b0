from __future__ import annotations
from dataclasses import dataclass

from .constants import (
    BACKLOG_THRESHOLD,
    DEBOUNCE_MS,
    DEFAULT_CHUNK_SIZE,
    DEFAULT_CYCLE_INTERVAL_MS,
    DEFAULT_VOLUME,
    FINAL_ACK_DELAY_MS,
    MAX_RANGES_PER_BATCH,
    SEND_GAP_MS,
)

@dataclass(frozen=True)
class ProtocolOptions:
    debounce_ms: float          = DEBOUNCE_MS
    send_gap_ms: float          = SEND_GAP_MS
    max_ranges_per_batch: int   = MAX_RANGES_PER_BATCH
    backlog_threshold: int      = BACKLOG_THRESHOLD
    final_ack_delay_ms: float   = FINAL_ACK_DELAY_MS
    volume: int                 = DEFAULT_VOLUME
    default_chunk_size: int     = DEFAULT_CHUNK_SIZE
    default_cycle_interval_ms: float = DEFAULT_CYCLE_INTERVAL_MS

    def __post_init__(self):
        for name in ("debounce_ms", "send_gap_ms", "final_ack_delay_ms"):
            if getattr(self, name) < 0:
                raise ValueError(f"{name} must be >= 0")
        for name in ("max_ranges_per_batch", "backlog_threshold", "default_chunk_size"):
            if getattr(self, name) <= 0:
                raise ValueError(f"{name} must be > 0")
        if self.default_cycle_interval_ms <= 0:
            raise ValueError("default_cycle_interval_ms must be > 0")
        if not 1 <= self.volume <= 100:
            raise ValueError("volume must be within 1..100")
