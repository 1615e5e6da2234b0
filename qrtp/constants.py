from __future__ import annotations

# Wire templates for the "header" format
FORWARD_TEMPLATE = "QRTPB<index:num>/<total:num>"
BACKWARD_TEMPLATE = "QB<ranges:numPairs>"

DEFAULT_CHUNK_SIZE = 800          # characters per chunk
DEFAULT_CYCLE_INTERVAL_MS = 400   # sender frame cadence

DEBOUNCE_MS = 1000                # quiet period before pending acks are batched
SEND_GAP_MS = 200                 # settle time between backward transmissions
MAX_RANGES_PER_BATCH = 5          # ranges per backward frame
BACKLOG_THRESHOLD = 3             # queued batches before compaction
FINAL_ACK_DELAY_MS = 1000         # delay of the single re-announcement after completion
DEFAULT_VOLUME = 80               # 1..100
