from __future__ import annotations
import logging
import zlib
from typing import Dict, Optional

from .events import CompleteEvent

log = logging.getLogger(__name__)


def checksum(data: str) -> str:
    return format(zlib.crc32(data.encode("utf-8")) & 0xFFFFFFFF, "08x")


class Reassembler:
    """Collects chunk payloads for one session and joins them in index order."""

    def __init__(self, total: int = 0):
        self.total = total
        self._chunks: Dict[int, str] = {}
        self._completed = False

    def add(self, index: int, payload: str) -> bool:
        if index in self._chunks:
            return False
        self._chunks[index] = payload
        return True

    def __len__(self) -> int:
        return len(self._chunks)

    @property
    def completed(self) -> bool:
        return self._completed

    def join(self) -> str:
        """Present chunks in index order; missing slots contribute nothing."""
        missing = self.total - len(self._chunks)
        if missing > 0:
            log.warning("joining with %d of %d chunks missing", missing, self.total)
        return "".join(self._chunks[i] for i in sorted(self._chunks))

    def complete(self) -> Optional[CompleteEvent]:
        """The completion event, the first time only."""
        if self._completed:
            return None
        self._completed = True
        data = self.join()
        return CompleteEvent(data=data, total=self.total, checksum=checksum(data))
