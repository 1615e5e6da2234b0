from __future__ import annotations
from dataclasses import dataclass
from typing import Iterator, List, Optional


@dataclass(frozen=True)
class Chunk:
    index: int
    payload: str


def segment(data: str, chunk_size: int) -> List[Chunk]:
    """Split data into ceil(len(data) / chunk_size) ordered chunks."""
    if isinstance(chunk_size, bool) or not isinstance(chunk_size, int) or chunk_size <= 0:
        raise ValueError(f"chunk_size must be a positive integer, got {chunk_size!r}")
    return [
        Chunk(i // chunk_size, data[i:i + chunk_size])
        for i in range(0, len(data), chunk_size)
    ]


class Message:
    """An immutable, segmented message. `total` is fixed at construction."""

    def __init__(self, data: str, chunk_size: int):
        self.data = data
        self.chunk_size = chunk_size
        self.chunks = tuple(segment(data, chunk_size))

    @property
    def total(self) -> int:
        return len(self.chunks)

    def get_chunk(self, index: int) -> Optional[Chunk]:
        if 0 <= index < len(self.chunks):
            return self.chunks[index]
        return None

    def __len__(self) -> int:
        return len(self.chunks)

    def __iter__(self) -> Iterator[Chunk]:
        return iter(self.chunks)
