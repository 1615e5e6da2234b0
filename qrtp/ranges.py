from __future__ import annotations
from bisect import bisect_left, bisect_right
from typing import Iterable, Iterator, List, Optional, Sequence, Tuple

Range = Tuple[int, int]


class RangeSet:
    """
    Set of non-negative integers kept as sorted, disjoint, non-adjacent
    closed intervals. [1,2,3,4,5,9,10,11,15] is stored as (1,5) (9,11) (15,15)
    whatever the insertion order.
    """

    __slots__ = ("_starts", "_ends", "_count")

    def __init__(self, indices: Iterable[int] = ()):
        self._starts: List[int] = []
        self._ends: List[int] = []
        self._count = 0
        self.update(indices)

    @classmethod
    def from_ranges(cls, ranges: Iterable[Sequence[int]]) -> "RangeSet":
        rs = cls()
        for start, end in ranges:
            rs.add_range(start, end)
        return rs

    # ---- mutation ----
    def insert(self, index: int) -> bool:
        """Add one index; True if it was not already present."""
        return self.add_range(index, index) > 0

    def update(self, indices: Iterable[int]) -> int:
        return sum(self.add_range(i, i) for i in indices)

    def add_range(self, start: int, end: int) -> int:
        """Merge [start, end] in and return how many indices were new."""
        if isinstance(start, bool) or isinstance(end, bool) \
                or not isinstance(start, int) or not isinstance(end, int):
            raise ValueError(f"range bounds must be integers, got ({start!r}, {end!r})")
        if start < 0 or end < start:
            raise ValueError(f"invalid range ({start}, {end})")
        starts, ends = self._starts, self._ends
        # [lo, hi) are the intervals overlapping or touching [start, end]
        lo = bisect_left(ends, start - 1)
        hi = bisect_right(starts, end + 1)
        covered = 0
        if lo < hi:
            covered = sum(e - s + 1 for s, e in zip(starts[lo:hi], ends[lo:hi]))
            start = min(start, starts[lo])
            end = max(end, ends[hi - 1])
        starts[lo:hi] = [start]
        ends[lo:hi] = [end]
        added = (end - start + 1) - covered
        self._count += added
        return added

    def clear(self) -> None:
        self._starts.clear()
        self._ends.clear()
        self._count = 0

    # ---- queries ----
    def contains(self, index: int) -> bool:
        pos = bisect_right(self._starts, index) - 1
        return pos >= 0 and self._ends[pos] >= index

    def count(self) -> int:
        return self._count

    def is_complete(self, total: int) -> bool:
        return (total > 0 and len(self._starts) == 1
                and self._starts[0] == 0 and self._ends[0] == total - 1)

    def ranges(self) -> Tuple[Range, ...]:
        return tuple(zip(self._starts, self._ends))

    def indices(self) -> Iterator[int]:
        for s, e in zip(self._starts, self._ends):
            yield from range(s, e + 1)

    def next_missing(self, start: int, total: int) -> Optional[int]:
        """First index at or after `start` not in the set, wrapping inside [0, total)."""
        if total <= 0:
            return None
        start %= total
        for probe, limit in ((start, total), (0, start)):
            pos = bisect_right(self._starts, probe) - 1
            if pos >= 0 and self._ends[pos] >= probe:
                probe = self._ends[pos] + 1
            if probe < limit:
                return probe
        return None

    def to_batches(self, max_ranges: int) -> List[List[Range]]:
        if max_ranges <= 0:
            raise ValueError("max_ranges must be positive")
        flat = list(self.ranges())
        return [flat[i:i + max_ranges] for i in range(0, len(flat), max_ranges)]

    def copy(self) -> "RangeSet":
        rs = RangeSet()
        rs._starts = list(self._starts)
        rs._ends = list(self._ends)
        rs._count = self._count
        return rs

    def __contains__(self, index: object) -> bool:
        return isinstance(index, int) and self.contains(index)

    def __len__(self) -> int:
        return self._count

    def __bool__(self) -> bool:
        return self._count > 0

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, RangeSet):
            return NotImplemented
        return self._starts == other._starts and self._ends == other._ends

    def __repr__(self) -> str:
        return f"RangeSet({list(self.ranges())!r})"
