"""Gap-based position allocation for ordered photo collections.

Positions are sparse signed integers. Appends land ``gap`` above the current
maximum, moves land at a collection boundary (``gap`` beyond the first or
last neighbour) or at the integer midpoint of the two neighbours that will
surround the moved item. Nothing here performs I/O; callers pass the
positions they read from the order store.
"""

from __future__ import annotations

from typing import List, Sequence

DEFAULT_OFFSET = 128
DEFAULT_GAP = 128


class PositionExhausted(Exception):
    """No free integer remains between two neighbouring positions.

    Raised instead of returning a colliding position. The collection must be
    renumbered (see ``canonical_positions``) before allocating again.
    """

    def __init__(self, lo: int, hi: int) -> None:
        super().__init__(f"no free position between {lo} and {hi}")
        self.lo = lo
        self.hi = hi


def append_position(
    existing_positions: Sequence[int],
    *,
    offset: int = DEFAULT_OFFSET,
    gap: int = DEFAULT_GAP,
) -> int:
    """Return the position for an item appended after ``existing_positions``."""
    if not existing_positions:
        return int(offset)
    return int(max(existing_positions)) + int(gap)


def move_position(
    other_positions: Sequence[int],
    target_index: int,
    *,
    gap: int = DEFAULT_GAP,
) -> int:
    """Return the position placing an item at ``target_index`` among ``other_positions``.

    ``other_positions`` are the positions of the collection with the moved
    item already excluded, sorted ascending. ``target_index`` is zero-based
    and may equal ``len(other_positions)`` (move to the end).

    Raises ``ValueError`` for an empty list or an out-of-range index and
    ``PositionExhausted`` when the two neighbours are adjacent integers.
    """
    count = len(other_positions)
    if count == 0:
        raise ValueError("cannot compute a move position without neighbours")
    if target_index < 0 or target_index > count:
        raise ValueError(f"target_index {target_index} outside [0, {count}]")

    if target_index == 0:
        return int(other_positions[0]) - int(gap)
    if target_index == count:
        return int(other_positions[-1]) + int(gap)

    lo = int(other_positions[target_index - 1])
    hi = int(other_positions[target_index])
    candidate = lo + abs(hi - lo) // 2
    # Midpoint collapses onto a neighbour once the gap is a single step
    if candidate == lo or candidate == hi:
        raise PositionExhausted(lo, hi)
    return candidate


def canonical_positions(
    count: int,
    *,
    offset: int = DEFAULT_OFFSET,
    gap: int = DEFAULT_GAP,
) -> List[int]:
    """Evenly spaced positions ``offset, offset+gap, ...`` for ``count`` items."""
    return [int(offset) + idx * int(gap) for idx in range(int(count))]


__all__ = [
    "DEFAULT_OFFSET",
    "DEFAULT_GAP",
    "PositionExhausted",
    "append_position",
    "move_position",
    "canonical_positions",
]
