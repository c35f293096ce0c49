"""Position allocation for cards within a column.

Positions are positive integers spaced ``STEP`` apart on creation so later
inserts can take the midpoint between two neighbours without touching the
rest of the column. When the gap is used up the caller renumbers.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import replace

from .errors import PrecisionExhausted
from .models import Card

STEP = 1000
BASELINE = 1000

# Exclusive lower bound; positions are always greater than this.
FLOOR = 0


def allocate_between(before: int | None, after: int | None) -> int:
    """Return a position strictly between ``before`` and ``after``.

    Either neighbour may be ``None`` (top or bottom of the column).

    Raises:
        PrecisionExhausted: When no integer fits between the neighbours.
    """
    if before is None and after is None:
        return BASELINE

    if after is None:
        return before + STEP

    if before is None:
        if after - STEP > FLOOR:
            return after - STEP
        return _midpoint(FLOOR, after, before=None)

    return _midpoint(before, after, before=before)


def _midpoint(low: int, high: int, before: int | None) -> int:
    if high - low < 2:
        raise PrecisionExhausted(before, high)
    return low + (high - low) // 2


def allocate_many(before: int | None, after: int | None, count: int) -> list[int]:
    """Return ``count`` increasing positions strictly between two neighbours.

    Used when several cards are dropped into one slot together. Values are
    spread evenly across the gap.

    Raises:
        PrecisionExhausted: When the gap cannot hold ``count`` distinct keys.
    """
    if count == 1:
        return [allocate_between(before, after)]

    if after is None:
        base = before if before is not None else BASELINE - STEP
        return [base + STEP * (i + 1) for i in range(count)]

    if before is None and after - STEP * count > FLOOR:
        return [after - STEP * (count - i) for i in range(count)]

    low = FLOOR if before is None else before
    gap = after - low
    if gap < count + 1:
        raise PrecisionExhausted(before, after)
    return [low + gap * (i + 1) // (count + 1) for i in range(count)]


def spaced_positions(count: int) -> list[int]:
    """Evenly spaced positions for a column of ``count`` cards."""
    return [(i + 1) * STEP for i in range(count)]


def append_position(positions: Iterable[int]) -> int:
    """Position for a card added to the end of a column."""
    last = max(positions, default=None)
    return allocate_between(last, None)


def renumber(cards: Sequence[Card]) -> list[Card]:
    """Reassign evenly spaced positions, preserving the given order.

    Idempotent: an already evenly spaced list comes back unchanged.
    """
    return [
        card if card.position == pos else replace(card, position=pos)
        for card, pos in zip(cards, spaced_positions(len(cards)), strict=True)
    ]


def needs_renumber(positions: Sequence[int]) -> bool:
    """True when ``positions`` are not strictly increasing and positive."""
    previous = FLOOR
    for pos in positions:
        if pos <= previous:
            return True
        previous = pos
    return False
