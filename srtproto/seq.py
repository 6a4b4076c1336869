"""31-bit circular sequence numbers for SRT data packets.

The sequence space wraps after ``MAX_SEQ`` back to 0. Comparisons treat two
numbers more than half the space apart as having wrapped around.
"""

from __future__ import annotations

from dataclasses import dataclass

MAX_SEQ = 0x7FFF_FFFF
"""Largest 31-bit sequence number."""

_SEQ_SPACE = MAX_SEQ + 1
_HALF_SEQ = (MAX_SEQ // 2) + 1


@dataclass(frozen=True)
class SeqNo:
    """A 31-bit circular sequence number; the value is masked on creation."""

    value: int = 0

    def __post_init__(self) -> None:
        object.__setattr__(self, "value", int(self.value) & MAX_SEQ)

    def __str__(self) -> str:
        return str(self.value)

    def __int__(self) -> int:
        return self.value

    def increment(self) -> SeqNo:
        """Return the next sequence number, wrapping to 0 after ``MAX_SEQ``."""
        return SeqNo(0 if self.value == MAX_SEQ else self.value + 1)

    def decrement(self) -> SeqNo:
        """Return the previous sequence number, wrapping to ``MAX_SEQ`` below 0."""
        return SeqNo(MAX_SEQ if self.value == 0 else self.value - 1)

    def add(self, offset: int) -> SeqNo:
        """Return this sequence number moved by ``offset`` (may be negative)."""
        return SeqNo((self.value + offset) % _SEQ_SPACE)

    def diff(self, other: SeqNo) -> int:
        """Signed circular distance ``self - other``; positive if ``self`` is ahead."""
        d = self.value - other.value
        if abs(d) < _HALF_SEQ:
            return d
        if d < 0:
            return d + _SEQ_SPACE
        return d - _SEQ_SPACE

    def is_after(self, other: SeqNo) -> bool:
        """True if ``self`` comes after ``other`` in circular order."""
        return self.diff(other) > 0

    def is_before(self, other: SeqNo) -> bool:
        """True if ``self`` comes before ``other`` in circular order."""
        return self.diff(other) < 0

    @staticmethod
    def offset(start: SeqNo, end: SeqNo) -> int:
        """Forward distance from ``start`` to ``end``, in ``[0, MAX_SEQ]``."""
        d = end.diff(start)
        return d if d >= 0 else d + _SEQ_SPACE