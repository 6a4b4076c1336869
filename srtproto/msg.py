"""26-bit message numbers carried in the MSGNO header word."""

from __future__ import annotations

from dataclasses import dataclass

MAX_MSG_SEQ = 0x03FF_FFFF
"""Largest 26-bit message number."""


@dataclass(frozen=True)
class MsgNo:
    """A 26-bit circular message number in ``[1, MAX_MSG_SEQ]``; 0 becomes 1."""

    value: int = 1

    def __post_init__(self) -> None:
        masked = int(self.value) & MAX_MSG_SEQ
        object.__setattr__(self, "value", masked or 1)

    def __str__(self) -> str:
        return str(self.value)

    def __int__(self) -> int:
        return self.value

    def increment(self) -> MsgNo:
        """Return the next message number, skipping 0 on wrap."""
        return MsgNo(1 if self.value >= MAX_MSG_SEQ else self.value + 1)