"""Receiver-side state of one FEC group (a row or a column).

Each group accumulates the XOR of the payloads, timestamps, encryption
flags and lengths of the members it has seen, plus the group's FEC parity
packet. Once the parity packet has arrived and exactly one member is
missing, the accumulated XOR is that missing member.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from ..seq import SeqNo
from .filter import xor_into


@dataclass(frozen=True)
class RecoveredPacket:
    """A data packet rebuilt from FEC parity."""

    seq_no: SeqNo
    timestamp: int
    enc_flags: int
    payload: bytes


@dataclass
class RecvGroup:
    """One FEC receive group; ``member_seqs`` lists its members in group order."""

    member_seqs: list[SeqNo]
    group_size: int
    received: list[bool] = field(init=False)
    parity_payload: bytearray = field(init=False, default_factory=bytearray)
    parity_timestamp: int = field(init=False, default=0)
    parity_enc_flags: int = field(init=False, default=0)
    parity_length: int = field(init=False, default=0)
    fec_received: bool = field(init=False, default=False)

    def __post_init__(self) -> None:
        self.member_seqs = list(self.member_seqs)
        self.received = [False] * self.group_size

    def _fold(self, payload: bytes, timestamp: int, enc_flags: int, length: int) -> None:
        xor_into(self.parity_payload, payload)
        self.parity_timestamp ^= timestamp & 0xFFFF_FFFF
        self.parity_enc_flags ^= enc_flags & 0xFF
        self.parity_length ^= length & 0xFFFF

    def on_data_packet(
        self, index: int, timestamp: int, enc_flags: int, payload: bytes
    ) -> None:
        """Feed member ``index``; out-of-range indices and duplicates are ignored."""
        if not 0 <= index < self.group_size or self.received[index]:
            return
        self.received[index] = True
        self._fold(payload, timestamp, enc_flags, len(payload))

    def on_fec_packet(
        self,
        parity_payload: bytes,
        parity_timestamp: int,
        parity_enc_flags: int,
        parity_length: int,
    ) -> None:
        """Feed the group's FEC parity packet; a second one is ignored."""
        if self.fec_received:
            return
        self.fec_received = True
        self._fold(parity_payload, parity_timestamp, parity_enc_flags, parity_length)

    def missing_count(self) -> int:
        """Number of members not yet received."""
        return self.received.count(False)

    def try_recover(self) -> tuple[int, RecoveredPacket] | None:
        """Rebuild the single missing member.

        Returns ``(index, packet)`` when the parity packet has arrived and
        exactly one member is missing, otherwise None.
        """
        if not self.fec_received or self.missing_count() != 1:
            return None
        missing_idx = self.received.index(False)
        if missing_idx >= len(self.member_seqs):
            return None

        length = self.parity_length
        if 0 < length <= len(self.parity_payload):
            payload = bytes(self.parity_payload[:length])
        else:
            payload = bytes(self.parity_payload)

        return missing_idx, RecoveredPacket(
            seq_no=self.member_seqs[missing_idx],
            timestamp=self.parity_timestamp,
            enc_flags=self.parity_enc_flags,
            payload=payload,
        )

    def uncoverable_losses(self) -> list[SeqNo]:
        """Members that FEC cannot rebuild: parity arrived but two or more are missing."""
        if not self.fec_received or self.missing_count() < 2:
            return []
        return [
            self.member_seqs[i]
            for i, got in enumerate(self.received)
            if not got and i < len(self.member_seqs)
        ]

    def mark_received(
        self, index: int, timestamp: int, enc_flags: int, payload: bytes
    ) -> None:
        """Feed a member rebuilt elsewhere (for example by another dimension)."""
        self.on_data_packet(index, timestamp, enc_flags, payload)