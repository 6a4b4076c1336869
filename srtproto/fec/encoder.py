"""Sender-side FEC: accumulates XOR parity per row and column group.

A row FEC packet is produced every ``cols`` data packets; in 2D mode a
column FEC packet is produced whenever a column group is complete. FEC
packets are never stored for retransmission.
"""

from __future__ import annotations

import struct
from dataclasses import dataclass, field

from ..seq import SeqNo
from .filter import FEC_GROUP_ROW, FecConfig, FecLayout, xor_into

_U16 = struct.Struct(">H")


@dataclass(frozen=True)
class FecPacketData:
    """What is needed to send one FEC packet.

    ``seq_no`` is the last data packet of the group, ``timestamp`` the XOR of
    the group's timestamps and ``payload`` the 4-byte FEC header plus parity.
    """

    seq_no: SeqNo
    timestamp: int
    payload: bytes


@dataclass
class _GroupState:
    expected: int
    parity: bytearray = field(default_factory=bytearray)
    timestamp: int = 0
    enc_flags: int = 0
    length: int = 0
    count: int = 0
    last_seq: SeqNo = field(default_factory=SeqNo)

    def feed(self, seq: SeqNo, timestamp: int, enc_flags: int, payload: bytes) -> None:
        xor_into(self.parity, payload)
        self.timestamp ^= timestamp & 0xFFFF_FFFF
        self.enc_flags ^= enc_flags & 0xFF
        self.length ^= len(payload) & 0xFFFF
        self.count += 1
        self.last_seq = seq

    @property
    def complete(self) -> bool:
        return self.count >= self.expected

    def reset(self) -> None:
        self.parity = bytearray()
        self.timestamp = 0
        self.enc_flags = 0
        self.length = 0
        self.count = 0

    def emit(self, group_index: int) -> FecPacketData:
        payload = (
            bytes((group_index & 0xFF, self.enc_flags))
            + _U16.pack(self.length)
            + bytes(self.parity)
        )
        packet = FecPacketData(self.last_seq, self.timestamp, payload)
        self.reset()
        return packet


class FecEncoder:
    """Builds FEC packets from the stream of outgoing data packets."""

    def __init__(self, config: FecConfig) -> None:
        self.config = config
        self._row = _GroupState(config.cols)
        self._cols = (
            [_GroupState(config.rows) for _ in range(config.cols)]
            if config.is_2d()
            else []
        )
        self._pkt_counter = 0

    def on_data_packet(
        self, seq: SeqNo, timestamp: int, enc_flags: int, payload: bytes
    ) -> list[FecPacketData]:
        """Feed one data packet; return the FEC packets that are now due (row first)."""
        self._row.feed(seq, timestamp, enc_flags, payload)

        if self.config.is_2d():
            col_index = self.column_index_for_packet(self._pkt_counter)
            if col_index < len(self._cols):
                self._cols[col_index].feed(seq, timestamp, enc_flags, payload)

        self._pkt_counter += 1

        fec_packets: list[FecPacketData] = []
        if self._row.complete:
            fec_packets.append(self._row.emit(FEC_GROUP_ROW))

        if self.config.is_2d():
            fec_packets.extend(
                group.emit(col_idx)
                for col_idx, group in enumerate(self._cols)
                if group.complete
            )

        return fec_packets

    def column_index_for_packet(self, pkt_pos: int) -> int:
        """Column that the packet at stream position ``pkt_pos`` belongs to."""
        cols = self.config.cols
        if cols == 0:
            return 0
        matrix = self.config.matrix_size()
        pos = pkt_pos % matrix

        if self.config.layout is FecLayout.EVEN:
            return pos % cols

        for c in range(cols):
            base = self.config.column_base_offset(c)
            if any((base + r * cols) % matrix == pos for r in range(self.config.rows)):
                return c
        return pos % cols