"""Receiver-side FEC: tracks row and column groups and rebuilds lost packets.

Every received data packet is fed into its row group and, in 2D mode, its
column group. When a group holds its parity packet and exactly one member
is missing, that member is rebuilt. A packet rebuilt in one dimension is
fed into the other, which may make further recoveries possible.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from itertools import chain

from ..seq import SeqNo
from .filter import FEC_GROUP_ROW, FEC_HEADER_SIZE, FecConfig, FecLayout
from .recv_group import RecoveredPacket, RecvGroup

logger = logging.getLogger(__name__)

ColumnKey = tuple[int, int]
"""(column index, matrix cycle) identifying one column group."""


@dataclass
class FecDecodeResult:
    """Outcome of processing an FEC packet.

    ``recovered`` holds the rebuilt packets; ``uncoverable`` the sequence
    numbers of complete groups with two or more members missing, which only
    retransmission can restore.
    """

    recovered: list[RecoveredPacket] = field(default_factory=list)
    uncoverable: list[SeqNo] = field(default_factory=list)


class FecDecoder:
    """Rebuilds lost data packets from received data and FEC packets.

    ``base_seq`` is the peer's initial sequence number; group positions are
    counted from it.
    """

    def __init__(self, config: FecConfig, base_seq: SeqNo) -> None:
        self.config = config
        self.base_seq = base_seq
        self.row_groups: dict[int, RecvGroup] = {}
        self.col_groups: dict[ColumnKey, RecvGroup] = {}
        self._received_seqs: set[int] = set()

    # ── Public interface ──

    def on_data_packet(
        self, seq: SeqNo, timestamp: int, enc_flags: int, payload: bytes
    ) -> list[RecoveredPacket]:
        """Register a received data packet; return any packets it lets FEC rebuild."""
        if seq.value in self._received_seqs:
            return []
        self._received_seqs.add(seq.value)

        cols = self.config.cols
        if cols == 0:
            return []

        offset = self._offset(seq)
        row_number, row_index = divmod(offset, cols)
        self._ensure_row_group(row_number).on_data_packet(
            row_index, timestamp, enc_flags, payload
        )

        if self.config.is_2d():
            key, col_row = self._column_slot(offset)
            self._ensure_col_group(key).on_data_packet(
                col_row, timestamp, enc_flags, payload
            )

        return self._try_recover_all()

    def on_fec_packet(self, seq: SeqNo, fec_payload: bytes) -> FecDecodeResult:
        """Process an FEC packet's payload (4-byte FEC header plus parity)."""
        if len(fec_payload) < FEC_HEADER_SIZE:
            logger.debug("FEC packet too short: %d bytes", len(fec_payload))
            return FecDecodeResult()

        group_index = int.from_bytes(fec_payload[0:1], "big", signed=True)
        xor_enc_flags = fec_payload[1]
        xor_length = int.from_bytes(fec_payload[2:4], "big")
        xor_payload = bytes(fec_payload[FEC_HEADER_SIZE:])

        cols = self.config.cols
        if cols == 0:
            return FecDecodeResult()
        offset = self._offset(seq)

        if group_index == FEC_GROUP_ROW:
            # The FEC packet carries the sequence number of the row's last member.
            group = self._ensure_row_group(offset // cols)
            group.on_fec_packet(xor_payload, 0, xor_enc_flags, xor_length)
        elif 0 <= group_index < cols and self.config.is_2d():
            cycle = offset // self.config.matrix_size()
            group = self._ensure_col_group((group_index, cycle))
            group.on_fec_packet(xor_payload, 0, xor_enc_flags, xor_length)

        recovered = self._try_recover_all()

        losses = {
            seq_no.value: seq_no
            for group in chain(self.row_groups.values(), self.col_groups.values())
            for seq_no in group.uncoverable_losses()
        }
        uncoverable = [losses[value] for value in sorted(losses)]
        return FecDecodeResult(recovered, uncoverable)

    def cleanup_old_groups(self, ack_seq: SeqNo) -> None:
        """Forget groups and received sequences well behind ``ack_seq``."""
        cols = self.config.cols
        if cols == 0:
            return
        ack_offset = self._offset(ack_seq)

        min_row = max(ack_offset // cols - 1, 0)
        self.row_groups = {
            row: group for row, group in self.row_groups.items() if row >= min_row
        }

        if self.config.is_2d():
            min_cycle = max(ack_offset // self.config.matrix_size() - 1, 0)
            self.col_groups = {
                key: group
                for key, group in self.col_groups.items()
                if key[1] >= min_cycle
            }

        cutoff = ack_seq.add(-(self.config.matrix_size() * 2))
        self._received_seqs = {
            value
            for value in self._received_seqs
            if SeqNo(value) == cutoff or SeqNo(value).is_after(cutoff)
        }

    # ── Recovery ──

    def _try_recover_all(self) -> list[RecoveredPacket]:
        recovered: list[RecoveredPacket] = []
        cols = self.config.cols
        changed = True
        while changed:
            changed = False

            for group in list(self.row_groups.values()):
                result = group.try_recover()
                if result is None:
                    continue
                _, packet = result
                recovered.append(packet)
                self._received_seqs.add(packet.seq_no.value)
                changed = True

                offset = self._offset(packet.seq_no)
                if self.config.is_2d():
                    key, col_row = self._column_slot(offset)
                    col_group = self.col_groups.get(key)
                    if col_group is not None:
                        col_group.mark_received(
                            col_row, packet.timestamp, packet.enc_flags, packet.payload
                        )
                group.received[offset % cols] = True

            if not self.config.is_2d():
                continue

            for group in list(self.col_groups.values()):
                result = group.try_recover()
                if result is None:
                    continue
                _, packet = result
                recovered.append(packet)
                self._received_seqs.add(packet.seq_no.value)
                changed = True

                row_number, row_index = divmod(self._offset(packet.seq_no), cols)
                row_group = self.row_groups.get(row_number)
                if row_group is not None:
                    row_group.mark_received(
                        row_index, packet.timestamp, packet.enc_flags, packet.payload
                    )
                if packet.seq_no in group.member_seqs:
                    group.received[group.member_seqs.index(packet.seq_no)] = True

        return recovered

    # ── Group layout ──

    def _offset(self, seq: SeqNo) -> int:
        return SeqNo.offset(self.base_seq, seq)

    def _ensure_row_group(self, row_number: int) -> RecvGroup:
        group = self.row_groups.get(row_number)
        if group is None:
            cols = self.config.cols
            base_offset = row_number * cols
            members = [self.base_seq.add(base_offset + i) for i in range(cols)]
            group = RecvGroup(members, cols)
            self.row_groups[row_number] = group
        return group

    def _ensure_col_group(self, key: ColumnKey) -> RecvGroup:
        group = self.col_groups.get(key)
        if group is None:
            col_index, cycle = key
            cols, rows = self.config.cols, self.config.rows
            matrix = self.config.matrix_size()
            cycle_base = cycle * matrix
            col_base = self.config.column_base_offset(col_index)
            members = [
                self.base_seq.add(cycle_base + (col_base + r * cols) % matrix)
                for r in range(rows)
            ]
            group = RecvGroup(members, rows)
            self.col_groups[key] = group
        return group

    def _column_slot(self, offset: int) -> tuple[ColumnKey, int]:
        """Column group key and position within that column for a stream offset."""
        cycle, pos = divmod(offset, self.config.matrix_size())
        col_index = self._find_column_index(pos)
        return (col_index, cycle), self._find_column_row(pos, col_index)

    def _column_slots(self, col_index: int):
        cols = self.config.cols
        matrix = self.config.matrix_size()
        base = self.config.column_base_offset(col_index)
        return ((base + r * cols) % matrix for r in range(self.config.rows))

    def _find_column_index(self, pos_in_matrix: int) -> int:
        cols = self.config.cols
        if self.config.layout is FecLayout.EVEN:
            return pos_in_matrix % cols
        for c in range(cols):
            if pos_in_matrix in self._column_slots(c):
                return c
        return pos_in_matrix % cols

    def _find_column_row(self, pos_in_matrix: int, col_index: int) -> int:
        for r, slot in enumerate(self._column_slots(col_index)):
            if slot == pos_in_matrix:
                return r
        return 0