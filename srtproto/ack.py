"""Acknowledgement bookkeeping: ACK sequence numbers and light/full ACK pacing."""

from __future__ import annotations

from .seq import SeqNo

ACK_MAX_PACKETS = 64
"""Maximum number of packets between ACKs."""

ACK_INTERVAL_US = 10_000
"""Periodic ACK interval in microseconds."""

SELF_CLOCK_INTERVAL = 64
"""Packets received that trigger a light ACK."""

LIGHT_ACK_THRESHOLD = 1
"""Light ACKs between full ACKs."""


def _wrap_i32(value: int) -> int:
    return (value + 0x8000_0000) % 0x1_0000_0000 - 0x8000_0000


class AckState:
    """ACK state for one connection.

    ``last_ack`` is the last data sequence acknowledged to the peer;
    ``last_data_ack`` the most recent full-ACK sequence.
    """

    def __init__(self, initial_seq: SeqNo) -> None:
        self._next_ack_seq = 0
        self.last_ack = initial_seq
        self.last_data_ack = initial_seq
        self._pkt_count_since_ack = 0
        self._light_ack_count = 0

    def next_ack_seq_no(self) -> int:
        """Return the next ACK sequence number and advance it (32-bit wrapping)."""
        seq = self._next_ack_seq
        self._next_ack_seq = _wrap_i32(seq + 1)
        return seq

    def update_ack(self, seq: SeqNo) -> bool:
        """Advance ``last_ack`` to ``seq`` if it is later; return whether it moved."""
        if seq.is_after(self.last_ack):
            self.last_ack = seq
            return True
        return False

    def update_data_ack(self, seq: SeqNo) -> None:
        """Advance ``last_data_ack`` to ``seq`` if it is later."""
        if seq.is_after(self.last_data_ack):
            self.last_data_ack = seq

    def on_pkt_received(self) -> bool:
        """Count a received packet; return True when a light ACK is due."""
        self._pkt_count_since_ack += 1
        if self._pkt_count_since_ack >= SELF_CLOCK_INTERVAL:
            self._pkt_count_since_ack = 0
            self._light_ack_count += 1
            return True
        return False

    def should_send_full_ack(self) -> bool:
        """Return True (and reset the count) once enough light ACKs have gone out."""
        if self._light_ack_count >= LIGHT_ACK_THRESHOLD:
            self._light_ack_count = 0
            return True
        return False

    def ack_sent(self) -> None:
        """Reset the packet counter after an ACK is sent."""
        self._pkt_count_since_ack = 0