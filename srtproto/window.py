"""Timing windows for RTT measurement and bandwidth estimation.

Clocks are callables returning monotonic nanoseconds; they default to
``time.monotonic_ns``.
"""

from __future__ import annotations

import time
from datetime import timedelta
from typing import Callable

NsClock = Callable[[], int]

_DEFAULT_INTERVAL_US = 1_000_000
_US_PER_SECOND = 1_000_000


class AckWindow:
    """Ring of recently sent ACK sequence numbers and when they were sent.

    When the matching ACKACK arrives, ``acknowledge`` gives the round trip.
    """

    def __init__(self, size: int, clock: NsClock = time.monotonic_ns) -> None:
        if size < 1:
            raise ValueError("ACK window size must be at least 1")
        self._clock = clock
        now = clock()
        self._records: list[tuple[int, int]] = [(0, now)] * size
        self._head = 0

    def store(self, ack_seq: int) -> None:
        """Record that ACK ``ack_seq`` was sent now, overwriting the oldest entry."""
        self._records[self._head] = (ack_seq, self._clock())
        self._head = (self._head + 1) % len(self._records)

    def acknowledge(self, ack_seq: int) -> timedelta | None:
        """Time since ACK ``ack_seq`` was sent, or None if it is not in the window."""
        now = self._clock()
        for seq, sent in self._records:
            if seq == ack_seq:
                return timedelta(microseconds=(now - sent) / 1000)
        return None


class _IntervalRing:
    """Inter-arrival intervals (microseconds) of a stream of events."""

    SIZE = 16

    def __init__(self) -> None:
        self.intervals = [_DEFAULT_INTERVAL_US] * self.SIZE
        self.head = 0
        self.count = 0
        self.last: int | None = None

    def arrive(self, now_ns: int) -> None:
        if self.last is not None:
            self.intervals[self.head] = (now_ns - self.last) // 1000
            self.head = (self.head + 1) % self.SIZE
            self.count = min(self.count + 1, self.SIZE)
        self.last = now_ns

    def rate(self) -> int | None:
        """Events per second from the middle half of the sorted intervals."""
        if self.count < 2:
            return None
        ordered = sorted(self.intervals[: self.count])
        lower, upper = self.count // 4, self.count * 3 // 4
        if lower >= upper:
            return None
        middle = ordered[lower:upper]
        avg = sum(middle) // len(middle)
        return _US_PER_SECOND // avg if avg > 0 else None


class PktTimeWindow:
    """Tracks packet and probe arrival intervals to estimate rates."""

    PKT_WINDOW_SIZE = _IntervalRing.SIZE
    PROBE_WINDOW_SIZE = _IntervalRing.SIZE

    def __init__(self, clock: NsClock = time.monotonic_ns) -> None:
        self._clock = clock
        self._packets = _IntervalRing()
        self._probes = _IntervalRing()

    def on_pkt_arrival(self) -> None:
        """Record a data packet arrival."""
        self._packets.arrive(self._clock())

    def on_probe_arrival(self) -> None:
        """Record a probe packet arrival."""
        self._probes.arrive(self._clock())

    def recv_speed(self) -> int | None:
        """Receiving rate in packets per second, or None without enough samples."""
        return self._packets.rate()

    def bandwidth(self) -> int | None:
        """Link capacity in packets per second from probes, or None without enough samples."""
        return self._probes.rate()