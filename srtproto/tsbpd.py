"""Timestamp-based packet delivery (TSBPD).

Maps the sender's 32-bit microsecond timestamps onto the local clock so
packets are delivered a fixed latency after they were sent, with a slowly
adapting correction for clock drift. Times are monotonic nanoseconds from
a clock callable, ``time.monotonic_ns`` by default.
"""

from __future__ import annotations

import time
from datetime import timedelta
from typing import Callable

MAX_TIMESTAMP = 0xFFFF_FFFF
"""Largest sender timestamp (32-bit microseconds, about 71 minutes)."""

DRIFT_SAMPLE_WINDOW = 1000
"""Drift samples averaged into one correction step."""

_MAX_DRIFT_US = 5_000

NsClock = Callable[[], int]


def _to_ns(delta: timedelta) -> int:
    return (delta // timedelta(microseconds=1)) * 1000


class _DriftTracer:
    """Averages drift samples in windows and accumulates a bounded correction."""

    def __init__(self) -> None:
        self._samples: list[int] = []
        self._correction_us = 0
        self._active = False

    def add_sample(self, drift_us: int) -> None:
        self._samples.append(drift_us)
        if len(self._samples) >= DRIFT_SAMPLE_WINDOW:
            self._compute_correction()
            self._samples.clear()

    def _compute_correction(self) -> None:
        if not self._samples:
            return
        total = sum(self._samples)
        count = len(self._samples)
        avg = abs(total) // count
        if total < 0:
            avg = -avg
        self._correction_us += max(-_MAX_DRIFT_US, min(_MAX_DRIFT_US, avg))
        self._active = True

    def correction_us(self) -> int:
        """Current correction; only a positive, active correction is applied."""
        if not self._active or self._correction_us <= 0:
            return 0
        return self._correction_us


class TsbpdTime:
    """Converts sender timestamps to local delivery times.

    ``base_time`` is the local time (ns) that corresponds to sender
    timestamp 0; ``delay`` is the configured latency.
    """

    def __init__(self, delay: timedelta, clock: NsClock = time.monotonic_ns) -> None:
        self._clock = clock
        self.base_time = clock()
        self.delay = delay
        self.enabled = True
        self._drift = _DriftTracer()

    @property
    def drift_correction(self) -> timedelta:
        """The drift correction currently added to delivery times."""
        return timedelta(microseconds=self._drift.correction_us())

    def delivery_time(self, sender_ts: int) -> int:
        """Local time (ns) at which a packet stamped ``sender_ts`` is due."""
        return (
            self.base_time
            + (sender_ts & MAX_TIMESTAMP) * 1000
            + _to_ns(self.delay)
            + self._drift.correction_us() * 1000
        )

    def is_ready(self, sender_ts: int) -> bool:
        """True if the packet may be delivered now (always when disabled)."""
        if not self.enabled:
            return True
        return self._clock() >= self.delivery_time(sender_ts)

    def time_until_ready(self, sender_ts: int) -> timedelta:
        """How long until the packet is due; zero if due or TSBPD is disabled."""
        if not self.enabled:
            return timedelta(0)
        remaining = self.delivery_time(sender_ts) - self._clock()
        if remaining <= 0:
            return timedelta(0)
        return timedelta(microseconds=remaining / 1000)

    def is_too_late(self, sender_ts: int) -> bool:
        """True once the delivery time has passed by more than the latency."""
        if not self.enabled:
            return False
        return self._clock() > self.delivery_time(sender_ts) + _to_ns(self.delay)

    def update_drift(self, drift_us: int) -> None:
        """Add one clock drift sample in microseconds."""
        self._drift.add_sample(drift_us)