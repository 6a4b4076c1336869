"""Protocol timers: periodic ACK/NAK/keepalive timers, RTT and expiry tracking."""

from __future__ import annotations

import time
from datetime import timedelta
from typing import Callable

COMM_SYN_INTERVAL_US = 10_000
"""ACK period (10 ms)."""

COMM_KEEPALIVE_PERIOD_US = 1_000_000
"""Keep-alive period (1 s)."""

INITIAL_RTT_US = 100_000
"""Initial RTT estimate (100 ms)."""

INITIAL_RTTVAR_US = 50_000
"""Initial RTT variance (50 ms)."""

COMM_RESPONSE_MAX_EXP = 5
"""Expiration count beyond which the connection has timed out."""

SRT_TLPKTDROP_MINTHRESHOLD_MS = 1000
"""Minimum TSBPD threshold for dropping late packets."""

_MIN_NAK_INTERVAL_US = 20_000
_MAX_EXP_SHIFT = 16

Clock = Callable[[], float]


def _div_trunc(numerator: int, denominator: int) -> int:
    """Integer division rounding toward zero."""
    quotient = abs(numerator) // denominator
    return quotient if numerator >= 0 else -quotient


class PeriodicTimer:
    """A timer that fires once every ``interval``.

    ``clock`` returns monotonic seconds and defaults to ``time.monotonic``.
    """

    def __init__(self, interval: timedelta, clock: Clock = time.monotonic) -> None:
        self.interval = interval
        self._clock = clock
        self._next_fire = clock() + interval.total_seconds()

    def check(self) -> bool:
        """Return True if the timer has fired, rearming it one interval from now."""
        now = self._clock()
        if now >= self._next_fire:
            self._next_fire = now + self.interval.total_seconds()
            return True
        return False

    def reset(self) -> None:
        """Rearm the timer to fire one interval from now."""
        self._next_fire = self._clock() + self.interval.total_seconds()

    def time_remaining(self) -> timedelta:
        """Time left until the timer fires; zero if it is already due."""
        remaining = self._next_fire - self._clock()
        return timedelta(seconds=remaining) if remaining > 0 else timedelta(0)


class SrtTimers:
    """The timers and RTT state of one connection."""

    def __init__(self, clock: Clock = time.monotonic) -> None:
        self._clock = clock
        self.ack = PeriodicTimer(timedelta(microseconds=COMM_SYN_INTERVAL_US), clock)
        self.nak = PeriodicTimer(timedelta(microseconds=COMM_SYN_INTERVAL_US * 3), clock)
        self.keepalive = PeriodicTimer(
            timedelta(microseconds=COMM_KEEPALIVE_PERIOD_US), clock
        )
        self.exp_count = 1
        self.last_response = clock()
        self.srtt = INITIAL_RTT_US
        self.rttvar = INITIAL_RTTVAR_US
        self.connection_start = clock()

    def update_rtt(self, rtt_sample_us: int) -> None:
        """Fold an RTT sample into the smoothed RTT and variance (7/8 and 3/4 EWMA)."""
        diff = abs(self.srtt - rtt_sample_us)
        self.rttvar = _div_trunc(self.rttvar * 3 + diff, 4)
        self.srtt = _div_trunc(self.srtt * 7 + rtt_sample_us, 8)
        self.nak.interval = self.nak_interval()

    def nak_interval(self) -> timedelta:
        """NAK period: RTT + 4 * RTTVar, at least 20 ms."""
        return timedelta(
            microseconds=max(self.srtt + 4 * self.rttvar, _MIN_NAK_INTERVAL_US)
        )

    def nak_suppression_interval(self) -> timedelta:
        """How long before the same loss may be reported again."""
        return self.nak_interval()

    def exp_interval(self) -> timedelta:
        """Expiration period: (RTT + 4 * RTTVar + SYN) * 2**exp_count, at least 1 s."""
        base = self.srtt + 4 * self.rttvar + COMM_SYN_INTERVAL_US
        scaled = base * (1 << min(self.exp_count, _MAX_EXP_SHIFT))
        return timedelta(microseconds=max(scaled, COMM_KEEPALIVE_PERIOD_US))

    def on_response_received(self) -> None:
        """Note that the peer responded: reset the expiration count."""
        self.last_response = self._clock()
        self.exp_count = 1

    def is_expired(self) -> bool:
        """True once the expiration count exceeds ``COMM_RESPONSE_MAX_EXP``."""
        return self.exp_count > COMM_RESPONSE_MAX_EXP