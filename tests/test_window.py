from datetime import timedelta

import pytest

from srtproto.window import AckWindow, PktTimeWindow


class FakeClock:
    def __init__(self):
        self.now_ns = 0

    def __call__(self):
        return self.now_ns

    def advance_us(self, us):
        self.now_ns += us * 1000


def test_ack_window_measures_round_trip():
    clock = FakeClock()
    window = AckWindow(8, clock)
    window.store(5)
    clock.advance_us(2_000)
    assert window.acknowledge(5) == timedelta(microseconds=2_000)


def test_ack_window_unknown_seq():
    clock = FakeClock()
    window = AckWindow(4, clock)
    window.store(1)
    assert window.acknowledge(99) is None


def test_ack_window_overwrites_oldest():
    clock = FakeClock()
    window = AckWindow(2, clock)
    window.store(1)
    window.store(2)
    window.store(3)
    assert window.acknowledge(1) is None
    assert window.acknowledge(2) is not None and window.acknowledge(3) is not None


def test_ack_window_invalid_size():
    with pytest.raises(ValueError):
        AckWindow(0)


def _feed(window, clock, intervals_us, probe=False):
    arrive = window.on_probe_arrival if probe else window.on_pkt_arrival
    arrive()
    for us in intervals_us:
        clock.advance_us(us)
        arrive()


def test_recv_speed_needs_two_intervals():
    clock = FakeClock()
    window = PktTimeWindow(clock)
    assert window.recv_speed() is None
    _feed(window, clock, [1_000])
    assert window.recv_speed() is None


def test_recv_speed_steady_rate():
    clock = FakeClock()
    window = PktTimeWindow(clock)
    _feed(window, clock, [1_000] * 20)
    assert window.recv_speed() == 1_000


def test_recv_speed_ignores_outliers():
    clock = FakeClock()
    steady = PktTimeWindow(clock)
    _feed(steady, clock, [500] * 16)

    clock2 = FakeClock()
    noisy = PktTimeWindow(clock2)
    _feed(noisy, clock2, [500] * 14 + [1, 900_000])
    assert noisy.recv_speed() == steady.recv_speed()


def test_faster_arrivals_give_higher_speed():
    slow_clock, fast_clock = FakeClock(), FakeClock()
    slow, fast = PktTimeWindow(slow_clock), PktTimeWindow(fast_clock)
    _feed(slow, slow_clock, [2_000] * 8)
    _feed(fast, fast_clock, [200] * 8)
    assert fast.recv_speed() > slow.recv_speed()


def test_zero_intervals_give_none():
    clock = FakeClock()
    window = PktTimeWindow(clock)
    _feed(window, clock, [0] * 8)
    assert window.recv_speed() is None


def test_bandwidth_uses_probes_only():
    clock = FakeClock()
    window = PktTimeWindow(clock)
    _feed(window, clock, [1_000] * 4)
    assert window.bandwidth() is None
    _feed(window, clock, [100] * 6, probe=True)
    assert window.bandwidth() == 10_000
    assert window.recv_speed() == 1_000