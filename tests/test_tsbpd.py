from datetime import timedelta

from srtproto.tsbpd import DRIFT_SAMPLE_WINDOW, TsbpdTime


class FakeClock:
    def __init__(self, now=0):
        self.now = now

    def __call__(self):
        return self.now


def _make(delay_ms=120, now=0):
    clock = FakeClock(now)
    return clock, TsbpdTime(timedelta(milliseconds=delay_ms), clock)


def test_base_time_taken_from_clock():
    clock, tsbpd = _make(now=5_000)
    assert tsbpd.base_time == clock.now
    assert tsbpd.enabled is True


def test_delivery_time_without_delay():
    _, tsbpd = _make(delay_ms=0)
    assert tsbpd.delivery_time(1500) == 1_500_000


def test_delivery_time_grows_with_timestamp_and_delay():
    _, tsbpd = _make()
    assert tsbpd.delivery_time(10) > tsbpd.delivery_time(0)
    before = tsbpd.delivery_time(10)
    tsbpd.delay = timedelta(milliseconds=200)
    assert tsbpd.delivery_time(10) > before


def test_is_ready_edges():
    clock, tsbpd = _make()
    due = tsbpd.delivery_time(1000)
    clock.now = due - 1
    assert tsbpd.is_ready(1000) is False
    clock.now = due
    assert tsbpd.is_ready(1000) is True


def test_time_until_ready():
    clock, tsbpd = _make()
    due = tsbpd.delivery_time(1000)
    clock.now = due - 2000
    assert tsbpd.time_until_ready(1000) == timedelta(microseconds=2)
    clock.now = due + 10
    assert tsbpd.time_until_ready(1000) == timedelta(0)


def test_is_too_late_after_twice_latency():
    clock, tsbpd = _make()
    delay_ns = tsbpd.delivery_time(0) - tsbpd.base_time
    late_edge = tsbpd.delivery_time(500) + delay_ns
    clock.now = late_edge
    assert tsbpd.is_too_late(500) is False
    clock.now = late_edge + 1
    assert tsbpd.is_too_late(500) is True


def test_disabled_always_ready_never_late():
    clock, tsbpd = _make()
    tsbpd.enabled = False
    clock.now = 0
    assert tsbpd.is_ready(10_000_000) is True
    assert tsbpd.time_until_ready(10_000_000) == timedelta(0)
    clock.now = tsbpd.delivery_time(0) * 10
    assert tsbpd.is_too_late(0) is False


def test_drift_applied_only_after_full_window():
    _, tsbpd = _make()
    before = tsbpd.delivery_time(0)
    for _ in range(DRIFT_SAMPLE_WINDOW - 1):
        tsbpd.update_drift(3000)
    assert tsbpd.delivery_time(0) == before
    assert tsbpd.drift_correction == timedelta(0)
    tsbpd.update_drift(3000)
    assert tsbpd.drift_correction == timedelta(microseconds=3000)
    assert tsbpd.delivery_time(0) > before


def test_drift_correction_is_clamped():
    _, tsbpd = _make()
    for _ in range(DRIFT_SAMPLE_WINDOW):
        tsbpd.update_drift(1_000_000)
    assert tsbpd.drift_correction == timedelta(microseconds=5000)


def test_drift_accumulates_over_windows():
    _, tsbpd = _make()
    base = tsbpd.delivery_time(0)
    for _ in range(DRIFT_SAMPLE_WINDOW):
        tsbpd.update_drift(2000)
    first = tsbpd.delivery_time(0) - base
    for _ in range(DRIFT_SAMPLE_WINDOW):
        tsbpd.update_drift(2000)
    assert tsbpd.delivery_time(0) - base == 2 * first


def test_negative_drift_not_applied():
    _, tsbpd = _make()
    before = tsbpd.delivery_time(0)
    for _ in range(DRIFT_SAMPLE_WINDOW):
        tsbpd.update_drift(-3000)
    assert tsbpd.drift_correction == timedelta(0)
    assert tsbpd.delivery_time(0) == before


def test_base_time_shift_moves_delivery():
    _, tsbpd = _make()
    before = tsbpd.delivery_time(42)
    tsbpd.base_time += 777
    assert tsbpd.delivery_time(42) - before == 777