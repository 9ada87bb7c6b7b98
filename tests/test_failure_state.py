from __future__ import annotations

import pytest

from fundi.failure_state import FailureState


class Clock:
    def __init__(self) -> None:
        self.now = 100.0

    def __call__(self) -> float:
        return self.now


@pytest.fixture()
def clock() -> Clock:
    return Clock()


def test_below_threshold_keeps_primary(clock):
    fs = FailureState(max_failures=3, cooldown_period_ms=1000, clock=clock)
    fs.record_failure()
    fs.record_failure()
    assert fs.should_use_fallback() is False


def test_cooldown_scales_with_failure_count_then_resets(clock):
    fs = FailureState(max_failures=3, cooldown_period_ms=1000, clock=clock)
    for _ in range(3):
        fs.record_failure()

    clock.now += 2.5
    assert fs.should_use_fallback() is True

    # 3 failures x 1000ms
    clock.now += 0.6
    assert fs.should_use_fallback() is False
    assert fs.snapshot().failure_count == 0


def test_success_decrements_and_never_goes_negative(clock):
    fs = FailureState(clock=clock)
    fs.record_failure()
    fs.record_success()
    fs.record_success()
    assert fs.snapshot().failure_count == 0


def test_forced_flag_set_toggle_and_reset(clock):
    fs = FailureState(clock=clock)
    assert fs.set_forced(True) is True
    assert fs.should_use_fallback() is True
    assert fs.set_forced() is False
    assert fs.set_forced() is True

    assert fs.reset() is True
    assert fs.snapshot().forced_fallback is False
    assert fs.reset() is False


def test_time_since_last_failure(clock):
    fs = FailureState(clock=clock)
    assert fs.time_since_last_failure_ms() is None

    fs.record_failure()
    clock.now += 2.0
    assert fs.time_since_last_failure_ms() == pytest.approx(2000.0)
