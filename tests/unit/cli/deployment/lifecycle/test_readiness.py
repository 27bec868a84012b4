"""Tests for the readiness prober."""

import threading
from unittest.mock import MagicMock

import pytest

from src.cli.deployment.lifecycle.readiness import (
    ProbeOutcome,
    ReadinessProber,
    ReadinessSpec,
)


class FakeClock:
    """Monotonic clock advanced only by sleeps (and optional poll cost)."""

    def __init__(self) -> None:
        self.now = 0.0
        self.sleeps: list[float] = []

    def __call__(self) -> float:
        return self.now

    def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


def _spec(timeout: float = 10, poll_interval: float = 3) -> ReadinessSpec:
    return ReadinessSpec(
        selector="app.kubernetes.io/component=kibiter",
        namespace="grimoirelab",
        timeout=timeout,
        poll_interval=poll_interval,
    )


def test_ok_on_first_ready_poll(clock) -> None:
    source = MagicMock()
    source.pods_ready.side_effect = [False, False, True]
    prober = ReadinessProber(source, clock=clock, sleep=clock.sleep)

    result = prober.wait_until_ready(_spec())

    assert result.outcome == ProbeOutcome.OK
    assert result.ok
    assert result.polls == 3
    assert result.elapsed == 6
    source.pods_ready.assert_called_with(
        "grimoirelab", "app.kubernetes.io/component=kibiter", condition="Ready"
    )


def test_never_ready_times_out_within_window(clock) -> None:
    source = MagicMock()
    source.pods_ready.return_value = False
    prober = ReadinessProber(source, clock=clock, sleep=clock.sleep)

    result = prober.wait_until_ready(_spec(timeout=10, poll_interval=3))

    assert result.outcome == ProbeOutcome.TIMED_OUT
    assert 10 <= result.elapsed < 13
    # Final sleep is clipped to the deadline
    assert clock.sleeps == [3, 3, 3, 1]


def test_slow_polls_still_respect_window(clock) -> None:
    def slow_poll(*args, **kwargs) -> bool:
        clock.now += 0.7
        return False

    source = MagicMock()
    source.pods_ready.side_effect = slow_poll
    prober = ReadinessProber(source, clock=clock, sleep=clock.sleep)

    result = prober.wait_until_ready(_spec(timeout=10, poll_interval=3))

    assert result.outcome == ProbeOutcome.TIMED_OUT
    assert 10 <= result.elapsed < 13


def test_poll_errors_count_as_not_ready(clock) -> None:
    source = MagicMock()
    source.pods_ready.side_effect = [RuntimeError("connection refused"), True]
    prober = ReadinessProber(source, clock=clock, sleep=clock.sleep)

    result = prober.wait_until_ready(_spec())

    assert result.outcome == ProbeOutcome.OK
    assert result.polls == 2


def test_cancel_returns_cancelled(clock) -> None:
    cancel = threading.Event()
    source = MagicMock()

    def not_ready_then_cancel(*args, **kwargs) -> bool:
        cancel.set()
        return False

    source.pods_ready.side_effect = not_ready_then_cancel
    prober = ReadinessProber(source, clock=clock, sleep=clock.sleep)

    result = prober.wait_until_ready(_spec(), cancel)

    assert result.outcome == ProbeOutcome.CANCELLED
    assert result.polls == 1


def test_preset_cancel_skips_polling() -> None:
    cancel = threading.Event()
    cancel.set()
    source = MagicMock()
    prober = ReadinessProber(source)

    result = prober.wait_until_ready(_spec(timeout=60, poll_interval=30), cancel)

    assert result.outcome == ProbeOutcome.CANCELLED
    source.pods_ready.assert_not_called()


@pytest.mark.parametrize(("timeout", "interval"), [(0, 1), (-1, 1), (10, 0)])
def test_spec_rejects_non_positive_values(timeout: float, interval: float) -> None:
    with pytest.raises(ValueError):
        _spec(timeout=timeout, poll_interval=interval)
