import pytest

from conftest import FakeClock
from formpilot.retry import poll_until, retry


def test_poll_until_is_bounded():
    clock = FakeClock()
    calls = []

    ok = poll_until(lambda: calls.append(1) and False, timeout_ms=3000, interval_ms=250, clock=clock)

    assert ok is False
    assert len(calls) == 13
    assert clock.sleeps == [250] * 12


def test_poll_until_stops_on_success():
    clock = FakeClock()
    results = iter([False, False, True])
    assert poll_until(lambda: next(results), timeout_ms=3000, interval_ms=250, clock=clock)
    assert clock.sleeps == [250, 250]


def test_poll_until_tries_at_least_once():
    clock = FakeClock()
    calls = []
    poll_until(lambda: calls.append(1) and False, timeout_ms=100, interval_ms=250, clock=clock)
    assert len(calls) == 1
    assert clock.sleeps == []


def test_retry_backs_off_then_succeeds():
    clock = FakeClock()
    attempts = []

    @retry(max_attempts=3, base_delay=1.0, jitter=False, clock=clock)
    def flaky():
        attempts.append(1)
        if len(attempts) < 3:
            raise ConnectionError("reset")
        return "ok"

    assert flaky() == "ok"
    assert clock.sleeps == [1000, 2000]


def test_retry_gives_up_with_the_last_error():
    clock = FakeClock()

    @retry(max_attempts=2, base_delay=0.5, jitter=False, clock=clock)
    def broken():
        raise TimeoutError("still loading")

    with pytest.raises(TimeoutError):
        broken()
    assert clock.sleeps == [500]


def test_retry_only_catches_retryable_errors():
    clock = FakeClock()

    @retry(max_attempts=3, retryable=(ConnectionError,), clock=clock)
    def wrong():
        raise ValueError("bad input")

    with pytest.raises(ValueError):
        wrong()
    assert clock.sleeps == []
