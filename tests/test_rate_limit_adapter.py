"""Unit tests for in-memory rate limiter adapter."""

import threading
import time
from unittest.mock import Mock

import pytest

from earlab.adapters.rate_limit.base import RateLimitConfig
from earlab.adapters.rate_limit.in_memory import InMemoryRateLimiter


def _limiter(clock: Mock) -> InMemoryRateLimiter:
    return InMemoryRateLimiter(clock=clock)


def test_allows_up_to_max_then_blocks() -> None:
    clock = Mock(return_value=1000.0)
    limiter = _limiter(clock)
    config = RateLimitConfig(window_ms=1000, max=2)

    results = [limiter.check("k", config) for _ in range(3)]

    assert [r.allowed for r in results] == [True, True, False]
    assert [r.remaining for r in results] == [1, 0, 0]


def test_first_request_opens_window_at_now() -> None:
    clock = Mock(return_value=1000.0)
    limiter = _limiter(clock)

    result = limiter.check("k", RateLimitConfig(window_ms=60_000, max=5))

    assert result.allowed is True
    assert result.limit == 5
    assert result.remaining == 4
    assert result.reset_time == 1_000_000 + 60_000
    assert result.retry_after_seconds is None


def test_blocked_request_does_not_move_window() -> None:
    clock = Mock(return_value=1000.0)
    limiter = _limiter(clock)
    config = RateLimitConfig(window_ms=10_000, max=1)

    first = limiter.check("k", config)
    clock.return_value = 1004.2
    blocked = limiter.check("k", config)

    assert blocked.allowed is False
    assert blocked.reset_time == first.reset_time
    assert blocked.retry_after_seconds == 6


def test_window_resets_after_expiry() -> None:
    clock = Mock(return_value=1000.0)
    limiter = _limiter(clock)
    config = RateLimitConfig(window_ms=1000, max=1)

    first = limiter.check("k", config)
    assert limiter.check("k", config).allowed is False

    clock.return_value = 1001.5
    renewed = limiter.check("k", config)

    assert renewed.allowed is True
    assert renewed.remaining == 0
    assert renewed.reset_time == 1_001_500 + 1000
    assert renewed.reset_time > first.reset_time


def test_request_exactly_at_reset_time_is_still_in_window() -> None:
    clock = Mock(return_value=1000.0)
    limiter = _limiter(clock)
    config = RateLimitConfig(window_ms=1000, max=1)

    limiter.check("k", config)
    clock.return_value = 1001.0

    assert limiter.check("k", config).allowed is False


def test_isolated_by_identifier() -> None:
    clock = Mock(return_value=1000.0)
    limiter = _limiter(clock)
    config = RateLimitConfig(window_ms=1000, max=1)

    assert limiter.check("k1", config).allowed is True
    assert limiter.check("k1", config).allowed is False

    second = limiter.check("k2", config)
    assert second.allowed is True
    assert second.remaining == 0
    assert len(limiter) == 2


def test_sweep_removes_only_expired_entries() -> None:
    clock = Mock(return_value=1000.0)
    limiter = _limiter(clock)

    limiter.check("short", RateLimitConfig(window_ms=1000, max=5))
    limiter.check("long", RateLimitConfig(window_ms=60_000, max=5))

    clock.return_value = 1002.0
    removed = limiter.sweep()

    assert removed == 1
    assert "short" not in limiter
    assert "long" in limiter


def test_clear_drops_all_entries() -> None:
    clock = Mock(return_value=1000.0)
    limiter = _limiter(clock)
    config = RateLimitConfig(window_ms=1000, max=1)
    limiter.check("a", config)
    limiter.check("b", config)

    limiter.clear()

    assert len(limiter) == 0
    assert limiter.check("a", config).allowed is True


def test_concurrent_checks_never_exceed_max() -> None:
    limiter = InMemoryRateLimiter()
    config = RateLimitConfig(window_ms=60_000, max=50)
    allowed: list[bool] = []
    lock = threading.Lock()

    def _worker() -> None:
        for _ in range(20):
            result = limiter.check("shared", config)
            with lock:
                allowed.append(result.allowed)

    threads = [threading.Thread(target=_worker) for _ in range(10)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert sum(allowed) == 50
    assert len(allowed) == 200


def test_background_sweeper_evicts_expired_entries() -> None:
    limiter = InMemoryRateLimiter(sweep_interval_seconds=0.01)
    limiter.check("k", RateLimitConfig(window_ms=1, max=1))

    limiter.start()
    try:
        deadline = time.monotonic() + 2
        while "k" in limiter and time.monotonic() < deadline:
            time.sleep(0.01)
        assert "k" not in limiter
    finally:
        limiter.destroy()


def test_start_is_idempotent_and_destroy_stops_thread() -> None:
    limiter = InMemoryRateLimiter(sweep_interval_seconds=0.01)

    limiter.start()
    limiter.start()
    assert limiter.running is True

    limiter.check("k", RateLimitConfig(window_ms=60_000, max=1))
    limiter.destroy()

    assert limiter.running is False
    assert len(limiter) == 0


def test_stop_without_start_is_noop() -> None:
    limiter = InMemoryRateLimiter()

    limiter.stop()

    assert limiter.running is False


@pytest.mark.parametrize(
    "kwargs",
    [
        {"window_ms": 0, "max": 1},
        {"window_ms": 1000, "max": 0},
    ],
)
def test_invalid_config(kwargs: dict) -> None:
    with pytest.raises(ValueError):
        RateLimitConfig(**kwargs)


def test_invalid_sweep_interval() -> None:
    with pytest.raises(ValueError):
        InMemoryRateLimiter(sweep_interval_seconds=0)
