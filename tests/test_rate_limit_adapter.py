"""Unit tests for the in-memory dual-window rate limiter."""

from unittest.mock import Mock

import pytest

from app.adapters.rate_limit.in_memory import InMemoryDualWindowRateLimiter


def _limiter(clock, **overrides) -> InMemoryDualWindowRateLimiter:
    kwargs = {
        "limit": 10,
        "window_seconds": 60,
        "burst_capacity": 5,
        "burst_window_seconds": 10,
        "clock": clock,
    }
    kwargs.update(overrides)
    return InMemoryDualWindowRateLimiter(**kwargs)


def test_allows_burst_capacity_then_denies_with_burst_scope(clock) -> None:
    limiter = _limiter(clock)

    for _ in range(5):
        assert limiter.check("k").allowed is True

    clock.advance(5)
    denied = limiter.check("k")
    assert denied.allowed is False
    assert denied.scope == "burst"
    assert denied.limit == 5
    assert denied.remaining == 0
    # Burst window opened by the first request at t=1000; now t=1005
    assert denied.retry_after_seconds == 5


def test_long_window_denies_after_burst_resets(clock) -> None:
    limiter = _limiter(clock)

    for _ in range(5):
        assert limiter.check("k").allowed is True
    clock.advance(10)
    for _ in range(5):
        assert limiter.check("k").allowed is True
    clock.advance(10)

    denied = limiter.check("k")
    assert denied.allowed is False
    assert denied.scope == "window"
    assert denied.limit == 10
    assert denied.retry_after_seconds == 40


def test_burst_is_reported_when_both_windows_are_exhausted(clock) -> None:
    limiter = _limiter(clock, limit=5, burst_capacity=5)

    for _ in range(5):
        limiter.check("k")

    denied = limiter.check("k")
    assert denied.scope == "burst"
    assert denied.retry_after_seconds == 10


def test_denied_requests_are_not_counted(clock) -> None:
    limiter = _limiter(clock, burst_capacity=2)

    limiter.check("k")
    limiter.check("k")
    for _ in range(5):
        assert limiter.check("k").allowed is False

    state = limiter.get_status("k")
    assert state is not None
    assert state.burst_count == 2
    assert state.window_count == 2


def test_allowed_result_reports_remaining_budget(clock) -> None:
    limiter = _limiter(clock)

    first = limiter.check("k")
    assert first.allowed is True
    assert first.scope is None
    assert first.retry_after_seconds is None
    assert first.limit == 10
    assert first.remaining == 9
    assert first.burst_limit == 5
    assert first.burst_remaining == 4
    assert first.reset_at == 1060
    assert first.burst_reset_at == 1010
    assert first.reset_after_seconds == 60
    assert first.burst_reset_after_seconds == 10


def test_burst_window_resets_at_boundary(clock) -> None:
    limiter = _limiter(clock, burst_capacity=1)

    assert limiter.check("k").allowed is True
    clock.advance(9.5)
    assert limiter.check("k").allowed is False
    clock.advance(0.5)
    assert limiter.check("k").allowed is True


def test_window_restarts_from_request_time_not_boundary(clock) -> None:
    limiter = _limiter(clock, burst_capacity=1)

    limiter.check("k")
    clock.advance(25)
    result = limiter.check("k")

    # The new burst window starts at the request that found the old one elapsed
    assert result.burst_reset_at == 1035


def test_isolated_by_key(clock) -> None:
    limiter = _limiter(clock, burst_capacity=1)

    assert limiter.check("k1").allowed is True
    assert limiter.check("k1").allowed is False

    assert limiter.check("k2").allowed is True


def test_works_with_mock_clock() -> None:
    clock = Mock(return_value=1000.0)
    limiter = _limiter(clock, burst_capacity=1, burst_window_seconds=10)

    assert limiter.check("k").allowed is True
    assert limiter.check("k").allowed is False

    clock.return_value = 1010.0
    assert limiter.check("k").allowed is True


def test_cleanup_removes_only_fully_elapsed_clients(clock) -> None:
    limiter = _limiter(clock)

    limiter.check("idle")
    clock.advance(30)
    limiter.check("active")

    clock.advance(30)
    assert limiter.cleanup_expired() == 1
    assert limiter.get_status("idle") is None
    assert limiter.get_status("active") is not None
    assert len(limiter) == 1


def test_cleanup_keeps_client_with_open_long_window(clock) -> None:
    limiter = _limiter(clock)

    limiter.check("k")
    clock.advance(15)

    # Burst window elapsed, long window still open
    assert limiter.cleanup_expired() == 0
    assert len(limiter) == 1


def test_check_never_cleans_up_other_clients(clock) -> None:
    limiter = _limiter(clock)

    limiter.check("idle")
    clock.advance(120)
    limiter.check("other")

    assert len(limiter) == 2


def test_get_status_returns_copy(clock) -> None:
    limiter = _limiter(clock)
    limiter.check("k")

    state = limiter.get_status("k")
    state.burst_count = 99

    assert limiter.get_status("k").burst_count == 1


def test_reset(clock) -> None:
    limiter = _limiter(clock)
    limiter.check("a")
    limiter.check("b")

    limiter.reset("a")
    assert limiter.get_status("a") is None
    assert len(limiter) == 1

    limiter.reset()
    assert len(limiter) == 0


@pytest.mark.parametrize(
    "overrides",
    [
        {"limit": 0},
        {"window_seconds": 0},
        {"burst_capacity": 0},
        {"burst_window_seconds": 0},
    ],
)
def test_invalid_constructor_args(clock, overrides: dict) -> None:
    with pytest.raises(ValueError):
        _limiter(clock, **overrides)


def test_empty_client_id_is_an_ordinary_client(clock) -> None:
    limiter = _limiter(clock, burst_capacity=1)

    assert limiter.check("").allowed is True
    assert limiter.check("").scope == "burst"
    assert limiter.check("other").allowed is True
