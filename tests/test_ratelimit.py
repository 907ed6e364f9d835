"""Tests for walletlens/ratelimit.py — rolling request budgets."""

from __future__ import annotations

import threading

from conftest import FakeClock

from walletlens.ratelimit import DEFAULT_LIMITS, UNLIMITED_REMAINING, RateLimiter


def test_default_limits() -> None:
    limiter = RateLimiter()
    for name, limit in DEFAULT_LIMITS.items():
        assert limiter.max_requests(name) == limit
        assert limiter.get_remaining_requests(name) == limit
    assert set(limiter.providers()) == set(DEFAULT_LIMITS)


def test_budget_exhausts_after_max_requests(clock: FakeClock) -> None:
    """After exactly max_requests recorded calls, can_make_request is False."""
    limiter = RateLimiter({"blockstream": 3}, window_seconds=3600, clock=clock)
    for _ in range(3):
        assert limiter.can_make_request("blockstream")
        limiter.record_request("blockstream")
    assert limiter.can_make_request("blockstream") is False
    assert limiter.get_remaining_requests("blockstream") == 0


def test_window_rollover_restores_budget(clock: FakeClock) -> None:
    limiter = RateLimiter({"blockstream": 2}, window_seconds=3600, clock=clock)
    limiter.record_request("blockstream")
    limiter.record_request("blockstream")
    assert limiter.can_make_request("blockstream") is False

    # Exactly at the reset time the window is still current
    clock.advance(3600)
    assert limiter.can_make_request("blockstream") is False

    clock.advance(0.001)
    assert limiter.can_make_request("blockstream") is True
    assert limiter.get_remaining_requests("blockstream") == 2


def test_remaining_never_negative(clock: FakeClock) -> None:
    limiter = RateLimiter({"blockchair": 1}, clock=clock)
    for _ in range(5):
        limiter.record_request("blockchair")
    assert limiter.get_remaining_requests("blockchair") == 0


def test_unknown_provider_is_never_limited(clock: FakeClock) -> None:
    limiter = RateLimiter({"blockstream": 1}, clock=clock)
    for _ in range(5000):
        limiter.record_request("mystery")
    assert limiter.can_make_request("mystery") is True
    assert limiter.get_remaining_requests("mystery") == UNLIMITED_REMAINING
    assert limiter.max_requests("mystery") is None
    assert limiter.reset_in("mystery") == 0.0


def test_zero_budget_blocks_immediately(clock: FakeClock) -> None:
    limiter = RateLimiter({"blockcypher": 0}, clock=clock)
    assert limiter.can_make_request("blockcypher") is False


def test_reset_in(clock: FakeClock) -> None:
    limiter = RateLimiter({"blockstream": 5}, window_seconds=100, clock=clock)
    assert limiter.reset_in("blockstream") == 0.0  # window not opened yet
    limiter.record_request("blockstream")
    clock.advance(40)
    assert limiter.reset_in("blockstream") == 60.0


def test_window_opens_at_clock_zero() -> None:
    """A clock starting at 0 still opens (and keeps) the first window."""
    clock = FakeClock(start=0.0)
    limiter = RateLimiter({"blockstream": 1}, window_seconds=10, clock=clock)
    limiter.record_request("blockstream")
    clock.advance(1)
    assert limiter.can_make_request("blockstream") is False


def test_concurrent_recording_is_consistent() -> None:
    """No increments are lost when threads record at the same time."""
    limiter = RateLimiter({"blockchain.info": 10_000})

    def worker() -> None:
        for _ in range(500):
            limiter.record_request("blockchain.info")

    threads = [threading.Thread(target=worker) for _ in range(8)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert limiter.get_remaining_requests("blockchain.info") == 10_000 - 4000


def test_try_acquire_records_until_exhausted(clock: FakeClock) -> None:
    limiter = RateLimiter({"blockstream": 2}, clock=clock)
    assert limiter.try_acquire("blockstream") is True
    assert limiter.try_acquire("blockstream") is True
    assert limiter.try_acquire("blockstream") is False
    # A refused attempt does not consume budget
    assert limiter.get_remaining_requests("blockstream") == 0

    clock.advance(3601)
    assert limiter.try_acquire("blockstream") is True
    assert limiter.get_remaining_requests("blockstream") == 1


def test_try_acquire_unknown_provider_is_never_limited() -> None:
    limiter = RateLimiter({})
    assert all(limiter.try_acquire("mystery") for _ in range(5000))


def test_concurrent_acquire_never_overspends() -> None:
    """Threads racing for the last units get exactly the budget, no more."""
    limiter = RateLimiter({"blockcypher": 50})
    granted: list[bool] = []
    barrier = threading.Barrier(8)

    def worker() -> None:
        barrier.wait()
        for _ in range(20):
            granted.append(limiter.try_acquire("blockcypher"))

    threads = [threading.Thread(target=worker) for _ in range(8)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert granted.count(True) == 50
    assert limiter.get_remaining_requests("blockcypher") == 0
