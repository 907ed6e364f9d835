"""Rolling per-provider request budgets.

Each provider gets a fixed number of requests per window (one hour by
default). Windows roll lazily: the first operation after the stored reset
time zeroes the count and opens a new window. There is no timer task.

Unknown provider names are never limited (fail-open).
"""

from __future__ import annotations

import threading
import time
from collections.abc import Callable, Mapping
from dataclasses import dataclass

# Requests per hour
DEFAULT_LIMITS: dict[str, int] = {
    "blockchain.info": 300,
    "blockcypher": 200,
    "blockstream": 100,
    "blockchair": 100,
    "bitcoin-price": 1000,
}

DEFAULT_WINDOW_SECONDS = 3600.0

# Reported for providers without a configured budget
UNLIMITED_REMAINING = 1000


@dataclass
class RateLimitState:
    max_requests: int
    count: int = 0
    reset_time: float | None = None     # None until the first window opens


class RateLimiter:
    """
    Thread-safe request budget tracker.

    Args:
        limits: provider name → max requests per window
        window_seconds: window length
        clock: monotonic time source, injectable for tests
    """

    def __init__(
        self,
        limits: Mapping[str, int] | None = None,
        window_seconds: float = DEFAULT_WINDOW_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._window = window_seconds
        self._clock = clock
        self._lock = threading.Lock()
        self._states: dict[str, RateLimitState] = {
            name: RateLimitState(max_requests=int(max_requests))
            for name, max_requests in (DEFAULT_LIMITS if limits is None else limits).items()
        }

    def can_make_request(self, provider: str) -> bool:
        """True iff the provider's current window still has budget."""
        with self._lock:
            state = self._roll(provider)
            if state is None:
                return True
            return state.count < state.max_requests

    def record_request(self, provider: str) -> None:
        """Count one request against the provider's current window."""
        with self._lock:
            state = self._roll(provider)
            if state is not None:
                state.count += 1

    def try_acquire(self, provider: str) -> bool:
        """Check and record one request under a single lock acquisition.

        Returns False, recording nothing, when the window has no budget left.
        """
        with self._lock:
            state = self._roll(provider)
            if state is None:
                return True
            if state.count >= state.max_requests:
                return False
            state.count += 1
            return True

    def get_remaining_requests(self, provider: str) -> int:
        with self._lock:
            state = self._roll(provider)
            if state is None:
                return UNLIMITED_REMAINING
            return max(0, state.max_requests - state.count)

    def max_requests(self, provider: str) -> int | None:
        state = self._states.get(provider)
        return state.max_requests if state is not None else None

    def reset_in(self, provider: str) -> float:
        """Seconds until the provider's window rolls over (0 if not started)."""
        with self._lock:
            state = self._states.get(provider)
            if state is None or state.reset_time is None:
                return 0.0
            return max(0.0, state.reset_time - self._clock())

    def providers(self) -> list[str]:
        return list(self._states)

    def _roll(self, provider: str) -> RateLimitState | None:
        state = self._states.get(provider)
        if state is None:
            return None
        now = self._clock()
        if state.reset_time is None or now > state.reset_time:
            state.count = 0
            state.reset_time = now + self._window
        return state
