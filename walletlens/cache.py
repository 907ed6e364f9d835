"""In-memory TTL cache for provider payloads.

Entries expire lazily: a read past the TTL deletes the entry and reports a
miss. start_sweeper() adds a periodic purge that only bounds memory while the
process is idle; correctness never depends on it.

max_entries > 0 caps the cache with least-recently-used eviction. The default
(0) leaves it unbounded.
"""

from __future__ import annotations

import asyncio
import logging
import threading
import time
from collections import OrderedDict
from collections.abc import Callable, Hashable
from dataclasses import dataclass
from typing import Any

logger = logging.getLogger(__name__)

DEFAULT_TTL_SECONDS = 5 * 60
DEFAULT_SWEEP_INTERVAL_SECONDS = 10 * 60


@dataclass
class CacheEntry:
    payload: Any
    created_at: float
    ttl: float

    def expired(self, now: float) -> bool:
        return now > self.created_at + self.ttl


class TTLCache:
    """Thread-safe key/value store with per-entry time-to-live."""

    def __init__(
        self,
        default_ttl: float = DEFAULT_TTL_SECONDS,
        max_entries: int = 0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._default_ttl = default_ttl
        self._max_entries = max_entries
        self._clock = clock
        self._lock = threading.Lock()
        self._entries: OrderedDict[Hashable, CacheEntry] = OrderedDict()
        self._sweeper: asyncio.Task | None = None

    def get(self, key: Hashable) -> Any | None:
        """Return the cached payload, or None if absent or expired."""
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            if entry.expired(self._clock()):
                del self._entries[key]
                return None
            self._entries.move_to_end(key)
            return entry.payload

    def set(self, key: Hashable, payload: Any, ttl: float | None = None) -> None:
        with self._lock:
            self._entries[key] = CacheEntry(
                payload=payload,
                created_at=self._clock(),
                ttl=self._default_ttl if ttl is None else ttl,
            )
            self._entries.move_to_end(key)
            if self._max_entries > 0:
                while len(self._entries) > self._max_entries:
                    self._entries.popitem(last=False)

    def delete(self, key: Hashable) -> None:
        with self._lock:
            self._entries.pop(key, None)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def purge_expired(self) -> int:
        """Drop every expired entry. Returns the number removed."""
        with self._lock:
            now = self._clock()
            stale = [k for k, e in self._entries.items() if e.expired(now)]
            for k in stale:
                del self._entries[k]
        return len(stale)

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    # ──────────────────────────────────────────────────────────────
    # Background sweep
    # ──────────────────────────────────────────────────────────────

    def start_sweeper(self, interval: float = DEFAULT_SWEEP_INTERVAL_SECONDS) -> None:
        """Schedule periodic purge_expired() on the running event loop."""
        if self._sweeper is not None and not self._sweeper.done():
            return
        self._sweeper = asyncio.get_running_loop().create_task(self._sweep_forever(interval))

    async def stop_sweeper(self) -> None:
        if self._sweeper is None:
            return
        self._sweeper.cancel()
        try:
            await self._sweeper
        except asyncio.CancelledError:
            pass
        self._sweeper = None

    @property
    def sweeping(self) -> bool:
        return self._sweeper is not None and not self._sweeper.done()

    async def _sweep_forever(self, interval: float) -> None:
        while True:
            await asyncio.sleep(interval)
            removed = self.purge_expired()
            if removed:
                logger.debug("Cache sweep removed %d expired entries", removed)
