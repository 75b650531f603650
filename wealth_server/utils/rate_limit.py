"""Per-source minimum-interval limiter shared by worker threads."""

from __future__ import annotations

import time
from threading import Lock


class RateLimiterRegistry:
    """Spaces calls to the same source at least ``min_interval_seconds`` apart.

    Each caller reserves the next free slot under the lock and sleeps outside
    it, so concurrent lookups for different sources never wait on each other.
    """

    def __init__(self, min_interval_seconds: float = 0.2) -> None:
        self.min_interval_seconds = max(0.0, min_interval_seconds)
        self._next_slot: dict[str, float] = {}
        self._lock = Lock()

    def reserve(self, source: str) -> float:
        """Return how long the caller must wait before hitting ``source``."""
        if self.min_interval_seconds <= 0:
            return 0.0
        now = time.monotonic()
        with self._lock:
            slot = max(now, self._next_slot.get(source, now))
            self._next_slot[source] = slot + self.min_interval_seconds
        return slot - now

    def wait(self, source: str) -> None:
        delay = self.reserve(source)
        if delay > 0:
            time.sleep(delay)
