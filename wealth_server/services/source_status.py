"""Cool-off windows for market-data sources that reported rate limiting."""

from __future__ import annotations

import threading
import time


class SourceStatus:
    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._disabled_until: dict[str, float] = {}

    def disable(self, source: str, ttl_seconds: int) -> float:
        until = time.time() + max(1, ttl_seconds)
        with self._lock:
            self._disabled_until[source] = max(self._disabled_until.get(source, 0.0), until)
            return self._disabled_until[source]

    def is_disabled(self, source: str) -> bool:
        with self._lock:
            until = self._disabled_until.get(source)
            if not until:
                return False
            if until <= time.time():
                self._disabled_until.pop(source, None)
                return False
            return True

    def snapshot(self) -> dict[str, float]:
        """Sources still cooling off, mapped to their re-enable time."""
        now = time.time()
        with self._lock:
            return {source: until for source, until in self._disabled_until.items() if until > now}
