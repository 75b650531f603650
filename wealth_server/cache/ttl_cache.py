"""In-memory TTL cache that remembers the last value of expired keys."""

from __future__ import annotations

import time
from dataclasses import dataclass
from threading import Lock
from typing import Generic, TypeVar

T = TypeVar("T")


@dataclass
class _CacheItem(Generic[T]):
    value: T
    expires_at: float


class TTLCache:
    """Thread-safe TTL cache keyed by string.

    ``get`` honours expiry. ``get_stale`` ignores it, which is what the FX
    lookup uses as its last-known-good rate.
    """

    def __init__(self, default_ttl_seconds: int = 60) -> None:
        self.default_ttl_seconds = max(1, default_ttl_seconds)
        self._data: dict[str, _CacheItem[object]] = {}
        self._lock = Lock()

    def get(self, key: str) -> object | None:
        with self._lock:
            item = self._data.get(key)
            if not item or item.expires_at < time.time():
                return None
            return item.value

    def get_stale(self, key: str) -> object | None:
        with self._lock:
            item = self._data.get(key)
            return item.value if item else None

    def set(self, key: str, value: object, ttl_seconds: int | None = None) -> None:
        ttl = self.default_ttl_seconds if ttl_seconds is None else max(1, ttl_seconds)
        with self._lock:
            self._data[key] = _CacheItem(value=value, expires_at=time.time() + ttl)

    def invalidate(self, prefix: str) -> int:
        with self._lock:
            keys = [key for key in self._data if key.startswith(prefix)]
            for key in keys:
                del self._data[key]
            return len(keys)

    def clear(self) -> None:
        with self._lock:
            self._data.clear()
