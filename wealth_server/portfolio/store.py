"""Keyed platform collection with atomic, lock-guarded mutation."""

from __future__ import annotations

import asyncio
import copy
import json
import logging
import os
import tempfile
from contextlib import asynccontextmanager
from dataclasses import asdict
from pathlib import Path
from typing import AsyncIterator, Callable

from wealth_server.portfolio.models import Platform, Position

LOGGER = logging.getLogger(__name__)


class JsonPlatformSnapshot:
    """Writes the committed platform collection to a JSON file."""

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)

    def save(self, platforms: list[Platform]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        payload = [asdict(platform) for platform in platforms]
        # write-then-rename so a crash never leaves a truncated snapshot
        fd, tmp_name = tempfile.mkstemp(dir=self.path.parent, prefix=".platforms-", suffix=".json")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                json.dump(payload, handle, ensure_ascii=True, indent=2)
            os.replace(tmp_name, self.path)
        except Exception:
            Path(tmp_name).unlink(missing_ok=True)
            raise

    def load(self) -> list[Platform]:
        if not self.path.exists():
            return []
        with self.path.open(encoding="utf-8") as handle:
            rows = json.load(handle)
        platforms: list[Platform] = []
        for row in rows:
            investments = [Position(**item) for item in row.pop("investments", [])]
            platforms.append(Platform(investments=investments, **row))
        return platforms


class _Transaction:
    """Staged view of the collection; applied only when the block exits cleanly."""

    def __init__(self, platforms: dict[str, Platform]) -> None:
        self.platforms = platforms

    def find_by_name(self, name: str) -> Platform | None:
        return next((platform for platform in self.platforms.values() if platform.name == name), None)

    def upsert(self, platform: Platform) -> Platform:
        self.platforms[platform.id] = platform
        return platform

    def replace_investments(self, platform_id: str, investments: list[Position]) -> Platform:
        platform = self.platforms[platform_id]
        platform.investments = list(investments)
        return platform

    def replace_all(self, platforms: list[Platform]) -> None:
        self.platforms.clear()
        for platform in platforms:
            self.platforms[platform.id] = platform


class PlatformStore:
    """Platforms keyed by id.

    Readers get deep copies, and writers work on a staged copy that is
    swapped in under the lock, so a reader never observes a partially
    replaced investment list.
    """

    def __init__(
        self,
        platforms: list[Platform] | None = None,
        persist: Callable[[list[Platform]], None] | None = None,
    ) -> None:
        self._platforms: dict[str, Platform] = {platform.id: platform for platform in platforms or []}
        self._persist = persist
        self._lock = asyncio.Lock()

    def snapshot(self) -> list[Platform]:
        return copy.deepcopy(list(self._platforms.values()))

    def get(self, platform_id: str) -> Platform | None:
        platform = self._platforms.get(platform_id)
        return copy.deepcopy(platform) if platform else None

    def find_by_name(self, name: str) -> Platform | None:
        platform = next((item for item in self._platforms.values() if item.name == name), None)
        return copy.deepcopy(platform) if platform else None

    def __len__(self) -> int:
        return len(self._platforms)

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[_Transaction]:
        async with self._lock:
            staged = _Transaction(copy.deepcopy(self._platforms))
            yield staged
            if self._persist is not None:
                await asyncio.to_thread(self._persist, list(staged.platforms.values()))
            self._platforms = staged.platforms
            LOGGER.debug("platform store committed: platforms=%s", len(self._platforms))
