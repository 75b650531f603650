"""Ordered fallback over market-data sources for a single symbol."""

from __future__ import annotations

import asyncio
import logging
import time
from concurrent.futures import Executor
from dataclasses import dataclass
from typing import Callable, Generic, TypeVar

from wealth_server.providers.http import ProviderError
from wealth_server.services.base import ServiceContext

T = TypeVar("T")
LOGGER = logging.getLogger(__name__)
RATE_LIMIT_PATTERNS = (
    "rate limit",
    "too many requests",
    "limit exceeded",
)
DEFAULT_RATE_LIMIT_DISABLE_SECONDS = 60 * 15


@dataclass(frozen=True)
class SourceAttempt(Generic[T]):
    """One strategy in the chain.

    ``call`` is blocking and runs on a worker thread. A ``None`` result, or a
    result rejected by ``accept``, moves on to the next attempt.
    """

    key: str
    call: Callable[[], T | None]
    accept: Callable[[T], bool] | None = None


@dataclass(frozen=True)
class AttemptOutcome(Generic[T]):
    value: T
    source: str
    used_fallback: bool


class FallbackManager:
    def __init__(
        self,
        ctx: ServiceContext,
        attempt_timeout_seconds: float = 10.0,
        rate_limit_disable_seconds: dict[str, int] | None = None,
        executor: Executor | None = None,
    ) -> None:
        self._ctx = ctx
        self._attempt_timeout_seconds = attempt_timeout_seconds
        self._rate_limit_disable_seconds = rate_limit_disable_seconds or {}
        self._executor = executor

    def _run_blocking(self, attempt: SourceAttempt[T]) -> T | None:
        self._ctx.rate_limiter.wait(attempt.key)
        return attempt.call()

    async def _run_attempt(self, attempt: SourceAttempt[T]) -> T | None:
        """Run one blocking attempt on the executor.

        The timeout starts when a worker picks the call up, so time spent
        queued behind another symbol's stalled request is not charged to
        this source.
        """
        loop = asyncio.get_running_loop()
        started = asyncio.Event()

        def _call() -> T | None:
            loop.call_soon_threadsafe(started.set)
            return self._run_blocking(attempt)

        future = loop.run_in_executor(self._executor, _call)
        try:
            await started.wait()
        except asyncio.CancelledError:
            future.cancel()
            raise
        return await asyncio.wait_for(future, timeout=self._attempt_timeout_seconds)

    async def execute(self, operation: str, symbol: str, attempts: list[SourceAttempt[T]]) -> AttemptOutcome[T] | None:
        used_fallback = False
        for attempt in attempts:
            if self._ctx.source_status.is_disabled(attempt.key):
                used_fallback = True
                LOGGER.info("source skipped (cooling off): op=%s symbol=%s source=%s", operation, symbol, attempt.key)
                continue

            started = time.perf_counter()
            try:
                value = await self._run_attempt(attempt)
            except asyncio.TimeoutError:
                used_fallback = True
                LOGGER.warning(
                    "source attempt timed out: op=%s symbol=%s source=%s timeout_s=%s",
                    operation,
                    symbol,
                    attempt.key,
                    self._attempt_timeout_seconds,
                )
                continue
            except ProviderError as error:
                used_fallback = True
                LOGGER.warning(
                    "source attempt failed: op=%s symbol=%s source=%s code=%s status=%s latency_ms=%s",
                    operation,
                    symbol,
                    attempt.key,
                    error.code,
                    error.status,
                    round((time.perf_counter() - started) * 1000, 2),
                )
                if self.is_rate_limited(error):
                    ttl_seconds = self._rate_limit_disable_seconds.get(attempt.key, DEFAULT_RATE_LIMIT_DISABLE_SECONDS)
                    until = self._ctx.source_status.disable(attempt.key, ttl_seconds)
                    LOGGER.warning("source disabled after rate limit: source=%s disabled_until=%s", attempt.key, until)
                continue
            except Exception:
                used_fallback = True
                LOGGER.exception(
                    "source attempt unexpected failure: op=%s symbol=%s source=%s",
                    operation,
                    symbol,
                    attempt.key,
                )
                continue

            accepted = value is not None and (attempt.accept is None or attempt.accept(value))
            LOGGER.debug(
                "source attempt complete: op=%s symbol=%s source=%s accepted=%s latency_ms=%s",
                operation,
                symbol,
                attempt.key,
                accepted,
                round((time.perf_counter() - started) * 1000, 2),
            )
            if accepted:
                return AttemptOutcome(value=value, source=attempt.key, used_fallback=used_fallback)
            used_fallback = True
        return None

    @staticmethod
    def is_rate_limited(error: ProviderError) -> bool:
        if error.code == "RATE_LIMIT" or error.status == 429:
            return True
        message = (error.message or "").lower()
        return any(pattern in message for pattern in RATE_LIMIT_PATTERNS)
