"""Concurrent market metadata resolution with a per-symbol fallback chain."""

from __future__ import annotations

import asyncio
import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Iterable

from wealth_server.providers.models import MarketMetadata, SearchResult
from wealth_server.providers.yahoo_market import YahooMarketClient
from wealth_server.services.base import ServiceContext
from wealth_server.services.fallback_manager import FallbackManager, SourceAttempt

LOGGER = logging.getLogger(__name__)

# Rebranded tickers that the market-data sources no longer resolve.
LEGACY_SYMBOLS: dict[str, str] = {"FB": "META"}
METADATA_SOURCE_COUNT = 3


@dataclass
class MetadataResolution:
    by_symbol: dict[str, MarketMetadata] = field(default_factory=dict)
    aliases: dict[str, str] = field(default_factory=dict)

    def lookup(self, original: str) -> MarketMetadata | None:
        return self.by_symbol.get(self.aliases.get(original, original))


def _has_name(metadata: MarketMetadata) -> bool:
    return bool(metadata.name and metadata.name.strip())


def _from_search(result: SearchResult) -> MarketMetadata:
    # search hits may carry a different (renamed) symbol and no currency
    return MarketMetadata(symbol=result.symbol, name=result.name, currency=None, price=result.price)


class MetadataResolver:
    def __init__(
        self,
        ctx: ServiceContext,
        market: YahooMarketClient,
        timeout_seconds: float = 10.0,
        concurrency: int = 8,
        legacy_symbols: dict[str, str] | None = None,
    ) -> None:
        self.ctx = ctx
        self.market = market
        self.timeout_seconds = timeout_seconds
        self.concurrency = max(1, concurrency)
        self.legacy_symbols = LEGACY_SYMBOLS if legacy_symbols is None else legacy_symbols
        # room for every in-flight symbol to strand a worker on each source
        self.executor = ThreadPoolExecutor(
            max_workers=self.concurrency * METADATA_SOURCE_COUNT,
            thread_name_prefix="metadata",
        )
        self.fallback_manager = FallbackManager(ctx, attempt_timeout_seconds=timeout_seconds, executor=self.executor)

    def remap(self, symbol: str) -> str:
        return self.legacy_symbols.get(symbol, symbol)

    def _search_first(self, query: str) -> MarketMetadata | None:
        results = self.market.search(query)
        return _from_search(results[0]) if results else None

    def _attempts(self, symbol: str) -> list[SourceAttempt[MarketMetadata]]:
        return [
            SourceAttempt("yahoo_quote", lambda: self.market.get_quote_details(symbol), accept=_has_name),
            SourceAttempt("yahoo_chart", lambda: self.market.get_chart_metadata(symbol)),
            SourceAttempt("yahoo_search", lambda: self._search_first(symbol)),
        ]

    async def _resolve_one(self, symbol: str, limiter: asyncio.Semaphore) -> MarketMetadata:
        cache_key = f"metadata:{symbol}"
        cached = self.ctx.cache.get(cache_key)
        if isinstance(cached, MarketMetadata):
            return cached
        async with limiter:
            try:
                outcome = await self.fallback_manager.execute("resolve_metadata", symbol, self._attempts(symbol))
            except Exception:
                LOGGER.exception("metadata resolution failed: symbol=%s", symbol)
                outcome = None
        if outcome is None:
            LOGGER.warning("metadata unresolved, using symbol as name: symbol=%s", symbol)
            return MarketMetadata(symbol=symbol)
        self.ctx.cache.set(cache_key, outcome.value, ttl_seconds=self.ctx.cache_ttl_seconds)
        return outcome.value

    async def resolve(self, symbols: Iterable[str]) -> MetadataResolution:
        """Resolve every symbol concurrently; never raises for the batch.

        Lookups run against the remapped symbol. ``lookup`` accepts the
        caller's original symbol.
        """
        resolution = MetadataResolution()
        for symbol in dict.fromkeys(symbols):
            resolution.aliases[symbol] = self.remap(symbol)
        targets = list(dict.fromkeys(resolution.aliases.values()))
        if not targets:
            return resolution

        limiter = asyncio.Semaphore(self.concurrency)
        results = await asyncio.gather(
            *(self._resolve_one(symbol, limiter) for symbol in targets),
            return_exceptions=True,
        )
        for symbol, result in zip(targets, results):
            if isinstance(result, BaseException):
                LOGGER.warning("metadata task failed: symbol=%s error=%r", symbol, result)
                result = MarketMetadata(symbol=symbol)
            resolution.by_symbol[symbol] = result
        return resolution

    async def search_best_match(self, symbol: str) -> MarketMetadata | None:
        """First free-text search hit for the remapped symbol, or None on any failure."""
        query = self.remap(symbol)
        outcome = await self.fallback_manager.execute(
            "search_best_match",
            query,
            [SourceAttempt("yahoo_search", lambda: self._search_first(query))],
        )
        if outcome is None:
            LOGGER.warning("search fallback found nothing: symbol=%s query=%s", symbol, query)
            return None
        return outcome.value

    async def fetch_price(self, symbol: str) -> float | None:
        """Current price from the quote source, then the chart source."""
        target = self.remap(symbol)
        outcome = await self.fallback_manager.execute(
            "fetch_price",
            target,
            [
                SourceAttempt(
                    "yahoo_quote",
                    lambda: self.market.get_quote_details(target),
                    accept=lambda meta: meta.price is not None and meta.price > 0,
                ),
                SourceAttempt(
                    "yahoo_chart",
                    lambda: self.market.get_chart_metadata(target),
                    accept=lambda meta: meta.price is not None,
                ),
            ],
        )
        return outcome.value.price if outcome else None

    async def fetch_prices(self, symbols: Iterable[str]) -> dict[str, float]:
        unique = list(dict.fromkeys(symbols))
        prices = await asyncio.gather(*(self.fetch_price(symbol) for symbol in unique), return_exceptions=True)
        return {
            symbol: price
            for symbol, price in zip(unique, prices)
            if isinstance(price, float)
        }
