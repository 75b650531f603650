"""Merge a freshly imported brokerage portfolio into the platform collection."""

from __future__ import annotations

import asyncio
import copy
import logging
from dataclasses import dataclass

from wealth_server.portfolio.models import Platform, Position
from wealth_server.portfolio.store import PlatformStore
from wealth_server.portfolio.symbols import NormalizedTicker, apply_scale, normalize_ticker
from wealth_server.providers.models import MarketMetadata, RawBrokerPosition
from wealth_server.providers.trading212 import Trading212Client
from wealth_server.services.base import ServiceContext, require_text
from wealth_server.services.metadata_resolver import MetadataResolver

LOGGER = logging.getLogger(__name__)

TRADING212_PLATFORM_NAME = "Trading 212"
TRADING212_PLATFORM_COLOR = "#3B82F6"
FX_CACHE_KEY = "fx:rate"


@dataclass(frozen=True)
class _ScaledPosition:
    raw: RawBrokerPosition
    ticker: NormalizedTicker
    average_price: float
    current_price: float


class PortfolioReconciler:
    def __init__(
        self,
        ctx: ServiceContext,
        store: PlatformStore,
        resolver: MetadataResolver,
        broker: Trading212Client,
        fx_pair_symbol: str = "USDGBP=X",
        fx_fallback_rate: float = 0.77,
        platform_name: str = TRADING212_PLATFORM_NAME,
        platform_color: str = TRADING212_PLATFORM_COLOR,
    ) -> None:
        self.ctx = ctx
        self.store = store
        self.resolver = resolver
        self.broker = broker
        self.fx_pair_symbol = fx_pair_symbol
        self.fx_fallback_rate = fx_fallback_rate
        self.platform_name = platform_name
        self.platform_color = platform_color

    async def resolve_fx_rate(self) -> float:
        """Local-currency units per USD: live, else last known, else the constant."""
        try:
            rate = await self.resolver.fetch_price(self.fx_pair_symbol)
        except Exception:
            LOGGER.exception("fx rate lookup failed: pair=%s", self.fx_pair_symbol)
            rate = None
        if rate is not None and rate > 0:
            self.ctx.cache.set(FX_CACHE_KEY, rate, ttl_seconds=self.ctx.cache_ttl_seconds)
            return rate
        stale = self.ctx.cache.get_stale(FX_CACHE_KEY)
        if isinstance(stale, float):
            LOGGER.warning("fx rate unavailable, using last known: pair=%s rate=%s", self.fx_pair_symbol, stale)
            return stale
        LOGGER.warning("fx rate unavailable, using fallback: pair=%s rate=%s", self.fx_pair_symbol, self.fx_fallback_rate)
        return self.fx_fallback_rate

    async def import_trading212(self, api_key: str, api_secret: str) -> Platform:
        """Fetch the brokerage portfolio and reconcile it.

        Unauthorized and transport errors from the portfolio fetch propagate
        before anything is merged.
        """
        api_key = require_text(api_key, "api_key")
        api_secret = require_text(api_secret, "api_secret")
        raw_positions = await asyncio.to_thread(self.broker.fetch_portfolio, api_key, api_secret)
        LOGGER.info("brokerage portfolio fetched: platform=%s positions=%s", self.platform_name, len(raw_positions))
        fx_rate = await self.resolve_fx_rate()
        return await self.reconcile_brokerage_import(raw_positions, fx_rate)

    async def reconcile_brokerage_import(self, raw_positions: list[RawBrokerPosition], fx_rate: float) -> Platform:
        scaled = [self._scale(raw, fx_rate) for raw in raw_positions]
        originals = list(dict.fromkeys(item.ticker.symbol for item in scaled))

        resolution = await self.resolver.resolve(originals)
        final: dict[str, MarketMetadata | None] = {}
        for symbol in originals:
            metadata = resolution.lookup(symbol)
            final[symbol] = None if metadata is None or metadata.is_unknown else metadata

        # second pass: anything still nameless gets a direct search
        unnamed = [symbol for symbol in originals if not (final[symbol] and final[symbol].name)]
        if unnamed:
            matches = await asyncio.gather(*(self.resolver.search_best_match(symbol) for symbol in unnamed))
            for symbol, match in zip(unnamed, matches):
                if match is not None:
                    final[symbol] = match

        investments = [self._build_position(item, final.get(item.ticker.symbol)) for item in scaled]
        return await self._merge(investments)

    @staticmethod
    def _scale(raw: RawBrokerPosition, fx_rate: float) -> _ScaledPosition:
        ticker = normalize_ticker(raw.ticker)
        return _ScaledPosition(
            raw=raw,
            ticker=ticker,
            average_price=apply_scale(raw.average_price, ticker.rule, fx_rate),
            current_price=apply_scale(raw.current_price, ticker.rule, fx_rate),
        )

    @staticmethod
    def _build_position(item: _ScaledPosition, metadata: MarketMetadata | None) -> Position:
        symbol = item.ticker.symbol
        return Position(
            name=(metadata.name if metadata and metadata.name else symbol),
            symbol=(metadata.symbol if metadata and metadata.symbol else symbol),
            amount_spent=None,
            shares=item.raw.quantity,
            average_price=item.average_price,
            current_price=item.current_price,
        )

    async def _merge(self, investments: list[Position]) -> Platform:
        async with self.store.transaction() as tx:
            existing = tx.find_by_name(self.platform_name)
            if existing is not None:
                platform = tx.replace_investments(existing.id, investments)
                action = "updated"
            else:
                platform = tx.upsert(
                    Platform(
                        name=self.platform_name,
                        color_hex=self.platform_color,
                        investments=investments,
                        cash_balance=0.0,
                    )
                )
                action = "created"
        LOGGER.info("brokerage import merged: platform=%s action=%s positions=%s", platform.name, action, len(investments))
        return copy.deepcopy(platform)
