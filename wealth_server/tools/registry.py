"""Service wiring and tool registration."""

from __future__ import annotations

from dataclasses import dataclass

from mcp.server.fastmcp import FastMCP

from wealth_server.cache.ttl_cache import TTLCache
from wealth_server.config.settings import Settings
from wealth_server.portfolio.reconciler import PortfolioReconciler
from wealth_server.portfolio.store import JsonPlatformSnapshot, PlatformStore
from wealth_server.providers.trading212 import Trading212Client
from wealth_server.providers.wealth_api import WealthApiClient
from wealth_server.providers.yahoo_market import YahooMarketClient
from wealth_server.services.base import ServiceContext
from wealth_server.services.metadata_resolver import MetadataResolver
from wealth_server.services.portfolio_service import PortfolioService
from wealth_server.tools.market_tools import register_market_tools
from wealth_server.tools.portfolio_tools import register_portfolio_tools
from wealth_server.utils.rate_limit import RateLimiterRegistry


@dataclass
class ToolServices:
    ctx: ServiceContext
    portfolio: PortfolioService


def build_tool_services(settings: Settings) -> ToolServices:
    # a stalled lookup must not outlive the attempt that started it
    market = YahooMarketClient(
        settings.market_user_agent,
        min(settings.request_timeout_seconds, settings.metadata_timeout_seconds),
        max_retries=1,
    )
    broker = Trading212Client(settings.trading212_base_url, settings.request_timeout_seconds)
    wealth_api = WealthApiClient(settings.wealth_api_base_url, settings.wealth_api_token, settings.request_timeout_seconds)
    ctx = ServiceContext(
        cache=TTLCache(default_ttl_seconds=settings.cache_ttl_seconds),
        rate_limiter=RateLimiterRegistry(min_interval_seconds=settings.source_min_interval_seconds),
        cache_ttl_seconds=settings.cache_ttl_seconds,
    )

    snapshot = JsonPlatformSnapshot(settings.platform_snapshot_path) if settings.platform_snapshot_path else None
    store = PlatformStore(
        platforms=snapshot.load() if snapshot else None,
        persist=snapshot.save if snapshot else None,
    )
    resolver = MetadataResolver(
        ctx,
        market,
        timeout_seconds=settings.metadata_timeout_seconds,
        concurrency=settings.metadata_concurrency,
    )
    reconciler = PortfolioReconciler(
        ctx,
        store,
        resolver,
        broker,
        fx_pair_symbol=settings.fx_pair_symbol,
        fx_fallback_rate=settings.fx_fallback_rate,
    )
    return ToolServices(
        ctx=ctx,
        portfolio=PortfolioService(store, wealth_api, resolver, reconciler),
    )


def register_all_tools(mcp: FastMCP, services: ToolServices) -> None:
    register_portfolio_tools(mcp, services)
    register_market_tools(mcp, services)
