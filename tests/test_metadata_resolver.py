import asyncio
import time

from wealth_server.cache.ttl_cache import TTLCache
from wealth_server.providers.http import ProviderError
from wealth_server.providers.models import MarketMetadata, SearchResult
from wealth_server.services.base import ServiceContext
from wealth_server.services.metadata_resolver import MetadataResolver
from wealth_server.utils.rate_limit import RateLimiterRegistry


class _FakeMarket:
    def __init__(self, quotes=None, charts=None, searches=None, broken=()) -> None:
        self.quotes = quotes or {}
        self.charts = charts or {}
        self.searches = searches or {}
        self.broken = set(broken)
        self.calls: list[tuple[str, str]] = []

    def _check(self, kind: str, symbol: str) -> None:
        self.calls.append((kind, symbol))
        if symbol in self.broken:
            raise ProviderError("yahoo_quote", "UPSTREAM", "Provider request failed with status 500.", 500)

    def get_quote_details(self, symbol):
        self._check("quote", symbol)
        return self.quotes.get(symbol)

    def get_chart_metadata(self, symbol):
        self._check("chart", symbol)
        return self.charts.get(symbol)

    def search(self, query):
        self._check("search", query)
        return self.searches.get(query, [])


def _resolver(market: _FakeMarket) -> MetadataResolver:
    ctx = ServiceContext(cache=TTLCache(), rate_limiter=RateLimiterRegistry(0.0))
    return MetadataResolver(ctx, market, timeout_seconds=2.0, concurrency=2)


def test_quote_with_name_is_used_directly() -> None:
    market = _FakeMarket(quotes={"AAPL": MarketMetadata("AAPL", "Apple Inc.", "USD", 190.0)})
    resolution = asyncio.run(_resolver(market).resolve(["AAPL"]))
    assert resolution.lookup("AAPL").name == "Apple Inc."
    assert market.calls == [("quote", "AAPL")]


def test_nameless_quote_falls_back_to_chart_then_search() -> None:
    market = _FakeMarket(
        quotes={"RR.L": MarketMetadata("RR.L", None, "GBp", 410.0)},
        charts={"RR.L": MarketMetadata("RR.L", "Rolls-Royce", "GBp", 410.0)},
        searches={"SMT.L": [SearchResult("SMT.L", "Scottish Mortgage"), SearchResult("SMT", "Other")]},
    )
    resolution = asyncio.run(_resolver(market).resolve(["RR.L", "SMT.L"]))
    assert resolution.lookup("RR.L").name == "Rolls-Royce"
    assert resolution.lookup("SMT.L").name == "Scottish Mortgage"
    assert resolution.lookup("SMT.L").currency is None


def test_legacy_symbol_is_remapped_and_looked_up_by_original() -> None:
    market = _FakeMarket(quotes={"META": MarketMetadata("META", "Meta Platforms, Inc.", "USD", 500.0)})
    resolution = asyncio.run(_resolver(market).resolve(["FB"]))
    assert resolution.aliases == {"FB": "META"}
    assert resolution.lookup("FB").name == "Meta Platforms, Inc."
    assert ("quote", "FB") not in market.calls


def test_one_failing_symbol_does_not_affect_others() -> None:
    market = _FakeMarket(
        quotes={"AAPL": MarketMetadata("AAPL", "Apple Inc.", "USD", 190.0)},
        broken={"BAD"},
    )
    resolution = asyncio.run(_resolver(market).resolve(["BAD", "AAPL", "BAD"]))
    assert resolution.lookup("AAPL").name == "Apple Inc."
    unknown = resolution.lookup("BAD")
    assert unknown.symbol == "BAD"
    assert unknown.is_unknown


def test_resolved_metadata_is_cached_but_unknowns_are_not() -> None:
    market = _FakeMarket(quotes={"AAPL": MarketMetadata("AAPL", "Apple Inc.", "USD", 190.0)})
    resolver = _resolver(market)
    asyncio.run(resolver.resolve(["AAPL", "ZZZZ"]))
    first_calls = len(market.calls)
    asyncio.run(resolver.resolve(["AAPL", "ZZZZ"]))
    repeated = market.calls[first_calls:]
    assert ("quote", "AAPL") not in repeated
    assert ("quote", "ZZZZ") in repeated


def test_empty_batch() -> None:
    resolution = asyncio.run(_resolver(_FakeMarket()).resolve([]))
    assert resolution.by_symbol == {}


def test_search_best_match_swallows_failures() -> None:
    market = _FakeMarket(searches={"META": [SearchResult("META", "Meta Platforms")]}, broken={"BROKEN"})
    resolver = _resolver(market)
    assert asyncio.run(resolver.search_best_match("FB")).name == "Meta Platforms"
    assert asyncio.run(resolver.search_best_match("BROKEN")) is None
    assert asyncio.run(resolver.search_best_match("NOTHING")) is None


def test_fetch_price_skips_zero_quote_price() -> None:
    market = _FakeMarket(
        quotes={"USDGBP=X": MarketMetadata("USDGBP=X", "USD/GBP", "GBP", 0.0)},
        charts={"USDGBP=X": MarketMetadata("USDGBP=X", None, "GBP", 0.79)},
    )
    resolver = _resolver(market)
    assert asyncio.run(resolver.fetch_price("USDGBP=X")) == 0.79
    assert asyncio.run(resolver.fetch_prices(["USDGBP=X", "NONE"])) == {"USDGBP=X": 0.79}


class _StallingMarket(_FakeMarket):
    """Every source hangs for symbols starting with SLOW."""

    def __init__(self, stall_seconds: float, **kwargs) -> None:
        super().__init__(**kwargs)
        self.stall_seconds = stall_seconds

    def _check(self, kind: str, symbol: str) -> None:
        super()._check(kind, symbol)
        if symbol.startswith("SLOW"):
            time.sleep(self.stall_seconds)


def test_stalled_symbols_do_not_starve_healthy_ones() -> None:
    market = _StallingMarket(1.0, quotes={"GOOD": MarketMetadata("GOOD", "Good Corp", "USD", 10.0)})
    ctx = ServiceContext(cache=TTLCache(), rate_limiter=RateLimiterRegistry(0.0))
    resolver = MetadataResolver(ctx, market, timeout_seconds=0.1, concurrency=2)
    symbols = [f"SLOW{index}" for index in range(6)] + ["GOOD"]

    resolution = asyncio.run(resolver.resolve(symbols))

    assert resolution.lookup("GOOD").name == "Good Corp"
    assert all(resolution.lookup(symbol).is_unknown for symbol in symbols[:-1])
    resolver.executor.shutdown(wait=True)
