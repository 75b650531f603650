"""Yahoo Finance quote, chart and search adapter."""

from __future__ import annotations

from urllib.parse import quote, quote_plus

from wealth_server.providers.http import ProviderError, fetch_json
from wealth_server.providers.models import MarketMetadata, ProviderName, SearchResult

QUOTE_URL = "https://query1.finance.yahoo.com/v7/finance/quote"
CHART_URL = "https://query1.finance.yahoo.com/v8/finance/chart"
SEARCH_URL = "https://query2.finance.yahoo.com/v1/finance/search"


def _text(value: object) -> str | None:
    if isinstance(value, str) and value.strip():
        return value
    return None


def _number(value: object) -> float | None:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    return float(value)


class YahooMarketClient:
    def __init__(self, user_agent: str, timeout_seconds: float = 15.0, max_retries: int = 3) -> None:
        self.user_agent = user_agent
        self.timeout_seconds = timeout_seconds
        self.max_retries = max_retries

    def _get(self, url: str, provider: ProviderName) -> object:
        return fetch_json(
            url,
            provider=provider,
            timeout_seconds=self.timeout_seconds,
            headers={"User-Agent": self.user_agent},
            max_retries=self.max_retries,
        )

    def search(self, query: str) -> list[SearchResult]:
        if not query:
            return []
        url = f"{SEARCH_URL}?q={quote_plus(query)}"
        data = self._get(url, "yahoo_search")
        rows = data.get("quotes") if isinstance(data, dict) else None
        if not isinstance(rows, list):
            raise ProviderError("yahoo_search", "BAD_RESPONSE", "Search response has no quotes list.")
        results: list[SearchResult] = []
        for item in rows:
            if not isinstance(item, dict) or not _text(item.get("symbol")):
                continue
            symbol = item["symbol"]
            name = _text(item.get("shortname")) or _text(item.get("longname")) or symbol
            # search does not return a reliable price
            results.append(SearchResult(symbol=symbol, name=name, price=0.0))
        return results

    def get_quote_details(self, symbol: str) -> MarketMetadata | None:
        url = f"{QUOTE_URL}?symbols={quote_plus(symbol)}"
        data = self._get(url, "yahoo_quote")
        rows = ((data or {}).get("quoteResponse") or {}).get("result") if isinstance(data, dict) else None
        if not isinstance(rows, list):
            raise ProviderError("yahoo_quote", "BAD_RESPONSE", "Quote response has no result list.")
        if not rows or not isinstance(rows[0], dict):
            return None
        item = rows[0]
        return MarketMetadata(
            symbol=symbol,
            name=_text(item.get("longName")) or _text(item.get("shortName")),
            currency=_text(item.get("currency")),
            price=_number(item.get("regularMarketPrice")),
        )

    def get_chart_metadata(self, symbol: str) -> MarketMetadata | None:
        url = f"{CHART_URL}/{quote(symbol, safe='')}?interval=1d&range=1d"
        data = self._get(url, "yahoo_chart")
        results = ((data or {}).get("chart") or {}).get("result") if isinstance(data, dict) else None
        if not results or not isinstance(results[0], dict):
            return None
        meta = results[0].get("meta")
        if not isinstance(meta, dict):
            raise ProviderError("yahoo_chart", "BAD_RESPONSE", "Chart response has no meta block.")
        price = _number(meta.get("regularMarketPrice"))
        if price is None:
            raise ProviderError("yahoo_chart", "BAD_RESPONSE", "Chart meta block has no market price.")
        return MarketMetadata(
            symbol=symbol,
            name=_text(meta.get("longName")) or _text(meta.get("shortName")),
            currency=_text(meta.get("currency")),
            price=price,
        )
