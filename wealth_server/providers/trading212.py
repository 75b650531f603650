"""Trading 212 brokerage adapter."""

from __future__ import annotations

from wealth_server.providers.http import ProviderError, send_json
from wealth_server.providers.models import BrokerInstrument, RawBrokerPosition

TRADING212_BASE_URL = "https://live.trading212.com/api/v0"


def _to_float(value: object) -> float | None:
    if value is None or isinstance(value, bool):
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def _require_float(item: dict, key: str) -> float:
    value = _to_float(item.get(key))
    if value is None:
        raise ProviderError("trading212", "BAD_RESPONSE", f"Position field '{key}' is missing or not numeric.")
    return value


class Trading212Client:
    def __init__(self, base_url: str = TRADING212_BASE_URL, timeout_seconds: float = 15.0) -> None:
        self.base_url = base_url.rstrip("/")
        self.timeout_seconds = timeout_seconds

    def _request(self, endpoint: str, api_key: str, api_secret: str) -> object:
        # 401 surfaces as UnauthorizedError from send_json and is never retried
        return send_json(
            f"{self.base_url}{endpoint}",
            provider="trading212",
            timeout_seconds=self.timeout_seconds,
            auth=(api_key, api_secret),
        )

    def fetch_portfolio(self, api_key: str, api_secret: str) -> list[RawBrokerPosition]:
        data = self._request("/equity/portfolio", api_key, api_secret)
        if not isinstance(data, list):
            raise ProviderError("trading212", "BAD_RESPONSE", "Portfolio response is not a list.")
        positions: list[RawBrokerPosition] = []
        for item in data:
            if not isinstance(item, dict) or not isinstance(item.get("ticker"), str):
                raise ProviderError("trading212", "BAD_RESPONSE", "Portfolio entry has no ticker.")
            positions.append(
                RawBrokerPosition(
                    ticker=item["ticker"],
                    quantity=_require_float(item, "quantity"),
                    average_price=_require_float(item, "averagePrice"),
                    current_price=_require_float(item, "currentPrice"),
                    ppl=_to_float(item.get("ppl")) or 0.0,
                    fx_ppl=_to_float(item.get("fxPpl")),
                    initial_fill_date=item.get("initialFillDate") if isinstance(item.get("initialFillDate"), str) else None,
                    pie_id=_to_float(item.get("pieId")),
                )
            )
        return positions

    def fetch_instruments(self, api_key: str, api_secret: str) -> list[BrokerInstrument]:
        data = self._request("/equity/metadata/instruments", api_key, api_secret)
        if not isinstance(data, list):
            raise ProviderError("trading212", "BAD_RESPONSE", "Instrument response is not a list.")
        instruments: list[BrokerInstrument] = []
        for item in data:
            if not isinstance(item, dict):
                continue
            ticker, name, currency = item.get("ticker"), item.get("name"), item.get("currencyCode")
            if not all(isinstance(value, str) for value in (ticker, name, currency)):
                continue
            short_name = item.get("shortName")
            instruments.append(
                BrokerInstrument(
                    ticker=ticker,
                    name=name,
                    currency_code=currency,
                    short_name=short_name if isinstance(short_name, str) else None,
                )
            )
        return instruments
