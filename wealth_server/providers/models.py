"""Normalized data models shared across provider clients."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Literal

ProviderName = Literal[
    "wealth_api",
    "trading212",
    "yahoo_quote",
    "yahoo_chart",
    "yahoo_search",
]


@dataclass(frozen=True)
class MarketMetadata:
    symbol: str
    name: str | None = None
    currency: str | None = None
    price: float | None = None

    @property
    def is_unknown(self) -> bool:
        return not self.name and self.currency is None and self.price is None


@dataclass(frozen=True)
class SearchResult:
    symbol: str
    name: str
    price: float = 0.0


@dataclass(frozen=True)
class RawBrokerPosition:
    ticker: str
    quantity: float
    average_price: float
    current_price: float
    ppl: float = 0.0
    fx_ppl: float | None = None
    initial_fill_date: str | None = None
    pie_id: float | None = None


@dataclass(frozen=True)
class BrokerInstrument:
    ticker: str
    name: str
    currency_code: str
    short_name: str | None = None
