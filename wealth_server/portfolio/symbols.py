"""Brokerage ticker normalization."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

US_EQUITY_SUFFIX = "_US_EQ"
EQUITY_SUFFIX = "_EQ"
LONDON_MARKER = "l"
LONDON_SUFFIX = ".L"


class ScaleRule(str, Enum):
    MULTIPLY_BY_RATE = "multiply_by_rate"
    DIVIDE_BY_100 = "divide_by_100"
    NONE = "none"


@dataclass(frozen=True)
class NormalizedTicker:
    symbol: str
    rule: ScaleRule


def normalize_ticker(ticker: str) -> NormalizedTicker:
    """Map a broker-encoded ticker such as ``RRl_EQ`` to ``RR.L``.

    US listings are quoted in dollars and need the FX rate applied; other
    ``_EQ`` listings are quoted in minor units (pence).
    """
    if ticker.endswith(US_EQUITY_SUFFIX):
        return NormalizedTicker(ticker[: -len(US_EQUITY_SUFFIX)], ScaleRule.MULTIPLY_BY_RATE)
    if ticker.endswith(EQUITY_SUFFIX):
        base = ticker[: -len(EQUITY_SUFFIX)]
        if base.endswith(LONDON_MARKER):
            base = base[: -len(LONDON_MARKER)] + LONDON_SUFFIX
        return NormalizedTicker(base, ScaleRule.DIVIDE_BY_100)
    return NormalizedTicker(ticker, ScaleRule.NONE)


def apply_scale(price: float, rule: ScaleRule, fx_rate: float) -> float:
    if rule is ScaleRule.MULTIPLY_BY_RATE:
        return price * fx_rate
    if rule is ScaleRule.DIVIDE_BY_100:
        return price / 100.0
    return price
