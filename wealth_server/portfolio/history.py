"""Net-worth history parsing and chart-axis bounds."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, datetime, timezone
from typing import Iterable

import pandas as pd

from wealth_server.portfolio.models import NetWorthPoint

LOGGER = logging.getLogger(__name__)
HISTORY_PERIODS = ("24H", "1W", "1M", "3M", "6M", "1Y", "MAX")
_NAIVE_FORMATS = ("%Y-%m-%dT%H:%M:%S.%f", "%Y-%m-%dT%H:%M:%S")


@dataclass(frozen=True)
class HistoryBounds:
    lower: float
    upper: float
    ticks: list[float]


def parse_history_date(value: str) -> datetime | None:
    """Parse the backend's date encodings.

    Long periods use ``YYYY-MM-DD``; short periods use naive ISO timestamps
    with microsecond or second precision; anything else is tried as ISO-8601
    with an offset or ``Z``.
    """
    if not isinstance(value, str) or not value:
        return None
    if len(value) == 10:
        try:
            return datetime.combine(date.fromisoformat(value), datetime.min.time())
        except ValueError:
            return None
    for fmt in _NAIVE_FORMATS:
        try:
            return datetime.strptime(value, fmt)
        except ValueError:
            continue
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    return parsed


def parse_history(rows: Iterable[dict]) -> list[NetWorthPoint]:
    points: list[NetWorthPoint] = []
    for row in rows:
        if not isinstance(row, dict):
            continue
        timestamp = parse_history_date(row.get("date"))
        value = row.get("value")
        if timestamp is None or isinstance(value, bool) or not isinstance(value, (int, float)):
            LOGGER.warning("skipping history point: date=%r value=%r", row.get("date"), value)
            continue
        points.append(NetWorthPoint(timestamp=timestamp, value=float(value)))
    return points


def normalize_period(period: str) -> str:
    clean = period.strip().upper()
    if clean not in HISTORY_PERIODS:
        raise ValueError(f"Period must be one of: {', '.join(HISTORY_PERIODS)}.")
    return clean


def history_bounds(points: list[NetWorthPoint]) -> HistoryBounds:
    """Y-axis domain and five ticks for a net-worth series."""
    if not points:
        return HistoryBounds(lower=0.0, upper=100.0, ticks=[])
    series = pd.Series([point.value for point in points], dtype=float)
    low, high = float(series.min()), float(series.max())
    if low == high:
        return HistoryBounds(lower=low * 0.9, upper=low * 1.1, ticks=[low * 0.9, low, low * 1.1])
    span = high - low
    step = span / 4
    padding = span * 0.05
    return HistoryBounds(
        lower=low - padding,
        upper=high + padding,
        ticks=[low, low + step, low + step * 2, low + step * 3, high],
    )


def period_change(points: list[NetWorthPoint]) -> dict[str, float]:
    """Absolute and percent change between the first and last point."""
    if len(points) < 2:
        return {"change": 0.0, "change_percent": 0.0}
    series = pd.Series(
        [point.value for point in points],
        index=pd.DatetimeIndex([point.timestamp for point in points]),
        dtype=float,
    ).sort_index()
    first, last = float(series.iloc[0]), float(series.iloc[-1])
    change = last - first
    return {"change": change, "change_percent": (change / first) * 100.0 if first != 0 else 0.0}
