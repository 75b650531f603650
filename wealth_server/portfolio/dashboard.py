"""Per-platform share of net worth, merged with month-on-month performance."""

from __future__ import annotations

from dataclasses import replace
from typing import Iterable

from wealth_server.portfolio.models import BreakdownItem, Platform, PlatformPerformance
from wealth_server.portfolio.valuation import platform_total_value


def _performance_by_name(performance: Iterable[PlatformPerformance] | None) -> dict[str, PlatformPerformance]:
    index: dict[str, PlatformPerformance] = {}
    for row in performance or []:
        # first match wins, as with a linear search
        index.setdefault(row.platform, row)
    return index


def build_breakdown(
    platforms: Iterable[Platform],
    performance: Iterable[PlatformPerformance] | None = None,
) -> list[BreakdownItem]:
    rows = [(platform, platform_total_value(platform)) for platform in platforms]
    total_value = sum(value for _, value in rows)
    by_name = _performance_by_name(performance)
    items: list[BreakdownItem] = []
    for platform, value in rows:
        match = by_name.get(platform.name)
        items.append(
            BreakdownItem(
                name=platform.name,
                color=platform.color_hex,
                value=value,
                percentage=(value / total_value) * 100.0 if total_value > 0 else 0.0,
                month_change=(match.month_change_amount or 0.0) if match else 0.0,
                month_change_percent=(match.month_change_percent or 0.0) if match else 0.0,
            )
        )
    # sorted() is stable, so equal values keep input order
    return sorted(items, key=lambda item: item.value, reverse=True)


def merge_performance(
    items: Iterable[BreakdownItem],
    performance: Iterable[PlatformPerformance] | None,
) -> list[BreakdownItem]:
    """Apply fresh performance figures to an existing breakdown by name."""
    by_name = _performance_by_name(performance)
    merged: list[BreakdownItem] = []
    for item in items:
        match = by_name.get(item.name)
        if match is None:
            merged.append(item)
            continue
        merged.append(
            replace(
                item,
                month_change=match.month_change_amount or 0.0,
                month_change_percent=match.month_change_percent or 0.0,
            )
        )
    return merged


class DashboardAggregator:
    """Keeps the last breakdown so either input can change independently."""

    def __init__(self) -> None:
        self.items: list[BreakdownItem] = []
        self.performance: list[PlatformPerformance] | None = None

    def update_platforms(self, platforms: Iterable[Platform]) -> list[BreakdownItem]:
        self.items = build_breakdown(platforms, self.performance)
        return self.items

    def update_performance(self, performance: list[PlatformPerformance] | None) -> list[BreakdownItem]:
        self.performance = performance
        if performance is not None:
            self.items = merge_performance(self.items, performance)
        return self.items
