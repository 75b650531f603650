"""Cost basis, value and profit/loss metrics for positions and platforms.

Every function here is total: percentages over a zero denominator are
exactly ``0.0``.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable

from wealth_server.portfolio.models import Platform, Position


@dataclass(frozen=True)
class PositionValuation:
    cost_basis: float
    current_value: float
    profit_loss: float
    profit_loss_percent: float


@dataclass(frozen=True)
class PlatformValuation:
    total_value: float
    total_invested_cost: float
    total_cost_basis: float
    total_profit_loss: float
    total_profit_loss_percent: float


@dataclass(frozen=True)
class PortfolioValuation:
    total_value: float
    total_invested_cost: float
    total_cost_basis: float
    total_profit_loss: float
    total_profit_loss_percent: float
    platforms: dict[str, PlatformValuation]


def _percent(numerator: float, denominator: float) -> float:
    if denominator == 0:
        return 0.0
    return (numerator / denominator) * 100.0


def cost_basis(position: Position) -> float:
    if position.amount_spent is not None and position.amount_spent != 0:
        return position.amount_spent
    return position.shares * position.average_price


def current_value(position: Position) -> float:
    return position.shares * position.current_price


def profit_loss(position: Position) -> float:
    return current_value(position) - cost_basis(position)


def profit_loss_percent(position: Position) -> float:
    return _percent(profit_loss(position), cost_basis(position))


def value_position(position: Position) -> PositionValuation:
    basis = cost_basis(position)
    value = current_value(position)
    return PositionValuation(
        cost_basis=basis,
        current_value=value,
        profit_loss=value - basis,
        profit_loss_percent=_percent(value - basis, basis),
    )


def platform_total_value(platform: Platform) -> float:
    return sum(current_value(position) for position in platform.investments) + platform.cash_balance


def value_platform(platform: Platform) -> PlatformValuation:
    total_value = platform_total_value(platform)
    invested = sum(cost_basis(position) for position in platform.investments)
    total_profit_loss = total_value - invested
    return PlatformValuation(
        total_value=total_value,
        total_invested_cost=invested,
        total_cost_basis=invested + platform.cash_balance,
        total_profit_loss=total_profit_loss,
        total_profit_loss_percent=_percent(total_profit_loss, invested),
    )


def value_portfolio(platforms: Iterable[Platform]) -> PortfolioValuation:
    per_platform = {platform.id: value_platform(platform) for platform in platforms}
    rows = list(per_platform.values())
    invested = sum(row.total_invested_cost for row in rows)
    total_profit_loss = sum(row.total_profit_loss for row in rows)
    return PortfolioValuation(
        total_value=sum(row.total_value for row in rows),
        total_invested_cost=invested,
        total_cost_basis=sum(row.total_cost_basis for row in rows),
        total_profit_loss=total_profit_loss,
        total_profit_loss_percent=_percent(total_profit_loss, invested),
        platforms=per_platform,
    )
