import math

from wealth_server.portfolio.models import Platform, Position
from wealth_server.portfolio.valuation import (
    cost_basis,
    current_value,
    profit_loss_percent,
    value_platform,
    value_portfolio,
    value_position,
)


def _position(**kwargs) -> Position:
    defaults = {"name": "Test", "shares": 10.0, "average_price": 40.0, "current_price": 50.0}
    defaults.update(kwargs)
    return Position(**defaults)


def test_amount_spent_takes_precedence_over_shares_times_price() -> None:
    assert cost_basis(_position(amount_spent=500.0)) == 500.0


def test_zero_amount_spent_falls_back_to_shares_times_price() -> None:
    assert cost_basis(_position(amount_spent=0.0)) == 400.0
    assert cost_basis(_position(amount_spent=None)) == 400.0


def test_position_metrics() -> None:
    valuation = value_position(_position())
    assert valuation.cost_basis == 400.0
    assert valuation.current_value == 500.0
    assert valuation.profit_loss == 100.0
    assert valuation.profit_loss_percent == 25.0


def test_zero_cost_basis_percent_is_exactly_zero() -> None:
    position = _position(average_price=0.0)
    assert profit_loss_percent(position) == 0.0
    assert current_value(position) == 500.0


def test_platform_totals_include_cash() -> None:
    platform = Platform(
        name="Broker",
        color_hex="#000000",
        investments=[_position(), _position(shares=2.0, average_price=10.0, current_price=5.0)],
        cash_balance=100.0,
    )
    totals = value_platform(platform)
    assert totals.total_value == 610.0
    assert totals.total_invested_cost == 420.0
    assert totals.total_cost_basis == 520.0
    assert totals.total_profit_loss == 190.0
    assert math.isclose(totals.total_profit_loss_percent, 190.0 / 420.0 * 100)


def test_platform_with_only_cash_has_zero_percent() -> None:
    for cash in (250.0, -250.0):
        totals = value_platform(Platform(name="Cash", color_hex="#fff", cash_balance=cash))
        assert totals.total_invested_cost == 0.0
        assert totals.total_profit_loss == cash
        assert totals.total_profit_loss_percent == 0.0


def test_empty_portfolio() -> None:
    totals = value_portfolio([])
    assert totals.total_value == 0.0
    assert totals.total_profit_loss_percent == 0.0
    assert totals.platforms == {}


def test_portfolio_sums_platforms() -> None:
    first = Platform(name="A", color_hex="#1", investments=[_position()], cash_balance=50.0)
    second = Platform(name="B", color_hex="#2", investments=[_position(shares=1.0, average_price=100.0, current_price=80.0)])
    totals = value_portfolio([first, second])
    assert totals.total_value == 630.0
    assert totals.total_invested_cost == 500.0
    assert totals.total_cost_basis == 550.0
    assert totals.total_profit_loss == 130.0
    assert totals.total_profit_loss_percent == 26.0
    assert set(totals.platforms) == {first.id, second.id}
