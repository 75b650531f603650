"""Portfolio orchestration: holdings, manual edits, imports, dashboard, goals."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import asdict, replace
from datetime import date
from typing import Any, Iterable

from wealth_server.portfolio.dashboard import DashboardAggregator
from wealth_server.portfolio.goals import goal_summary, split_goals
from wealth_server.portfolio.history import history_bounds, normalize_period, period_change
from wealth_server.portfolio.models import Platform, Position
from wealth_server.portfolio.reconciler import PortfolioReconciler
from wealth_server.portfolio.store import PlatformStore
from wealth_server.portfolio.valuation import value_platform, value_portfolio, value_position
from wealth_server.providers.http import ProviderError
from wealth_server.providers.wealth_api import WealthApiClient
from wealth_server.services.base import (
    MissingBackendIdError,
    ValidationError,
    parse_amount,
    require_text,
    validate_symbols,
)
from wealth_server.services.metadata_resolver import MetadataResolver

LOGGER = logging.getLogger(__name__)


class PortfolioService:
    def __init__(
        self,
        store: PlatformStore,
        wealth_api: WealthApiClient,
        resolver: MetadataResolver,
        reconciler: PortfolioReconciler,
        aggregator: DashboardAggregator | None = None,
    ) -> None:
        self.store = store
        self.wealth_api = wealth_api
        self.resolver = resolver
        self.reconciler = reconciler
        self.aggregator = aggregator or DashboardAggregator()

    def _platform(self, platform_id: str) -> Platform:
        platform = self.store.get(platform_id)
        if platform is None:
            raise ValidationError("platform_id", f"unknown platform '{platform_id}'.")
        return platform

    @staticmethod
    def _position(platform: Platform, position_id: str) -> Position:
        position = next((item for item in platform.investments if item.id == position_id), None)
        if position is None:
            raise ValidationError("position_id", f"unknown investment '{position_id}' on '{platform.name}'.")
        return position

    async def refresh(self) -> list[Platform]:
        """Reload holdings from the backend.

        Local ids survive the reload: platforms are matched by name and
        investments by backend id.
        """
        fetched = await asyncio.to_thread(self.wealth_api.fetch_holdings)
        async with self.store.transaction() as tx:
            for platform in fetched:
                existing = tx.find_by_name(platform.name)
                if existing is None:
                    continue
                platform.id = existing.id
                known = {item.backend_id: item.id for item in existing.investments if item.backend_id is not None}
                for position in platform.investments:
                    if position.backend_id in known:
                        position.id = known[position.backend_id]
            tx.replace_all(fetched)
        platforms = self.store.snapshot()
        self.aggregator.update_platforms(platforms)
        LOGGER.info("holdings refreshed: platforms=%s", len(platforms))
        return platforms

    # Manual CRUD. Every mutation goes to the backend and then reloads.

    async def add_platform(self, name: str, color_hex: str) -> list[Platform]:
        name = require_text(name, "name")
        color_hex = require_text(color_hex, "color_hex")
        await asyncio.to_thread(self.wealth_api.create_platform, name, color_hex)
        return await self.refresh()

    async def delete_platform(self, platform_id: str) -> list[Platform]:
        platform = self._platform(platform_id)
        await asyncio.to_thread(self.wealth_api.delete_platform, platform.name)
        return await self.refresh()

    async def update_platform_cash(self, platform_id: str, amount: object) -> list[Platform]:
        cash = parse_amount(amount, "cash_balance")
        platform = self._platform(platform_id)
        await asyncio.to_thread(self.wealth_api.update_platform_cash, platform.name, cash)
        return await self.refresh()

    async def add_investment(
        self,
        platform_id: str,
        name: str,
        shares: object,
        average_price: object,
        current_price: object,
        symbol: str | None = None,
        amount_spent: object | None = None,
    ) -> list[Platform]:
        position = Position(
            name=require_text(name, "name"),
            symbol=(symbol or "").strip() or None,
            shares=parse_amount(shares, "shares"),
            average_price=parse_amount(average_price, "average_price"),
            current_price=parse_amount(current_price, "current_price"),
            amount_spent=None if amount_spent is None else parse_amount(amount_spent, "amount_spent"),
        )
        platform = self._platform(platform_id)
        spent = value_position(position).cost_basis
        await asyncio.to_thread(self.wealth_api.add_investment, platform.name, position, spent)
        return await self.refresh()

    async def update_investment(self, platform_id: str, position_id: str, **changes: Any) -> list[Platform]:
        allowed = {"name", "symbol", "shares", "average_price", "current_price", "amount_spent"}
        unknown = set(changes) - allowed
        if unknown:
            raise ValidationError("changes", f"unsupported fields: {', '.join(sorted(unknown))}.")
        parsed: dict[str, Any] = {}
        for key, value in changes.items():
            if key == "name":
                parsed[key] = require_text(value, "name")
            elif key == "symbol":
                parsed[key] = (value or "").strip() or None
            elif key == "amount_spent" and value is None:
                parsed[key] = None
            else:
                parsed[key] = parse_amount(value, key)

        platform = self._platform(platform_id)
        current = self._position(platform, position_id)
        if current.backend_id is None:
            raise MissingBackendIdError("investment", current.name)
        updated = replace(current, **parsed)
        spent = value_position(updated).cost_basis
        await asyncio.to_thread(self.wealth_api.update_investment, current.backend_id, platform.name, updated, spent)
        return await self.refresh()

    async def delete_investment(self, platform_id: str, position_id: str) -> list[Platform]:
        platform = self._platform(platform_id)
        position = self._position(platform, position_id)
        if position.backend_id is None:
            raise MissingBackendIdError("investment", position.name)
        await asyncio.to_thread(self.wealth_api.delete_investment, position.backend_id)
        return await self.refresh()

    async def connect_crypto(self, platform_id: str, name: str, xpub: str) -> list[Platform]:
        platform = self._platform(platform_id)
        await asyncio.to_thread(
            self.wealth_api.connect_crypto_investment,
            platform.name,
            require_text(name, "name"),
            require_text(xpub, "xpub"),
        )
        return await self.refresh()

    # Brokerage import

    async def import_trading212(self, api_key: str, api_secret: str) -> Platform:
        platform = await self.reconciler.import_trading212(api_key, api_secret)
        self.aggregator.update_platforms(self.store.snapshot())
        return platform

    # Read models

    def valuation(self) -> dict[str, Any]:
        platforms = self.store.snapshot()
        totals = value_portfolio(platforms)
        return {
            "total_value": totals.total_value,
            "total_invested_cost": totals.total_invested_cost,
            "total_cost_basis": totals.total_cost_basis,
            "total_profit_loss": totals.total_profit_loss,
            "total_profit_loss_percent": totals.total_profit_loss_percent,
            "platforms": [
                {
                    "id": platform.id,
                    "name": platform.name,
                    "color": platform.color_hex,
                    "cash_balance": platform.cash_balance,
                    **asdict(value_platform(platform)),
                    "investments": [
                        {
                            "id": position.id,
                            "backend_id": position.backend_id,
                            "name": position.name,
                            "symbol": position.symbol,
                            "shares": position.shares,
                            **asdict(value_position(position)),
                        }
                        for position in platform.investments
                    ],
                }
                for platform in platforms
            ],
        }

    async def dashboard(self) -> dict[str, Any]:
        items = self.aggregator.update_platforms(self.store.snapshot())
        summary = None
        try:
            summary = await asyncio.to_thread(self.wealth_api.fetch_dashboard_summary)
        except ProviderError as error:
            LOGGER.warning("dashboard summary unavailable: code=%s status=%s", error.code, error.status)
        if summary is not None:
            items = self.aggregator.update_performance(summary.platform_performance)
        return {
            "summary": asdict(summary) if summary else None,
            "breakdown": [asdict(item) for item in items],
        }

    async def history(self, period: str = "1Y") -> dict[str, Any]:
        period = normalize_period(period)
        points = await asyncio.to_thread(self.wealth_api.fetch_history, period)
        bounds = history_bounds(points)
        return {
            "period": period,
            "points": [{"timestamp": point.timestamp.isoformat(), "value": point.value} for point in points],
            "axis": asdict(bounds),
            **period_change(points),
        }

    async def goals_overview(self, current_net_worth: float | None = None, today: date | None = None) -> dict[str, Any]:
        goals = await asyncio.to_thread(self.wealth_api.fetch_goals)
        if current_net_worth is None:
            current_net_worth = value_portfolio(self.store.snapshot()).total_value
        overview = split_goals(goals)
        return {
            "current_net_worth": current_net_worth,
            "active": goal_summary(overview.active, current_net_worth, today) if overview.active else None,
            "upcoming": [goal_summary(goal, current_net_worth, today) for goal in overview.upcoming],
            "completed": [goal_summary(goal, current_net_worth, today) for goal in overview.completed],
        }

    async def create_goal(self, title: str, target_amount: object, target_date: str) -> dict[str, Any]:
        title = require_text(title, "title")
        amount = parse_amount(target_amount, "target_amount", allow_negative=False)
        text = require_text(target_date, "target_date")
        try:
            when = date.fromisoformat(text)
        except ValueError as error:
            raise ValidationError("target_date", f"'{target_date}' is not a YYYY-MM-DD date.") from error
        goal = await asyncio.to_thread(self.wealth_api.create_goal, title, amount, when)
        LOGGER.info("goal created: backend_id=%s target_date=%s", goal.backend_id, goal.target_date)
        return await self.goals_overview()

    async def complete_goal(self, goal_backend_id: int) -> dict[str, Any]:
        await asyncio.to_thread(self.wealth_api.update_goal, goal_backend_id, is_completed=True)
        return await self.goals_overview()

    async def resolve_metadata(self, symbols: Iterable[str]) -> dict[str, Any]:
        clean = validate_symbols(list(symbols))
        resolution = await self.resolver.resolve(clean)
        payload: dict[str, Any] = {}
        for symbol in clean:
            metadata = resolution.lookup(symbol)
            if metadata is None:
                continue
            payload[symbol] = {**asdict(metadata), "resolved_as": resolution.aliases.get(symbol, symbol)}
        return payload
