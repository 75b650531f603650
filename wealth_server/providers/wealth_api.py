"""Client for the backend wealth-tracking API."""

from __future__ import annotations

from datetime import date, datetime
from typing import Any
from urllib.parse import quote, urlencode

from wealth_server.portfolio.history import normalize_period, parse_history
from wealth_server.portfolio.models import (
    DashboardSummary,
    Goal,
    NetWorthPoint,
    Platform,
    PlatformPerformance,
    Position,
)
from wealth_server.providers.http import ProviderError, send_json

COMPLETED_GOAL_STATUSES = {"COMPLETED", "ACHIEVED"}


def _bad_response(message: str) -> ProviderError:
    return ProviderError("wealth_api", "BAD_RESPONSE", message)


def _number(item: dict, key: str, default: float | None = None) -> float:
    value = item.get(key)
    if value is None and default is not None:
        return default
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise _bad_response(f"Field '{key}' is missing or not numeric.")
    return float(value)


def _optional_number(item: dict, key: str) -> float | None:
    value = item.get(key)
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    return float(value)


def _parse_day(value: object) -> date | None:
    if not isinstance(value, str):
        return None
    try:
        return date.fromisoformat(value[:10])
    except ValueError:
        return None


def _position_from_api(item: dict) -> Position:
    if not isinstance(item.get("name"), str):
        raise _bad_response("Investment has no name.")
    backend_id = item.get("id")
    return Position(
        backend_id=backend_id if isinstance(backend_id, int) and not isinstance(backend_id, bool) else None,
        name=item["name"],
        symbol=item.get("symbol") if isinstance(item.get("symbol"), str) else None,
        amount_spent=_optional_number(item, "amount_spent"),
        shares=_number(item, "holdings"),
        average_price=_number(item, "average_buy_price"),
        current_price=_number(item, "current_price"),
    )


def _goal_from_api(item: dict) -> Goal:
    if not isinstance(item.get("title"), str):
        raise _bad_response("Goal has no title.")
    status = str(item.get("status") or "").upper()
    return Goal(
        backend_id=item.get("id") if isinstance(item.get("id"), int) else None,
        title=item["title"],
        target_amount=_number(item, "target_amount"),
        target_date=_parse_day(item.get("target_date")) or date.today(),
        is_completed=status in COMPLETED_GOAL_STATUSES,
        completed_date=_parse_day(item.get("completed_date")),
    )


class WealthApiClient:
    def __init__(self, base_url: str, token: str | None = None, timeout_seconds: float = 15.0) -> None:
        self.base_url = base_url.rstrip("/")
        self.token = token
        self.timeout_seconds = timeout_seconds

    def _request(self, endpoint: str, method: str = "GET", body: Any | None = None) -> Any:
        headers = {"Authorization": f"Bearer {self.token}"} if self.token else None
        return send_json(
            f"{self.base_url}{endpoint}",
            provider="wealth_api",
            method=method,
            body=body,
            timeout_seconds=self.timeout_seconds,
            headers=headers,
            max_retries=3 if method == "GET" else 1,
        )

    # Holdings

    def fetch_holdings(self) -> list[Platform]:
        data = self._request("/holdings/portfolio")
        rows = data.get("platforms") if isinstance(data, dict) else None
        if not isinstance(rows, list):
            raise _bad_response("Portfolio summary has no platforms list.")
        platforms: list[Platform] = []
        for item in rows:
            if not isinstance(item, dict) or not isinstance(item.get("name"), str):
                raise _bad_response("Platform entry has no name.")
            investments = item.get("investments") or []
            if not isinstance(investments, list):
                raise _bad_response("Platform investments is not a list.")
            platforms.append(
                Platform(
                    name=item["name"],
                    color_hex=item.get("color") if isinstance(item.get("color"), str) else "#808080",
                    investments=[_position_from_api(row) for row in investments if isinstance(row, dict)],
                    cash_balance=_number(item, "cash_balance", 0.0),
                )
            )
        return platforms

    def update_platform_cash(self, platform_name: str, amount: float) -> None:
        self._request(f"/holdings/cash/{quote(platform_name, safe='')}", "POST", {"cash_balance": amount})

    def update_platform_color(self, platform_name: str, color_hex: str) -> None:
        query = urlencode({"platform": platform_name, "color": color_hex})
        self._request(f"/holdings/platform/color?{query}", "POST")

    def create_platform(self, name: str, color_hex: str) -> None:
        # the backend registers a platform the first time it sees a cash balance
        self.update_platform_cash(name, 0.0)
        self.update_platform_color(name, color_hex)

    def delete_platform(self, name: str) -> None:
        self._request(f"/holdings/platform/{quote(name, safe='')}", "DELETE")

    def add_investment(self, platform: str, position: Position, amount_spent: float) -> None:
        self._request(
            "/holdings/",
            "POST",
            {
                "platform": platform,
                "name": position.name,
                "symbol": position.symbol,
                "holdings": position.shares,
                "amount_spent": amount_spent,
                "average_buy_price": position.average_price,
                "current_price": position.current_price,
            },
        )

    def update_investment(self, backend_id: int, platform: str, position: Position, amount_spent: float) -> None:
        self._request(
            f"/holdings/{backend_id}",
            "PUT",
            {
                "platform": platform,
                "name": position.name,
                "symbol": position.symbol,
                "holdings": position.shares,
                "amount_spent": amount_spent,
                "average_buy_price": position.average_price,
                "current_price": position.current_price,
            },
        )

    def delete_investment(self, backend_id: int) -> None:
        self._request(f"/holdings/{backend_id}", "DELETE")

    def connect_crypto_investment(self, platform_name: str, name: str, xpub: str, user_id: int = 1) -> dict:
        data = self._request(
            "/crypto/connect-investment",
            "POST",
            {"platform_id": platform_name, "name": name, "xpub": xpub, "user_id": user_id},
        )
        if not isinstance(data, dict):
            raise _bad_response("Crypto connect response is not an object.")
        return data

    # Dashboard

    def fetch_dashboard_summary(self) -> DashboardSummary:
        data = self._request("/net-worth/dashboard-summary")
        if not isinstance(data, dict):
            raise _bad_response("Dashboard summary is not an object.")
        rows = data.get("platforms")
        performance = None
        if isinstance(rows, list):
            performance = [
                PlatformPerformance(
                    platform=row["platform"],
                    value=_optional_number(row, "value") or 0.0,
                    month_change_amount=_optional_number(row, "month_change_amount"),
                    month_change_percent=_optional_number(row, "month_change_percent"),
                )
                for row in rows
                if isinstance(row, dict) and isinstance(row.get("platform"), str)
            ]
        return DashboardSummary(
            current_net_worth=_number(data, "total_networth"),
            last_updated=datetime.now(),
            month_change=_optional_number(data, "mom_change") or 0.0,
            month_change_percent=_optional_number(data, "mom_change_percent") or 0.0,
            year_change=_optional_number(data, "ytd_change") or 0.0,
            year_change_percent=_optional_number(data, "ytd_change_percent") or 0.0,
            platform_performance=performance,
        )

    def fetch_history(self, period: str = "1Y") -> list[NetWorthPoint]:
        data = self._request(f"/net-worth/graph-data?{urlencode({'period': normalize_period(period)})}")
        if not isinstance(data, list):
            raise _bad_response("History response is not a list.")
        return parse_history(data)

    # Goals

    def fetch_goals(self) -> list[Goal]:
        data = self._request("/goals/")
        if not isinstance(data, list):
            raise _bad_response("Goals response is not a list.")
        return [_goal_from_api(item) for item in data if isinstance(item, dict)]

    def create_goal(self, title: str, target_amount: float, target_date: date) -> Goal:
        data = self._request(
            "/goals/",
            "POST",
            {
                "title": title,
                "target_amount": target_amount,
                "target_date": target_date.isoformat(),
                "status": "ACTIVE",
                "is_primary": False,
            },
        )
        if not isinstance(data, dict):
            raise _bad_response("Goal response is not an object.")
        return _goal_from_api(data)

    def update_goal(
        self,
        backend_id: int,
        title: str | None = None,
        is_completed: bool | None = None,
        target_amount: float | None = None,
        target_date: date | None = None,
    ) -> None:
        body: dict[str, Any] = {
            "title": title,
            "status": None if is_completed is None else ("ACHIEVED" if is_completed else "ACTIVE"),
            "target_amount": target_amount,
            "target_date": target_date.isoformat() if target_date else None,
        }
        self._request(f"/goals/{backend_id}", "PATCH", body)
