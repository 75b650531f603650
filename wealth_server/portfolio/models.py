"""Typed portfolio models."""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import date, datetime


def new_id() -> str:
    return str(uuid.uuid4())


@dataclass
class Position:
    name: str
    shares: float
    average_price: float
    current_price: float
    symbol: str | None = None
    amount_spent: float | None = None
    backend_id: int | None = None
    id: str = field(default_factory=new_id)


@dataclass
class Platform:
    name: str
    color_hex: str
    investments: list[Position] = field(default_factory=list)
    cash_balance: float = 0.0
    id: str = field(default_factory=new_id)


@dataclass
class Goal:
    title: str
    target_amount: float
    target_date: date
    is_completed: bool = False
    completed_date: date | None = None
    created_at: datetime = field(default_factory=datetime.now)
    backend_id: int | None = None
    id: str = field(default_factory=new_id)

    def progress(self, current_amount: float) -> float:
        if self.target_amount <= 0:
            return 0.0
        return min(max(current_amount / self.target_amount, 0.0), 1.0)

    def days_remaining(self, today: date | None = None) -> int:
        today = today or date.today()
        return max(0, (self.target_date - today).days)


@dataclass(frozen=True)
class NetWorthPoint:
    timestamp: datetime
    value: float


@dataclass(frozen=True)
class PlatformPerformance:
    platform: str
    value: float = 0.0
    month_change_amount: float | None = None
    month_change_percent: float | None = None


@dataclass(frozen=True)
class DashboardSummary:
    current_net_worth: float = 0.0
    last_updated: datetime = field(default_factory=datetime.now)
    month_change: float = 0.0
    month_change_percent: float = 0.0
    year_change: float = 0.0
    year_change_percent: float = 0.0
    platform_performance: list[PlatformPerformance] | None = None


@dataclass(frozen=True)
class BreakdownItem:
    name: str
    color: str
    value: float
    percentage: float
    month_change: float = 0.0
    month_change_percent: float = 0.0
