"""Goal ordering and progress."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date

from wealth_server.portfolio.models import Goal


@dataclass
class GoalsOverview:
    active: Goal | None = None
    upcoming: list[Goal] = field(default_factory=list)
    completed: list[Goal] = field(default_factory=list)


def split_goals(goals: list[Goal]) -> GoalsOverview:
    """The earliest open goal is the current focus; the rest are upcoming."""
    completed = sorted(
        (goal for goal in goals if goal.is_completed),
        key=lambda goal: goal.completed_date or goal.target_date,
        reverse=True,
    )
    incomplete = sorted((goal for goal in goals if not goal.is_completed), key=lambda goal: goal.target_date)
    return GoalsOverview(
        active=incomplete[0] if incomplete else None,
        upcoming=incomplete[1:],
        completed=completed,
    )


def goal_summary(goal: Goal, current_net_worth: float, today: date | None = None) -> dict[str, object]:
    return {
        "id": goal.id,
        "backend_id": goal.backend_id,
        "title": goal.title,
        "target_amount": goal.target_amount,
        "target_date": goal.target_date.isoformat(),
        "is_completed": goal.is_completed,
        "completed_date": goal.completed_date.isoformat() if goal.completed_date else None,
        "progress": goal.progress(current_net_worth),
        "days_remaining": goal.days_remaining(today),
    }
