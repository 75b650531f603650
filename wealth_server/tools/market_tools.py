"""Market metadata, net-worth history and goal tools."""

from __future__ import annotations

from typing import TYPE_CHECKING

from mcp.server.fastmcp import FastMCP

from wealth_server.runtime.response import error_from_exception, success_response

if TYPE_CHECKING:
    from wealth_server.tools.registry import ToolServices


def _split_symbols(symbols: str) -> list[str]:
    return [item.strip() for item in symbols.split(",") if item.strip()]


def register_market_tools(mcp: FastMCP, services: ToolServices) -> None:
    @mcp.tool(description="Resolve name, currency and price for comma-separated symbols (e.g. 'AAPL,RR.L,FB').")
    async def resolve_market_metadata(symbols: str) -> str:
        try:
            payload = await services.portfolio.resolve_metadata(_split_symbols(symbols))
        except Exception as error:
            return error_from_exception(error)
        return success_response(payload)

    @mcp.tool(description="Net-worth history for a period: 24H, 1W, 1M, 3M, 6M, 1Y or MAX.")
    async def get_net_worth_history(period: str = "1Y") -> str:
        try:
            payload = await services.portfolio.history(period)
        except Exception as error:
            return error_from_exception(error)
        return success_response(payload)

    @mcp.tool(description="Active, upcoming and completed goals with progress against current net worth.")
    async def get_goals_overview() -> str:
        try:
            payload = await services.portfolio.goals_overview()
        except Exception as error:
            return error_from_exception(error)
        return success_response(payload)

    @mcp.tool(description="Create a savings goal. target_date is YYYY-MM-DD.")
    async def create_goal(title: str, target_amount: str, target_date: str) -> str:
        try:
            payload = await services.portfolio.create_goal(title, target_amount, target_date)
        except Exception as error:
            return error_from_exception(error)
        return success_response(payload)

    @mcp.tool(description="Mark a goal as achieved by its backend id.")
    async def complete_goal(goal_id: int) -> str:
        try:
            payload = await services.portfolio.complete_goal(goal_id)
        except Exception as error:
            return error_from_exception(error)
        return success_response(payload)
