"""Portfolio-domain MCP tools."""

from __future__ import annotations

from typing import TYPE_CHECKING

from mcp.server.fastmcp import FastMCP

from wealth_server.runtime.response import error_from_exception, success_response

if TYPE_CHECKING:
    from wealth_server.tools.registry import ToolServices


def register_portfolio_tools(mcp: FastMCP, services: ToolServices) -> None:
    @mcp.tool(description="Reload holdings from the wealth backend and return the portfolio valuation.")
    async def refresh_holdings() -> str:
        try:
            await services.portfolio.refresh()
        except Exception as error:
            return error_from_exception(error)
        return success_response(services.portfolio.valuation())

    @mcp.tool(description="Cost basis, value and profit/loss for every platform and investment.")
    def get_portfolio_valuation() -> str:
        return success_response(services.portfolio.valuation())

    @mcp.tool(description="Platform share of net worth with month-on-month change, largest first.")
    async def get_platform_breakdown() -> str:
        return success_response(await services.portfolio.dashboard())

    @mcp.tool(description="Import the Trading 212 portfolio and merge it into the 'Trading 212' platform.")
    async def import_trading212_portfolio(api_key: str, api_secret: str) -> str:
        try:
            platform = await services.portfolio.import_trading212(api_key, api_secret)
        except Exception as error:
            return error_from_exception(error)
        return success_response(platform)

    @mcp.tool(description="Set the uninvested cash balance of a platform.")
    async def update_platform_cash(platform_id: str, amount: str) -> str:
        try:
            await services.portfolio.update_platform_cash(platform_id, amount)
        except Exception as error:
            return error_from_exception(error)
        return success_response(services.portfolio.valuation())

    @mcp.tool(description="Delete an investment; it must have been loaded from the backend.")
    async def delete_investment(platform_id: str, position_id: str) -> str:
        try:
            await services.portfolio.delete_investment(platform_id, position_id)
        except Exception as error:
            return error_from_exception(error)
        return success_response(services.portfolio.valuation())

    @mcp.tool(description="Create a platform (broker, bank or wallet) with a hex display color.")
    async def add_platform(name: str, color_hex: str) -> str:
        try:
            await services.portfolio.add_platform(name, color_hex)
        except Exception as error:
            return error_from_exception(error)
        return success_response(services.portfolio.valuation())

    @mcp.tool(description="Delete a platform and everything it holds.")
    async def delete_platform(platform_id: str) -> str:
        try:
            await services.portfolio.delete_platform(platform_id)
        except Exception as error:
            return error_from_exception(error)
        return success_response(services.portfolio.valuation())

    @mcp.tool(description="Add a manually tracked investment. amount_spent overrides shares x average_price as cost basis.")
    async def add_investment(
        platform_id: str,
        name: str,
        shares: str,
        average_price: str,
        current_price: str,
        symbol: str | None = None,
        amount_spent: str | None = None,
    ) -> str:
        try:
            await services.portfolio.add_investment(
                platform_id,
                name,
                shares,
                average_price,
                current_price,
                symbol=symbol,
                amount_spent=amount_spent,
            )
        except Exception as error:
            return error_from_exception(error)
        return success_response(services.portfolio.valuation())

    @mcp.tool(description="Edit an investment; only the fields given are changed. It must have been loaded from the backend.")
    async def update_investment(
        platform_id: str,
        position_id: str,
        name: str | None = None,
        symbol: str | None = None,
        shares: str | None = None,
        average_price: str | None = None,
        current_price: str | None = None,
        amount_spent: str | None = None,
    ) -> str:
        fields = {
            "name": name,
            "symbol": symbol,
            "shares": shares,
            "average_price": average_price,
            "current_price": current_price,
            "amount_spent": amount_spent,
        }
        changes = {key: value for key, value in fields.items() if value is not None}
        try:
            await services.portfolio.update_investment(platform_id, position_id, **changes)
        except Exception as error:
            return error_from_exception(error)
        return success_response(services.portfolio.valuation())

    @mcp.tool(description="Track a bitcoin wallet (extended public key) as an investment on a platform.")
    async def connect_crypto_wallet(platform_id: str, name: str, xpub: str) -> str:
        try:
            await services.portfolio.connect_crypto(platform_id, name, xpub)
        except Exception as error:
            return error_from_exception(error)
        return success_response(services.portfolio.valuation())
