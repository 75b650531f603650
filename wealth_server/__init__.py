"""Wealth Tracker MCP server: portfolio reconciliation and valuation."""

__version__ = "1.0.0"
