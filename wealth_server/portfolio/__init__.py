"""Portfolio domain package."""

from wealth_server.portfolio.models import Goal, Platform, Position
from wealth_server.portfolio.store import PlatformStore

__all__ = ["Goal", "Platform", "PlatformStore", "Position"]
