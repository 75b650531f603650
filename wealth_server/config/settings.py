"""Environment-driven settings."""

from __future__ import annotations

import os
from dataclasses import dataclass

from dotenv import load_dotenv

DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (iPhone; CPU iPhone OS 16_0 like Mac OS X) AppleWebKit/605.1.15 "
    "(KHTML, like Gecko) Version/16.0 Mobile/15E148 Safari/604.1"
)


@dataclass(frozen=True)
class Settings:
    """Runtime settings for local/stdin and HTTP-hosted modes."""

    app_name: str = "wealth-tracker"
    app_version: str = "1.0.0"
    transport_mode: str = "auto"
    http_transport: str = "sse"
    host: str = "0.0.0.0"
    port: int = 8000
    mcp_path: str = "/mcp"
    health_path: str = "/health"
    log_level: str = "INFO"
    wealth_api_base_url: str = "http://localhost:8000"
    wealth_api_token: str | None = None
    trading212_base_url: str = "https://live.trading212.com/api/v0"
    market_user_agent: str = DEFAULT_USER_AGENT
    request_timeout_seconds: float = 15.0
    metadata_timeout_seconds: float = 10.0
    metadata_concurrency: int = 8
    fx_pair_symbol: str = "USDGBP=X"
    fx_fallback_rate: float = 0.77
    cache_ttl_seconds: int = 300
    source_min_interval_seconds: float = 0.0
    platform_snapshot_path: str | None = None


def _as_int(value: str | None, default: int) -> int:
    if value is None or value == "":
        return default
    try:
        return int(value)
    except ValueError:
        return default


def _as_float(value: str | None, default: float) -> float:
    if value is None or value == "":
        return default
    try:
        return float(value)
    except ValueError:
        return default


def get_settings() -> Settings:
    """Load runtime settings from environment variables."""
    load_dotenv()

    return Settings(
        transport_mode=os.getenv("TRANSPORT_MODE", "auto").strip().lower(),
        http_transport=os.getenv("HTTP_TRANSPORT", "sse").strip().lower(),
        host=os.getenv("HOST", "0.0.0.0"),
        port=_as_int(os.getenv("PORT"), 8000),
        mcp_path=os.getenv("MCP_PATH", "/mcp"),
        health_path=os.getenv("HEALTH_PATH", "/health"),
        log_level=os.getenv("LOG_LEVEL", "INFO").strip().upper(),
        wealth_api_base_url=os.getenv("WEALTH_API_BASE_URL", "http://localhost:8000").rstrip("/"),
        wealth_api_token=os.getenv("WEALTH_API_TOKEN"),
        trading212_base_url=os.getenv("TRADING212_BASE_URL", "https://live.trading212.com/api/v0").rstrip("/"),
        market_user_agent=os.getenv("MARKET_USER_AGENT", DEFAULT_USER_AGENT),
        request_timeout_seconds=_as_float(os.getenv("REQUEST_TIMEOUT_SECONDS"), 15.0),
        metadata_timeout_seconds=_as_float(os.getenv("METADATA_TIMEOUT_SECONDS"), 10.0),
        metadata_concurrency=max(1, _as_int(os.getenv("METADATA_CONCURRENCY"), 8)),
        fx_pair_symbol=os.getenv("FX_PAIR_SYMBOL", "USDGBP=X"),
        fx_fallback_rate=_as_float(os.getenv("FX_FALLBACK_RATE"), 0.77),
        cache_ttl_seconds=_as_int(os.getenv("CACHE_TTL_SECONDS"), 300),
        source_min_interval_seconds=_as_float(os.getenv("SOURCE_MIN_INTERVAL_SECONDS"), 0.0),
        platform_snapshot_path=os.getenv("PLATFORM_SNAPSHOT_PATH") or None,
    )
