import asyncio

from wealth_server.config.settings import Settings
from wealth_server.main import build_server, resolve_http_transport, resolve_transport_mode
from wealth_server.tools.registry import build_tool_services


def test_resolve_transport_mode_auto_local(monkeypatch) -> None:
    monkeypatch.delenv("RENDER", raising=False)
    monkeypatch.delenv("PORT", raising=False)
    assert resolve_transport_mode("auto") == "stdio"


def test_resolve_transport_mode_auto_hosted(monkeypatch) -> None:
    monkeypatch.delenv("RENDER", raising=False)
    monkeypatch.setenv("PORT", "10000")
    assert resolve_transport_mode("auto") == "http"


def test_resolve_transport_mode_explicit(monkeypatch) -> None:
    monkeypatch.delenv("RENDER", raising=False)
    monkeypatch.setenv("PORT", "10000")
    assert resolve_transport_mode("stdio") == "stdio"


def test_resolve_http_transport_default() -> None:
    assert resolve_http_transport("invalid") == "sse"
    assert resolve_http_transport("streamable") == "streamable"


def test_build_server_registers_tools() -> None:
    mcp = build_server(Settings(wealth_api_base_url="https://wealth.test"))
    tools = asyncio.run(mcp.list_tools())
    assert "import_trading212_portfolio" in {tool.name for tool in tools}


def test_metadata_client_never_outlives_an_attempt() -> None:
    services = build_tool_services(Settings(request_timeout_seconds=15.0, metadata_timeout_seconds=4.0))
    market = services.portfolio.resolver.market
    assert market.timeout_seconds == 4.0
    assert market.max_retries == 1
    services.portfolio.resolver.executor.shutdown()
