import pytest

from wealth_server.providers import trading212, yahoo_market
from wealth_server.providers.http import ProviderError
from wealth_server.providers.trading212 import Trading212Client
from wealth_server.providers.yahoo_market import YahooMarketClient


def _capture(monkeypatch, module, name: str, payload):
    calls: list[dict] = []

    def _fake(url, provider, **kwargs):
        calls.append({"url": url, "provider": provider, **kwargs})
        return payload

    monkeypatch.setattr(module, name, _fake)
    return calls


def test_quote_details_prefers_long_name(monkeypatch) -> None:
    calls = _capture(
        monkeypatch,
        yahoo_market,
        "fetch_json",
        {
            "quoteResponse": {
                "result": [
                    {"longName": "Rolls-Royce Holdings plc", "shortName": "ROLLS-ROYCE", "currency": "GBp", "regularMarketPrice": 412.5}
                ]
            }
        },
    )
    metadata = YahooMarketClient("agent/1.0").get_quote_details("RR.L")
    assert metadata.name == "Rolls-Royce Holdings plc"
    assert metadata.currency == "GBp"
    assert metadata.price == 412.5
    assert calls[0]["url"].endswith("/v7/finance/quote?symbols=RR.L")
    assert calls[0]["headers"] == {"User-Agent": "agent/1.0"}


def test_quote_details_empty_result_is_none(monkeypatch) -> None:
    _capture(monkeypatch, yahoo_market, "fetch_json", {"quoteResponse": {"result": []}})
    assert YahooMarketClient("agent").get_quote_details("NOPE") is None


def test_quote_details_malformed_payload_raises(monkeypatch) -> None:
    _capture(monkeypatch, yahoo_market, "fetch_json", {"finance": {"error": "Unauthorized"}})
    with pytest.raises(ProviderError) as info:
        YahooMarketClient("agent").get_quote_details("AAPL")
    assert info.value.code == "BAD_RESPONSE"


def test_chart_metadata_reads_meta_block(monkeypatch) -> None:
    calls = _capture(
        monkeypatch,
        yahoo_market,
        "fetch_json",
        {"chart": {"result": [{"meta": {"currency": "GBP", "regularMarketPrice": 0.79, "shortName": "USD/GBP"}}]}},
    )
    metadata = YahooMarketClient("agent").get_chart_metadata("USDGBP=X")
    assert metadata.price == 0.79
    assert metadata.name == "USD/GBP"
    assert "/v8/finance/chart/USDGBP%3DX?interval=1d&range=1d" in calls[0]["url"]


def test_chart_metadata_without_price_raises(monkeypatch) -> None:
    _capture(monkeypatch, yahoo_market, "fetch_json", {"chart": {"result": [{"meta": {"currency": "USD"}}]}})
    with pytest.raises(ProviderError):
        YahooMarketClient("agent").get_chart_metadata("AAPL")


def test_search_name_fallbacks(monkeypatch) -> None:
    _capture(
        monkeypatch,
        yahoo_market,
        "fetch_json",
        {
            "quotes": [
                {"symbol": "VUSA.L", "shortname": "VANGUARD S&P 500"},
                {"symbol": "VUSD.L", "longname": "Vanguard S&P 500 USD"},
                {"symbol": "VUAG.L"},
                {"exchange": "no symbol"},
            ]
        },
    )
    results = YahooMarketClient("agent").search("VUSA")
    assert [(item.symbol, item.name) for item in results] == [
        ("VUSA.L", "VANGUARD S&P 500"),
        ("VUSD.L", "Vanguard S&P 500 USD"),
        ("VUAG.L", "VUAG.L"),
    ]
    assert all(item.price == 0.0 for item in results)


def test_search_empty_query_skips_request(monkeypatch) -> None:
    calls = _capture(monkeypatch, yahoo_market, "fetch_json", {"quotes": []})
    assert YahooMarketClient("agent").search("") == []
    assert calls == []


def test_trading212_portfolio_parsing(monkeypatch) -> None:
    calls = _capture(
        monkeypatch,
        trading212,
        "send_json",
        [
            {
                "ticker": "AAPL_US_EQ",
                "quantity": 1.5,
                "averagePrice": 150.0,
                "currentPrice": 190.25,
                "ppl": 40.1,
                "fxPpl": -1.2,
                "initialFillDate": "2023-04-01T10:00:00.000+03:00",
            }
        ],
    )
    client = Trading212Client(base_url="https://demo.trading212.test/api/v0/")
    (position,) = client.fetch_portfolio("key", "secret")
    assert position.ticker == "AAPL_US_EQ"
    assert position.quantity == 1.5
    assert position.current_price == 190.25
    assert position.fx_ppl == -1.2
    assert position.pie_id is None
    assert calls[0]["url"] == "https://demo.trading212.test/api/v0/equity/portfolio"
    assert calls[0]["auth"] == ("key", "secret")


def test_trading212_portfolio_bad_shape(monkeypatch) -> None:
    _capture(monkeypatch, trading212, "send_json", [{"ticker": "AAPL_US_EQ", "quantity": "lots"}])
    with pytest.raises(ProviderError) as info:
        Trading212Client().fetch_portfolio("key", "secret")
    assert info.value.code == "BAD_RESPONSE"


def test_trading212_instruments_skip_incomplete_rows(monkeypatch) -> None:
    _capture(
        monkeypatch,
        trading212,
        "send_json",
        [
            {"ticker": "RRl_EQ", "name": "Rolls-Royce", "currencyCode": "GBX", "shortName": "RR."},
            {"ticker": "XXl_EQ", "name": "Missing currency"},
        ],
    )
    (instrument,) = Trading212Client().fetch_instruments("key", "secret")
    assert instrument.currency_code == "GBX"
    assert instrument.short_name == "RR."


def test_client_retry_budget_is_forwarded(monkeypatch) -> None:
    calls = _capture(monkeypatch, yahoo_market, "fetch_json", {"quotes": []})
    YahooMarketClient("agent", timeout_seconds=4.0, max_retries=1).search("AAPL")
    assert calls[0]["max_retries"] == 1
    assert calls[0]["timeout_seconds"] == 4.0
