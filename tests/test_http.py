import pytest
import requests

from wealth_server.providers import http
from wealth_server.providers.http import ProviderError, UnauthorizedError, fetch_json, send_json


class _FakeResponse:
    def __init__(self, status_code: int, text: str = "") -> None:
        self.status_code = status_code
        self.text = text

    @property
    def ok(self) -> bool:
        return self.status_code < 400


class _FakeSession:
    def __init__(self, *responses) -> None:
        self.responses = list(responses)
        self.calls: list[dict] = []

    def request(self, method, url, **kwargs):
        self.calls.append({"method": method, "url": url, **kwargs})
        item = self.responses.pop(0)
        if isinstance(item, Exception):
            raise item
        return item


@pytest.fixture(autouse=True)
def _no_backoff(monkeypatch) -> None:
    monkeypatch.setattr(http.time, "sleep", lambda seconds: None)


def test_unauthorized_is_raised_immediately(monkeypatch) -> None:
    session = _FakeSession(_FakeResponse(401, '{"detail": "bad key"}'), _FakeResponse(200, "[]"))
    monkeypatch.setattr(http, "_SESSION", session)
    with pytest.raises(UnauthorizedError) as info:
        send_json("https://broker.test/equity/portfolio", "trading212", auth=("key", "secret"))
    assert info.value.code == "AUTH"
    assert info.value.status == 401
    assert len(session.calls) == 1
    assert session.calls[0]["auth"] == ("key", "secret")


def test_transient_status_is_retried(monkeypatch) -> None:
    session = _FakeSession(_FakeResponse(503, ""), _FakeResponse(200, '{"ok": true}'))
    monkeypatch.setattr(http, "_SESSION", session)
    assert fetch_json("https://api.test/x", "wealth_api") == {"ok": True}
    assert len(session.calls) == 2


def test_network_failure_maps_to_network_code(monkeypatch) -> None:
    session = _FakeSession(*[requests.ConnectionError("down")] * 3)
    monkeypatch.setattr(http, "_SESSION", session)
    with pytest.raises(ProviderError) as info:
        fetch_json("https://api.test/x", "yahoo_quote")
    assert info.value.code == "NETWORK"
    assert len(session.calls) == 3


def test_not_found_is_not_retried(monkeypatch) -> None:
    session = _FakeSession(_FakeResponse(404, '{"detail": "missing"}'))
    monkeypatch.setattr(http, "_SESSION", session)
    with pytest.raises(ProviderError) as info:
        send_json("https://api.test/holdings/9", "wealth_api", method="DELETE")
    assert info.value.code == "NOT_FOUND"
    assert len(session.calls) == 1


def test_empty_body_decodes_to_empty_dict(monkeypatch) -> None:
    session = _FakeSession(_FakeResponse(204, ""))
    monkeypatch.setattr(http, "_SESSION", session)
    assert send_json("https://api.test/holdings/9", "wealth_api", method="DELETE") == {}


def test_non_json_body_is_bad_response(monkeypatch) -> None:
    session = _FakeSession(_FakeResponse(200, "<html>captcha</html>"))
    monkeypatch.setattr(http, "_SESSION", session)
    with pytest.raises(ProviderError) as info:
        fetch_json("https://api.test/x", "yahoo_chart")
    assert info.value.code == "BAD_RESPONSE"


def test_request_sends_body_and_merged_headers(monkeypatch) -> None:
    session = _FakeSession(_FakeResponse(200, "{}"))
    monkeypatch.setattr(http, "_SESSION", session)
    send_json(
        "https://api.test/holdings/",
        "wealth_api",
        method="POST",
        body={"name": "Apple"},
        headers={"Authorization": "Bearer t"},
    )
    call = session.calls[0]
    assert call["method"] == "POST"
    assert call["json"] == {"name": "Apple"}
    assert call["headers"] == {"Accept": "application/json", "Authorization": "Bearer t"}
