"""HTTP utilities and normalized provider errors."""

from __future__ import annotations

import json
import logging
import time
from dataclasses import dataclass
from typing import Any, Literal

import requests
from requests.adapters import HTTPAdapter

from wealth_server.providers.models import ProviderName

ProviderErrorCode = Literal["RATE_LIMIT", "AUTH", "NOT_FOUND", "UPSTREAM", "NETWORK", "BAD_RESPONSE"]
TRANSIENT_CODES = {408, 425, 429, 500, 502, 503, 504}
LOGGER = logging.getLogger(__name__)

_SESSION = requests.Session()
_SESSION.mount("https://", HTTPAdapter(pool_connections=20, pool_maxsize=50))
_SESSION.mount("http://", HTTPAdapter(pool_connections=20, pool_maxsize=50))


@dataclass
class ProviderError(Exception):
    provider: ProviderName
    code: ProviderErrorCode
    message: str
    status: int | None = None

    def __str__(self) -> str:
        return self.message


class UnauthorizedError(ProviderError):
    """Credentials were rejected by the upstream (HTTP 401)."""

    def __init__(self, provider: ProviderName, message: str = "Invalid API Key or Secret. Please check your credentials.") -> None:
        super().__init__(provider, "AUTH", message, 401)


def map_status_to_code(status: int) -> ProviderErrorCode:
    if status in {401, 403}:
        return "AUTH"
    if status == 404:
        return "NOT_FOUND"
    if status == 429:
        return "RATE_LIMIT"
    return "UPSTREAM"


def _backoff(attempt: int) -> None:
    time.sleep(0.25 * (2 ** (attempt - 1)))


def send_json(
    url: str,
    provider: ProviderName,
    method: str = "GET",
    body: Any | None = None,
    timeout_seconds: float = 15.0,
    headers: dict[str, str] | None = None,
    auth: tuple[str, str] | None = None,
    max_retries: int = 3,
) -> Any:
    """Send a request and decode its JSON body with uniform error mapping.

    Transient statuses and network failures are retried with exponential
    backoff. A 401 raises :class:`UnauthorizedError` immediately; an empty
    body decodes to ``{}``.
    """
    attempts = max(1, max_retries)
    last_error: ProviderError | None = None
    request_headers = {"Accept": "application/json"}
    if headers:
        request_headers.update(headers)
    for attempt in range(1, attempts + 1):
        try:
            response = _SESSION.request(
                method,
                url,
                json=body,
                timeout=timeout_seconds,
                headers=request_headers,
                auth=auth,
            )
        except requests.RequestException as error:
            mapped = ProviderError(provider, "NETWORK", "Provider request failed due to network error.")
            last_error = mapped
            if attempt < attempts:
                _backoff(attempt)
                continue
            raise mapped from error

        if response.status_code == 401:
            LOGGER.warning("request unauthorized: provider=%s method=%s", provider, method)
            raise UnauthorizedError(provider)

        raw = response.text or ""
        parsed: Any = {}
        if raw:
            try:
                parsed = json.loads(raw)
            except json.JSONDecodeError as error:
                mapped = ProviderError(
                    provider,
                    "BAD_RESPONSE",
                    "Provider returned non-JSON content.",
                    response.status_code,
                )
                last_error = mapped
                if response.status_code in TRANSIENT_CODES and attempt < attempts:
                    _backoff(attempt)
                    continue
                raise mapped from error

        if not response.ok:
            mapped = ProviderError(
                provider,
                map_status_to_code(response.status_code),
                f"Provider request failed with status {response.status_code}.",
                response.status_code,
            )
            last_error = mapped
            if response.status_code in TRANSIENT_CODES and attempt < attempts:
                _backoff(attempt)
                continue
            raise mapped

        return parsed

    if last_error:
        raise last_error
    raise ProviderError(provider, "UPSTREAM", "Provider request failed.")


def fetch_json(
    url: str,
    provider: ProviderName,
    timeout_seconds: float = 15.0,
    headers: dict[str, str] | None = None,
    max_retries: int = 3,
) -> Any:
    """GET ``url`` and return the decoded JSON payload."""
    return send_json(
        url,
        provider,
        method="GET",
        timeout_seconds=timeout_seconds,
        headers=headers,
        max_retries=max_retries,
    )
