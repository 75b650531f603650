"""Response shaping helpers for MCP tools."""

from __future__ import annotations

import json
import time
from dataclasses import asdict, is_dataclass
from typing import Any

from wealth_server.providers.http import ProviderError, UnauthorizedError
from wealth_server.services.base import MissingBackendIdError, ValidationError


def _convert_data(data: Any) -> Any:
    if is_dataclass(data) and not isinstance(data, type):
        return asdict(data)
    if isinstance(data, list):
        return [_convert_data(item) for item in data]
    if isinstance(data, dict):
        return {key: _convert_data(value) for key, value in data.items()}
    return data


def success_response(data: Any, warning: str | None = None) -> str:
    payload: dict[str, Any] = {"data": _convert_data(data), "timestamp": int(time.time())}
    if warning:
        payload["warning"] = warning
    return json.dumps(payload, ensure_ascii=True, default=str)


def error_response(code: str, message: str) -> str:
    return json.dumps(
        {
            "error": True,
            "code": code,
            "message": message,
            "timestamp": int(time.time()),
        },
        ensure_ascii=True,
    )


def error_from_exception(error: Exception) -> str:
    """Map a domain or transport failure to its error envelope.

    Unauthorized, missing-id and validation failures each keep their own
    code so callers can tell them apart from network trouble.
    """
    if isinstance(error, UnauthorizedError):
        return error_response("UNAUTHORIZED", error.message)
    if isinstance(error, ProviderError):
        return error_response(error.code, error.message)
    if isinstance(error, MissingBackendIdError):
        return error_response("MISSING_BACKEND_ID", str(error))
    if isinstance(error, ValidationError):
        return error_response("VALIDATION_ERROR", str(error))
    if isinstance(error, ValueError):
        return error_response("VALIDATION_ERROR", str(error))
    raise error
