"""Shared service context, domain errors and input validation."""

from __future__ import annotations

import math
import re
from dataclasses import dataclass, field

from wealth_server.cache.ttl_cache import TTLCache
from wealth_server.services.source_status import SourceStatus
from wealth_server.utils.rate_limit import RateLimiterRegistry

SYMBOL_PATTERN = re.compile(r"^[A-Za-z0-9][A-Za-z0-9.\-=^]{0,19}$")


class MissingBackendIdError(Exception):
    """The record has no backend id, so it cannot be addressed remotely."""

    def __init__(self, kind: str, name: str) -> None:
        super().__init__(f"Cannot modify {kind} '{name}': missing backend id. Refresh holdings and try again.")
        self.kind = kind
        self.name = name


class ValidationError(ValueError):
    def __init__(self, field_name: str, message: str) -> None:
        super().__init__(f"{field_name}: {message}")
        self.field = field_name


@dataclass
class ServiceContext:
    cache: TTLCache
    rate_limiter: RateLimiterRegistry
    source_status: SourceStatus = field(default_factory=SourceStatus)
    cache_ttl_seconds: int = 300


def parse_amount(value: object, field_name: str, allow_negative: bool = True) -> float:
    """Parse user-entered numeric input; raises before any request is made."""
    if isinstance(value, bool) or value is None:
        raise ValidationError(field_name, "a number is required.")
    if isinstance(value, (int, float)):
        number = float(value)
    elif isinstance(value, str):
        text = value.strip().replace(",", "")
        if not text:
            raise ValidationError(field_name, "a number is required.")
        try:
            number = float(text)
        except ValueError as error:
            raise ValidationError(field_name, f"'{value}' is not a valid number.") from error
    else:
        raise ValidationError(field_name, "a number is required.")
    if not math.isfinite(number):
        raise ValidationError(field_name, "must be a finite number.")
    if not allow_negative and number < 0:
        raise ValidationError(field_name, "must not be negative.")
    return number


def validate_symbol(symbol: str) -> str:
    clean = symbol.strip()
    if not SYMBOL_PATTERN.match(clean):
        raise ValidationError("symbol", "must be 1-20 chars: letters, digits, dot, hyphen, '=' or '^'.")
    return clean


def validate_symbols(symbols: list[str]) -> list[str]:
    return [validate_symbol(symbol) for symbol in symbols]


def require_text(value: str, field_name: str) -> str:
    clean = (value or "").strip()
    if not clean:
        raise ValidationError(field_name, "must not be empty.")
    return clean
