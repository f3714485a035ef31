from __future__ import annotations

import math
from typing import Any, Tuple

from agri_resolver.resolver.errors import MalformedResponse

BRIDGE_CURRENCY = "USD"


def normalize_asset(symbol: str) -> str:
    value = (symbol or "").strip().upper()
    if not value or "/" in value:
        raise ValueError(f"Invalid asset symbol: {symbol!r}")
    return value


def make_pair(base: str, quote: str) -> str:
    return f"{normalize_asset(base)}/{normalize_asset(quote)}"


def split_pair(pair: str) -> Tuple[str, str]:
    parts = (pair or "").split("/")
    if len(parts) != 2:
        raise ValueError(f"Invalid asset pair: {pair!r}, expected BASE/QUOTE")
    return normalize_asset(parts[0]), normalize_asset(parts[1])


def price_key(pair: str) -> str:
    base, quote = split_pair(pair)
    return f"price:{base}/{quote}"


def parse_price(source: str, raw: Any) -> float:
    """Accept a positive finite number (or numeric string); anything else is a malformed quote."""
    if isinstance(raw, bool) or raw is None:
        raise MalformedResponse(source, f"price is not numeric: {raw!r}")
    try:
        price = float(raw)
    except (TypeError, ValueError) as e:
        raise MalformedResponse(source, f"price is not numeric: {raw!r}") from e
    if not math.isfinite(price) or price <= 0:
        raise MalformedResponse(source, f"price must be positive and finite: {raw!r}")
    return price


def round_quote(value: float, precision: int) -> float:
    return round(value, precision)


def is_usable_price(value: object) -> bool:
    """True for a positive finite number; zero, negatives, NaN and non-numbers are unusable."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    return math.isfinite(value) and value > 0
