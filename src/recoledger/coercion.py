from __future__ import annotations

import math
import re
from typing import Any

import pandas as pd


_NON_NUMERIC = re.compile(r"[^0-9.\-]")
_WS = re.compile(r"\s+")


def is_present(value: Any) -> bool:
    """A value is present when it is not null and, for text, not blank."""
    if value is None:
        return False
    if isinstance(value, str):
        return value.strip() != ""
    try:
        return not bool(pd.isna(value))
    except (TypeError, ValueError):
        return True


def to_text(value: Any) -> str:
    if not is_present(value):
        return ""
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def parse_number(value: Any) -> float:
    """Parse a decorated amount such as ``"₹1,234.50"`` into a float.

    Everything except digits, ``.`` and ``-`` is dropped first. Empty,
    unparseable or non-finite input gives 0.0.
    """
    if isinstance(value, bool):
        return float(value)
    if not is_present(value):
        return 0.0
    raw = value if isinstance(value, (int, float)) else _NON_NUMERIC.sub("", str(value))
    try:
        number = float(raw)
    except (ValueError, OverflowError):
        return 0.0
    return number if math.isfinite(number) else 0.0


def parse_quantity(value: Any) -> int:
    return max(0, int(parse_number(value)))


def parse_date(value: Any) -> str:
    """Normalize a date to ``YYYY-MM-DD``; unparseable text is returned unchanged."""
    if not is_present(value):
        return ""
    text = str(value).strip()
    try:
        parsed = pd.to_datetime(text, errors="coerce")
    except (ValueError, TypeError, OverflowError):
        return text
    if parsed is None or pd.isna(parsed):
        return text
    return parsed.strftime("%Y-%m-%d")


def normalize_status(value: Any) -> str:
    if not is_present(value):
        return ""
    return str(value).strip().lower()


def collapse_ws(text: str) -> str:
    return _WS.sub(" ", text).strip()
