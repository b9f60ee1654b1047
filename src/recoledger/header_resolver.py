"""Resolve a configured column header against the columns of a source row.

Resolution order:
1) Exact key
2) Case-insensitive, whitespace-collapsed key
3) Loose key (whitespace, underscores and hyphens removed, lower-cased),
   so ``"Order Id"``, ``"OrderId"``, ``"order_id"`` and ``"Order-ID"`` match.

The first matcher yielding a non-empty value wins. Resolution never raises:
an unconfigured header or a missing column both give ``""``.
"""
from __future__ import annotations

import re
from typing import Any, Callable, List, Mapping, Sequence

from .coercion import collapse_ws, is_present, to_text


_LOOSE_STRIP = re.compile(r"[\s_\-]+")

Matcher = Callable[[str, str], bool]


def normalize_header(text: object) -> str:
    if text is None:
        return ""
    return collapse_ws(str(text)).lower()


def loose_header(text: object) -> str:
    if text is None:
        return ""
    return _LOOSE_STRIP.sub("", str(text)).lower()


def exact_match(column: str, expected: str) -> bool:
    return column == expected


def normalized_match(column: str, expected: str) -> bool:
    return normalize_header(column) == normalize_header(expected)


def loose_match(column: str, expected: str) -> bool:
    token = loose_header(expected)
    return bool(token) and loose_header(column) == token


MATCHERS: Sequence[Matcher] = (exact_match, normalized_match, loose_match)


def _first_value(row: Mapping[str, Any], expected: str, matcher: Matcher) -> str:
    for column, value in row.items():
        if matcher(str(column), expected) and is_present(value):
            return to_text(value).strip()
    return ""


def resolve(row: Mapping[str, Any], expected_header: str) -> str:
    """Return the row's value for ``expected_header`` or ``""``."""
    if not expected_header or not str(expected_header).strip():
        return ""
    expected = str(expected_header)
    for matcher in MATCHERS:
        value = _first_value(row, expected, matcher)
        if value:
            return value
    return ""


def matching_columns(row: Mapping[str, Any], expected_header: str) -> List[str]:
    """Every column of ``row`` any matcher accepts for ``expected_header``."""
    if not expected_header or not str(expected_header).strip():
        return []
    expected = str(expected_header)
    return [str(c) for c in row.keys() if any(m(str(c), expected) for m in MATCHERS)]
