from __future__ import annotations

import re
from datetime import datetime
from typing import Iterable, Optional

import pandas as pd

from .fields import RecordKind


_UNSAFE_FILE_CHARS = re.compile(r"[^a-zA-Z0-9.\-]")
_YEAR_MONTH = re.compile(r"^\s*(\d{4})[-/](\d{1,2})")


def ledger_address(tenant_id: str, platform_id: str) -> str:
    """Blob address of a platform's ledger; one ledger per platform for its lifetime."""
    return f"tenant/{tenant_id}/platform/{platform_id}/ledger.table"


def sanitize_file_name(file_name: str) -> str:
    return _UNSAFE_FILE_CHARS.sub("_", str(file_name))


def upload_address(tenant_id: str, platform_id: str, month: str, record_kind: RecordKind | str, file_name: str) -> str:
    kind = RecordKind.parse(record_kind).value
    return f"tenant/{tenant_id}/platform/{platform_id}/uploads/{month}/{kind}/{sanitize_file_name(file_name)}"


def current_month(now: Optional[datetime] = None) -> str:
    now = now or datetime.now()
    return f"{now.year}-{now.month:02d}"


def extract_month(date_text: Optional[str], now: Optional[datetime] = None) -> str:
    """Return ``YYYY-MM`` for a date string, or the current month when it cannot be read."""
    if not date_text or not str(date_text).strip():
        return current_month(now)
    text = str(date_text).strip()
    parsed = pd.to_datetime(text, errors="coerce")
    if parsed is not None and not pd.isna(parsed):
        return f"{parsed.year}-{parsed.month:02d}"
    m = _YEAR_MONTH.match(text)
    if m and 1 <= int(m.group(2)) <= 12:
        return f"{int(m.group(1))}-{int(m.group(2)):02d}"
    return current_month(now)


def month_from_rows(dates: Iterable[str], limit: int = 5, now: Optional[datetime] = None) -> str:
    """Month of the first non-empty date among the first ``limit`` candidates."""
    for idx, value in enumerate(dates):
        if idx >= limit:
            break
        if value and str(value).strip():
            return extract_month(value, now)
    return current_month(now)
