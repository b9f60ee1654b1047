"""Spreadsheet bytes <-> list of row mappings.

``parse_table`` reads csv, xlsx or xls uploads into string-valued rows (blank
cells become ``""``). ``write_table`` renders rows as a single-sheet xlsx
workbook with one header row.
"""
from __future__ import annotations

import csv
import io
import logging
from typing import Any, Dict, List, Mapping, Optional, Sequence

import pandas as pd
from openpyxl.cell.cell import ILLEGAL_CHARACTERS_RE

from .exceptions import MalformedTable


LOGGER = logging.getLogger("recoledger.codec")

XLSX_CONTENT_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"
LEDGER_SHEET_NAME = "Master Data"

_ZIP_MAGIC = b"PK\x03\x04"
_OLE_MAGIC = b"\xd0\xcf\x11\xe0"
_CSV_DELIMITERS = ",;\t|"


def detect_format(data: bytes, file_name: Optional[str] = None) -> str:
    """Return ``"xlsx"``, ``"xls"`` or ``"csv"`` from magic bytes, then extension."""
    if data.startswith(_ZIP_MAGIC):
        return "xlsx"
    if data.startswith(_OLE_MAGIC):
        return "xls"
    suffix = (file_name or "").lower().rsplit(".", 1)[-1] if file_name and "." in file_name else ""
    if suffix in ("xlsx", "xlsm"):
        return "xlsx"
    if suffix == "xls":
        return "xls"
    return "csv"


def _decode_text(data: bytes) -> str:
    for encoding in ("utf-8-sig", "latin-1"):
        try:
            return data.decode(encoding)
        except UnicodeDecodeError:
            continue
    raise MalformedTable("undecodable text")


def _frame_to_rows(df: pd.DataFrame) -> List[Dict[str, str]]:
    df = df.fillna("")
    df.columns = [str(c).strip() for c in df.columns]
    # Unnamed pandas placeholders for blank header cells carry no information
    keep = [c for c in df.columns if c and not c.startswith("Unnamed:")]
    rows = [{k: str(v) for k, v in rec.items()} for rec in df[keep].to_dict(orient="records")]
    return [row for row in rows if any(v.strip() for v in row.values())]


def _sniff_delimiter(text: str) -> str:
    # Header line only; single-column files fall back to commas
    header = next((line for line in text.splitlines() if line.strip()), "")
    try:
        return csv.Sniffer().sniff(header, delimiters=_CSV_DELIMITERS).delimiter
    except csv.Error:
        return ","


def _read_csv(text: str) -> pd.DataFrame:
    return pd.read_csv(io.StringIO(text), dtype=str, sep=_sniff_delimiter(text), keep_default_na=False)


def parse_table(data: bytes, file_name: Optional[str] = None) -> List[Dict[str, str]]:
    """Decode the first sheet of a table into rows keyed by header text."""
    if not data:
        return []
    fmt = detect_format(data, file_name)
    try:
        if fmt == "csv":
            text = _decode_text(data)
            if not text.strip():
                return []
            df = _read_csv(text)
        else:
            engine = "openpyxl" if fmt == "xlsx" else "xlrd"
            df = pd.read_excel(
                io.BytesIO(data),
                sheet_name=0,
                dtype=str,
                engine=engine,
                keep_default_na=False,
                na_filter=False,
            )
    except MalformedTable:
        raise
    except pd.errors.EmptyDataError:
        return []
    except Exception as exc:
        raise MalformedTable(exc, source=file_name) from exc
    rows = _frame_to_rows(df)
    LOGGER.debug("Parsed %d %s rows from %s", len(rows), fmt, file_name or "<bytes>")
    return rows


def write_table(records: Sequence[Mapping[str, Any]], columns: Optional[Sequence[str]] = None) -> bytes:
    """Encode rows as xlsx bytes; column order follows first appearance."""
    ordered: List[str] = list(columns or [])
    seen = set(ordered)
    for rec in records:
        for key in rec.keys():
            if key not in seen:
                seen.add(key)
                ordered.append(key)
    df = pd.DataFrame(
        [{_cell_text(k): _cell_text(v) for k, v in rec.items()} for rec in records],
        columns=[_cell_text(c) for c in ordered],
    )
    buffer = io.BytesIO()
    with pd.ExcelWriter(buffer, engine="openpyxl") as writer:
        df.to_excel(writer, sheet_name=LEDGER_SHEET_NAME, index=False)
        # Cell text is data: "=..." must not be stored as a formula
        for row in writer.sheets[LEDGER_SHEET_NAME].iter_rows():
            for cell in row:
                if cell.data_type == "f":
                    cell.data_type = "s"
    return buffer.getvalue()


def _cell_text(value: Any) -> Any:
    """Drop control characters openpyxl refuses to write."""
    if isinstance(value, str):
        return ILLEGAL_CHARACTERS_RE.sub("", value)
    return value
