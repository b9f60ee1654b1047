"""Turn raw spreadsheet rows into tagged, typed partial records."""
from __future__ import annotations

import logging
from typing import Any, Dict, Mapping, Optional, Set, Union

from .coercion import is_present, normalize_status, parse_date, parse_number, parse_quantity
from .fields import FIELDS, HEADER_KEYS, ORDER_ID, SUB_ORDER_ID, FieldType, RecordKind, relevant_fields
from .header_resolver import matching_columns, resolve
from .records import NormalizedRow, Rejected


LOGGER = logging.getLogger("recoledger.normalizer")

MISSING_ORDER_ID = "missing order id"


def coerce_field(name: str, raw: str) -> Any:
    """Coerce resolved text for a known field."""
    ftype = FIELDS[name].type
    if ftype == FieldType.NUMBER:
        return parse_number(raw)
    if ftype == FieldType.INTEGER:
        return parse_quantity(raw)
    if ftype == FieldType.DATE:
        return parse_date(raw)
    if ftype == FieldType.STATUS:
        return normalize_status(raw)
    return raw


def mapped_columns(row: Mapping[str, Any], header_map: Mapping[str, str]) -> Set[str]:
    """Columns of ``row`` referenced by any header of the map."""
    used: Set[str] = set()
    for header in header_map.values():
        used.update(matching_columns(row, header))
    return used


def normalize(
    row: Mapping[str, Any],
    record_kind: Union[RecordKind, str],
    header_map: Mapping[str, str],
    row_number: Optional[int] = None,
) -> Union[NormalizedRow, Rejected]:
    kind = RecordKind.parse(record_kind)
    order_id = resolve(row, header_map.get(ORDER_ID, ""))
    if not order_id:
        LOGGER.debug("Row %s rejected: %s", row_number, MISSING_ORDER_ID)
        return Rejected(row_number=row_number, reason=MISSING_ORDER_ID)
    sub_order_id = resolve(row, header_map.get(SUB_ORDER_ID, "")) or order_id

    fields: Dict[str, Any] = {}
    for name in relevant_fields(kind):
        raw = resolve(row, header_map.get(name, ""))
        if raw:
            fields[name] = coerce_field(name, raw)

    used = mapped_columns(row, header_map)
    extras: Dict[str, Any] = {}
    for column, value in row.items():
        key = str(column)
        if key in used or key in HEADER_KEYS:
            continue
        if not is_present(value):
            continue
        extras[key] = value

    return NormalizedRow(
        record_kind=kind,
        order_id=order_id,
        sub_order_id=sub_order_id,
        fields=fields,
        extras=extras,
        row_number=row_number,
    )
