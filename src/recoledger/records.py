"""Record types shared by the normalizer, merge engine and ledger store."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional

from .coercion import is_present, normalize_status, parse_number, parse_quantity, to_text
from .fields import (
    FIELDS,
    IDENTITY_FIELDS,
    KNOWN_FIELD_NAMES,
    ORDER_ID,
    SUB_ORDER_ID,
    FieldType,
    RecordKind,
    display_default,
)


def identity_key(order_id: str, sub_order_id: Optional[str] = None) -> str:
    """Case-folded ``orderId_subOrderId`` lookup key.

    An empty ``sub_order_id`` falls back to ``order_id``.
    """
    order = str(order_id or "").strip()
    sub = str(sub_order_id or "").strip() or order
    return f"{order.lower()}_{sub.lower()}"


@dataclass
class NormalizedRow:
    """One source row reduced to the fields its record kind may contribute.

    ``fields`` only holds values whose source text was present, so a parsed
    ``0`` is a real value while a blank cell is simply missing.
    """

    record_kind: RecordKind
    order_id: str
    sub_order_id: str
    fields: Dict[str, Any] = field(default_factory=dict)
    extras: Dict[str, Any] = field(default_factory=dict)
    row_number: Optional[int] = None

    @property
    def identity_key(self) -> str:
        return identity_key(self.order_id, self.sub_order_id)


@dataclass(frozen=True)
class Rejected:
    row_number: Optional[int]
    reason: str


@dataclass
class CanonicalRecord:
    order_id: str
    sub_order_id: str
    fields: Dict[str, Any] = field(default_factory=dict)
    extras: Dict[str, Any] = field(default_factory=dict)

    @property
    def identity_key(self) -> str:
        return identity_key(self.order_id, self.sub_order_id)

    def get(self, name: str) -> Any:
        """Return a field value, falling back to its display default."""
        if name == ORDER_ID:
            return self.order_id
        if name == SUB_ORDER_ID:
            return self.sub_order_id
        if name in FIELDS:
            return self.fields.get(name, display_default(name))
        return self.extras.get(name)

    def copy(self) -> "CanonicalRecord":
        return CanonicalRecord(
            order_id=self.order_id,
            sub_order_id=self.sub_order_id,
            fields=dict(self.fields),
            extras=dict(self.extras),
        )

    def to_row(self) -> Dict[str, Any]:
        """Flatten into a table row: identity, every known field, then extras."""
        row: Dict[str, Any] = {ORDER_ID: self.order_id, SUB_ORDER_ID: self.sub_order_id}
        for name in KNOWN_FIELD_NAMES:
            row[name] = self.fields.get(name)
        for key, value in self.extras.items():
            if key not in row:
                row[key] = value
        return row

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> Optional["CanonicalRecord"]:
        """Rebuild a record from a decoded ledger row; ``None`` without an order id."""
        order_id = to_text(row.get(ORDER_ID)).strip()
        if not order_id:
            return None
        sub_order_id = to_text(row.get(SUB_ORDER_ID)).strip() or order_id
        fields: Dict[str, Any] = {}
        extras: Dict[str, Any] = {}
        for key, value in row.items():
            if key in IDENTITY_FIELDS or not is_present(value):
                continue
            if key in FIELDS:
                fields[key] = decode_field(key, value)
            else:
                extras[key] = value
        return cls(order_id=order_id, sub_order_id=sub_order_id, fields=fields, extras=extras)


def decode_field(name: str, value: Any) -> Any:
    """Coerce a stored cell back to the field's python type."""
    ftype = FIELDS[name].type
    if ftype == FieldType.NUMBER:
        return parse_number(value)
    if ftype == FieldType.INTEGER:
        return parse_quantity(value)
    if ftype == FieldType.STATUS:
        return normalize_status(value)
    return to_text(value)
