"""Logical field registry for canonical ledger records.

Every known field has a value type and a set of owning record kinds. The
merge engine only lets a record kind overwrite the fields it owns, except for
the cross-cutting lifecycle fields listed in ``CROSS_CUTTING``.
"""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Dict, FrozenSet, List, Tuple


class RecordKind(str, Enum):
    SALES = "sales"
    PAYMENT = "payment"
    TAX = "gst"
    REFUND = "refund"

    @classmethod
    def parse(cls, value: "str | RecordKind") -> "RecordKind":
        """Accept enum members, values and a few common aliases."""
        if isinstance(value, RecordKind):
            return value
        key = str(value).strip().lower()
        aliases = {"tax": cls.TAX, "gst": cls.TAX, "payments": cls.PAYMENT, "refunds": cls.REFUND}
        if key in aliases:
            return aliases[key]
        return cls(key)


class FieldType(str, Enum):
    STRING = "string"
    NUMBER = "number"
    INTEGER = "integer"
    DATE = "date"
    STATUS = "status"


@dataclass(frozen=True)
class FieldSpec:
    name: str
    type: FieldType
    owners: FrozenSet[RecordKind]


ORDER_ID = "orderId"
SUB_ORDER_ID = "subOrderId"
IDENTITY_FIELDS: Tuple[str, str] = (ORDER_ID, SUB_ORDER_ID)

_S = RecordKind.SALES
_P = RecordKind.PAYMENT
_T = RecordKind.TAX
_R = RecordKind.REFUND


def _spec(name: str, typ: FieldType, *owners: RecordKind) -> FieldSpec:
    return FieldSpec(name=name, type=typ, owners=frozenset(owners))


FIELD_SPECS: List[FieldSpec] = [
    # Sales
    _spec("productName", FieldType.STRING, _S),
    _spec("sku", FieldType.STRING, _S),
    _spec("skuName", FieldType.STRING, _S),
    _spec("quantity", FieldType.INTEGER, _S),
    _spec("status", FieldType.STATUS, _S),
    _spec("orderDate", FieldType.DATE, _S),
    _spec("customerName", FieldType.STRING, _S),
    _spec("customerState", FieldType.STRING, _S),
    _spec("customerCity", FieldType.STRING, _S),
    _spec("customerPincode", FieldType.STRING, _S),
    _spec("wholesalePrice", FieldType.NUMBER, _S),
    _spec("sellingPrice", FieldType.NUMBER, _S),
    _spec("shippingCharge", FieldType.NUMBER, _S),
    # Payment
    _spec("paymentMode", FieldType.STRING, _P),
    _spec("hsn", FieldType.STRING, _P, _T),
    _spec("commission", FieldType.NUMBER, _P),
    _spec("tcs", FieldType.NUMBER, _P),
    _spec("tds", FieldType.NUMBER, _P),
    _spec("shipperCharge", FieldType.NUMBER, _P),
    _spec("netAmount", FieldType.NUMBER, _P),
    # Tax (GST)
    _spec("invoiceNumber", FieldType.STRING, _T),
    _spec("invoiceDate", FieldType.DATE, _T),
    _spec("gstRate", FieldType.NUMBER, _T),
    _spec("taxableValue", FieldType.NUMBER, _T),
    _spec("cgst", FieldType.NUMBER, _T),
    _spec("sgst", FieldType.NUMBER, _T),
    _spec("igst", FieldType.NUMBER, _T),
    _spec("invoiceAmount", FieldType.NUMBER, _T),
    # Refund
    _spec("refundAmount", FieldType.NUMBER, _R),
    _spec("deductionAmount", FieldType.NUMBER, _R),
    _spec("refundReason", FieldType.STRING, _R),
    _spec("refundDate", FieldType.DATE, _R),
    _spec("gstRefund", FieldType.NUMBER, _R),
]

FIELDS: Dict[str, FieldSpec] = {f.name: f for f in FIELD_SPECS}
KNOWN_FIELD_NAMES: Tuple[str, ...] = tuple(f.name for f in FIELD_SPECS)

# Lifecycle fields any record kind may set whenever present.
CROSS_CUTTING: FrozenSet[str] = frozenset({"status", "gstRefund"})

# Header map keys accepted in configuration.
HEADER_KEYS: FrozenSet[str] = frozenset(IDENTITY_FIELDS) | frozenset(KNOWN_FIELD_NAMES)


def owned_fields(kind: RecordKind) -> List[str]:
    return [f.name for f in FIELD_SPECS if kind in f.owners]


def relevant_fields(kind: RecordKind) -> List[str]:
    """Fields a row of ``kind`` may contribute: its own plus the cross-cutting ones."""
    names = owned_fields(kind)
    for name in KNOWN_FIELD_NAMES:
        if name in CROSS_CUTTING and name not in names:
            names.append(name)
    return names


def is_owner(kind: RecordKind, field_name: str) -> bool:
    spec = FIELDS.get(field_name)
    return spec is not None and kind in spec.owners


def display_default(field_name: str):
    """Value shown for a field that no upload has populated yet."""
    spec = FIELDS[field_name]
    if field_name == "quantity":
        return 1
    if spec.type in (FieldType.NUMBER, FieldType.INTEGER):
        return 0
    return ""
