"""Type-tagged field merge of an incoming row into a canonical record.

Rules applied by :func:`merge`:
  - identity (orderId/subOrderId) is taken from the existing record
  - a field owned by the incoming record kind is overwritten only by a present value
  - fields owned by other kinds are left as they are, even when incoming carries them
  - ``status`` and ``gstRefund`` are overwritten whenever incoming carries them
  - unmapped columns are added only when the record does not have them yet

Each upload can therefore add or refine data for its own facet of an order
but never blank out what another upload contributed.
"""
from __future__ import annotations

from typing import Optional

from .coercion import is_present
from .fields import CROSS_CUTTING, is_owner
from .records import CanonicalRecord, NormalizedRow


def merge(existing: Optional[CanonicalRecord], incoming: NormalizedRow) -> CanonicalRecord:
    if existing is None:
        merged = CanonicalRecord(
            order_id=incoming.order_id,
            sub_order_id=incoming.sub_order_id or incoming.order_id,
        )
    else:
        merged = existing.copy()
    kind = incoming.record_kind
    for name, value in incoming.fields.items():
        if not is_present(value):
            continue
        if name in CROSS_CUTTING or is_owner(kind, name):
            merged.fields[name] = value

    for key, value in incoming.extras.items():
        if key not in merged.extras:
            merged.extras[key] = value
    return merged
