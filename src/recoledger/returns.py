from __future__ import annotations

from typing import Any, Dict, Optional

from .ledger_store import LedgerStore
from .records import CanonicalRecord, identity_key


def mark_returned(
    store: LedgerStore,
    address: str,
    order_id: str,
    sub_order_id: Optional[str] = None,
    gst_refund: Optional[float] = None,
    status: str = "returned",
    **extra_fields: Any,
) -> CanonicalRecord:
    """Stamp a return outcome on an order outside of file ingestion.

    Raises ``RecordNotFound`` when the order is not in the ledger.
    """
    patch: Dict[str, Any] = {"status": str(status).strip().lower()}
    if gst_refund is not None:
        patch["gstRefund"] = gst_refund
    patch.update(extra_fields)
    return store.update_fields(address, identity_key(order_id, sub_order_id), patch)
