"""Read-only bulk load of platform ledgers for reporting."""
from __future__ import annotations

import logging
from typing import Iterable, List, Tuple

import pandas as pd

from .exceptions import RecoLedgerError
from .fields import IDENTITY_FIELDS, KNOWN_FIELD_NAMES
from .ledger_store import LedgerStore
from .path_utils import ledger_address


LOGGER = logging.getLogger("recoledger.loader")

ORDER_COLUMNS: List[str] = ["id", "tenantId", "platformId", *IDENTITY_FIELDS, *KNOWN_FIELD_NAMES]


def load_platform_orders(store: LedgerStore, tenant_id: str, platform_id: str) -> pd.DataFrame:
    """One platform's ledger as a frame with display defaults filled in."""
    records = store.load(ledger_address(tenant_id, platform_id))
    rows = []
    for record in records:
        row = {
            "id": f"{record.order_id}_{record.sub_order_id}",
            "tenantId": tenant_id,
            "platformId": platform_id,
            "orderId": record.order_id,
            "subOrderId": record.sub_order_id,
        }
        for name in KNOWN_FIELD_NAMES:
            row[name] = record.get(name)
        rows.append(row)
    return pd.DataFrame(rows, columns=ORDER_COLUMNS)


def load_ledgers(store: LedgerStore, pairs: Iterable[Tuple[str, str]]) -> pd.DataFrame:
    """Concatenate every (tenant, platform) ledger.

    A ledger that fails to load is logged and skipped so the others still show.
    """
    frames: List[pd.DataFrame] = []
    seen = set()
    for tenant_id, platform_id in pairs:
        if (tenant_id, platform_id) in seen:
            continue
        seen.add((tenant_id, platform_id))
        try:
            frame = load_platform_orders(store, tenant_id, platform_id)
        except RecoLedgerError as exc:
            LOGGER.error("Failed to load ledger for %s/%s: %s", tenant_id, platform_id, exc)
            continue
        if not frame.empty:
            frames.append(frame)
    if not frames:
        return pd.DataFrame(columns=ORDER_COLUMNS)
    return pd.concat(frames, ignore_index=True)
