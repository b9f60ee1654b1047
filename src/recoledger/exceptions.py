"""Typed exceptions raised by the ledger core.

    RecoLedgerError
    +-- StoreError
    |   +-- StoreNotFound      (blob absent; LedgerStore.load treats it as empty)
    |   +-- StoreUnavailable   (any other read/write failure)
    +-- RecordNotFound         (update_fields on an unknown identity key)
    +-- MalformedTable         (bytes are not a readable table)
    +-- HeaderConfigError      (orderId column not configured)

Row-level problems are not exceptions; see ``records.Rejected``.
"""
from __future__ import annotations

from typing import Optional


class RecoLedgerError(Exception):
    code: str = "RECOLEDGER_ERROR"


class StoreError(RecoLedgerError):
    code = "STORE_ERROR"

    def __init__(self, address: str, message: Optional[str] = None):
        self.address = address
        super().__init__(message or f"{self.code}: {address}")


class StoreNotFound(StoreError):
    code = "STORE_NOT_FOUND"

    def __init__(self, address: str):
        super().__init__(address, f"No blob stored at {address}")


class StoreUnavailable(StoreError):
    code = "STORE_UNAVAILABLE"

    def __init__(self, address: str, operation: str, reason: object = None):
        self.operation = operation
        self.reason = reason
        super().__init__(address, f"Failed to {operation} {address}: {reason}")


class RecordNotFound(RecoLedgerError):
    code = "RECORD_NOT_FOUND"

    def __init__(self, address: str, identity_key: str):
        self.address = address
        self.identity_key = identity_key
        super().__init__(f"Order {identity_key} not found in ledger {address}")


class MalformedTable(RecoLedgerError):
    code = "MALFORMED_TABLE"

    def __init__(self, reason: object, source: Optional[str] = None):
        self.reason = reason
        self.source = source
        where = f" ({source})" if source else ""
        super().__init__(f"Unable to read table{where}: {reason}")


class HeaderConfigError(RecoLedgerError):
    code = "HEADER_CONFIG_ERROR"

    def __init__(self, record_kind: str, message: Optional[str] = None):
        self.record_kind = record_kind
        super().__init__(
            message
            or f"{record_kind} headers are not configured: an orderId column mapping is required"
        )
