"""Ledger persistence for one blob per (tenant, platform) address.

The ledger is a flat table of canonical records, rewritten as a whole after
every batch: deduplicated by identity key, sorted ascending by that key and
stored with a single ``put_bytes`` call. A missing blob is an empty ledger.
"""
from __future__ import annotations

import logging
import threading
from contextlib import contextmanager
from dataclasses import asdict, dataclass
from typing import Any, Callable, Dict, Iterable, Iterator, List, Mapping, Optional, Sequence

from .coercion import is_present
from .exceptions import RecordNotFound, StoreNotFound
from .fields import FIELDS, IDENTITY_FIELDS, KNOWN_FIELD_NAMES
from .merge_engine import merge
from .records import CanonicalRecord, NormalizedRow, decode_field
from .storage import BlobStore
from .table_codec import XLSX_CONTENT_TYPE, parse_table, write_table


LOGGER = logging.getLogger("recoledger.ledger")

LEDGER_COLUMNS: List[str] = [*IDENTITY_FIELDS, *KNOWN_FIELD_NAMES]


@dataclass
class UpsertResult:
    accepted: int = 0
    merged: int = 0
    created_new: int = 0
    duplicates_in_batch: int = 0

    def as_dict(self) -> Dict[str, int]:
        return asdict(self)


class LedgerStore:
    """Explicit handle over the blob store holding every platform ledger.

    Writers for the same address are serialized within this process by a
    per-address lock. Separate processes writing the same address can still
    overwrite each other's batch.
    """

    def __init__(
        self,
        blob_store: BlobStore,
        parse: Callable[[bytes], List[Dict[str, Any]]] = parse_table,
        write: Callable[..., bytes] = write_table,
    ):
        self.blob_store = blob_store
        self._parse = parse
        self._write = write
        self._locks: Dict[str, threading.RLock] = {}
        self._locks_guard = threading.Lock()

    @contextmanager
    def address_lock(self, address: str) -> Iterator[None]:
        with self._locks_guard:
            lock = self._locks.setdefault(address, threading.RLock())
        with lock:
            yield

    # Reads

    def download(self, address: str) -> bytes:
        """Raw ledger bytes; raises ``StoreNotFound`` before the first upload."""
        return self.blob_store.get_bytes(address)

    def load(self, address: str) -> List[CanonicalRecord]:
        try:
            data = self.blob_store.get_bytes(address)
        except StoreNotFound:
            LOGGER.debug("No ledger at %s yet; starting empty", address)
            return []
        records: List[CanonicalRecord] = []
        skipped = 0
        for row in self._parse(data):
            record = CanonicalRecord.from_row(row)
            if record is None:
                skipped += 1
                continue
            records.append(record)
        if skipped:
            LOGGER.warning("Skipped %d ledger rows without orderId in %s", skipped, address)
        LOGGER.debug("Loaded %d records from %s", len(records), address)
        return records

    def get(self, address: str, identity_key: str) -> Optional[CanonicalRecord]:
        key = _fold_key(identity_key)
        for record in self.load(address):
            if record.identity_key == key:
                return record
        return None

    # Writes

    def rebuild(self, address: str, records: Iterable[CanonicalRecord]) -> int:
        """Persist ``records`` as the whole ledger and return how many were written."""
        unique: Dict[str, CanonicalRecord] = {}
        for record in records:
            unique[record.identity_key] = record
        ordered = [unique[key] for key in sorted(unique)]
        data = self._write([r.to_row() for r in ordered], columns=LEDGER_COLUMNS)
        self.blob_store.put_bytes(address, data, XLSX_CONTENT_TYPE)
        LOGGER.info("Rebuilt ledger %s with %d records", address, len(ordered))
        return len(ordered)

    def upsert_batch(self, address: str, rows: Sequence[NormalizedRow]) -> UpsertResult:
        result = UpsertResult(accepted=len(rows))
        if not rows:
            return result
        with self.address_lock(address):
            index: Dict[str, CanonicalRecord] = {r.identity_key: r for r in self.load(address)}
            fresh: Dict[str, CanonicalRecord] = {}
            for row in rows:
                key = row.identity_key
                found = index.get(key)
                if found is not None:
                    index[key] = merge(found, row)
                    result.merged += 1
                elif key in fresh:
                    fresh[key] = merge(fresh[key], row)
                    result.duplicates_in_batch += 1
                else:
                    fresh[key] = merge(None, row)
                    result.created_new += 1
            for key, record in fresh.items():
                index.setdefault(key, record)
            self.rebuild(address, index.values())
        LOGGER.info(
            "Upserted %d rows into %s: %d merged, %d new, %d folded duplicates",
            result.accepted, address, result.merged, result.created_new, result.duplicates_in_batch,
        )
        return result

    def update_fields(self, address: str, identity_key: str, patch: Mapping[str, Any]) -> CanonicalRecord:
        """Overwrite fields of one record unconditionally, keeping its identity."""
        key = _fold_key(identity_key)
        with self.address_lock(address):
            records = self.load(address)
            for pos, record in enumerate(records):
                if record.identity_key == key:
                    break
            else:
                raise RecordNotFound(address, key)
            updated = apply_patch(records[pos], patch)
            records[pos] = updated
            self.rebuild(address, records)
        LOGGER.info("Updated %s in %s: %s", key, address, sorted(patch))
        return updated


def apply_patch(record: CanonicalRecord, patch: Mapping[str, Any]) -> CanonicalRecord:
    updated = record.copy()
    for name, value in patch.items():
        if name in IDENTITY_FIELDS:
            continue
        target = updated.fields if name in FIELDS else updated.extras
        if not is_present(value):
            target.pop(name, None)
        elif name in FIELDS:
            target[name] = decode_field(name, value)
        else:
            target[name] = value
    return updated


def _fold_key(identity_key: str) -> str:
    return str(identity_key).strip().lower()
