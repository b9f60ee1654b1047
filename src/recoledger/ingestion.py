"""Batch ingestion of one uploaded spreadsheet into a platform ledger.

Steps:
  - parse the upload into rows (``MalformedTable`` propagates)
  - normalize every row in file order; rows without an order id are counted
    as rejected and dropped, repeated identity keys are counted as duplicates
    and later folded into their first occurrence
  - upsert the surviving rows into the ledger (load, merge, single rewrite)

Row-level problems never raise. Store failures other than "not found"
propagate to the caller.
"""
from __future__ import annotations

import logging
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from .config import require_order_id
from .documents import DocumentStore, UploadedFile, record_upload
from .fields import RecordKind
from .header_resolver import resolve
from .ledger_store import LedgerStore
from .path_utils import ledger_address, month_from_rows, upload_address
from .records import NormalizedRow, Rejected
from .row_normalizer import normalize
from .table_codec import XLSX_CONTENT_TYPE, parse_table


LOGGER = logging.getLogger("recoledger.ingestion")

DEFAULT_ALLOWED_EXTENSIONS = (".csv", ".xlsx", ".xls")
DEFAULT_MAX_FILE_SIZE_MB = 50


@dataclass
class IngestSummary:
    accepted: int = 0
    rejected: int = 0
    duplicates_in_file: int = 0
    created_new: int = 0
    merged_existing: int = 0
    address: str = ""
    file_name: Optional[str] = None

    def as_dict(self) -> Dict[str, Any]:
        return asdict(self)


def validate_upload(
    file_name: str,
    size_bytes: int,
    allowed_extensions: Iterable[str] = DEFAULT_ALLOWED_EXTENSIONS,
    max_file_size_mb: float = DEFAULT_MAX_FILE_SIZE_MB,
) -> None:
    """Reject unsupported extensions and oversized files before parsing."""
    suffix = Path(file_name).suffix.lower()
    allowed = {ext.lower() for ext in allowed_extensions}
    if suffix not in allowed:
        raise ValueError(f"Unsupported file extension: {suffix or '<none>'}. Allowed: {sorted(allowed)}")
    if size_bytes > max_file_size_mb * 1024 * 1024:
        raise ValueError(f"File {file_name} is larger than {max_file_size_mb} MB")


def normalize_rows(
    rows: Sequence[Mapping[str, Any]],
    record_kind: RecordKind,
    header_map: Mapping[str, str],
) -> Tuple[List[NormalizedRow], int, int]:
    """Normalize rows in file order; returns ``(rows, rejected, duplicates_in_file)``."""
    normalized: List[NormalizedRow] = []
    rejected = 0
    duplicates = 0
    seen = set()
    for idx, raw in enumerate(rows, start=1):
        result = normalize(raw, record_kind, header_map, row_number=idx)
        if isinstance(result, Rejected):
            rejected += 1
            continue
        if result.identity_key in seen:
            duplicates += 1
        else:
            seen.add(result.identity_key)
        normalized.append(result)
    return normalized, rejected, duplicates


def ingest_rows(
    rows: Sequence[Mapping[str, Any]],
    record_kind: RecordKind | str,
    header_map: Mapping[str, str],
    address: str,
    store: LedgerStore,
) -> IngestSummary:
    kind = RecordKind.parse(record_kind)
    require_order_id(header_map, kind)
    summary = IngestSummary(address=address)
    if not rows:
        LOGGER.info("No rows to ingest into %s", address)
        return summary

    normalized, summary.rejected, summary.duplicates_in_file = normalize_rows(rows, kind, header_map)
    summary.accepted = len(normalized)
    if summary.rejected:
        LOGGER.warning("%d %s rows without order id were skipped", summary.rejected, kind.value)

    result = store.upsert_batch(address, normalized)
    summary.created_new = result.created_new
    summary.merged_existing = result.merged
    return summary


def ingest(
    file_bytes: bytes,
    record_kind: RecordKind | str,
    header_map: Mapping[str, str],
    address: str,
    store: LedgerStore,
    file_name: Optional[str] = None,
) -> IngestSummary:
    """Parse one upload and merge it into the ledger at ``address``."""
    kind = RecordKind.parse(record_kind)
    require_order_id(header_map, kind)
    rows = parse_table(file_bytes, file_name)
    LOGGER.info("Ingesting %d %s rows from %s into %s", len(rows), kind.value, file_name or "<bytes>", address)
    summary = ingest_rows(rows, kind, header_map, address, store)
    summary.file_name = file_name
    LOGGER.info(
        "Ingestion of %s finished: accepted=%d rejected=%d duplicates=%d",
        file_name or "<bytes>", summary.accepted, summary.rejected, summary.duplicates_in_file,
    )
    return summary


def ingest_upload(
    file_bytes: bytes,
    file_name: str,
    record_kind: RecordKind | str,
    tenant_id: str,
    platform_id: str,
    header_map: Mapping[str, str],
    store: LedgerStore,
    documents: Optional[DocumentStore] = None,
    archive: bool = True,
    allowed_extensions: Iterable[str] = DEFAULT_ALLOWED_EXTENSIONS,
    max_file_size_mb: float = DEFAULT_MAX_FILE_SIZE_MB,
    uploaded_by: str = "admin",
) -> IngestSummary:
    """Full upload workflow: validate, archive the raw file, ingest, record history."""
    kind = RecordKind.parse(record_kind)
    validate_upload(file_name, len(file_bytes), allowed_extensions, max_file_size_mb)
    require_order_id(header_map, kind)

    rows = parse_table(file_bytes, file_name)
    address = ledger_address(tenant_id, platform_id)
    if not rows:
        LOGGER.warning("Upload %s contains no rows; ledger %s left unchanged", file_name, address)
        return IngestSummary(address=address, file_name=file_name)

    month = month_from_rows(resolve(r, header_map.get("orderDate", "")) for r in rows)
    storage_path = None
    if archive:
        storage_path = upload_address(tenant_id, platform_id, month, kind, file_name)
        content_type = XLSX_CONTENT_TYPE if file_name.lower().endswith(".xlsx") else None
        store.blob_store.put_bytes(storage_path, file_bytes, content_type)

    summary = ingest_rows(rows, kind, header_map, address, store)
    summary.file_name = file_name

    if documents is not None:
        record_upload(
            documents,
            UploadedFile(
                file_name=file_name,
                file_type=kind.value,
                tenant_id=tenant_id,
                platform_id=platform_id,
                records_count=summary.accepted,
                errors=summary.rejected,
                duplicates=summary.duplicates_in_file,
                ledger_path=address,
                month=month,
                storage_path=storage_path,
                uploaded_by=uploaded_by,
            ),
        )
    return summary
