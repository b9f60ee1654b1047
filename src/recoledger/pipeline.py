"""Command line runner for a single ledger ingestion."""
from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path
from typing import List, Optional

from .config import load_config
from .documents import JsonDocumentStore
from .exceptions import RecoLedgerError
from .fields import RecordKind
from .ingestion import IngestSummary, ingest_upload
from .ledger_store import LedgerStore
from .logging_utils import get_logger, log_system_event
from .storage import FileSystemBlobStore


def run_ingest(
    config_path: str | Path,
    file_path: str | Path,
    tenant_id: str,
    platform_id: str,
    record_kind: str,
) -> IngestSummary:
    """Ingest one local file using the header map configured for the platform."""
    config = load_config(config_path)
    logger = get_logger(config=config.as_logging_dict())
    kind = RecordKind.parse(record_kind)
    header_map = config.platform(tenant_id, platform_id).headers_for(kind)

    file_path = Path(file_path)
    file_bytes = file_path.read_bytes()
    store = LedgerStore(FileSystemBlobStore(config.paths.storage_root))
    documents = JsonDocumentStore(config.paths.history_root) if config.paths.history_root else None

    logger.info("Ingesting %s as %s for %s/%s", file_path.name, kind.value, tenant_id, platform_id)
    summary = ingest_upload(
        file_bytes,
        file_path.name,
        kind,
        tenant_id,
        platform_id,
        header_map,
        store,
        documents=documents,
        archive=config.ingestion.archive_uploads,
        allowed_extensions=config.ingestion.allowed_extensions,
        max_file_size_mb=config.ingestion.max_file_size_mb,
    )
    log_system_event(logger, f"Ingestion of {file_path.name} completed.")
    return summary


def build_arg_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Merge one sales/payment/gst/refund report into a platform ledger")
    parser.add_argument("--config", default="config.yaml", help="Path to the configuration file")
    parser.add_argument("--tenant", required=True, help="Tenant id")
    parser.add_argument("--platform", required=True, help="Platform id")
    parser.add_argument(
        "--kind",
        required=True,
        choices=[k.value for k in RecordKind] + ["tax"],
        help="Record kind of the uploaded report",
    )
    parser.add_argument("file", help="CSV or Excel report to ingest")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """CLI entry point."""
    args = build_arg_parser().parse_args(argv)
    try:
        summary = run_ingest(args.config, args.file, args.tenant, args.platform, args.kind)
    except (RecoLedgerError, KeyError, ValueError, OSError) as exc:
        print(f"Ingestion failed: {exc}", file=sys.stderr)
        return 1
    print(json.dumps(summary.as_dict(), indent=2))
    return 0


if __name__ == "__main__":
    sys.exit(main())
