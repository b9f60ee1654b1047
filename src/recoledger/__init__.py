"""
recoledger: per-platform order ledgers reconciled from sales, payment,
gst and refund reports.

Each upload is normalized row by row and merged into one canonical record
per order line, where every record kind only owns its own fields.
"""

from .fields import RecordKind
from .header_resolver import resolve
from .ingestion import IngestSummary, ingest, ingest_upload
from .ledger_store import LedgerStore
from .merge_engine import merge
from .row_normalizer import normalize

__all__ = [
    "IngestSummary",
    "LedgerStore",
    "RecordKind",
    "ingest",
    "ingest_upload",
    "merge",
    "normalize",
    "resolve",
]
