"""Unit tests for blob addressing and month extraction."""
from datetime import datetime

from recoledger.fields import RecordKind
from recoledger.path_utils import (
    extract_month,
    ledger_address,
    month_from_rows,
    sanitize_file_name,
    upload_address,
)

NOW = datetime(2025, 1, 5)


def test_ledger_address_is_per_platform():
    assert ledger_address("acme", "meesho") == "tenant/acme/platform/meesho/ledger.table"


def test_upload_address_sanitizes_file_name():
    assert sanitize_file_name("March orders (final).csv") == "March_orders__final_.csv"
    assert (
        upload_address("acme", "meesho", "2024-03", RecordKind.TAX, "gst report.xlsx")
        == "tenant/acme/platform/meesho/uploads/2024-03/gst/gst_report.xlsx"
    )


def test_extract_month():
    assert extract_month("2024-03-15", NOW) == "2024-03"
    assert extract_month("2024-11-02 18:22:01", NOW) == "2024-11"
    assert extract_month("", NOW) == "2025-01"
    assert extract_month("sometime", NOW) == "2025-01"


def test_month_from_rows_looks_at_first_rows_only():
    assert month_from_rows(["", None, "2024-02-10"], now=NOW) == "2024-02"
    assert month_from_rows(["", "", "", "", "", "2024-02-10"], now=NOW) == "2025-01"
    assert month_from_rows([], now=NOW) == "2025-01"
