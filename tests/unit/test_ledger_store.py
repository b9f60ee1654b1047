"""Unit tests for ledger persistence."""
from io import BytesIO

import pytest
from openpyxl import load_workbook

from recoledger.exceptions import RecordNotFound, StoreUnavailable
from recoledger.fields import RecordKind
from recoledger.ledger_store import LEDGER_COLUMNS, LedgerStore, apply_patch
from recoledger.records import CanonicalRecord, NormalizedRow
from recoledger.storage import FileSystemBlobStore
from recoledger.table_codec import XLSX_CONTENT_TYPE, parse_table, write_table

ADDRESS = "tenant/t1/platform/p1/ledger.table"


def _row(kind, order_id, fields=None, sub_order_id=None, extras=None):
    return NormalizedRow(
        record_kind=kind,
        order_id=order_id,
        sub_order_id=sub_order_id or order_id,
        fields=dict(fields or {}),
        extras=dict(extras or {}),
    )


class _BrokenBlobStore:
    def get_bytes(self, address):
        raise StoreUnavailable(address, "read", "connection reset")

    def put_bytes(self, address, data, content_type=None):
        raise StoreUnavailable(address, "write", "connection reset")


def test_missing_ledger_loads_empty(ledger):
    assert ledger.load(ADDRESS) == []
    assert ledger.get(ADDRESS, "a1_a1") is None


def test_rebuild_sorts_and_deduplicates(ledger, blob_store):
    written = ledger.rebuild(
        ADDRESS,
        [
            CanonicalRecord("B2", "B2", fields={"productName": "old"}),
            CanonicalRecord("a1", "a1"),
            CanonicalRecord("b2", "B2", fields={"productName": "new"}),
        ],
    )
    assert written == 2
    assert blob_store.writes == [ADDRESS]
    assert blob_store.content_type(ADDRESS) == XLSX_CONTENT_TYPE

    records = ledger.load(ADDRESS)
    assert [r.identity_key for r in records] == ["a1_a1", "b2_b2"]
    assert records[1].fields["productName"] == "new"


def test_rebuild_writes_every_known_column_first(ledger, blob_store):
    ledger.rebuild(ADDRESS, [CanonicalRecord("A1", "A1", extras={"Gift Note": "hi"})])
    rows = parse_table(blob_store.get_bytes(ADDRESS))
    assert list(rows[0].keys()) == LEDGER_COLUMNS + ["Gift Note"]


def test_ledger_round_trip_keeps_types(ledger):
    ledger.rebuild(
        ADDRESS,
        [
            CanonicalRecord(
                "A1",
                "A1-1",
                fields={"quantity": 0, "netAmount": 950.0, "status": "delivered", "hsn": "0401"},
                extras={"Gift Note": "hi"},
            )
        ],
    )
    record = ledger.get(ADDRESS, "A1_A1-1")
    assert record.sub_order_id == "A1-1"
    assert record.fields == {"quantity": 0, "netAmount": 950.0, "status": "delivered", "hsn": "0401"}
    assert record.extras == {"Gift Note": "hi"}
    assert record.get("sellingPrice") == 0
    assert record.get("productName") == ""


def test_rows_without_order_id_are_skipped_on_load(blob_store, ledger):
    blob_store.put_bytes(ADDRESS, write_table([{"orderId": "A1"}, {"orderId": "", "productName": "orphan"}]))
    assert [r.order_id for r in ledger.load(ADDRESS)] == ["A1"]


def test_upsert_batch_counts_new_merged_and_folded(ledger):
    ledger.upsert_batch(ADDRESS, [_row(RecordKind.SALES, "A1", {"productName": "Widget"})])

    result = ledger.upsert_batch(
        ADDRESS,
        [
            _row(RecordKind.PAYMENT, "a1", {"netAmount": 950.0}),
            _row(RecordKind.PAYMENT, "B1", {"netAmount": 10.0}),
            _row(RecordKind.PAYMENT, "b1", {"commission": 2.0}),
        ],
    )
    assert result.as_dict() == {"accepted": 3, "merged": 1, "created_new": 1, "duplicates_in_batch": 1}

    a1 = ledger.get(ADDRESS, "A1_A1")
    assert a1.order_id == "A1"
    assert a1.fields == {"productName": "Widget", "netAmount": 950.0}
    b1 = ledger.get(ADDRESS, "b1_b1")
    assert b1.order_id == "B1"
    assert b1.fields == {"netAmount": 10.0, "commission": 2.0}


def test_upsert_of_nothing_does_not_write(ledger, blob_store):
    result = ledger.upsert_batch(ADDRESS, [])
    assert result.accepted == 0
    assert blob_store.writes == []


def test_update_fields_overwrites_unconditionally(ledger):
    ledger.rebuild(ADDRESS, [CanonicalRecord("A1", "A1", fields={"status": "delivered", "productName": "Widget"})])

    updated = ledger.update_fields(ADDRESS, "A1_A1", {"status": "Returned", "gstRefund": "18", "orderId": "Z9"})
    assert updated.order_id == "A1"
    assert updated.fields == {"status": "returned", "productName": "Widget", "gstRefund": 18.0}
    assert ledger.get(ADDRESS, "a1_a1").fields == updated.fields


def test_update_fields_unknown_key_raises(ledger):
    ledger.rebuild(ADDRESS, [CanonicalRecord("A1", "A1")])
    with pytest.raises(RecordNotFound) as excinfo:
        ledger.update_fields(ADDRESS, "zz_zz", {"status": "returned"})
    assert excinfo.value.identity_key == "zz_zz"


def test_apply_patch_clears_fields_with_empty_values():
    record = CanonicalRecord("A1", "A1", fields={"refundReason": "Damaged"}, extras={"Note": "x"})
    patched = apply_patch(record, {"refundReason": "", "Note": None, "Courier": "DTDC"})
    assert patched.fields == {}
    assert patched.extras == {"Courier": "DTDC"}
    assert record.fields == {"refundReason": "Damaged"}


def test_store_failures_propagate():
    ledger = LedgerStore(_BrokenBlobStore())
    with pytest.raises(StoreUnavailable):
        ledger.load(ADDRESS)
    with pytest.raises(StoreUnavailable):
        ledger.rebuild(ADDRESS, [CanonicalRecord("A1", "A1")])


def test_filesystem_backed_ledger(tmp_path):
    ledger = LedgerStore(FileSystemBlobStore(tmp_path))
    ledger.upsert_batch(ADDRESS, [_row(RecordKind.SALES, "A1", {"quantity": 3})])
    assert (tmp_path / "tenant" / "t1" / "platform" / "p1" / "ledger.table").is_file()
    assert ledger.download(ADDRESS)[:2] == b"PK"
    assert ledger.get(ADDRESS, "a1_a1").fields == {"quantity": 3}


def test_na_like_text_survives_a_rebuild(ledger):
    ledger.rebuild(
        ADDRESS,
        [CanonicalRecord("A1", "A1", fields={"refundReason": "N/A", "sku": "NA"}, extras={"Courier": "null"})],
    )
    ledger.upsert_batch(ADDRESS, [_row(RecordKind.PAYMENT, "A1", {"netAmount": 5.0})])

    record = ledger.get(ADDRESS, "a1_a1")
    assert record.fields == {"refundReason": "N/A", "sku": "NA", "netAmount": 5.0}
    assert record.extras == {"Courier": "null"}


def test_text_starting_with_equals_is_stored_as_text(ledger, blob_store):
    ledger.rebuild(ADDRESS, [CanonicalRecord("A1", "A1", fields={"productName": "=Combo Pack"}, extras={"Note": "=1+1"})])

    workbook = load_workbook(BytesIO(blob_store.get_bytes(ADDRESS)))
    assert all(cell.data_type != "f" for row in workbook.active.iter_rows() for cell in row)
    record = ledger.get(ADDRESS, "a1_a1")
    assert record.fields["productName"] == "=Combo Pack"
    assert record.extras == {"Note": "=1+1"}


def test_control_characters_are_dropped_on_write(ledger):
    ledger.rebuild(ADDRESS, [CanonicalRecord("A1", "A1", fields={"productName": "Wid\x0bget"}, extras={"Gift\x01 Note": "hi\x07"})])
    record = ledger.get(ADDRESS, "a1_a1")
    assert record.fields["productName"] == "Widget"
    assert record.extras == {"Gift Note": "hi"}
