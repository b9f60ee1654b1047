import sys
from pathlib import Path
from typing import Dict

import pytest

sys.path.insert(0, str(Path(__file__).resolve().parents[1] / "src"))

from recoledger.ledger_store import LedgerStore
from recoledger.storage import InMemoryBlobStore


@pytest.fixture
def blob_store() -> InMemoryBlobStore:
    return InMemoryBlobStore()


@pytest.fixture
def ledger(blob_store) -> LedgerStore:
    return LedgerStore(blob_store)


@pytest.fixture
def sales_headers() -> Dict[str, str]:
    return {
        "orderId": "Order ID",
        "subOrderId": "Sub Order ID",
        "productName": "Item",
        "quantity": "Qty",
        "status": "Order Status",
        "orderDate": "Order Date",
        "sellingPrice": "Selling Price",
    }


@pytest.fixture
def payment_headers() -> Dict[str, str]:
    return {
        "orderId": "Order ID",
        "productName": "Item",
        "netAmount": "Net Amt",
        "commission": "Commission",
        "status": "Payment Status",
    }


@pytest.fixture
def gst_headers() -> Dict[str, str]:
    return {
        "orderId": "Order ID",
        "invoiceNumber": "Invoice No",
        "hsn": "HSN",
        "igst": "IGST",
    }


@pytest.fixture
def refund_headers() -> Dict[str, str]:
    return {
        "orderId": "Order ID",
        "refundAmount": "Refund",
        "gstRefund": "GST Refund",
        "refundReason": "Reason",
    }
