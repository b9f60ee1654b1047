import json
from pathlib import Path
from textwrap import dedent

from recoledger.documents import UPLOADED_FILES
from recoledger.ledger_store import LedgerStore
from recoledger.path_utils import ledger_address
from recoledger.pipeline import main, run_ingest
from recoledger.storage import FileSystemBlobStore


def build_config(tmp_path: Path) -> Path:
    config_path = tmp_path / "config.yaml"
    config_path.write_text(
        dedent(
            f"""
            paths:
              storage_root: {tmp_path / "blobs"}
              history_root: {tmp_path / "history"}
              logs_dir: {tmp_path / "logs"}
            logging:
              level: INFO
              file_name: ingest.log
            tenants:
              - id: acme
                platforms:
                  - id: meesho
                    sales_headers:
                      orderId: Sub Order No
                      productName: Product Name
                      quantity: Quantity
                      orderDate: Order Date
                    payment_headers:
                      orderId: Sub Order No
                      netAmount: Final Settlement Amount
            """
        ),
        encoding="utf-8",
    )
    return config_path


def test_run_ingest_merges_sales_and_payments(tmp_path):
    config_path = build_config(tmp_path)
    sales = tmp_path / "orders.csv"
    sales.write_text(
        "Sub Order No,Product Name,Quantity,Order Date\n"
        "SO-1,Kurta,2,2024-04-02\n"
        "SO-2,Saree,1,2024-04-03\n",
        encoding="utf-8",
    )
    payments = tmp_path / "payments.csv"
    payments.write_text("Sub Order No,Final Settlement Amount\nSO-1,\"1,180.00\"\n", encoding="utf-8")

    first = run_ingest(config_path, sales, "acme", "meesho", "sales")
    second = run_ingest(config_path, payments, "acme", "meesho", "payment")
    assert (first.created_new, second.merged_existing) == (2, 1)

    ledger = LedgerStore(FileSystemBlobStore(tmp_path / "blobs"))
    record = ledger.get(ledger_address("acme", "meesho"), "so-1_so-1")
    assert record.fields == {"productName": "Kurta", "quantity": 2, "orderDate": "2024-04-02", "netAmount": 1180.0}

    archived = tmp_path / "blobs" / "tenant" / "acme" / "platform" / "meesho" / "uploads" / "2024-04" / "sales" / "orders.csv"
    assert archived.is_file()
    history = list((tmp_path / "history" / UPLOADED_FILES).glob("*.json"))
    assert len(history) == 2
    assert "Ingestion of payments.csv completed." in (tmp_path / "logs" / "ingest.log").read_text(encoding="utf-8")


def test_main_prints_summary(tmp_path, capsys):
    config_path = build_config(tmp_path)
    sales = tmp_path / "orders.csv"
    sales.write_text("Sub Order No,Product Name\nSO-9,Dupatta\n", encoding="utf-8")

    code = main(["--config", str(config_path), "--tenant", "acme", "--platform", "meesho", "--kind", "sales", str(sales)])

    assert code == 0
    summary = json.loads(capsys.readouterr().out)
    assert summary["created_new"] == 1
    assert summary["address"] == "tenant/acme/platform/meesho/ledger.table"


def test_main_reports_failures(tmp_path, capsys):
    config_path = build_config(tmp_path)
    sales = tmp_path / "orders.csv"
    sales.write_text("Sub Order No\nSO-1\n", encoding="utf-8")

    code = main(["--config", str(config_path), "--tenant", "acme", "--platform", "amazon", "--kind", "sales", str(sales)])
    assert code == 1
    assert "Ingestion failed" in capsys.readouterr().err

    code = main(["--config", str(config_path), "--tenant", "acme", "--platform", "meesho", "--kind", "gst", str(sales)])
    assert code == 1
    assert "orderId" in capsys.readouterr().err
