"""
Integration tests for the ayt command-line interface
"""

import pyarrow.parquet as pq
import pytest
from click.testing import CliRunner

from ayutrace.cli import ayt
from ayutrace.core.contracts import new_product
from ayutrace.storage.models import BlockModel
from ayutrace.storage.sql_backend import SqlStorageBackend


@pytest.fixture
def populated(tmp_path, make_harvest, make_quality_test):
    """File-backed store holding one traced product"""
    url = f"sqlite:///{tmp_path / 'cli.db'}"
    storage = SqlStorageBackend(url)
    ledger = storage.load_ledger(difficulty=1)

    event = make_harvest(timestamp=1000.0)
    test = make_quality_test(event.id, timestamp=1001.0, previous_transaction_id=event.id)
    product = new_product(
        name="Ashwagandha Churna",
        manufacturer_id="MFG001",
        ingredients=[{"name": "Ashwagandha root", "source_batch_id": event.id}],
    )
    for transaction in (event, test, product):
        ledger.add_transaction(transaction)
        storage.save_transaction(transaction)
    storage.save_block(ledger.seal_pending_transactions())
    storage.close()

    return {"url": url, "event": event, "test": test, "product": product}


def test_health(populated):
    result = CliRunner().invoke(ayt, ["--database", populated["url"], "health"])

    assert result.exit_code == 0, result.output
    assert "Blocks: 2" in result.output
    assert "Sealed transactions: 3" in result.output
    assert "Valid: yes" in result.output


def test_health_reports_tampering(populated):
    storage = SqlStorageBackend(populated["url"])
    session = storage.Session()
    row = session.query(BlockModel).order_by(BlockModel.id.desc()).first()
    row.data = row.data.replace("Ashwagandha Churna", "Counterfeit Churna")
    session.commit()
    session.close()
    storage.close()

    result = CliRunner().invoke(ayt, ["--database", populated["url"], "health"])

    assert result.exit_code == 1
    assert "Valid: NO" in result.output
    assert "block 1" in result.output


def test_batch(populated):
    event = populated["event"]
    result = CliRunner().invoke(ayt, ["--database", populated["url"], "batch", event.id])

    assert result.exit_code == 0, result.output
    assert "chain of custody: ok" in result.output
    assert event.id in result.output
    assert populated["test"].id in result.output


def test_unknown_batch(populated):
    result = CliRunner().invoke(ayt, ["--database", populated["url"], "batch", "BATCH-NOWHERE"])
    assert result.exit_code == 1
    assert "No transactions found" in result.output


def test_provenance(populated):
    product = populated["product"]
    result = CliRunner().invoke(ayt, ["--database", populated["url"], "provenance", product.id])

    assert result.exit_code == 0, result.output
    assert "Ashwagandha Churna" in result.output
    assert populated["event"].id in result.output


def test_provenance_as_json(populated):
    product = populated["product"]
    result = CliRunner().invoke(ayt, ["--database", populated["url"], "provenance", product.id, "--json"])

    assert result.exit_code == 0, result.output
    assert '"manufacturerId": "MFG001"' in result.output


def test_unknown_product(populated):
    result = CliRunner().invoke(ayt, ["--database", populated["url"], "provenance", "PROD-MISSING"])
    assert result.exit_code == 1
    assert "Product not found" in result.output


def test_export(populated, tmp_path):
    output = tmp_path / "ledger.parquet"
    result = CliRunner().invoke(ayt, ["--database", populated["url"], "export", str(output)])

    assert result.exit_code == 0, result.output
    table = pq.read_table(output)
    assert table.num_rows == 3
    assert populated["product"].id in table.column("id").to_pylist()


def test_export_block_headers(populated, tmp_path):
    output = tmp_path / "blocks.parquet"
    result = CliRunner().invoke(ayt, ["--database", populated["url"], "export", str(output), "--blocks"])

    assert result.exit_code == 0, result.output
    assert pq.read_table(output).column("transaction_count").to_pylist() == [0, 3]


@pytest.mark.parametrize("command", [
    ["health"],
    ["batch", "BATCH-1"],
    ["provenance", "PROD-1"],
    ["export", "ledger.parquet"],
])
def test_unreadable_store_is_reported(tmp_path, command):
    url = f"sqlite:///{tmp_path / 'missing' / 'cli.db'}"
    result = CliRunner().invoke(ayt, ["--database", url, *command])

    assert result.exit_code == 1
    assert "Failed to open store" in result.output
    assert result.exception is None or isinstance(result.exception, SystemExit)
