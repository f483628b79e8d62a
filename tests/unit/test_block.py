"""
Test suite for Block module

This module contains unit tests for the Block class functionality,
including block creation, hashing, sealing and serialization.
"""

import threading

import pytest

from ayutrace.core.block import Block, GENESIS_DATA
from ayutrace.core.exceptions import SealingCancelled
from ayutrace.core.transactions import QualityTest
from ayutrace.core.utils import canonical_serialize, compute_hash_standalone


def _sample_transactions():
    return [
        QualityTest(id="t1", timestamp=1000.0, batch_id="B1", lab_id="LAB001", test_type="moisture",
                    results={"value": 8.0, "unit": "%"}),
        QualityTest(id="t2", timestamp=1001.0, batch_id="B2", lab_id="LAB001", test_type="pesticide",
                    results={"value": 0.001, "unit": "mg/kg"}),
    ]


def test_block_hash_covers_previous_hash_timestamp_data_and_nonce():
    transactions = _sample_transactions()
    block = Block(timestamp=1234.5, data=transactions, previous_hash="abc", nonce=7)

    payload = canonical_serialize([transaction.to_payload() for transaction in transactions])
    assert block.hash == compute_hash_standalone(f"abc1234.5{payload}7")
    assert len(block.hash) == 64


def test_block_hash_consistency():
    """Test that block hash is consistent when recalculated"""
    block = Block(timestamp=1234.5, data=_sample_transactions(), previous_hash="abc")
    assert block.hash == block.calculate_hash()
    assert block.calculate_hash() == block.calculate_hash()


def test_genesis_block():
    genesis = Block.genesis()
    assert genesis.previous_hash == "0"
    assert genesis.is_genesis
    assert genesis.data == GENESIS_DATA
    assert genesis.transactions == []


@pytest.mark.parametrize("difficulty", [0, 1, 2, 3])
def test_mine_block(difficulty):
    block = Block(timestamp=1234.5, data=_sample_transactions(), previous_hash="abc")
    sealed_hash = block.mine_block(difficulty)

    assert sealed_hash == block.hash
    assert block.hash.startswith("0" * difficulty)
    assert block.hash == block.calculate_hash()


def test_mine_block_with_zero_difficulty_keeps_nonce():
    block = Block(timestamp=1234.5, data=[], previous_hash="abc")
    block.mine_block(0)
    assert block.nonce == 0


def test_mine_block_can_be_cancelled():
    cancel = threading.Event()
    cancel.set()
    block = Block(timestamp=1234.5, data=[], previous_hash="abc")

    with pytest.raises(SealingCancelled):
        block.mine_block(64, cancel_event=cancel)


def test_to_dict_from_dict_keeps_stored_hash():
    block = Block(timestamp=1234.5, data=_sample_transactions(), previous_hash="abc")
    block.mine_block(1)

    restored = Block.from_dict(block.to_dict())
    assert restored.hash == block.hash
    assert restored.nonce == block.nonce
    assert restored.calculate_hash() == block.hash
    assert [t.id for t in restored.transactions] == ["t1", "t2"]


def test_tampered_record_is_detectable():
    block = Block(timestamp=1234.5, data=_sample_transactions(), previous_hash="abc")
    record = block.to_dict()
    record["data"][0]["results"]["value"] = 2.0

    restored = Block.from_dict(record)
    assert restored.hash == block.hash
    assert restored.calculate_hash() != restored.hash


def test_from_dict_accepts_json_text():
    block = Block.genesis(timestamp=1.0)
    record = block.to_dict()
    record["data"] = canonical_serialize(record["data"])

    restored = Block.from_dict(record)
    assert restored.is_genesis
    assert restored.hash == block.hash


def test_to_table():
    block = Block(timestamp=1234.5, data=_sample_transactions(), previous_hash="abc")
    table = block.to_table()

    assert table.num_rows == 2
    assert table.column("id").to_pylist() == ["t1", "t2"]
    assert table.column("block_hash").to_pylist() == [block.hash, block.hash]
    assert Block.genesis().to_table().num_rows == 0
