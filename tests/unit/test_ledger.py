"""
Test suite for the Ledger

This module contains unit tests for transaction intake, sealing, chain
integrity verification, lookups and serialization of the ledger.
"""

import threading

import pytest

from ayutrace.core.exceptions import SealingCancelled, ValidationError
from ayutrace.core.ledger import Ledger


def test_new_ledger_has_valid_genesis(ledger):
    assert len(ledger) == 1
    assert ledger.get_latest_block().is_genesis
    assert ledger.is_chain_valid() is True
    assert ledger.validate_chain() == []


def test_ledgers_are_independent(make_harvest):
    first = Ledger(difficulty=1)
    second = Ledger(difficulty=1)
    first.add_transaction(make_harvest())

    assert len(first.pending_transactions) == 1
    assert second.pending_transactions == []


def test_negative_difficulty_is_rejected():
    with pytest.raises(ValueError):
        Ledger(difficulty=-1)


def test_add_transaction_queues_in_arrival_order(ledger, make_harvest):
    first = make_harvest()
    second = make_harvest(species="Ocimum sanctum")

    assert ledger.add_transaction(first) == first.id
    assert ledger.add_transaction(second) == second.id
    assert [t.id for t in ledger.pending_transactions] == [first.id, second.id]


def test_add_transaction_accepts_wire_payload(ledger):
    transaction_id = ledger.add_transaction({
        "type": "ProcessingStep",
        "batchId": "BATCH-1",
        "facilityId": "PROC001",
        "processType": "grinding",
    })
    assert ledger.pending_transactions[0].id == transaction_id


def test_submitted_sustainability_score_is_recomputed(ledger):
    transaction_id = ledger.add_transaction({
        "type": "CollectionEvent",
        "id": "BATCH-FARMER001-1",
        "collectorId": "FARMER001",
        "species": "Withania somnifera",
        "location": {"latitude": 30.3, "longitude": 78.0},
        "quantity": 60,
        "organic": True,
        "sustainabilityScore": 999,
    })
    ledger.seal_pending_transactions()

    assert ledger.find_by_id(transaction_id).sustainability_score == 90


def test_rejected_transaction_is_not_queued(ledger, make_harvest):
    with pytest.raises(ValidationError):
        ledger.add_transaction(make_harvest(quantity=-1))
    assert ledger.pending_transactions == []


def test_seal_pending_transactions(ledger, make_harvest):
    event = make_harvest()
    ledger.add_transaction(event)
    genesis = ledger.get_latest_block()

    block = ledger.seal_pending_transactions()

    assert len(ledger) == 2
    assert ledger.pending_transactions == []
    assert block is ledger.get_latest_block()
    assert block.previous_hash == genesis.hash
    assert block.hash.startswith("0" * ledger.difficulty)
    assert [t.id for t in block.transactions] == [event.id]
    assert ledger.is_chain_valid()


def test_sealing_empty_pending_set_appends_empty_block(ledger):
    block = ledger.seal_pending_transactions()

    assert block.transactions == []
    assert len(ledger) == 2
    assert ledger.is_chain_valid()


def test_cancelled_sealing_leaves_ledger_unchanged(make_harvest):
    ledger = Ledger(difficulty=64)
    ledger.add_transaction(make_harvest())
    cancel = threading.Event()
    cancel.set()

    with pytest.raises(SealingCancelled):
        ledger.seal_pending_transactions(cancel_event=cancel)

    assert len(ledger) == 1
    assert len(ledger.pending_transactions) == 1


def test_tampered_block_is_detected(ledger, make_harvest):
    ledger.add_transaction(make_harvest(quantity=30))
    ledger.seal_pending_transactions()
    ledger.seal_pending_transactions()

    block = ledger.chain[1]
    block.data = [block.data[0].model_copy(update={"quantity": 3000.0})]

    violations = ledger.validate_chain()
    assert ledger.is_chain_valid() is False
    assert [v.block_index for v in violations] == [1]
    assert "stored hash" in violations[0].reason


def test_broken_link_is_detected(ledger):
    ledger.seal_pending_transactions()
    ledger.seal_pending_transactions()

    # Re-seal block 2 on a bogus predecessor so only the link is wrong
    block = ledger.chain[2]
    block.previous_hash = "f" * 64
    block.hash = block.calculate_hash()

    violations = ledger.validate_chain()
    assert len(violations) == 1
    assert violations[0].block_index == 2
    assert "previous hash" in violations[0].reason


def test_find_by_id(ledger, make_harvest, make_quality_test):
    event = make_harvest()
    ledger.add_transaction(event)
    ledger.seal_pending_transactions()
    test = make_quality_test(event.id)
    ledger.add_transaction(test)

    assert ledger.find_by_id(event.id) == event
    # Pending transactions are not visible to lookups
    assert ledger.find_by_id(test.id) is None
    assert ledger.find_by_id("missing") is None


def test_find_by_batch_includes_origin_in_chain_order(ledger, make_harvest, make_quality_test,
                                                      make_processing_step):
    event = make_harvest(timestamp=1000.0)
    other = make_harvest(timestamp=1000.5)
    late_step = make_processing_step(event.id, timestamp=1003.0)
    early_test = make_quality_test(event.id, timestamp=1001.0)

    ledger.add_transaction(event)
    ledger.add_transaction(other)
    ledger.seal_pending_transactions()
    ledger.add_transaction(late_step)
    ledger.seal_pending_transactions()
    ledger.add_transaction(early_test)
    ledger.seal_pending_transactions()

    found = ledger.find_by_batch(event.id)
    assert [t.id for t in found] == [event.id, late_step.id, early_test.id]
    assert ledger.find_by_batch("unknown") == []


def test_chain_stats(ledger, make_harvest):
    ledger.add_transaction(make_harvest())
    ledger.seal_pending_transactions()
    ledger.add_transaction(make_harvest())

    stats = ledger.get_chain_stats()
    assert stats["name"] == "TestLedger"
    assert stats["is_valid"] is True
    assert stats["chain_length"] == 2
    assert stats["total_transactions"] == 1
    assert stats["pending_transactions"] == 1
    assert stats["latest_block"]["hash"] == ledger.get_latest_block().hash


def test_to_dict_from_dict_replays_chain(ledger, make_harvest, make_quality_test):
    event = make_harvest()
    ledger.add_transaction(event)
    ledger.seal_pending_transactions()
    ledger.add_transaction(make_quality_test(event.id))

    restored = Ledger.from_dict(ledger.to_dict())

    assert len(restored) == len(ledger)
    assert restored.get_latest_block().hash == ledger.get_latest_block().hash
    assert restored.is_chain_valid()
    assert restored.find_by_id(event.id) == event
    assert len(restored.pending_transactions) == 1
    assert restored.difficulty == ledger.difficulty


def test_replay_of_tampered_record_is_invalid(ledger, make_harvest):
    ledger.add_transaction(make_harvest(quantity=30))
    ledger.seal_pending_transactions()

    record = ledger.to_dict()
    record["chain"][1]["data"][0]["quantity"] = 10.0

    assert Ledger.from_dict(record).is_chain_valid() is False


def test_arrow_exports(ledger, make_harvest):
    ledger.add_transaction(make_harvest())
    ledger.add_transaction(make_harvest())
    ledger.seal_pending_transactions()
    ledger.seal_pending_transactions()

    table = ledger.to_table()
    assert table.num_rows == 2
    assert table.column_names == ["id", "type", "batch_id", "timestamp", "block_hash", "data"]
    assert set(table.column("type").to_pylist()) == {"CollectionEvent"}

    headers = ledger.headers_table()
    assert headers.num_rows == 3
    assert headers.column("transaction_count").to_pylist() == [0, 2, 0]
    assert headers.column("position").to_pylist() == [0, 1, 2]


def test_concurrent_intake_and_sealing(make_harvest):
    ledger = Ledger(difficulty=1)
    events = [make_harvest() for _ in range(40)]

    def submit(chunk):
        for event in chunk:
            ledger.add_transaction(event)
        ledger.seal_pending_transactions()

    threads = [threading.Thread(target=submit, args=(events[i::4],)) for i in range(4)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()
    ledger.seal_pending_transactions()

    sealed = [t.id for t in ledger.iter_transactions()]
    assert sorted(sealed) == sorted(event.id for event in events)
    assert ledger.pending_transactions == []
    assert ledger.is_chain_valid()


def test_seal_benchmark(benchmark, make_harvest):
    """Benchmark sealing a ten-transaction block"""
    ledger = Ledger(difficulty=2)

    def seal_block():
        for _ in range(10):
            ledger.add_transaction(make_harvest())
        return ledger.seal_pending_transactions()

    block = benchmark(seal_block)
    assert len(block.transactions) == 10
    assert ledger.is_chain_valid()
