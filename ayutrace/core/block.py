"""
Block implementation for AyuTrace.

A block is an ordered batch of transactions sealed with a SHA-256 digest over
``previous_hash || timestamp || canonical(data) || nonce``. The genesis block
carries a sentinel marker instead of transactions.

Sealing ("mining") increments the nonce until the hex digest starts with the
ledger's difficulty in zero characters. It is a deterministic cost gate, not a
security mechanism: there is a single writer and no peer checks the work.
"""

import json
import logging
import threading
import time
from typing import Any

import pyarrow as pa

from ayutrace.core import schemas
from ayutrace.core.exceptions import SealingCancelled
from ayutrace.core.transactions import Transaction, parse_transactions
from ayutrace.core.utils import canonical_serialize, compute_hash_standalone, has_leading_zeros

logger = logging.getLogger(__name__)

GENESIS_DATA = {"type": "genesis"}


class Block:
    """
    Block holding transactions in arrival order.

    ``hash`` is recomputed on every mutation performed through this class
    (construction and mining). A block appended to a ledger is never mutated
    again; out-of-band edits are detected by ``Ledger.validate_chain``.
    """

    def __init__(
        self,
        timestamp: float | None,
        data: list[Transaction] | dict[str, Any],
        previous_hash: str = "",
        nonce: int = 0,
        block_hash: str | None = None
    ):
        """
        Initialize a new block.

        Args:
            timestamp: Block creation timestamp (defaults to current time)
            data: Transactions in arrival order, or the genesis marker
            previous_hash: Hash of the previous block ("0" for genesis)
            nonce: Nonce value
            block_hash: Stored hash when rebuilding a block; recomputed if omitted
        """
        self.timestamp = timestamp if timestamp is not None else time.time()
        self.data = data
        self.previous_hash = previous_hash
        self.nonce = nonce
        self.hash = block_hash if block_hash is not None else self.calculate_hash()

    @classmethod
    def genesis(cls, timestamp: float | None = None) -> 'Block':
        """Create the genesis block."""
        return cls(timestamp=timestamp, data=dict(GENESIS_DATA), previous_hash="0")

    @property
    def is_genesis(self) -> bool:
        return not isinstance(self.data, list)

    @property
    def transactions(self) -> list[Transaction]:
        """Transactions in stored order (empty for the genesis block)."""
        return list(self.data) if isinstance(self.data, list) else []

    def serialize_data(self) -> Any:
        """JSON-compatible form of the block payload."""
        if isinstance(self.data, list):
            return [transaction.to_payload() for transaction in self.data]
        return self.data

    def _hash_prefix(self) -> str:
        return f"{self.previous_hash}{self.timestamp}{canonical_serialize(self.serialize_data())}"

    def calculate_hash(self) -> str:
        """
        Calculate the hash of the block.

        Returns:
            SHA-256 hex digest over previous hash, timestamp, payload and nonce
        """
        return compute_hash_standalone(f"{self._hash_prefix()}{self.nonce}")

    def mine_block(self, difficulty: int, cancel_event: threading.Event | None = None) -> str:
        """
        Search for a nonce whose digest has ``difficulty`` leading zeros.

        Args:
            difficulty: Required number of leading zero hex characters
            cancel_event: Optional event checked between nonce increments

        Returns:
            The sealed hash

        Raises:
            SealingCancelled: If ``cancel_event`` is set before a digest is found
        """
        # The payload does not change while mining
        prefix = self._hash_prefix()
        self.hash = compute_hash_standalone(f"{prefix}{self.nonce}")

        while not has_leading_zeros(self.hash, difficulty):
            if cancel_event is not None and cancel_event.is_set():
                raise SealingCancelled(self.nonce)
            self.nonce += 1
            self.hash = compute_hash_standalone(f"{prefix}{self.nonce}")

        logger.debug(f"Block sealed with nonce {self.nonce}: {self.hash}")
        return self.hash

    def to_table(self) -> pa.Table:
        """Sealed transactions as Arrow records (see ``schemas.TRANSACTION_RECORD_SCHEMA``)."""
        records = [
            {
                "id": transaction.id,
                "type": transaction.type,
                "batch_id": transaction.batch_key,
                "timestamp": transaction.timestamp,
                "block_hash": self.hash,
                "data": canonical_serialize(transaction.to_payload()).encode("utf-8"),
            }
            for transaction in self.transactions
        ]
        return pa.Table.from_pylist(records, schema=schemas.get_transaction_record_schema())

    def to_dict(self) -> dict[str, Any]:
        """
        Convert block to dictionary representation.

        Returns:
            Dictionary representation of the block
        """
        return {
            "timestamp": self.timestamp,
            "previous_hash": self.previous_hash,
            "nonce": self.nonce,
            "data": self.serialize_data(),
            "hash": self.hash
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> 'Block':
        """
        Create a Block instance from dictionary data.

        The stored hash is kept as-is so that a tampered record is reported by
        chain verification rather than silently re-sealed.

        Args:
            data: Dictionary containing block data (``data`` may be a JSON string)

        Returns:
            Block instance
        """
        payload = data["data"]
        if isinstance(payload, (str, bytes)):
            payload = json.loads(payload)
        if isinstance(payload, list):
            payload = parse_transactions(payload)

        return cls(
            timestamp=data["timestamp"],
            data=payload,
            previous_hash=data["previous_hash"],
            nonce=data.get("nonce", 0),
            block_hash=data.get("hash")
        )

    def __str__(self) -> str:
        """String representation of the block."""
        return f"Block(transactions={len(self.transactions)}, hash={self.hash[:10]}...)"

    def __repr__(self) -> str:
        """Detailed string representation of the block."""
        return f"Block(transactions={len(self.transactions)}, nonce={self.nonce}, hash={self.hash})"
