"""
Ledger implementation for AyuTrace.

The ledger is the single authoritative, append-only sequence of sealed blocks
plus a staging area of validated transactions waiting to be sealed. It owns
transaction intake (through the contracts validator), sealing, chain integrity
verification and the lookups used by provenance resolution.

Each ledger is an explicitly owned object; several independent ledgers can
coexist in one process.

Concurrency: one re-entrant lock guards ``chain`` and ``pending_transactions``
for every mutation and snapshot. Sealers are serialized by a second lock and
mine outside the state lock, so reads stay available while a block is being
sealed and never observe a half-appended block.
"""

import logging
import threading
import time
from typing import Any, Iterator, Mapping

import pyarrow as pa

from ayutrace.config.settings import settings
from ayutrace.core import schemas
from ayutrace.core.block import Block
from ayutrace.core.contracts import TransactionValidator, calculate_sustainability_score
from ayutrace.core.exceptions import IntegrityViolation
from ayutrace.core.transactions import (
    COLLECTION_EVENT,
    CollectionEvent,
    Transaction,
    TransactionBase,
    parse_transaction,
    parse_transactions,
)
from ayutrace.security.secure_logging import sanitize_for_log

logger = logging.getLogger(__name__)


class Ledger:
    """
    Append-only supply-chain ledger.

    Lifecycle: created once with a genesis block, then any number of
    validate/seal/query cycles. Blocks are appended only by
    ``seal_pending_transactions``; transactions are never deleted.
    """

    def __init__(self, difficulty: int | None = None, validator: TransactionValidator | None = None,
                 name: str | None = None):
        """
        Initialize a new ledger with its genesis block.

        Args:
            difficulty: Leading zero hex characters required when sealing
                (defaults to ``settings.DIFFICULTY``)
            validator: Rule validator applied on intake
            name: Name identifier for this ledger
        """
        self.name = name or settings.LEDGER_NAME
        self.difficulty = settings.DIFFICULTY if difficulty is None else difficulty
        if self.difficulty < 0:
            raise ValueError("difficulty must be zero or positive")

        self.validator = validator or TransactionValidator()
        self.chain: list[Block] = []
        self.pending_transactions: list[Transaction] = []

        self._lock = threading.RLock()
        self._seal_lock = threading.Lock()

        self.create_genesis_block()

    def create_genesis_block(self) -> None:
        """Create the genesis (first) block of the ledger."""
        with self._lock:
            self.chain = [Block.genesis()]

    def get_latest_block(self) -> Block:
        """
        Get the latest block in the chain.

        Returns:
            The most recent block in the ledger
        """
        with self._lock:
            return self.chain[-1]

    def add_transaction(self, transaction: Transaction | Mapping[str, Any]) -> str:
        """
        Validate a transaction and queue it for the next block.

        A collection event is queued with its sustainability score computed
        from the validator's policy, whatever score it was submitted with.

        Args:
            transaction: Typed transaction or wire payload with a ``type`` tag

        Returns:
            The id of the queued transaction

        Raises:
            ValidationError: If the payload is malformed or a business rule
                fails; nothing is queued in that case
        """
        transaction = parse_transaction(transaction)
        self.validator.check(transaction)

        if isinstance(transaction, CollectionEvent):
            # The score is derived, never taken from the submitter
            score = calculate_sustainability_score(transaction, self.validator.policy)
            if transaction.sustainability_score != score:
                transaction = transaction.model_copy(update={"sustainability_score": score})

        with self._lock:
            self.pending_transactions.append(transaction)

        logger.info(f"Queued {transaction.type} {sanitize_for_log(transaction.id)}")
        return transaction.id

    def seal_pending_transactions(self, cancel_event: threading.Event | None = None) -> Block:
        """
        Package the pending transactions into a new sealed block.

        An empty pending set still produces a valid, empty block.

        Args:
            cancel_event: Optional event checked between nonce increments; when
                set, sealing stops and the ledger is left unchanged

        Returns:
            The newly appended block

        Raises:
            SealingCancelled: If ``cancel_event`` was set during the search
        """
        with self._seal_lock:
            with self._lock:
                snapshot = list(self.pending_transactions)
                previous_hash = self.chain[-1].hash

            block = Block(timestamp=time.time(), data=snapshot, previous_hash=previous_hash)
            started = time.perf_counter()
            block.mine_block(self.difficulty, cancel_event)
            elapsed = time.perf_counter() - started

            with self._lock:
                self.chain.append(block)
                # Transactions queued while mining wait for the next block
                del self.pending_transactions[:len(snapshot)]

        logger.info(
            f"Sealed block #{len(self.chain) - 1} with {len(snapshot)} transactions "
            f"(nonce={block.nonce}, {elapsed:.3f}s): {block.hash}"
        )
        return block

    def validate_chain(self) -> list[IntegrityViolation]:
        """
        Verify every block after genesis.

        Checks that each block's stored hash equals a fresh digest of its own
        fields and that it links to the hash of its predecessor. All failures
        are collected; nothing is repaired.

        Returns:
            Integrity violations found (empty when the chain is intact)
        """
        with self._lock:
            chain = list(self.chain)

        violations = []
        for i in range(1, len(chain)):
            current_block = chain[i]
            previous_block = chain[i - 1]

            if current_block.hash != current_block.calculate_hash():
                violations.append(IntegrityViolation(i, "stored hash does not match block contents"))

            if current_block.previous_hash != previous_block.hash:
                violations.append(IntegrityViolation(i, "previous hash does not match preceding block"))

        for violation in violations:
            logger.error(f"Integrity violation in {self.name}: {violation}")
        return violations

    def is_chain_valid(self) -> bool:
        """
        Validate the entire ledger.

        Returns:
            True if the entire chain is valid, False otherwise
        """
        return not self.validate_chain()

    def iter_transactions(self) -> Iterator[Transaction]:
        """Yield sealed transactions in block order, then stored order."""
        with self._lock:
            chain = list(self.chain)
        for block in chain:
            yield from block.transactions

    def find_by_id(self, transaction_id: str) -> Transaction | None:
        """
        Find a sealed transaction by id.

        Args:
            transaction_id: Transaction identifier

        Returns:
            The first matching transaction, or None
        """
        for transaction in self.iter_transactions():
            if transaction.id == transaction_id:
                return transaction
        return None

    def find_by_batch(self, batch_id: str) -> list[Transaction]:
        """
        Collect every sealed transaction belonging to a batch.

        Includes the origin collection event (whose own id is the batch id).
        Results follow chain-scan order, not timestamp order.

        Args:
            batch_id: Batch identifier

        Returns:
            Matching transactions (empty if none)
        """
        return [
            transaction for transaction in self.iter_transactions()
            if transaction.batch_id == batch_id
            or (transaction.type == COLLECTION_EVENT and transaction.id == batch_id)
        ]

    def get_chain_stats(self) -> dict[str, Any]:
        """
        Get health statistics about the ledger.

        Returns:
            Dictionary containing chain statistics
        """
        with self._lock:
            chain = list(self.chain)
            pending = len(self.pending_transactions)

        violations = self.validate_chain()
        latest_block = chain[-1]
        return {
            "name": self.name,
            "is_valid": not violations,
            "violations": [str(violation) for violation in violations],
            "chain_length": len(chain),
            "total_transactions": sum(len(block.transactions) for block in chain),
            "pending_transactions": pending,
            "difficulty": self.difficulty,
            "latest_block": {
                "hash": latest_block.hash,
                "timestamp": latest_block.timestamp
            }
        }

    def to_table(self) -> pa.Table:
        """All sealed transactions as one Arrow table, in chain order."""
        with self._lock:
            chain = list(self.chain)
        return pa.concat_tables([block.to_table() for block in chain])

    def headers_table(self) -> pa.Table:
        """One row per block header, genesis first."""
        with self._lock:
            chain = list(self.chain)
        return pa.Table.from_pylist([
            {
                "position": position,
                "timestamp": block.timestamp,
                "previous_hash": block.previous_hash,
                "nonce": block.nonce,
                "hash": block.hash,
                "transaction_count": len(block.transactions)
            }
            for position, block in enumerate(chain)
        ], schema=schemas.get_block_header_schema())

    def to_dict(self) -> dict[str, Any]:
        """
        Convert ledger to dictionary representation.

        Returns:
            Dictionary representation of the ledger
        """
        with self._lock:
            return {
                "name": self.name,
                "difficulty": self.difficulty,
                "chain": [block.to_dict() for block in self.chain],
                "pending_transactions": [tx.to_payload() for tx in self.pending_transactions]
            }

    @classmethod
    def from_blocks(cls, blocks: list[Block], pending: list[TransactionBase] | None = None,
                    difficulty: int | None = None, validator: TransactionValidator | None = None,
                    name: str | None = None) -> 'Ledger':
        """
        Rebuild a ledger by replaying stored blocks in append order.

        Stored hashes are trusted as recorded; a damaged store shows up in
        ``validate_chain`` instead of being re-sealed.

        Args:
            blocks: Blocks in append order, genesis first
            pending: Validated transactions that were queued but not sealed
            difficulty: Sealing difficulty for new blocks
            validator: Rule validator for new transactions
            name: Ledger name

        Returns:
            Ledger instance
        """
        ledger = cls(difficulty=difficulty, validator=validator, name=name)
        if blocks:
            ledger.chain = list(blocks)
        ledger.pending_transactions = list(pending or [])

        if not ledger.is_chain_valid():
            logger.warning(f"Replayed ledger {ledger.name} failed integrity verification")
        return ledger

    @classmethod
    def from_dict(cls, data: dict[str, Any], validator: TransactionValidator | None = None) -> 'Ledger':
        """
        Create a Ledger instance from dictionary data.

        Args:
            data: Dictionary produced by ``to_dict``
            validator: Rule validator for new transactions

        Returns:
            Ledger instance
        """
        return cls.from_blocks(
            [Block.from_dict(block_data) for block_data in data["chain"]],
            pending=parse_transactions(data.get("pending_transactions", [])),
            difficulty=data.get("difficulty"),
            validator=validator,
            name=data.get("name")
        )

    def __len__(self) -> int:
        with self._lock:
            return len(self.chain)

    def __str__(self) -> str:
        """String representation of the ledger."""
        return f"Ledger(name={self.name}, blocks={len(self)}, pending={len(self.pending_transactions)})"

    def __repr__(self) -> str:
        """Detailed string representation of the ledger."""
        return (f"Ledger(name={self.name}, blocks={len(self)}, "
                f"pending_transactions={len(self.pending_transactions)}, difficulty={self.difficulty})")
