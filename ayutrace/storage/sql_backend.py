"""
SQL Storage Backend for AyuTrace.

This module implements the durable store using SQLAlchemy. The in-memory
ledger stays authoritative for verification and traversal; the store records
every transaction and every sealed block in append order so the ledger can be
rebuilt on startup, and keeps the stakeholder, product and QR code registries
for the request layer.
"""

import json
import logging
import time
from typing import Any

from sqlalchemy import create_engine, func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import sessionmaker, scoped_session
from sqlalchemy.pool import StaticPool

from ayutrace.config.settings import settings
from ayutrace.core.block import Block
from ayutrace.core.contracts import TransactionValidator
from ayutrace.core.exceptions import StorageError
from ayutrace.core.ledger import Ledger
from ayutrace.core.transactions import Product, Transaction, parse_transactions
from ayutrace.core.utils import canonical_serialize
from ayutrace.storage.models import (
    Base, BlockModel, TransactionModel, StakeholderModel, ProductModel, QRCodeModel
)

logger = logging.getLogger(__name__)

SAMPLE_STAKEHOLDERS = [
    {
        "id": "FARMER001",
        "name": "Ramesh Kumar",
        "type": "farmer",
        "email": "ramesh@example.com",
        "phone": "+91-9876543210",
        "location": {"state": "Uttarakhand", "district": "Dehradun"}
    },
    {
        "id": "LAB001",
        "name": "AyurTest Labs",
        "type": "laboratory",
        "email": "lab@ayurtest.com",
        "phone": "+91-1234567890",
        "location": {"state": "Delhi", "district": "New Delhi"}
    },
    {
        "id": "PROC001",
        "name": "Herbal Processing Unit",
        "type": "processor",
        "email": "processing@herbalunit.com",
        "phone": "+91-9988776655",
        "location": {"state": "Uttar Pradesh", "district": "Noida"}
    },
    {
        "id": "MFG001",
        "name": "Ayur Formulations Pvt Ltd",
        "type": "manufacturer",
        "email": "info@ayurformulations.com",
        "phone": "+91-8877665544",
        "location": {"state": "Gujarat", "district": "Ahmedabad"}
    }
]


def _engine_options(db_url: str) -> dict[str, Any]:
    if not db_url.startswith("sqlite"):
        return {}
    options: dict[str, Any] = {"connect_args": {"check_same_thread": False}}
    if db_url in ("sqlite://", "sqlite:///:memory:"):
        # One shared connection, otherwise every session gets its own empty database
        options["poolclass"] = StaticPool
    return options


class SqlStorageBackend:
    """
    Persistent storage backend using SQL Database.
    """

    def __init__(self, connection_string: str | None = None, seed: bool = True):
        """
        Initialize the SQL Storage Backend.

        Args:
            connection_string: SQL connection string (e.g., sqlite:///ayutrace.db)
                               Defaults to settings.DATABASE_URL
            seed: Insert the sample stakeholders if they are missing
        """
        self.db_url = connection_string or settings.DATABASE_URL
        self.engine = create_engine(self.db_url, echo=False, **_engine_options(self.db_url))

        # Create all tables (if they don't exist)
        try:
            Base.metadata.create_all(self.engine)
        except SQLAlchemyError as e:
            raise StorageError(f"Failed to open store: {e}") from e

        # Create thread-safe session factory
        self.Session = scoped_session(sessionmaker(bind=self.engine))

        if seed:
            self.seed_stakeholders(SAMPLE_STAKEHOLDERS)

        logger.info(f"SqlStorageBackend initialized with {self.engine.url.render_as_string(hide_password=True)}")

    def seed_stakeholders(self, stakeholders: list[dict[str, Any]]) -> None:
        """Insert stakeholders that are not registered yet."""
        session = self.Session()
        try:
            for entry in stakeholders:
                if session.get(StakeholderModel, entry["id"]) is None:
                    session.add(StakeholderModel(
                        id=entry["id"],
                        name=entry["name"],
                        type=entry["type"],
                        email=entry.get("email"),
                        phone=entry.get("phone"),
                        location=json.dumps(entry.get("location") or {}),
                        created_at=time.time()
                    ))
            session.commit()
        except SQLAlchemyError as e:
            session.rollback()
            raise StorageError(f"Failed to seed stakeholders: {e}") from e
        finally:
            session.close()

    @staticmethod
    def _next_sequence(session) -> int:
        return (session.query(func.max(TransactionModel.sequence)).scalar() or 0) + 1

    def save_transaction(self, transaction: Transaction) -> bool:
        """
        Record a transaction that has been admitted to the ledger as pending.

        A transaction that is already stored, pending or sealed, is left as it
        is, so a late call never reopens a sealed row.

        Args:
            transaction: Validated transaction

        Returns:
            bool: True if successful, False otherwise.
        """
        session = self.Session()
        try:
            if session.get(TransactionModel, transaction.id) is not None:
                return True
            session.add(TransactionModel(
                id=transaction.id,
                type=transaction.type,
                batch_id=transaction.batch_key,
                timestamp=transaction.timestamp,
                data=canonical_serialize(transaction.to_payload()),
                status="pending",
                sequence=self._next_sequence(session)
            ))
            session.commit()
            return True
        except SQLAlchemyError as e:
            session.rollback()
            logger.error(f"Failed to save transaction to DB: {e}")
            return False
        finally:
            session.close()

    def save_block(self, block: Block) -> bool:
        """
        Save a sealed block and mark its transactions sealed, in a single transaction.

        Blocks must be saved in the order they were appended to the ledger;
        replay follows insertion order.

        Args:
            block: Block appended to the ledger

        Returns:
            bool: True if successful, False otherwise.
        """
        session = self.Session()
        try:
            session.add(BlockModel(
                hash=block.hash,
                previous_hash=block.previous_hash,
                timestamp=block.timestamp,
                nonce=block.nonce,
                data=canonical_serialize(block.serialize_data())
            ))
            session.flush()

            for transaction in block.transactions:
                row = session.get(TransactionModel, transaction.id)
                if row is None:
                    row = TransactionModel(
                        id=transaction.id,
                        type=transaction.type,
                        batch_id=transaction.batch_key,
                        timestamp=transaction.timestamp,
                        sequence=self._next_sequence(session)
                    )
                    session.add(row)
                row.data = canonical_serialize(transaction.to_payload())
                row.block_hash = block.hash
                row.status = "sealed"
                session.flush()

            session.commit()
            logger.debug(f"Saved block {block.hash[:10]} ({len(block.transactions)} transactions) to DB.")
            return True

        except SQLAlchemyError as e:
            session.rollback()
            logger.error(f"Failed to save block to DB: {e}")
            return False
        finally:
            session.close()

    def load_blocks(self) -> list[Block]:
        """Retrieve every stored block in append order."""
        session = self.Session()
        try:
            return [
                Block.from_dict({
                    "timestamp": row.timestamp,
                    "previous_hash": row.previous_hash,
                    "nonce": row.nonce,
                    "data": row.data,
                    "hash": row.hash
                })
                for row in session.query(BlockModel).order_by(BlockModel.id.asc())
            ]
        except SQLAlchemyError as e:
            raise StorageError(f"Failed to load blocks: {e}") from e
        finally:
            session.close()

    def load_pending_transactions(self) -> list[Transaction]:
        """Retrieve transactions admitted but never sealed, in arrival order."""
        session = self.Session()
        try:
            rows = session.query(TransactionModel).filter_by(status="pending").order_by(TransactionModel.sequence)
            return parse_transactions([json.loads(row.data) for row in rows])
        except SQLAlchemyError as e:
            raise StorageError(f"Failed to load pending transactions: {e}") from e
        finally:
            session.close()

    def load_ledger(self, difficulty: int | None = None,
                    validator: TransactionValidator | None = None) -> Ledger:
        """
        Rebuild the ledger from the store.

        An empty store gets a fresh ledger whose genesis block is persisted
        immediately so later blocks can be replayed against it.

        Returns:
            Ledger instance
        """
        blocks = self.load_blocks()
        if not blocks:
            ledger = Ledger(difficulty=difficulty, validator=validator)
            if not self.save_block(ledger.get_latest_block()):
                raise StorageError("Failed to persist genesis block")
            logger.info("Initialized new ledger in empty store")
            return ledger

        ledger = Ledger.from_blocks(
            blocks,
            pending=self.load_pending_transactions(),
            difficulty=difficulty,
            validator=validator
        )
        logger.info(f"Replayed {len(blocks)} blocks from store")
        return ledger

    def register_product(self, product: Product, qr_code: str) -> bool:
        """
        Register a product and its QR code mapping.

        Args:
            product: Product transaction
            qr_code: Code issued for the product

        Returns:
            bool: True if successful, False otherwise.
        """
        session = self.Session()
        try:
            session.add(ProductModel(
                id=product.id,
                name=product.name,
                batch_id=product.batch_id,
                qr_code=qr_code,
                manufacturer_id=product.manufacturer_id,
                created_at=product.timestamp
            ))
            session.flush()
            session.add(QRCodeModel(code=qr_code, product_id=product.id, created_at=product.timestamp))
            session.commit()
            return True
        except SQLAlchemyError as e:
            session.rollback()
            logger.error(f"Failed to register product: {e}")
            return False
        finally:
            session.close()

    def resolve_qr_code(self, code: str) -> str | None:
        """
        Look up the product behind a QR code and count the scan.

        Args:
            code: Scanned code

        Returns:
            Product id, or None for an unknown code
        """
        session = self.Session()
        try:
            qr = session.get(QRCodeModel, code)
            if qr is None:
                return None
            qr.scan_count = (qr.scan_count or 0) + 1
            session.commit()
            return qr.product_id
        except SQLAlchemyError as e:
            session.rollback()
            raise StorageError(f"Failed to resolve QR code: {e}") from e
        finally:
            session.close()

    def get_scan_count(self, code: str) -> int:
        session = self.Session()
        try:
            qr = session.get(QRCodeModel, code)
            return qr.scan_count if qr else 0
        finally:
            session.close()

    def get_stakeholder(self, stakeholder_id: str | None) -> dict[str, Any] | None:
        """Retrieve a stakeholder by id."""
        if not stakeholder_id:
            return None
        session = self.Session()
        try:
            row = session.get(StakeholderModel, stakeholder_id)
            return self._to_stakeholder_dict(row) if row else None
        finally:
            session.close()

    def list_stakeholders(self) -> list[dict[str, Any]]:
        """Retrieve all stakeholders."""
        session = self.Session()
        try:
            return [self._to_stakeholder_dict(row) for row in session.query(StakeholderModel).order_by(StakeholderModel.id)]
        finally:
            session.close()

    @staticmethod
    def _to_stakeholder_dict(row: StakeholderModel) -> dict[str, Any]:
        return {
            "id": row.id,
            "name": row.name,
            "type": row.type,
            "email": row.email,
            "phone": row.phone,
            "location": json.loads(row.location or "{}"),
            "created_at": row.created_at
        }

    def close(self):
        """Close connection pool."""
        self.Session.remove()
        self.engine.dispose()
