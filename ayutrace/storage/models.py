"""
SQLAlchemy Models for AyuTrace Storage.

This module defines the database schema used to make the ledger durable across
restarts: one row per sealed block and one row per transaction, in append
order, plus the stakeholder, product and QR code registries used by the
request layer.
"""

import time
from sqlalchemy import Column, Integer, String, Float, Text, ForeignKey
from sqlalchemy.orm import declarative_base

Base = declarative_base()


class BlockModel(Base):
    """
    Represents a sealed block.
    """
    __tablename__ = 'blocks'

    # Autoincrement id preserves append order for replay
    id = Column(Integer, primary_key=True, autoincrement=True)

    hash = Column(String(64), unique=True, nullable=False, index=True)
    previous_hash = Column(String(64), nullable=False)
    timestamp = Column(Float, nullable=False)
    nonce = Column(Integer, nullable=False, default=0)

    # Canonical JSON of the block payload
    data = Column(Text, nullable=False)

    def __repr__(self):
        return f"<Block(id={self.id}, hash='{self.hash[:8]}...')>"


class TransactionModel(Base):
    """
    Represents a single transaction, pending or sealed.
    """
    __tablename__ = 'transactions'

    id = Column(String(128), primary_key=True)
    type = Column(String(32), nullable=False)
    batch_id = Column(String(128), nullable=True, index=True)
    timestamp = Column(Float, nullable=False)
    data = Column(Text, nullable=False)  # Canonical JSON payload
    block_hash = Column(String(64), ForeignKey('blocks.hash'), nullable=True)
    status = Column(String(16), nullable=False, default="pending")

    # Admission order, used to restore pending transactions in arrival order
    sequence = Column(Integer, nullable=False, index=True)

    def __repr__(self):
        return f"<Transaction(id='{self.id}', type='{self.type}', status='{self.status}')>"


class StakeholderModel(Base):
    """
    Supply-chain participant: farmer, laboratory, processor or manufacturer.
    """
    __tablename__ = 'stakeholders'

    id = Column(String(64), primary_key=True)
    name = Column(String(255), nullable=False)
    type = Column(String(32), nullable=False)
    email = Column(String(255), nullable=True)
    phone = Column(String(64), nullable=True)
    location = Column(Text, nullable=True)  # JSON object
    created_at = Column(Float, nullable=False, default=time.time)

    def __repr__(self):
        return f"<Stakeholder(id='{self.id}', type='{self.type}')>"


class ProductModel(Base):
    """
    Registered finished product.
    """
    __tablename__ = 'products'

    id = Column(String(64), primary_key=True)
    name = Column(String(255), nullable=False)
    batch_id = Column(String(64), nullable=False)
    qr_code = Column(String(64), nullable=False, unique=True)
    manufacturer_id = Column(String(64), ForeignKey('stakeholders.id'), nullable=False)
    created_at = Column(Float, nullable=False, default=time.time)

    def __repr__(self):
        return f"<Product(id='{self.id}', qr_code='{self.qr_code}')>"


class QRCodeModel(Base):
    """
    Maps a scannable code to the product it identifies.
    """
    __tablename__ = 'qr_codes'

    code = Column(String(64), primary_key=True)
    product_id = Column(String(64), ForeignKey('products.id'), nullable=False)
    created_at = Column(Float, nullable=False, default=time.time)
    scan_count = Column(Integer, nullable=False, default=0)

    def __repr__(self):
        return f"<QRCode(code='{self.code}', scans={self.scan_count})>"
