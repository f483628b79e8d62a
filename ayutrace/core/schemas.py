"""
Arrow Schemas for AyuTrace Ledger Exports.

This module defines the Apache Arrow schemas used when the ledger is exported
for audit or analytics:
- Transaction records: one row per sealed transaction
- Block headers: one row per block
"""

import pyarrow as pa

# Transaction record schema - mirrors the durable store's transactions table
TRANSACTION_RECORD_SCHEMA = pa.schema([
    ('id', pa.string()),
    ('type', pa.string()),
    ('batch_id', pa.string()),
    ('timestamp', pa.float64()),
    ('block_hash', pa.string()),
    ('data', pa.binary()),           # Canonical JSON payload
])


# Block Header Schema
BLOCK_HEADER_SCHEMA = pa.schema([
    ('position', pa.int64()),
    ('timestamp', pa.float64()),
    ('previous_hash', pa.string()),
    ('nonce', pa.int64()),
    ('hash', pa.string()),
    ('transaction_count', pa.int64()),
])


def get_transaction_record_schema() -> pa.Schema:
    """Return the Arrow schema for a sealed transaction record."""
    return TRANSACTION_RECORD_SCHEMA


def get_block_header_schema() -> pa.Schema:
    """Return the Arrow schema for a Block Header."""
    return BLOCK_HEADER_SCHEMA
