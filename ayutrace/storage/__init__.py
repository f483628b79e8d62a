"""
Durable storage for the AyuTrace ledger.
"""

from ayutrace.storage.models import Base, BlockModel, TransactionModel, StakeholderModel, ProductModel, QRCodeModel
from ayutrace.storage.sql_backend import SqlStorageBackend, SAMPLE_STAKEHOLDERS

__all__ = [
    "Base",
    "BlockModel",
    "TransactionModel",
    "StakeholderModel",
    "ProductModel",
    "QRCodeModel",
    "SqlStorageBackend",
    "SAMPLE_STAKEHOLDERS",
]
