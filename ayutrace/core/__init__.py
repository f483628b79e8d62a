"""
Core ledger engine for AyuTrace: transactions, rule validation, blocks,
the ledger itself and provenance resolution.
"""

from ayutrace.core.block import Block, GENESIS_DATA
from ayutrace.core.contracts import (
    RulePolicy,
    TransactionValidator,
    calculate_sustainability_score,
    validate_transaction,
    verify_chain_of_custody,
)
from ayutrace.core.exceptions import (
    AyuTraceError,
    IntegrityViolation,
    SealingCancelled,
    StorageError,
    ValidationError,
)
from ayutrace.core.ledger import Ledger
from ayutrace.core.provenance import (
    BatchHistory,
    IngredientTrace,
    ProvenanceReport,
    ProvenanceResolver,
    resolve_provenance,
)
from ayutrace.core.transactions import (
    CollectionEvent,
    Ingredient,
    LabResults,
    Location,
    ProcessingStep,
    Product,
    QualityTest,
    Transaction,
    parse_transaction,
)

__all__ = [
    "Block", "GENESIS_DATA", "Ledger",
    "RulePolicy", "TransactionValidator", "calculate_sustainability_score",
    "validate_transaction", "verify_chain_of_custody",
    "AyuTraceError", "IntegrityViolation", "SealingCancelled", "StorageError", "ValidationError",
    "BatchHistory", "IngredientTrace", "ProvenanceReport", "ProvenanceResolver", "resolve_provenance",
    "CollectionEvent", "Ingredient", "LabResults", "Location", "ProcessingStep", "Product",
    "QualityTest", "Transaction", "parse_transaction",
]
