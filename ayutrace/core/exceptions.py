"""
Error taxonomy for AyuTrace.

Validation failures are raised to the caller with a stable rule code so the
request layer can tell the submitter what to correct. Integrity problems are
never raised: they are reported as ``IntegrityViolation`` records by
``Ledger.validate_chain`` and left for an operator to act on.
"""

from dataclasses import dataclass

RULE_MESSAGES = {
    "transaction.schema": "Transaction payload is malformed",
    "transaction.type": "Unknown transaction type",
    "transaction.required": "Required field is missing",
    "collection.location": "GPS coordinates are required",
    "collection.quantity": "Harvested quantity must be positive",
    "collection.geofence": "Location outside approved harvesting zone",
    "collection.season": "Harvesting not allowed during monsoon season",
    "quality.moisture": "Moisture content exceeds threshold",
    "quality.pesticide": "Pesticide residue exceeds safe limits",
    "processing.drying_temperature": "Drying temperature exceeds safe limit",
    "product.traceability": "Missing traceability for ingredient",
}


class AyuTraceError(Exception):
    """Base class for all AyuTrace errors"""
    pass


class ValidationError(AyuTraceError):
    """Raised when a submitted transaction violates a business rule"""

    def __init__(self, rule: str, field: str | None = None, detail: str | None = None):
        self.rule = rule
        self.field = field
        self.detail = detail
        message = RULE_MESSAGES.get(rule, "Transaction validation failed")
        if field:
            message = f"{message}: {field}"
        if detail:
            message = f"{message} ({detail})"
        self.message = message
        super().__init__(self.message)

    def to_dict(self) -> dict[str, str | None]:
        return {"error": self.message, "rule": self.rule, "field": self.field}


class SealingCancelled(AyuTraceError):
    """Raised when a block sealing run is cancelled between nonce increments"""

    def __init__(self, nonce: int):
        self.nonce = nonce
        super().__init__(f"Sealing cancelled after {nonce} attempts")


class StorageError(AyuTraceError):
    """Raised when the durable store cannot complete an operation"""
    pass


@dataclass(frozen=True)
class IntegrityViolation:
    """A single chain integrity failure found during verification."""
    block_index: int
    reason: str

    def __str__(self) -> str:
        return f"block {self.block_index}: {self.reason}"
