"""
Transaction model for AyuTrace.

A transaction is one typed business record in the supply chain:

- ``CollectionEvent``: a harvest of a botanical species by a collector. Its own
  ``id`` doubles as the batch identifier for everything that follows.
- ``QualityTest``: a laboratory result against a batch.
- ``ProcessingStep``: a processing operation (drying, grinding, ...) on a batch.
- ``Product``: a finished product listing the batches it was made from.

The four variants form a tagged union discriminated by ``type``. Attributes are
snake_case in Python and camelCase on the wire (``collectorId``,
``sourceBatchId``...). Business fields are optional at the schema level on
purpose: completeness is a compliance rule enforced by the contracts module,
which reports exactly which field is missing.

Models are frozen; a transaction never changes once created.
"""

import time
import uuid
from typing import Annotated, Any, Literal, Mapping, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter
from pydantic import ValidationError as PydanticValidationError
from pydantic.alias_generators import to_camel

from ayutrace.core.exceptions import ValidationError

COLLECTION_EVENT = "CollectionEvent"
QUALITY_TEST = "QualityTest"
PROCESSING_STEP = "ProcessingStep"
PRODUCT = "Product"

TRANSACTION_TYPES = (COLLECTION_EVENT, QUALITY_TEST, PROCESSING_STEP, PRODUCT)


class LedgerModel(BaseModel):
    """Base model: camelCase aliases, immutable instances."""
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
        extra="ignore",
    )


class Location(LedgerModel):
    """GPS position of a harvest."""
    latitude: float | None = None
    longitude: float | None = None
    address: str | None = None


class LabResults(LedgerModel):
    """Laboratory measurement. ``value`` is compared against policy thresholds."""
    model_config = ConfigDict(extra="allow")

    value: float | None = None
    unit: str | None = None


class Ingredient(LedgerModel):
    """One line of a product's bill of materials."""
    name: str | None = None
    source_batch_id: str | None = None
    percentage: float | None = None


class TransactionBase(LedgerModel):
    """Fields shared by every transaction variant."""
    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    timestamp: float = Field(default_factory=time.time)
    batch_id: str | None = None
    previous_transaction_id: str | None = None

    @property
    def batch_key(self) -> str | None:
        """Batch this transaction belongs to."""
        return self.batch_id

    def to_payload(self) -> dict[str, Any]:
        """Full JSON-compatible payload with wire (camelCase) field names."""
        return self.model_dump(mode="json", by_alias=True)


class CollectionEvent(TransactionBase):
    """Harvest of raw material at a GPS location."""
    type: Literal["CollectionEvent"] = COLLECTION_EVENT
    collector_id: str | None = None
    species: str | None = None
    location: Location | None = None
    quantity: float | None = None  # kg
    harvest_method: str | None = None
    organic: bool = False
    fair_trade: bool = False
    sustainability_score: int | None = None

    @property
    def batch_key(self) -> str | None:
        # The origin event is its own batch
        return self.batch_id or self.id


class QualityTest(TransactionBase):
    """Laboratory test of a batch."""
    type: Literal["QualityTest"] = QUALITY_TEST
    lab_id: str | None = None
    test_type: str | None = None
    results: LabResults | None = None
    certificate: str | None = None
    passed: bool | None = None


class ProcessingStep(TransactionBase):
    """Processing operation applied to a batch."""
    type: Literal["ProcessingStep"] = PROCESSING_STEP
    facility_id: str | None = None
    process_type: str | None = None
    temperature: float | None = None  # degrees Celsius
    duration: float | None = None  # hours
    output_quantity: float | None = None  # kg
    notes: str | None = None


class Product(TransactionBase):
    """Finished product; ``batch_id`` is the product's own id."""
    type: Literal["Product"] = PRODUCT
    name: str | None = None
    manufacturer_id: str | None = None
    ingredients: list[Ingredient] | None = None
    manufacturing_date: str | None = None
    expiry_date: str | None = None
    qr_code: str | None = None


Transaction = Annotated[
    Union[CollectionEvent, QualityTest, ProcessingStep, Product],
    Field(discriminator="type"),
]

TRANSACTION_CLASSES = (CollectionEvent, QualityTest, ProcessingStep, Product)

_transaction_adapter: TypeAdapter = TypeAdapter(Transaction)
_transaction_list_adapter: TypeAdapter = TypeAdapter(list[Transaction])


def _to_validation_error(exc: PydanticValidationError) -> ValidationError:
    first = exc.errors()[0]
    field = ".".join(str(part) for part in first.get("loc", ()) if part not in TRANSACTION_TYPES)
    if first.get("type") in ("union_tag_invalid", "union_tag_not_found"):
        return ValidationError("transaction.type", field="type", detail=first.get("msg"))
    return ValidationError("transaction.schema", field=field or None, detail=first.get("msg"))


def parse_transaction(payload: Mapping[str, Any] | TransactionBase) -> Transaction:
    """
    Build a typed transaction from a wire payload.

    Args:
        payload: Mapping with a ``type`` tag (camelCase or snake_case keys),
            or an already-typed transaction which is returned unchanged

    Returns:
        The matching transaction variant

    Raises:
        ValidationError: ``transaction.type`` for a missing or unknown tag,
            ``transaction.schema`` for values of the wrong type
    """
    if isinstance(payload, TRANSACTION_CLASSES):
        return payload
    try:
        return _transaction_adapter.validate_python(dict(payload))
    except PydanticValidationError as e:
        raise _to_validation_error(e) from e
    except (TypeError, ValueError) as e:
        raise ValidationError("transaction.schema", detail=str(e)) from e


def parse_transactions(payloads: list[Mapping[str, Any]]) -> list[Transaction]:
    """Parse a list of stored payloads (used when replaying blocks)."""
    try:
        return _transaction_list_adapter.validate_python(payloads)
    except PydanticValidationError as e:
        raise _to_validation_error(e) from e
