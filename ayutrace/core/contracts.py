"""
Smart contracts for AyuTrace.

Business rules applied to every transaction before it may join the ledger:

- Collection events must carry a collector, species, location and quantity,
  and the harvest must lie inside the approved zone (a coarse bounding box,
  not a polygon test). A seasonal restriction on monsoon-month harvesting is
  part of the policy and can be switched on through configuration.
- Quality tests must name their batch, lab, test type and results; moisture
  and pesticide readings are checked against fixed thresholds.
- Processing steps must name their batch, facility and process; drying is
  limited in temperature.
- Products must name their manufacturer and ingredients, and every
  ingredient must point at a source batch.

The module also holds the auxiliary pure contracts (sustainability scoring,
chain-of-custody linkage) and the identifier issuance helpers used by the
request layer.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Sequence

from pydantic.alias_generators import to_camel

from ayutrace.config.settings import Settings, settings as default_settings
from ayutrace.core.exceptions import ValidationError
from ayutrace.core.transactions import (
    COLLECTION_EVENT,
    PRODUCT,
    CollectionEvent,
    Location,
    ProcessingStep,
    Product,
    QualityTest,
    TransactionBase,
    parse_transaction,
)
from ayutrace.core.utils import current_millis, random_suffix, short_uuid
from ayutrace.security.secure_logging import sanitize_for_log

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RulePolicy:
    """Policy constants enforced by the transaction validator."""
    latitude_range: tuple[float, float] = (8.0, 37.0)
    longitude_range: tuple[float, float] = (68.0, 97.0)
    monsoon_restriction_enabled: bool = False
    monsoon_months: tuple[int, ...] = (6, 7, 8, 9)
    moisture_max: float = 12.0
    pesticide_max: float = 0.01
    drying_temperature_max: float = 60.0
    overharvest_quantity_kg: float = 50.0

    @classmethod
    def from_settings(cls, config: Settings | None = None) -> "RulePolicy":
        """Build a policy from framework settings."""
        config = config or default_settings
        policy = config.get_policy_config()
        return cls(
            latitude_range=tuple(policy["latitude_range"]),
            longitude_range=tuple(policy["longitude_range"]),
            monsoon_restriction_enabled=policy["monsoon_restriction_enabled"],
            monsoon_months=tuple(policy["monsoon_months"]),
            moisture_max=policy["moisture_max"],
            pesticide_max=policy["pesticide_max"],
            drying_temperature_max=policy["drying_temperature_max"],
            overharvest_quantity_kg=policy["overharvest_quantity_kg"]
        )


def _is_missing(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def _require(transaction: TransactionBase, *field_names: str) -> None:
    for name in field_names:
        if _is_missing(getattr(transaction, name)):
            raise ValidationError("transaction.required", field=to_camel(name))


@dataclass
class TransactionValidator:
    """
    Validates transactions against the compliance policy.

    ``check`` raises a ``ValidationError`` naming the failed rule; ``validate``
    is the boolean form. Neither has side effects beyond logging.
    """
    policy: RulePolicy = field(default_factory=RulePolicy.from_settings)

    def __post_init__(self):
        self._dispatch: dict[type, Callable[[Any], None]] = {
            CollectionEvent: self._check_collection_event,
            QualityTest: self._check_quality_test,
            ProcessingStep: self._check_processing_step,
            Product: self._check_product,
        }

    def check(self, transaction: Any) -> None:
        """
        Apply the rules for the transaction's type.

        Args:
            transaction: Typed transaction

        Raises:
            ValidationError: If any rule fails
        """
        checker = self._dispatch.get(type(transaction))
        if checker is None:
            kind = getattr(transaction, "type", type(transaction).__name__)
            logger.warning(f"Rejected transaction of unknown type {sanitize_for_log(kind)}")
            raise ValidationError("transaction.type", field="type")

        try:
            checker(transaction)
        except ValidationError as e:
            logger.warning(f"Rejected {transaction.type} {sanitize_for_log(transaction.id)}: {e.message}")
            raise

    def validate(self, transaction: Any) -> bool:
        """Return True if the transaction satisfies every rule."""
        try:
            self.check(transaction)
        except ValidationError:
            return False
        return True

    def _check_collection_event(self, event: CollectionEvent) -> None:
        _require(event, "collector_id", "species", "location", "quantity")

        if event.quantity <= 0:
            raise ValidationError("collection.quantity", field="quantity")

        location: Location = event.location
        if location.latitude is None:
            raise ValidationError("collection.location", field="location.latitude")
        if location.longitude is None:
            raise ValidationError("collection.location", field="location.longitude")

        lat_min, lat_max = self.policy.latitude_range
        lng_min, lng_max = self.policy.longitude_range
        if not (lat_min <= location.latitude <= lat_max and lng_min <= location.longitude <= lng_max):
            raise ValidationError(
                "collection.geofence", field="location",
                detail=f"{location.latitude}, {location.longitude}"
            )

        if self.policy.monsoon_restriction_enabled:
            month = datetime.fromtimestamp(event.timestamp).month
            if month in self.policy.monsoon_months:
                raise ValidationError("collection.season", field="timestamp", detail=f"month {month}")

    def _check_quality_test(self, test: QualityTest) -> None:
        _require(test, "batch_id", "test_type", "results", "lab_id")

        value = test.results.value
        if value is None:
            return
        if test.test_type == "moisture" and value > self.policy.moisture_max:
            raise ValidationError("quality.moisture", field="results.value",
                                  detail=f"{value} > {self.policy.moisture_max}")
        if test.test_type == "pesticide" and value > self.policy.pesticide_max:
            raise ValidationError("quality.pesticide", field="results.value",
                                  detail=f"{value} > {self.policy.pesticide_max}")

    def _check_processing_step(self, step: ProcessingStep) -> None:
        _require(step, "batch_id", "process_type", "facility_id")

        if (step.process_type == "drying" and step.temperature is not None
                and step.temperature > self.policy.drying_temperature_max):
            raise ValidationError("processing.drying_temperature", field="temperature",
                                  detail=f"{step.temperature} > {self.policy.drying_temperature_max}")

    @staticmethod
    def _check_product(product: Product) -> None:
        _require(product, "name", "batch_id", "ingredients", "manufacturer_id")

        for position, ingredient in enumerate(product.ingredients):
            if _is_missing(ingredient.source_batch_id):
                raise ValidationError(
                    "product.traceability", field=f"ingredients[{position}].sourceBatchId",
                    detail=ingredient.name or "unnamed ingredient"
                )


def validate_transaction(transaction: Any, policy: RulePolicy | None = None) -> bool:
    """Boolean rule check with the given (or configured) policy."""
    return TransactionValidator(policy or RulePolicy.from_settings()).validate(transaction)


def calculate_sustainability_score(event: CollectionEvent, policy: RulePolicy | None = None) -> int:
    """
    Score a harvest between 0 and 100.

    Starts at 100, loses 20 for over-harvesting, gains 10 each for organic
    and fair-trade certification, then clamps to the range.
    """
    policy = policy or RulePolicy.from_settings()
    score = 100

    if event.quantity is not None and event.quantity > policy.overharvest_quantity_kg:
        score -= 20
    if event.organic:
        score += 10
    if event.fair_trade:
        score += 10

    return max(0, min(100, score))


def verify_chain_of_custody(transactions: Sequence[TransactionBase]) -> bool:
    """
    Check that each transaction references its immediate predecessor.

    Sequences of zero or one transaction are trivially linked.
    """
    for i in range(1, len(transactions)):
        if transactions[i].previous_transaction_id != transactions[i - 1].id:
            return False
    return True


def generate_batch_id(prefix: str, collector_id: str | None) -> str:
    """Batch identifier of the form ``PREFIX-collector-millis-suffix``."""
    return f"{prefix}-{collector_id}-{current_millis()}-{random_suffix()}"


def generate_product_id() -> str:
    return f"PROD-{short_uuid(8)}"


def generate_qr_code() -> str:
    return f"QR-{short_uuid(12)}"


def new_collection_event(policy: RulePolicy | None = None, **fields: Any) -> CollectionEvent:
    """
    Create a collection event with a fresh batch id and its sustainability score.

    Args:
        policy: Policy used for scoring
        **fields: CollectionEvent fields (snake_case or camelCase)

    Returns:
        The new, not yet validated, collection event
    """
    event = parse_transaction({
        **fields,
        "type": COLLECTION_EVENT,
        "id": generate_batch_id("BATCH", fields.get("collector_id") or fields.get("collectorId")),
    })
    return event.model_copy(update={"sustainability_score": calculate_sustainability_score(event, policy)})


def new_product(**fields: Any) -> Product:
    """Create a product whose batch id is its own id."""
    product_id = generate_product_id()
    return parse_transaction({**fields, "type": PRODUCT, "id": product_id, "batch_id": product_id})
