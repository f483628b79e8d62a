"""
Provenance resolution for AyuTrace.

Given a product identifier, the resolver walks the ledger backwards to
assemble the history of each direct ingredient's source batch. Traversal is
one level deep: an ingredient that is itself a product is reported with its
own batch history but its ingredients are not expanded further.
"""

import logging

from pydantic import Field

from ayutrace.core.contracts import verify_chain_of_custody
from ayutrace.core.ledger import Ledger
from ayutrace.core.transactions import Ingredient, LedgerModel, Product, Transaction
from ayutrace.security.secure_logging import sanitize_for_log

logger = logging.getLogger(__name__)


class IngredientTrace(LedgerModel):
    """One ingredient and the time-ordered history of its source batch."""
    ingredient: Ingredient
    history: list[Transaction] = Field(default_factory=list)


class ProvenanceReport(LedgerModel):
    """A product with the traced history of every direct ingredient."""
    product: Product
    ingredients: list[IngredientTrace] = Field(default_factory=list)


class BatchHistory(LedgerModel):
    """Time-ordered history of a batch with its chain-of-custody verdict."""
    batch_id: str
    history: list[Transaction] = Field(default_factory=list)
    chain_of_custody: bool = True


def _sorted_by_time(transactions: list[Transaction]) -> list[Transaction]:
    return sorted(transactions, key=lambda transaction: transaction.timestamp)


class ProvenanceResolver:
    """Answers "where did this come from" against one ledger."""

    def __init__(self, ledger: Ledger):
        self.ledger = ledger

    def resolve(self, product_id: str) -> ProvenanceReport | None:
        """
        Reassemble a product's ingredient ancestry.

        Args:
            product_id: Identifier of a Product transaction

        Returns:
            The provenance report, or None if the id is unknown or does not
            belong to a product
        """
        product = self.ledger.find_by_id(product_id)
        if not isinstance(product, Product):
            logger.info(f"No product found for {sanitize_for_log(product_id)}")
            return None

        traces = [
            IngredientTrace(
                ingredient=ingredient,
                history=_sorted_by_time(self.ledger.find_by_batch(ingredient.source_batch_id))
            )
            for ingredient in product.ingredients or []
        ]
        return ProvenanceReport(product=product, ingredients=traces)

    def batch_history(self, batch_id: str) -> BatchHistory:
        """
        History of a single batch, oldest first.

        Args:
            batch_id: Batch identifier

        Returns:
            Batch history (empty when the batch is unknown)
        """
        history = _sorted_by_time(self.ledger.find_by_batch(batch_id))
        return BatchHistory(
            batch_id=batch_id,
            history=history,
            chain_of_custody=verify_chain_of_custody(history)
        )


def resolve_provenance(ledger: Ledger, product_id: str) -> ProvenanceReport | None:
    """Resolve a product's provenance against ``ledger``."""
    return ProvenanceResolver(ledger).resolve(product_id)
