from typing import Iterable, List, Optional, Sequence
import logging

from app.core.exceptions import ProductDataError
from app.services.condition_evaluator import (
    DEFAULT_NUMERIC_DECIMALS, dimensions_equal, value_contains, values_equal,
)
from app.services.field_catalog import MatchType
from app.services.product_record import ProductRecord
from app.services.rule_compiler import CompiledCriterion
from app.services.rule_values import DimensionValue, ListValue, RuleValue, product_value

logger = logging.getLogger(__name__)


class TargetMatcher:
    """Sélectionne les produits cibles d'un produit source selon les critères d'une règle"""

    def __init__(self, numeric_decimals: int = DEFAULT_NUMERIC_DECIMALS):
        self.numeric_decimals = numeric_decimals

    def find_targets(self, source: ProductRecord, criteria: Sequence[CompiledCriterion],
                     candidate_pool: Iterable[ProductRecord],
                     exclude_source_id: Optional[str] = None) -> List[ProductRecord]:
        """
        Retourne les candidats satisfaisant tous les critères, dans l'ordre du pool.

        Aucun critère -> aucune cible. Le produit source n'est jamais sa propre cible.
        Lève ProductDataError si une valeur du produit source est inexploitable.
        """
        if not criteria:
            return []
        if any(not criterion.is_valid for criterion in criteria):
            return []

        excluded = {source.id}
        if exclude_source_id:
            excluded.add(exclude_source_id)

        # Valeurs de référence du source, calculées une fois par critère
        references = [self._reference_value(source, criterion) for criterion in criteria]
        if any(reference is None for reference in references):
            return []

        return [
            candidate for candidate in candidate_pool
            if candidate.id not in excluded
            and all(self._matches(candidate, criterion, reference)
                    for criterion, reference in zip(criteria, references))
        ]

    def _reference_value(self, source: ProductRecord, criterion: CompiledCriterion) -> Optional[RuleValue]:
        if criterion.match_type in (MatchType.EXACT, MatchType.CONTAINS) and not criterion.is_relational:
            return criterion.value

        descriptor = criterion.descriptor
        try:
            value = product_value(source.get_field_value(descriptor.path), descriptor)
        except ValueError as e:
            raise ProductDataError(
                source.id, f"Unexpected value for field '{criterion.field}' on source product: {e}"
            )
        if isinstance(value, ListValue) and not value.items:
            value = None
        if value is None:
            logger.debug(f"Source {source.id} has no value for '{criterion.field}', no targets")
        return value

    def _matches(self, candidate: ProductRecord, criterion: CompiledCriterion, reference: RuleValue) -> bool:
        descriptor = criterion.descriptor
        try:
            actual = product_value(candidate.get_field_value(descriptor.path), descriptor)
        except ValueError:
            return False

        decimals = self.numeric_decimals
        if criterion.match_type == MatchType.CONTAINS:
            return value_contains(actual, reference, descriptor, decimals)
        if criterion.match_type == MatchType.SAME_DIMENSIONS:
            return (isinstance(actual, DimensionValue) and isinstance(reference, DimensionValue)
                    and dimensions_equal(reference, actual, decimals))
        # exact et sameProperty
        return values_equal(actual, reference, descriptor, decimals)
