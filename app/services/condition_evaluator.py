from typing import Iterable, Optional
import logging

from app.services.field_catalog import ConditionOperator, FieldDescriptor, FieldType
from app.services.product_record import ProductRecord
from app.services.rule_compiler import CompiledCondition
from app.services.rule_values import (
    BoolValue, DimensionValue, ListValue, NumberValue, RuleValue, StringValue,
    numbers_equal, product_value,
)

logger = logging.getLogger(__name__)

DEFAULT_NUMERIC_DECIMALS = 2


def _fold(text: str, descriptor: FieldDescriptor) -> str:
    return text if descriptor.case_sensitive else text.casefold()


def scalars_equal(left: RuleValue, right: RuleValue, descriptor: FieldDescriptor, decimals: int) -> bool:
    if isinstance(left, StringValue) and isinstance(right, StringValue):
        return _fold(left.text, descriptor) == _fold(right.text, descriptor)
    if isinstance(left, NumberValue) and isinstance(right, NumberValue):
        return numbers_equal(left.number, right.number, decimals)
    if isinstance(left, BoolValue) and isinstance(right, BoolValue):
        return left.flag == right.flag
    return False


def dimensions_equal(left: DimensionValue, right: DimensionValue, decimals: int) -> bool:
    """Égalité sur chaque axe présent des deux côtés ; au moins un axe commun est requis"""
    left_axes = left.axes()
    right_axes = right.axes()
    shared = set(left_axes) & set(right_axes)
    if not shared:
        return False
    for axis in shared:
        a, b = left_axes[axis], right_axes[axis]
        if a.exact is None or b.exact is None:
            return False
        if not numbers_equal(a.exact, b.exact, decimals):
            return False
    return True


def values_equal(actual: Optional[RuleValue], expected: RuleValue,
                 descriptor: FieldDescriptor, decimals: int) -> bool:
    """Égalité typée entre la valeur d'un produit et une valeur attendue"""
    if actual is None:
        return False
    if isinstance(actual, DimensionValue) or isinstance(expected, DimensionValue):
        if isinstance(actual, DimensionValue) and isinstance(expected, DimensionValue):
            return dimensions_equal(actual, expected, decimals)
        return False

    if isinstance(actual, ListValue) and isinstance(expected, ListValue):
        # Mêmes éléments (avec leurs répétitions), sans tenir compte de l'ordre
        if len(actual.items) != len(expected.items):
            return False
        remaining = list(expected.items)
        for item in actual.items:
            index = next((i for i, e in enumerate(remaining) if scalars_equal(item, e, descriptor, decimals)), None)
            if index is None:
                return False
            del remaining[index]
        return True
    if isinstance(actual, ListValue):
        return any(scalars_equal(item, expected, descriptor, decimals) for item in actual.items)
    if isinstance(expected, ListValue):
        return any(scalars_equal(actual, item, descriptor, decimals) for item in expected.items)
    return scalars_equal(actual, expected, descriptor, decimals)


def value_contains(actual: Optional[RuleValue], needle: RuleValue,
                   descriptor: FieldDescriptor, decimals: int) -> bool:
    """Sous-chaîne pour les textes, appartenance pour les champs énumérés ou multi-valués"""
    if actual is None:
        return False
    needles = needle.items if isinstance(needle, ListValue) else (needle,)

    if isinstance(actual, ListValue):
        return any(scalars_equal(item, n, descriptor, decimals) for item in actual.items for n in needles)

    if descriptor.type == FieldType.ENUM:
        return any(scalars_equal(actual, n, descriptor, decimals) for n in needles)

    if isinstance(actual, StringValue):
        haystack = actual.text.casefold()
        return any(isinstance(n, StringValue) and n.text.casefold() in haystack for n in needles)
    return False


class ConditionEvaluator:
    """Évalue les conditions source d'une règle sur un produit"""

    def __init__(self, numeric_decimals: int = DEFAULT_NUMERIC_DECIMALS):
        self.numeric_decimals = numeric_decimals

    def matches_all(self, product: ProductRecord, conditions: Iterable[CompiledCondition]) -> bool:
        """ET logique ; une liste vide correspond à tous les produits"""
        return all(self.matches(product, condition) for condition in conditions)

    def matches(self, product: ProductRecord, condition: CompiledCondition) -> bool:
        if not condition.is_valid:
            return False

        descriptor = condition.descriptor
        try:
            actual = product_value(product.get_field_value(descriptor.path), descriptor)
        except ValueError as e:
            logger.debug(f"Product {product.id}: unusable value for '{condition.field}': {e}")
            return False

        operator = condition.operator
        expected = condition.value
        decimals = self.numeric_decimals

        if operator == ConditionOperator.EQUALS:
            return values_equal(actual, expected, descriptor, decimals)
        if operator == ConditionOperator.NOT_EQUALS:
            return not values_equal(actual, expected, descriptor, decimals)
        if operator == ConditionOperator.CONTAINS:
            return value_contains(actual, expected, descriptor, decimals)
        if operator == ConditionOperator.NOT_CONTAINS:
            return not value_contains(actual, expected, descriptor, decimals)
        if operator == ConditionOperator.MATCHES_DIMENSIONS:
            return self._matches_dimensions(actual, expected)
        return self._compare_numbers(actual, expected, operator)

    def _compare_numbers(self, actual: Optional[RuleValue], expected: RuleValue,
                         operator: ConditionOperator) -> bool:
        if not isinstance(actual, NumberValue) or not isinstance(expected, NumberValue):
            return False

        equal = numbers_equal(actual.number, expected.number, self.numeric_decimals)
        if operator == ConditionOperator.GREATER_THAN:
            return not equal and actual.number > expected.number
        if operator == ConditionOperator.LESS_THAN:
            return not equal and actual.number < expected.number
        if operator == ConditionOperator.GREATER_THAN_OR_EQUAL:
            return equal or actual.number > expected.number
        if operator == ConditionOperator.LESS_THAN_OR_EQUAL:
            return equal or actual.number < expected.number
        logger.warning(f"Unknown operator: {operator}")
        return False

    def _matches_dimensions(self, actual: Optional[RuleValue], expected: RuleValue) -> bool:
        """Chaque axe contraint et renseigné sur le produit doit être dans les bornes"""
        if not isinstance(actual, DimensionValue) or not isinstance(expected, DimensionValue):
            return False

        product_axes = actual.axes()
        for axis, bound in expected.bounds:
            measured = product_axes.get(axis)
            if measured is None or measured.exact is None:
                continue
            if not bound.accepts(measured.exact, self.numeric_decimals):
                return False
        return True
