"""
Compilation des règles stockées (JSON) en instantanés typés et immuables.

Une condition ou un critère invalide n'interrompt pas la compilation : il est
conservé avec son erreur, ne correspond jamais, et l'erreur est exposée comme
avertissement de la règle.
"""

import json
import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple

from app.core.exceptions import RuleConfigurationError
from app.services.field_catalog import (
    ConditionOperator, FieldCatalog, FieldDescriptor, MatchType,
)
from app.services.rule_values import RuleValue, rule_value

logger = logging.getLogger(__name__)

_ORDERING_OPERATORS = {
    ConditionOperator.GREATER_THAN,
    ConditionOperator.LESS_THAN,
    ConditionOperator.GREATER_THAN_OR_EQUAL,
    ConditionOperator.LESS_THAN_OR_EQUAL,
}


@dataclass(frozen=True)
class CompiledCondition:
    field: str
    operator: Optional[ConditionOperator]
    descriptor: Optional[FieldDescriptor] = None
    value: Optional[RuleValue] = None
    error: Optional[str] = None

    @property
    def is_valid(self) -> bool:
        return self.error is None


@dataclass(frozen=True)
class CompiledCriterion:
    field: str
    match_type: Optional[MatchType]
    descriptor: Optional[FieldDescriptor] = None
    # None : comparaison relative à la valeur du produit source
    value: Optional[RuleValue] = None
    error: Optional[str] = None

    @property
    def is_valid(self) -> bool:
        return self.error is None

    @property
    def is_relational(self) -> bool:
        return self.value is None


@dataclass(frozen=True)
class CompiledRule:
    id: str
    name: str
    active: bool
    conditions: Tuple[CompiledCondition, ...]
    criteria: Tuple[CompiledCriterion, ...]
    warnings: Tuple[str, ...] = ()

    @property
    def criterion_paths(self) -> Tuple[str, ...]:
        return tuple(c.descriptor.path for c in self.criteria if c.is_valid)


def _load_json_list(raw: Any, label: str) -> List[Dict[str, Any]]:
    if raw is None:
        return []
    if isinstance(raw, str):
        try:
            raw = json.loads(raw)
        except ValueError:
            raise RuleConfigurationError(f"{label} is not valid JSON")
    if not isinstance(raw, list):
        raise RuleConfigurationError(f"{label} must be a list")
    for entry in raw:
        if not isinstance(entry, dict):
            raise RuleConfigurationError(f"{label} entries must be objects")
    return raw


def _resolve(catalog: FieldCatalog, field: Any) -> FieldDescriptor:
    if not field or not isinstance(field, str):
        raise RuleConfigurationError("Missing field")
    descriptor = catalog.resolve_field(field)
    if descriptor is None:
        raise RuleConfigurationError(f"Unknown field '{field}'", field=field)
    return descriptor


def compile_condition(raw: Dict[str, Any], catalog: FieldCatalog) -> CompiledCondition:
    field = raw.get("field")
    try:
        descriptor = _resolve(catalog, field)
        try:
            operator = ConditionOperator(raw.get("operator"))
        except ValueError:
            raise RuleConfigurationError(f"Unknown operator '{raw.get('operator')}'", field=field)
        if not descriptor.allows_operator(operator):
            raise RuleConfigurationError(
                f"Operator '{operator.value}' is not valid for {descriptor.type.value} field '{field}'", field=field
            )
        try:
            value = rule_value(raw.get("value"), descriptor.type,
                               allow_list=operator not in _ORDERING_OPERATORS)
        except ValueError as e:
            raise RuleConfigurationError(f"Invalid value for '{field}': {e}", field=field)
        return CompiledCondition(field=field, operator=operator, descriptor=descriptor, value=value)
    except RuleConfigurationError as e:
        return CompiledCondition(field=str(field or ""), operator=None, error=str(e))


def compile_criterion(raw: Dict[str, Any], catalog: FieldCatalog) -> CompiledCriterion:
    field = raw.get("field")
    try:
        descriptor = _resolve(catalog, field)
        try:
            match_type = MatchType(raw.get("matchType"))
        except ValueError:
            raise RuleConfigurationError(f"Unknown match type '{raw.get('matchType')}'", field=field)
        if not descriptor.allows_match_type(match_type):
            raise RuleConfigurationError(
                f"Match type '{match_type.value}' is not valid for {descriptor.type.value} field '{field}'",
                field=field,
            )

        value = None
        literal = raw.get("value")
        if match_type in (MatchType.SAME_DIMENSIONS, MatchType.SAME_PROPERTY):
            if literal is not None:
                logger.debug(f"Literal value ignored for {match_type.value} criterion on '{field}'")
        elif literal is not None and literal != "":
            try:
                value = rule_value(literal, descriptor.type)
            except ValueError as e:
                raise RuleConfigurationError(f"Invalid value for '{field}': {e}", field=field)
        return CompiledCriterion(field=field, match_type=match_type, descriptor=descriptor, value=value)
    except RuleConfigurationError as e:
        return CompiledCriterion(field=str(field or ""), match_type=None, error=str(e))


def compile_rule(rule: Any, catalog: FieldCatalog) -> CompiledRule:
    """Compile une règle (modèle ORM ou objet équivalent) avec le catalogue de l'exécution"""
    warnings: List[str] = []

    try:
        raw_conditions = _load_json_list(rule.source_conditions, "sourceConditions")
        conditions = tuple(compile_condition(raw, catalog) for raw in raw_conditions)
    except RuleConfigurationError as e:
        # Conditions illisibles : la règle ne doit sélectionner aucun produit
        conditions = (CompiledCondition(field="", operator=None, error=str(e)),)

    try:
        raw_criteria = _load_json_list(rule.target_criteria, "targetCriteria")
        criteria = tuple(compile_criterion(raw, catalog) for raw in raw_criteria)
    except RuleConfigurationError as e:
        criteria = (CompiledCriterion(field="", match_type=None, error=str(e)),)

    for index, condition in enumerate(conditions):
        if condition.error:
            warnings.append(f"Source condition #{index + 1}: {condition.error}")
    for index, criterion in enumerate(criteria):
        if criterion.error:
            warnings.append(f"Target criterion #{index + 1}: {criterion.error}")

    if warnings:
        logger.warning(f"Rule '{rule.name}' ({rule.id}) has {len(warnings)} configuration issue(s)")

    return CompiledRule(
        id=rule.id,
        name=rule.name,
        active=bool(rule.active),
        conditions=conditions,
        criteria=criteria,
        warnings=tuple(warnings),
    )
