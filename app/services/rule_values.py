"""
Valeurs typées manipulées par le moteur de règles.

Les valeurs des règles sont stockées en JSON non typé ; elles sont converties
une seule fois à la compilation de la règle, selon le type du champ, pour que
l'évaluation n'ait jamais à deviner un type.
"""

from dataclasses import dataclass
import math
from typing import Any, Optional, Tuple, Union

from app.services.field_catalog import FieldDescriptor, FieldType
from app.services.product_record import AXIS_ALIASES, Dimensions

TRUE_STRINGS = {"true", "1", "yes", "on"}
FALSE_STRINGS = {"false", "0", "no", "off"}


@dataclass(frozen=True)
class StringValue:
    text: str


@dataclass(frozen=True)
class NumberValue:
    number: float


@dataclass(frozen=True)
class BoolValue:
    flag: bool


@dataclass(frozen=True)
class DimensionBound:
    exact: Optional[float] = None
    minimum: Optional[float] = None
    maximum: Optional[float] = None

    def accepts(self, value: float, decimals: int) -> bool:
        if self.exact is not None:
            return numbers_equal(value, self.exact, decimals)
        if self.minimum is not None and value < self.minimum and not numbers_equal(value, self.minimum, decimals):
            return False
        if self.maximum is not None and value > self.maximum and not numbers_equal(value, self.maximum, decimals):
            return False
        return True


@dataclass(frozen=True)
class DimensionValue:
    # ((axe, borne), ...) ; un axe absent n'est pas contraint
    bounds: Tuple[Tuple[str, DimensionBound], ...]

    def axes(self) -> dict:
        return dict(self.bounds)


@dataclass(frozen=True)
class ListValue:
    items: Tuple["ScalarValue", ...]


ScalarValue = Union[StringValue, NumberValue, BoolValue]
RuleValue = Union[StringValue, NumberValue, BoolValue, DimensionValue, ListValue]


def numbers_equal(left: float, right: float, decimals: int) -> bool:
    """Égalité sur entiers mis à l'échelle (ex: centimes pour decimals=2)"""
    scale = 10 ** decimals
    try:
        return round(left * scale) == round(right * scale)
    except OverflowError:
        # Trop grand pour être mis à l'échelle
        return left == right


def _to_number(raw: Any) -> float:
    if isinstance(raw, bool):
        raise ValueError(f"Expected a number, got boolean {raw!r}")
    number = None
    try:
        if isinstance(raw, (int, float)):
            number = float(raw)
        elif isinstance(raw, str) and raw.strip():
            number = float(raw.strip().replace(",", "."))
    except (ValueError, OverflowError):
        pass
    if number is None:
        raise ValueError(f"Expected a number, got {raw!r}")
    if not math.isfinite(number):
        raise ValueError(f"Expected a finite number, got {raw!r}")
    return number


def _to_bool(raw: Any) -> bool:
    if isinstance(raw, bool):
        return raw
    if isinstance(raw, (int, float)) and raw in (0, 1):
        return bool(raw)
    if isinstance(raw, str):
        lowered = raw.strip().lower()
        if lowered in TRUE_STRINGS:
            return True
        if lowered in FALSE_STRINGS:
            return False
    raise ValueError(f"Expected a boolean, got {raw!r}")


def _to_scalar(raw: Any, field_type: FieldType) -> ScalarValue:
    if field_type == FieldType.NUMBER:
        return NumberValue(_to_number(raw))
    if field_type == FieldType.BOOLEAN:
        return BoolValue(_to_bool(raw))
    if field_type in (FieldType.STRING, FieldType.ENUM):
        if isinstance(raw, str):
            return StringValue(raw)
        if isinstance(raw, bool):
            return StringValue("true" if raw else "false")
        if isinstance(raw, (int, float)):
            return StringValue(str(raw))
        raise ValueError(f"Expected a text value, got {raw!r}")
    raise ValueError(f"No scalar representation for {field_type.value} fields")


def _dimension_bound(axis: str, raw: Any) -> DimensionBound:
    if isinstance(raw, dict):
        minimum = raw.get("min")
        maximum = raw.get("max")
        if minimum is None and maximum is None:
            raise ValueError(f"Range for {axis} needs min and/or max")
        bound = DimensionBound(
            minimum=_to_number(minimum) if minimum is not None else None,
            maximum=_to_number(maximum) if maximum is not None else None,
        )
        if bound.minimum is not None and bound.maximum is not None and bound.minimum > bound.maximum:
            raise ValueError(f"Range for {axis} has min > max")
        return bound
    return DimensionBound(exact=_to_number(raw))


def to_dimension_bounds(raw: Any) -> DimensionValue:
    """Convertit {width, height, depth|length} (valeurs ou {min, max}) en bornes par axe"""
    if not isinstance(raw, dict):
        raise ValueError(f"Expected a dimensions object, got {raw!r}")

    bounds = {}
    for key, value in raw.items():
        if key == "unit" or value is None:
            continue
        axis = AXIS_ALIASES.get(key)
        if axis is None:
            raise ValueError(f"Unknown dimension axis: {key}")
        if axis in bounds:
            raise ValueError(f"Dimension axis given twice: {axis}")
        bounds[axis] = _dimension_bound(key, value)

    if not bounds:
        raise ValueError("Dimensions value constrains no axis")
    return DimensionValue(tuple(sorted(bounds.items())))


def rule_value(raw: Any, field_type: FieldType, allow_list: bool = True) -> RuleValue:
    """Convertit une valeur littérale de règle ; lève ValueError si elle est incompatible"""
    if raw is None:
        raise ValueError("A value is required")
    if field_type == FieldType.DIMENSIONS:
        return to_dimension_bounds(raw)
    if isinstance(raw, (list, tuple)):
        if not allow_list:
            raise ValueError("A list is not allowed here")
        if not raw:
            raise ValueError("An empty list never matches")
        return ListValue(tuple(_to_scalar(item, field_type) for item in raw))
    return _to_scalar(raw, field_type)


def product_value(raw: Any, descriptor: FieldDescriptor) -> Optional[RuleValue]:
    """Convertit la valeur d'un produit selon le type du champ ; None si absente"""
    if raw is None:
        return None
    if descriptor.type == FieldType.DIMENSIONS:
        dimensions = Dimensions.from_raw(raw)
        if dimensions is None:
            return None
        return DimensionValue(tuple(
            (axis, DimensionBound(exact=value)) for axis, value in sorted(dimensions.present_axes().items())
        ))
    if isinstance(raw, (list, tuple)):
        return ListValue(tuple(_to_scalar(item, descriptor.type) for item in raw if item is not None))
    return _to_scalar(raw, descriptor.type)
