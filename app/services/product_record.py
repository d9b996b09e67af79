from dataclasses import dataclass, field
from typing import Any, Dict, Optional
import logging
import math

logger = logging.getLogger(__name__)

# Shopware expose la profondeur sous le nom "length"
AXIS_ALIASES = {"width": "width", "height": "height", "depth": "depth", "length": "depth"}
AXES = ("width", "height", "depth")


def _axis_value(key: str, value: Any) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float, str)):
        raise ValueError(f"Unexpected {key} value: {value!r}")
    try:
        number = float(value)
    except (ValueError, OverflowError):
        raise ValueError(f"Unexpected {key} value: {value!r}")
    if not math.isfinite(number):
        raise ValueError(f"Unexpected {key} value: {value!r}")
    return number


@dataclass(frozen=True)
class Dimensions:
    width: Optional[float] = None
    height: Optional[float] = None
    depth: Optional[float] = None
    unit: Optional[str] = None

    @classmethod
    def from_raw(cls, raw: Any) -> Optional["Dimensions"]:
        """Construit des dimensions depuis un dict {width, height, depth|length}"""
        if raw is None:
            return None
        if isinstance(raw, Dimensions):
            return raw
        if not isinstance(raw, dict):
            raise ValueError(f"Unexpected dimensions value: {raw!r}")

        values = {}
        for key, axis in AXIS_ALIASES.items():
            value = raw.get(key)
            if value is None or axis in values:
                continue
            values[axis] = _axis_value(key, value)

        if not values:
            return None
        return cls(unit=raw.get("unit"), **values)

    def axis(self, name: str) -> Optional[float]:
        return getattr(self, AXIS_ALIASES.get(name, name), None)

    def present_axes(self) -> Dict[str, float]:
        return {axis: getattr(self, axis) for axis in AXES if getattr(self, axis) is not None}


@dataclass
class ProductRecord:
    """Produit du catalogue externe, en lecture seule pour le moteur"""
    id: str
    name: str
    product_number: str = ""
    dimensions: Optional[Dimensions] = None
    attributes: Dict[str, Any] = field(default_factory=dict)

    @property
    def display_name(self) -> str:
        return self.name or self.product_number or self.id

    def get_field_value(self, path: str) -> Any:
        """Lit une valeur en notation pointée (ex: "dimensions.height", "customFields.regalSystem")"""
        if not path:
            return None

        parts = path.split(".")
        head = parts[0]

        if head == "dimensions":
            if self.dimensions is None:
                return None
            if len(parts) == 1:
                return self.dimensions
            return self.dimensions.axis(parts[1])
        if head == "id" and len(parts) == 1:
            return self.id
        if head == "name" and len(parts) == 1:
            return self.name
        if head == "productNumber" and len(parts) == 1:
            return self.product_number

        value: Any = self.attributes
        for part in parts:
            if not isinstance(value, dict):
                return None
            value = value.get(part)
            if value is None:
                return None
        return value

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ProductRecord":
        """Construit un produit depuis un dict au format de l'API (camelCase) ; lève ValueError sans id"""
        if data.get("id") in (None, ""):
            raise ValueError(f"Product without id: {data.get('productNumber') or data.get('name')!r}")
        attributes = {k: v for k, v in data.items()
                      if k not in ("id", "name", "productNumber", "dimensions")}
        try:
            dimensions = Dimensions.from_raw(data.get("dimensions"))
        except ValueError as e:
            logger.warning(f"Product {data['id']}: ignoring dimensions ({e})")
            dimensions = None

        return cls(
            id=str(data["id"]),
            name=data.get("name") or "",
            product_number=data.get("productNumber") or "",
            dimensions=dimensions,
            attributes=attributes,
        )
