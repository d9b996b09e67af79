"""
Catalogue des champs produit utilisables dans les conditions et critères.

Les champs standards sont fixes ; les champs personnalisés proviennent de la
configuration de la boutique et peuvent changer d'une exécution à l'autre :
le catalogue est donc reconstruit à chaque exécution.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional
import logging

logger = logging.getLogger(__name__)


class FieldType(str, Enum):
    STRING = "string"
    NUMBER = "number"
    BOOLEAN = "boolean"
    DIMENSIONS = "dimensions"
    ENUM = "enum"


class FieldSource(str, Enum):
    STANDARD = "standard"
    CUSTOM = "custom"


class ConditionOperator(str, Enum):
    EQUALS = "equals"
    NOT_EQUALS = "notEquals"
    CONTAINS = "contains"
    NOT_CONTAINS = "notContains"
    GREATER_THAN = "greaterThan"
    LESS_THAN = "lessThan"
    GREATER_THAN_OR_EQUAL = "greaterThanOrEqual"
    LESS_THAN_OR_EQUAL = "lessThanOrEqual"
    MATCHES_DIMENSIONS = "matchesDimensions"


class MatchType(str, Enum):
    EXACT = "exact"
    CONTAINS = "contains"
    SAME_DIMENSIONS = "sameDimensions"
    SAME_PROPERTY = "sameProperty"


_SCALAR_TYPES = {FieldType.STRING, FieldType.NUMBER, FieldType.BOOLEAN, FieldType.ENUM}
_TEXT_TYPES = {FieldType.STRING, FieldType.ENUM}
_ALL_TYPES = set(FieldType)

# Légalité (opérateur, type de champ)
OPERATOR_FIELD_TYPES = {
    ConditionOperator.EQUALS: _SCALAR_TYPES,
    ConditionOperator.NOT_EQUALS: _SCALAR_TYPES,
    ConditionOperator.CONTAINS: _TEXT_TYPES,
    ConditionOperator.NOT_CONTAINS: _TEXT_TYPES,
    ConditionOperator.GREATER_THAN: {FieldType.NUMBER},
    ConditionOperator.LESS_THAN: {FieldType.NUMBER},
    ConditionOperator.GREATER_THAN_OR_EQUAL: {FieldType.NUMBER},
    ConditionOperator.LESS_THAN_OR_EQUAL: {FieldType.NUMBER},
    ConditionOperator.MATCHES_DIMENSIONS: {FieldType.DIMENSIONS},
}

MATCH_TYPE_FIELD_TYPES = {
    MatchType.EXACT: _SCALAR_TYPES,
    MatchType.CONTAINS: _TEXT_TYPES,
    MatchType.SAME_DIMENSIONS: {FieldType.DIMENSIONS},
    MatchType.SAME_PROPERTY: _ALL_TYPES,
}

# Types de champs personnalisés Shopware -> types du catalogue
SHOPWARE_FIELD_TYPES = {
    "text": FieldType.STRING,
    "html": FieldType.STRING,
    "textEditor": FieldType.STRING,
    "textarea": FieldType.STRING,
    "colorpicker": FieldType.STRING,
    "date": FieldType.STRING,
    "datetime": FieldType.STRING,
    "int": FieldType.NUMBER,
    "float": FieldType.NUMBER,
    "number": FieldType.NUMBER,
    "bool": FieldType.BOOLEAN,
    "boolean": FieldType.BOOLEAN,
    "checkbox": FieldType.BOOLEAN,
    "switch": FieldType.BOOLEAN,
    "select": FieldType.ENUM,
    "entity": FieldType.ENUM,
}


@dataclass(frozen=True)
class FieldDescriptor:
    field: str
    label: str
    type: FieldType
    source: FieldSource
    path: str
    description: str = ""
    multi_valued: bool = False
    case_sensitive: bool = False

    def allows_operator(self, operator: ConditionOperator) -> bool:
        return self.type in OPERATOR_FIELD_TYPES[operator]

    def allows_match_type(self, match_type: MatchType) -> bool:
        return self.type in MATCH_TYPE_FIELD_TYPES[match_type]


def _standard(field: str, label: str, type: FieldType, description: str, path: str = None,
              multi_valued: bool = False, case_sensitive: bool = False) -> FieldDescriptor:
    return FieldDescriptor(
        field=field,
        label=label,
        type=type,
        source=FieldSource.STANDARD,
        path=path or field,
        description=description,
        multi_valued=multi_valued,
        case_sensitive=case_sensitive,
    )


STANDARD_FIELDS: List[FieldDescriptor] = [
    _standard("name", "Product Name", FieldType.STRING, "The product name"),
    _standard("productNumber", "Product Number", FieldType.STRING, "The unique product number/SKU"),
    _standard("manufacturerNumber", "Manufacturer Number", FieldType.STRING, "Manufacturer's product number"),
    _standard("ean", "EAN", FieldType.STRING, "European Article Number / Barcode"),
    _standard("stock", "Stock", FieldType.NUMBER, "Current stock level"),
    _standard("available", "Available", FieldType.BOOLEAN, "Product availability status"),
    _standard("price", "Price", FieldType.NUMBER, "Product price"),
    _standard("weight", "Weight", FieldType.NUMBER, "Product weight"),
    _standard("dimensions", "Dimensions", FieldType.DIMENSIONS, "Width, height and depth of the product"),
    _standard("dimensions.width", "Width", FieldType.NUMBER, "Product width dimension"),
    _standard("dimensions.height", "Height", FieldType.NUMBER, "Product height dimension"),
    _standard("dimensions.length", "Length", FieldType.NUMBER, "Product length/depth dimension"),
    _standard("categoryNames", "Categories", FieldType.ENUM, "Product categories (array)", multi_valued=True),
    _standard("category", "Category", FieldType.ENUM, "Any of the product categories",
              path="categoryNames", multi_valued=True),
    _standard("manufacturerName", "Manufacturer", FieldType.STRING, "Name of the manufacturer"),
    _standard("manufacturer.name", "Manufacturer Name", FieldType.STRING, "Name of the manufacturer",
              path="manufacturerName"),
]


class FieldCatalog:
    """Registre des champs résolu pour une exécution"""

    def __init__(self, custom_fields: Iterable[FieldDescriptor] = ()):
        self._standard = {descriptor.field: descriptor for descriptor in STANDARD_FIELDS}
        self._custom: Dict[str, FieldDescriptor] = {}
        for descriptor in custom_fields:
            if descriptor.field in self._standard:
                logger.warning(f"Custom field {descriptor.field} shadows a standard field, ignored")
                continue
            self._custom[descriptor.field] = descriptor

    @classmethod
    def from_custom_fields(cls, raw_fields: Iterable[Dict[str, Any]]) -> "FieldCatalog":
        """Construit le catalogue depuis la liste {field, label, type} renvoyée par la boutique"""
        descriptors = []
        for raw in raw_fields:
            key = raw.get("field")
            if not key:
                continue
            if not key.startswith("customFields."):
                key = f"customFields.{key}"
            shop_type = raw.get("type") or "text"
            field_type = SHOPWARE_FIELD_TYPES.get(shop_type, FieldType.STRING)
            descriptors.append(FieldDescriptor(
                field=key,
                label=raw.get("label") or key,
                type=field_type,
                source=FieldSource.CUSTOM,
                path=key,
                multi_valued=field_type == FieldType.ENUM,
                case_sensitive=field_type == FieldType.ENUM,
            ))
        return cls(descriptors)

    def resolve_field(self, key: str) -> Optional[FieldDescriptor]:
        """Retourne le descripteur du champ, ou None s'il est inconnu"""
        if not key:
            return None
        return self._standard.get(key) or self._custom.get(key)

    @property
    def standard_fields(self) -> List[FieldDescriptor]:
        return list(self._standard.values())

    @property
    def custom_fields(self) -> List[FieldDescriptor]:
        return list(self._custom.values())

    def list_fields(self) -> Dict[str, List[Dict[str, Any]]]:
        """Champs disponibles pour l'éditeur de règles"""
        return {
            "standardFields": [
                {"field": d.field, "label": d.label, "description": d.description, "type": d.type.value}
                for d in self.standard_fields
            ],
            "customFields": [
                {"field": d.field, "label": d.label, "type": d.type.value}
                for d in self.custom_fields
            ],
        }

    def __len__(self) -> int:
        return len(self._standard) + len(self._custom)

    def __contains__(self, key: str) -> bool:
        return self.resolve_field(key) is not None
