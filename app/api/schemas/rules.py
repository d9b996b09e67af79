from pydantic import BaseModel, ConfigDict, field_validator
from pydantic.alias_generators import to_camel
from datetime import datetime
from typing import List, Dict, Any, Optional

from app.services.field_catalog import ConditionOperator, MatchType


class CamelModel(BaseModel):
    """Champs en snake_case côté Python, camelCase côté JSON"""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class RuleConditionSchema(CamelModel):
    field: str
    operator: ConditionOperator
    value: Any = None


class RuleTargetCriteriaSchema(CamelModel):
    field: str
    match_type: MatchType
    value: Any = None


def _validate_name(value: Optional[str]) -> Optional[str]:
    if value is not None and not value.strip():
        raise ValueError("name must not be empty")
    return value.strip() if value is not None else value


class RuleCreate(CamelModel):
    name: str
    description: Optional[str] = None
    active: bool = True
    source_conditions: List[RuleConditionSchema] = []
    target_criteria: List[RuleTargetCriteriaSchema] = []

    @field_validator("name")
    @classmethod
    def check_name(cls, value):
        return _validate_name(value)


class RuleUpdate(CamelModel):
    """Mise à jour partielle: seuls les champs envoyés sont modifiés"""
    name: Optional[str] = None
    description: Optional[str] = None
    active: Optional[bool] = None
    source_conditions: Optional[List[RuleConditionSchema]] = None
    target_criteria: Optional[List[RuleTargetCriteriaSchema]] = None

    @field_validator("name")
    @classmethod
    def check_name(cls, value):
        return _validate_name(value)


class RuleResponse(CamelModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)

    id: str
    name: str
    description: Optional[str] = None
    active: bool
    source_conditions: List[Dict[str, Any]]
    target_criteria: List[Dict[str, Any]]
    created_at: datetime
    updated_at: datetime


class RuleAssociationCount(CamelModel):
    rule_id: str
    rule_name: str
    active: bool
    associations: int


class RuleStatistics(CamelModel):
    total_rules: int
    active_rules: int
    inactive_rules: int
    total_associations: int
    associations_by_rule: List[RuleAssociationCount]


class BulkExecutionRequest(CamelModel):
    rule_id: Optional[str] = None


class ProductErrorSchema(CamelModel):
    product_id: str
    product_name: str
    error: str


class RuleExecutionReportSchema(CamelModel):
    rule_id: str
    rule_name: str
    sources_selected: int
    products_processed: int
    cross_sellings_created: int
    products_skipped: int
    warnings: List[str]


class BulkExecutionResultSchema(CamelModel):
    total_products: int
    products_processed: int
    cross_sellings_created: int
    products_skipped: int
    errors: List[ProductErrorSchema]
    rules: List[RuleExecutionReportSchema]
    warnings: List[str]
    started_at: datetime
    duration_seconds: float


class FieldInfo(CamelModel):
    field: str
    label: str
    type: str
    description: Optional[str] = None


class AvailableFieldsResponse(CamelModel):
    standard_fields: List[FieldInfo]
    custom_fields: List[FieldInfo]


class AssociationResponse(CamelModel):
    id: str
    source_product_id: str
    target_product_id: str
    rule_id: Optional[str] = None
    created_at: Optional[datetime] = None


class SuggestedProduct(CamelModel):
    id: str
    name: str
    product_number: str


class SuggestionResponse(CamelModel):
    rule_id: str
    rule_name: str
    targets: List[SuggestedProduct]
