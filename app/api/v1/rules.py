from fastapi import APIRouter, Depends, HTTPException
from typing import List, Optional, Dict, Any

from app.api.schemas.rules import (
    AvailableFieldsResponse, BulkExecutionRequest, BulkExecutionResultSchema,
    RuleCreate, RuleResponse, RuleStatistics, RuleUpdate,
)
from app.core.exceptions import (
    CatalogUnavailableError, RuleNotFoundError, RuleRepositoryUnavailableError,
)
from app.dependencies import get_bulk_executor, get_rule_engine
from app.services.bulk_executor import BulkExecutionOrchestrator
from app.services.rule_engine import RuleEngine
import logging

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/cross-selling-rules", tags=["cross-selling-rules"])


def _dump_rule_lists(rule_data) -> Dict[str, Any]:
    """Convertit le schéma en colonnes, conditions et critères stockés en JSON camelCase"""
    data = rule_data.model_dump(exclude_unset=True)
    for key in ("source_conditions", "target_criteria"):
        items = getattr(rule_data, key)
        if key in data and items is not None:
            data[key] = [item.model_dump(by_alias=True, mode="json") for item in items]
    return data


@router.get("/available-fields", response_model=AvailableFieldsResponse)
def get_available_fields(executor: BulkExecutionOrchestrator = Depends(get_bulk_executor)):
    """Champs utilisables dans les conditions et critères (standards et personnalisés)"""
    field_catalog = executor.resolve_field_catalog([])
    return field_catalog.list_fields()


@router.get("/statistics", response_model=RuleStatistics)
def get_statistics(rule_engine: RuleEngine = Depends(get_rule_engine)):
    """Statistiques des règles"""
    return rule_engine.get_rule_statistics()


@router.post("/execute-bulk", response_model=BulkExecutionResultSchema)
def execute_bulk(
        request: Optional[BulkExecutionRequest] = None,
        executor: BulkExecutionOrchestrator = Depends(get_bulk_executor)
):
    """Exécute une règle (ruleId) ou toutes les règles actives"""
    rule_id = request.rule_id if request else None
    try:
        result = executor.execute_bulk(rule_id)
    except RuleNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except (CatalogUnavailableError, RuleRepositoryUnavailableError) as e:
        raise HTTPException(status_code=503, detail=str(e))
    return result.to_dict()


@router.get("", response_model=List[RuleResponse])
def get_rules(rule_engine: RuleEngine = Depends(get_rule_engine)):
    """Obtenir toutes les règles"""
    return rule_engine.get_all_rules()


@router.post("", response_model=RuleResponse, status_code=201)
def create_rule(rule_data: RuleCreate, rule_engine: RuleEngine = Depends(get_rule_engine)):
    """Créer une nouvelle règle"""
    try:
        return rule_engine.create_rule(_dump_rule_lists(rule_data))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.get("/{rule_id}", response_model=RuleResponse)
def get_rule(rule_id: str, rule_engine: RuleEngine = Depends(get_rule_engine)):
    rule = rule_engine.get_rule(rule_id)
    if not rule:
        raise HTTPException(status_code=404, detail="Rule not found")
    return rule


@router.put("/{rule_id}", response_model=RuleResponse)
def update_rule(rule_id: str, rule_data: RuleUpdate, rule_engine: RuleEngine = Depends(get_rule_engine)):
    """Mettre à jour une règle"""
    try:
        updated_rule = rule_engine.update_rule(rule_id, _dump_rule_lists(rule_data))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    if not updated_rule:
        raise HTTPException(status_code=404, detail="Rule not found")
    return updated_rule


@router.delete("/{rule_id}")
def delete_rule(rule_id: str, purge_associations: bool = False,
                rule_engine: RuleEngine = Depends(get_rule_engine)):
    """Supprimer une règle (purge_associations=true supprime aussi ses associations)"""
    success = rule_engine.delete_rule(rule_id, purge_associations=purge_associations)
    if not success:
        raise HTTPException(status_code=404, detail="Rule not found")
    return {"message": "Rule deleted"}


@router.post("/{rule_id}/activate", response_model=RuleResponse)
def activate_rule(rule_id: str, rule_engine: RuleEngine = Depends(get_rule_engine)):
    if not rule_engine.activate_rule(rule_id):
        raise HTTPException(status_code=404, detail="Rule not found")
    return rule_engine.get_rule(rule_id)


@router.post("/{rule_id}/deactivate", response_model=RuleResponse)
def deactivate_rule(rule_id: str, rule_engine: RuleEngine = Depends(get_rule_engine)):
    if not rule_engine.deactivate_rule(rule_id):
        raise HTTPException(status_code=404, detail="Rule not found")
    return rule_engine.get_rule(rule_id)
