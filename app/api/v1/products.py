from fastapi import APIRouter, Depends, HTTPException
from typing import List

from app.api.schemas.rules import AssociationResponse, SuggestionResponse
from app.core.exceptions import CatalogUnavailableError
from app.dependencies import get_association_repository, get_bulk_executor, get_rule_engine
from app.repositories.association_repository import AssociationRepository
from app.services.bulk_executor import BulkExecutionOrchestrator
from app.services.rule_engine import RuleEngine

router = APIRouter(prefix="/products", tags=["products"])


@router.get("/{product_id}/cross-selling", response_model=List[AssociationResponse])
def get_cross_selling(product_id: str,
                      association_repo: AssociationRepository = Depends(get_association_repository)):
    """Associations enregistrées pour un produit source"""
    return [association.to_dict() for association in association_repo.get_for_source(product_id)]


@router.get("/{product_id}/cross-selling-suggestions", response_model=List[SuggestionResponse])
def get_cross_selling_suggestions(
        product_id: str,
        executor: BulkExecutionOrchestrator = Depends(get_bulk_executor),
        rule_engine: RuleEngine = Depends(get_rule_engine)
):
    """Cibles proposées par les règles actives, sans créer d'association"""
    try:
        field_catalog = executor.resolve_field_catalog([])
        products = executor.load_products()
    except CatalogUnavailableError as e:
        raise HTTPException(status_code=503, detail=str(e))

    suggestions = rule_engine.suggest_cross_selling(product_id, products, field_catalog)
    if suggestions is None:
        raise HTTPException(status_code=404, detail="Product not found")
    return suggestions
