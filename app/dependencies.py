from functools import lru_cache
from typing import Optional
from sqlalchemy.orm import Session
from fastapi import Depends

from app.config import settings
from app.core.database import get_db
from app.core.events import EventBus, event_bus
from app.external.shopware_client import ShopwareClient
from app.repositories.association_repository import AssociationRepository
from app.repositories.rule_repository import RuleRepository
from app.services.bulk_executor import BulkExecutionOrchestrator
from app.services.rule_engine import RuleEngine


# === CLIENTS EXTERNES ===
@lru_cache()
def get_shopware_client() -> Optional[ShopwareClient]:
    """Client Shopware partagé (le token OAuth est mis en cache), None si non configuré"""
    if not settings.shopware_configured:
        return None
    return ShopwareClient(
        base_url=settings.SHOPWARE_URL,
        api_key=settings.SHOPWARE_API_KEY,
        api_secret=settings.SHOPWARE_API_SECRET,
        timeout=settings.SHOPWARE_TIMEOUT
    )


def get_event_bus() -> EventBus:
    return event_bus


# === REPOSITORIES ===
def get_rule_repository(db: Session = Depends(get_db)) -> RuleRepository:
    """Factory pour le repository des règles"""
    return RuleRepository(db)


def get_association_repository(db: Session = Depends(get_db)) -> AssociationRepository:
    """Factory pour le repository des associations"""
    return AssociationRepository(db)


# === SERVICES ===
def get_rule_engine(db: Session = Depends(get_db)) -> RuleEngine:
    """Factory pour le service de gestion des règles"""
    return RuleEngine(
        db,
        numeric_decimals=settings.NUMERIC_EQUALITY_DECIMALS,
        candidates_require_available=settings.CANDIDATES_REQUIRE_AVAILABLE
    )


def get_bulk_executor(
        rule_repo: RuleRepository = Depends(get_rule_repository),
        association_repo: AssociationRepository = Depends(get_association_repository),
        shopware_client: Optional[ShopwareClient] = Depends(get_shopware_client),
        bus: EventBus = Depends(get_event_bus)
) -> BulkExecutionOrchestrator:
    """Factory pour l'exécution groupée des règles"""
    return BulkExecutionOrchestrator(
        rule_repository=rule_repo,
        association_repository=association_repo,
        product_catalog=shopware_client,
        event_bus=bus,
        numeric_decimals=settings.NUMERIC_EQUALITY_DECIMALS,
        candidates_require_available=settings.CANDIDATES_REQUIRE_AVAILABLE,
        page_size=settings.PRODUCT_PAGE_SIZE,
        include_inactive=settings.INCLUDE_INACTIVE_PRODUCTS
    )
