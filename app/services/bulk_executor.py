"""
Exécution groupée des règles de cross-selling.

Une exécution charge les règles (une seule ou toutes les actives), résout le
catalogue de champs et le catalogue produits une seule fois, puis pour chaque
règle sélectionne les produits source, calcule leurs cibles et enregistre les
associations manquantes. Les erreurs d'un produit sont consignées dans le
rapport sans interrompre l'exécution.
"""

import logging
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Sequence

from sqlalchemy.exc import SQLAlchemyError

from app.core.events import BULK_EXECUTION_COMPLETED, Event, EventBus
from app.core.exceptions import (
    AssociationAlreadyExistsError, CatalogUnavailableError,
    RuleNotFoundError, RuleRepositoryUnavailableError,
)
from app.external.shopware_client import ShopwareAPIError
from app.repositories.association_repository import AssociationRepository
from app.repositories.rule_repository import RuleRepository
from app.services.condition_evaluator import DEFAULT_NUMERIC_DECIMALS, ConditionEvaluator
from app.services.field_catalog import FieldCatalog
from app.services.product_record import ProductRecord
from app.services.rule_compiler import CompiledRule, compile_rule
from app.services.target_matcher import TargetMatcher

logger = logging.getLogger(__name__)


def build_candidate_pool(products: Sequence[ProductRecord], rule: CompiledRule,
                         require_available: bool = True) -> List[ProductRecord]:
    """Produits pouvant devenir cibles: disponibles et renseignés pour chaque champ des critères"""
    paths = rule.criterion_paths
    pool = []
    for product in products:
        if require_available and product.attributes.get("available", True) is False:
            continue
        if any(product.get_field_value(path) is None for path in paths):
            continue
        pool.append(product)
    return pool


@dataclass
class ProductError:
    product_id: str
    product_name: str
    error: str

    def to_dict(self) -> Dict[str, str]:
        return {"productId": self.product_id, "productName": self.product_name, "error": self.error}


@dataclass
class RuleExecutionReport:
    rule_id: str
    rule_name: str
    sources_selected: int = 0
    products_processed: int = 0
    cross_sellings_created: int = 0
    products_skipped: int = 0
    warnings: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "ruleId": self.rule_id,
            "ruleName": self.rule_name,
            "sourcesSelected": self.sources_selected,
            "productsProcessed": self.products_processed,
            "crossSellingsCreated": self.cross_sellings_created,
            "productsSkipped": self.products_skipped,
            "warnings": list(self.warnings),
        }


@dataclass
class BulkExecutionResult:
    """Rapport d'une exécution groupée, jamais persisté"""
    started_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    total_products: int = 0
    products_processed: int = 0
    cross_sellings_created: int = 0
    products_skipped: int = 0
    errors: List[ProductError] = field(default_factory=list)
    rules: List[RuleExecutionReport] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)
    duration_seconds: float = 0.0

    def add_rule_report(self, report: RuleExecutionReport):
        self.rules.append(report)
        self.total_products += report.sources_selected
        self.products_processed += report.products_processed
        self.cross_sellings_created += report.cross_sellings_created
        self.products_skipped += report.products_skipped

    def to_dict(self) -> Dict[str, Any]:
        return {
            "totalProducts": self.total_products,
            "productsProcessed": self.products_processed,
            "crossSellingsCreated": self.cross_sellings_created,
            "productsSkipped": self.products_skipped,
            "errors": [error.to_dict() for error in self.errors],
            "rules": [report.to_dict() for report in self.rules],
            "warnings": list(self.warnings),
            "startedAt": self.started_at.isoformat(),
            "durationSeconds": self.duration_seconds,
        }


class BulkExecutionOrchestrator:
    """Applique les règles au catalogue et crée les associations manquantes"""

    def __init__(self, rule_repository: RuleRepository,
                 association_repository: AssociationRepository,
                 product_catalog: Any,
                 event_bus: Optional[EventBus] = None,
                 numeric_decimals: int = DEFAULT_NUMERIC_DECIMALS,
                 candidates_require_available: bool = True,
                 page_size: int = 500,
                 include_inactive: bool = False):
        self.rule_repository = rule_repository
        self.association_repository = association_repository
        # Fournit fetch_all_products() et fetch_custom_fields() (ShopwareClient)
        self.product_catalog = product_catalog
        self.event_bus = event_bus
        self.candidates_require_available = candidates_require_available
        self.page_size = page_size
        self.include_inactive = include_inactive

        self.evaluator = ConditionEvaluator(numeric_decimals)
        self.matcher = TargetMatcher(numeric_decimals)

    def execute_bulk(self, rule_id: Optional[str] = None) -> BulkExecutionResult:
        """
        Exécute une règle (active ou non) ou, sans rule_id, toutes les règles actives.

        Lève RuleNotFoundError, RuleRepositoryUnavailableError ou
        CatalogUnavailableError si l'exécution ne peut pas démarrer.
        """
        result = BulkExecutionResult()
        start = time.monotonic()

        rules = self._load_rules(rule_id)
        logger.info(f"🚀 Starting bulk execution for {len(rules)} rule(s)")

        if not rules:
            result.warnings.append("No active rules found")
            logger.warning("⚠️ No active rules found, nothing to execute")
        else:
            field_catalog = self.resolve_field_catalog(result.warnings)
            products = self.load_products()

            for rule in rules:
                compiled = compile_rule(rule, field_catalog)
                result.add_rule_report(self._execute_rule(compiled, products, result))

        result.duration_seconds = round(time.monotonic() - start, 3)
        self._log_summary(result)
        self._publish_completion(result, rule_id)
        return result

    def _load_rules(self, rule_id: Optional[str]) -> list:
        try:
            if rule_id is None:
                return self.rule_repository.get_active_rules()
            rule = self.rule_repository.get_rule(rule_id)
        except SQLAlchemyError as e:
            logger.error(f"❌ Rule repository unavailable: {e}")
            raise RuleRepositoryUnavailableError(f"Rule repository unavailable: {e}")

        if rule is None:
            raise RuleNotFoundError(rule_id)
        return [rule]

    def resolve_field_catalog(self, warnings: List[str]) -> FieldCatalog:
        """Catalogue de champs de l'exécution; sans champs personnalisés si la boutique ne répond pas"""
        if self.product_catalog is None:
            return FieldCatalog()
        try:
            return FieldCatalog.from_custom_fields(self.product_catalog.fetch_custom_fields())
        except ShopwareAPIError as e:
            logger.warning(f"⚠️ Could not fetch custom fields, using standard fields only: {e}")
            warnings.append(f"Custom fields unavailable, using standard fields only: {e}")
            return FieldCatalog()

    def load_products(self) -> List[ProductRecord]:
        if self.product_catalog is None:
            raise CatalogUnavailableError("Product catalog is not configured")
        try:
            return self.product_catalog.fetch_all_products(
                page_size=self.page_size, include_inactive=self.include_inactive
            )
        except ShopwareAPIError as e:
            logger.error(f"❌ Product catalog unavailable: {e}")
            raise CatalogUnavailableError(f"Product catalog unavailable: {e}")

    def candidate_pool(self, products: Sequence[ProductRecord], rule: CompiledRule) -> List[ProductRecord]:
        return build_candidate_pool(products, rule, self.candidates_require_available)

    def _execute_rule(self, rule: CompiledRule, products: Sequence[ProductRecord],
                      result: BulkExecutionResult) -> RuleExecutionReport:
        report = RuleExecutionReport(rule_id=rule.id, rule_name=rule.name, warnings=list(rule.warnings))

        sources = self._select_sources(rule, products, result)
        report.sources_selected = len(sources)
        logger.info(f"📋 Rule '{rule.name}': {len(sources)} source product(s)")
        if not sources:
            return report

        pool = self.candidate_pool(products, rule)
        for source in sources:
            try:
                self._process_source(rule, source, pool, report)
                report.products_processed += 1
            except Exception as e:
                # Les associations déjà écrites pour ce produit restent comptées
                error_msg = f"Rule '{rule.name}': {e}"
                result.errors.append(ProductError(source.id, source.display_name, error_msg))
                logger.error(f"❌ Error processing {source.display_name} ({source.id}): {error_msg}")

        return report

    def _select_sources(self, rule: CompiledRule, products: Sequence[ProductRecord],
                        result: BulkExecutionResult) -> List[ProductRecord]:
        """Produits qui satisfont toutes les conditions; un produit en erreur est consigné puis ignoré"""
        sources = []
        for product in products:
            try:
                if self.evaluator.matches_all(product, rule.conditions):
                    sources.append(product)
            except Exception as e:
                error_msg = f"Rule '{rule.name}': could not evaluate conditions: {e}"
                result.errors.append(ProductError(product.id, product.display_name, error_msg))
                logger.error(f"❌ Error evaluating {product.display_name} ({product.id}): {error_msg}")
        return sources

    def _process_source(self, rule: CompiledRule, source: ProductRecord,
                        pool: Sequence[ProductRecord], report: RuleExecutionReport):
        targets = self.matcher.find_targets(source, rule.criteria, pool, exclude_source_id=source.id)
        for target in targets:
            if self.association_repository.exists_association(source.id, target.id):
                report.products_skipped += 1
                continue
            try:
                self.association_repository.create_association(source.id, target.id, rule.id)
            except AssociationAlreadyExistsError:
                report.products_skipped += 1
                continue
            report.cross_sellings_created += 1

    def _log_summary(self, result: BulkExecutionResult):
        logger.info("✅ Bulk execution completed:")
        logger.info(f"   📊 Source products: {result.total_products}")
        logger.info(f"   ✅ Processed: {result.products_processed}")
        logger.info(f"   🔗 Cross-sellings created: {result.cross_sellings_created}")
        logger.info(f"   ⏭️ Skipped: {result.products_skipped}")
        logger.info(f"   ⚠️ Errors: {len(result.errors)}")
        logger.info(f"   ⏱️ Duration: {result.duration_seconds}s")

    def _publish_completion(self, result: BulkExecutionResult, rule_id: Optional[str]):
        if self.event_bus is None:
            return
        payload = result.to_dict()
        payload["requestedRuleId"] = rule_id
        self.event_bus.publish(Event(BULK_EXECUTION_COMPLETED, payload))
