from typing import List, Dict, Any, Optional, Sequence
from sqlalchemy.orm import Session
from app.models.cross_selling_rule import CrossSellingRule
from app.repositories.association_repository import AssociationRepository
from app.repositories.rule_repository import RuleRepository
from app.services.bulk_executor import build_candidate_pool
from app.services.condition_evaluator import DEFAULT_NUMERIC_DECIMALS, ConditionEvaluator
from app.services.field_catalog import FieldCatalog
from app.services.product_record import ProductRecord
from app.services.rule_compiler import compile_rule
from app.services.target_matcher import TargetMatcher
from app.core.exceptions import ProductDataError
import logging

logger = logging.getLogger(__name__)

# Champs modifiables via l'API (noms des colonnes)
UPDATABLE_FIELDS = ("name", "description", "active", "source_conditions", "target_criteria")


class RuleEngine:
    """Gestion des règles de cross-selling et suggestions sans écriture"""

    def __init__(self, db: Session, numeric_decimals: int = DEFAULT_NUMERIC_DECIMALS,
                 candidates_require_available: bool = True):
        self.db = db
        self.rule_repo = RuleRepository(db)
        self.association_repo = AssociationRepository(db)
        self.numeric_decimals = numeric_decimals
        self.candidates_require_available = candidates_require_available

    def get_all_rules(self) -> List[CrossSellingRule]:
        return self.rule_repo.get_all_rules()

    def get_active_rules(self) -> List[CrossSellingRule]:
        return self.rule_repo.get_active_rules()

    def get_rule(self, rule_id: str) -> Optional[CrossSellingRule]:
        return self.rule_repo.get_rule(rule_id)

    def create_rule(self, rule_data: Dict[str, Any]) -> CrossSellingRule:
        """Crée une nouvelle règle"""
        rule = self.rule_repo.create_rule(rule_data)
        logger.info(f"Rule created: {rule.name} ({rule.id})")
        return rule

    def update_rule(self, rule_id: str, rule_data: Dict[str, Any]) -> Optional[CrossSellingRule]:
        """Met à jour une règle (seuls les champs fournis sont modifiés)"""
        changes = {key: value for key, value in rule_data.items() if key in UPDATABLE_FIELDS}
        if "name" in changes:
            changes["name"] = (changes["name"] or "").strip()
            if not changes["name"]:
                raise ValueError("Rule name must not be empty")
        return self.rule_repo.update(rule_id, changes)

    def delete_rule(self, rule_id: str, purge_associations: bool = False) -> bool:
        """Supprime une règle; les associations créées sont conservées sauf purge explicite"""
        if purge_associations and self.rule_repo.get_rule(rule_id):
            deleted = self.association_repo.delete_for_rule(rule_id)
            logger.info(f"Purged {deleted} associations of rule {rule_id}")
        return self.rule_repo.delete(rule_id)

    def activate_rule(self, rule_id: str) -> bool:
        """Active une règle"""
        return self.rule_repo.activate_rule(rule_id)

    def deactivate_rule(self, rule_id: str) -> bool:
        """Désactive une règle"""
        return self.rule_repo.deactivate_rule(rule_id)

    def get_rule_statistics(self) -> Dict[str, Any]:
        """Retourne des statistiques sur les règles et les associations qu'elles ont créées"""
        all_rules = self.rule_repo.get_all_rules()
        active_count = sum(1 for rule in all_rules if rule.active)

        return {
            "totalRules": len(all_rules),
            "activeRules": active_count,
            "inactiveRules": len(all_rules) - active_count,
            "totalAssociations": self.association_repo.count(),
            "associationsByRule": [
                {
                    "ruleId": rule.id,
                    "ruleName": rule.name,
                    "active": rule.active,
                    "associations": self.association_repo.count_for_rule(rule.id),
                }
                for rule in all_rules
            ],
        }

    def suggest_cross_selling(self, product_id: str, products: Sequence[ProductRecord],
                              field_catalog: FieldCatalog) -> Optional[List[Dict[str, Any]]]:
        """
        Cibles proposées par chaque règle active pour un produit, sans rien enregistrer.

        Retourne None si le produit n'est pas dans le catalogue.
        """
        source = next((product for product in products if product.id == product_id), None)
        if source is None:
            return None

        evaluator = ConditionEvaluator(self.numeric_decimals)
        matcher = TargetMatcher(self.numeric_decimals)

        suggestions = []
        for rule in self.rule_repo.get_active_rules():
            compiled = compile_rule(rule, field_catalog)
            if not evaluator.matches_all(source, compiled.conditions):
                continue

            pool = build_candidate_pool(products, compiled, self.candidates_require_available)
            try:
                targets = matcher.find_targets(source, compiled.criteria, pool, exclude_source_id=source.id)
            except ProductDataError as e:
                logger.warning(f"Rule '{rule.name}': no suggestions for {product_id}: {e}")
                continue

            if targets:
                suggestions.append({
                    "ruleId": rule.id,
                    "ruleName": rule.name,
                    "targets": [
                        {"id": t.id, "name": t.name, "productNumber": t.product_number}
                        for t in targets
                    ],
                })

        logger.debug(f"{len(suggestions)} rule(s) suggest targets for product {product_id}")
        return suggestions
