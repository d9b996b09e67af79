from typing import Any, Dict, List, Optional
from sqlalchemy.orm import Session
from sqlalchemy.exc import SQLAlchemyError
from app.models.cross_selling_rule import CrossSellingRule
from app.repositories.base_repository import BaseRepository


class RuleRepository(BaseRepository[CrossSellingRule]):
    """Repository pour la gestion des règles de cross-selling"""

    def __init__(self, db: Session):
        super().__init__(CrossSellingRule, db)

    def get_rule(self, rule_id: str) -> Optional[CrossSellingRule]:
        return self.get_by_id(rule_id)

    def get_active_rules(self) -> List[CrossSellingRule]:
        """Récupère toutes les règles actives, dans l'ordre de création"""
        try:
            return (self.db.query(CrossSellingRule)
                    .filter(CrossSellingRule.active.is_(True))
                    .order_by(CrossSellingRule.created_at, CrossSellingRule.id)
                    .all())
        except SQLAlchemyError as e:
            self.db.rollback()
            raise e

    def get_all_rules(self) -> List[CrossSellingRule]:
        try:
            return (self.db.query(CrossSellingRule)
                    .order_by(CrossSellingRule.created_at, CrossSellingRule.id)
                    .all())
        except SQLAlchemyError as e:
            self.db.rollback()
            raise e

    def activate_rule(self, rule_id: str) -> bool:
        """Active une règle"""
        return bool(self.update(rule_id, {"active": True}))

    def deactivate_rule(self, rule_id: str) -> bool:
        """Désactive une règle"""
        return bool(self.update(rule_id, {"active": False}))

    def create_rule(self, rule_data: Dict[str, Any]) -> CrossSellingRule:
        """Crée une règle; le nom est obligatoire"""
        name = (rule_data.get("name") or "").strip()
        if not name:
            raise ValueError("Rule name must not be empty")
        return self.create({**rule_data, "name": name})
