# app/repositories/association_repository.py
from typing import List, Optional
from sqlalchemy.orm import Session
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from app.core.exceptions import AssociationAlreadyExistsError
from app.models.cross_selling_association import CrossSellingAssociation
from app.repositories.base_repository import BaseRepository
import logging

logger = logging.getLogger(__name__)


class AssociationRepository(BaseRepository[CrossSellingAssociation]):
    """Stockage des associations produit -> produit créées par les règles"""

    def __init__(self, db: Session):
        super().__init__(CrossSellingAssociation, db)

    def exists_association(self, source_product_id: str, target_product_id: str) -> bool:
        """Vérifie si la paire ordonnée (source, cible) existe déjà, quelle que soit la règle"""
        try:
            return (self.db.query(CrossSellingAssociation.id)
                    .filter(CrossSellingAssociation.source_product_id == source_product_id,
                            CrossSellingAssociation.target_product_id == target_product_id)
                    .first()) is not None
        except SQLAlchemyError as e:
            self.db.rollback()
            raise e

    def create_association(self, source_product_id: str, target_product_id: str,
                           rule_id: Optional[str] = None) -> CrossSellingAssociation:
        """Crée l'association; la contrainte d'unicité protège contre les écritures concurrentes"""
        association = CrossSellingAssociation(
            source_product_id=source_product_id,
            target_product_id=target_product_id,
            rule_id=rule_id,
        )
        try:
            self.db.add(association)
            self.db.commit()
            self.db.refresh(association)
            return association
        except IntegrityError:
            self.db.rollback()
            logger.debug(f"Association {source_product_id} -> {target_product_id} created concurrently")
            raise AssociationAlreadyExistsError(source_product_id, target_product_id)
        except SQLAlchemyError as e:
            self.db.rollback()
            raise e

    def get_for_source(self, source_product_id: str) -> List[CrossSellingAssociation]:
        """Associations sortantes d'un produit source"""
        return self.get_many_by_field("source_product_id", source_product_id, limit=1000)

    def count_for_rule(self, rule_id: str) -> int:
        try:
            return (self.db.query(CrossSellingAssociation)
                    .filter(CrossSellingAssociation.rule_id == rule_id)
                    .count())
        except SQLAlchemyError as e:
            self.db.rollback()
            raise e

    def delete_for_rule(self, rule_id: str) -> int:
        """Supprime toutes les associations produites par une règle"""
        try:
            deleted = (self.db.query(CrossSellingAssociation)
                       .filter(CrossSellingAssociation.rule_id == rule_id)
                       .delete(synchronize_session=False))
            self.db.commit()
            return deleted
        except SQLAlchemyError as e:
            self.db.rollback()
            raise e
