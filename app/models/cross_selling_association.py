from sqlalchemy import Column, String, ForeignKey, UniqueConstraint
from .base import BaseModel


class CrossSellingAssociation(BaseModel):
    __tablename__ = "cross_selling_associations"
    __table_args__ = (
        # Paire ordonnée : (A, B) n'implique pas (B, A)
        UniqueConstraint("source_product_id", "target_product_id", name="uq_cross_selling_pair"),
    )

    source_product_id = Column(String(64), nullable=False, index=True)
    target_product_id = Column(String(64), nullable=False, index=True)
    rule_id = Column(String(36), ForeignKey("cross_selling_rules.id", ondelete="SET NULL"), nullable=True, index=True)

    def __repr__(self):
        return f"<CrossSellingAssociation({self.source_product_id} -> {self.target_product_id}, rule={self.rule_id})>"

    def to_dict(self):
        return {
            "id": self.id,
            "sourceProductId": self.source_product_id,
            "targetProductId": self.target_product_id,
            "ruleId": self.rule_id,
            "createdAt": self.created_at.isoformat() if self.created_at else None
        }
