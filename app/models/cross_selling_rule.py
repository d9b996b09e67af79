from sqlalchemy import Column, String, Boolean, Text, JSON
from .base import BaseModel


class CrossSellingRule(BaseModel):
    __tablename__ = "cross_selling_rules"

    # Identification
    name = Column(String(255), nullable=False)
    description = Column(Text)

    # Configuration
    source_conditions = Column(JSON, nullable=False, default=list)  # [{field, operator, value}]
    target_criteria = Column(JSON, nullable=False, default=list)  # [{field, matchType, value?}]

    # Statut
    active = Column(Boolean, default=True, nullable=False, index=True)

    def __repr__(self):
        return f"<CrossSellingRule(name='{self.name}', active={self.active})>"

    def to_dict(self):
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "active": self.active,
            "sourceConditions": self.source_conditions or [],
            "targetCriteria": self.target_criteria or [],
            "createdAt": self.created_at.isoformat() if self.created_at else None,
            "updatedAt": self.updated_at.isoformat() if self.updated_at else None
        }
