from .base import BaseModel
from .cross_selling_rule import CrossSellingRule
from .cross_selling_association import CrossSellingAssociation

__all__ = ["BaseModel", "CrossSellingRule", "CrossSellingAssociation"]
