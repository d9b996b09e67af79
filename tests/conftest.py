import os
import sys
from pathlib import Path

import pytest

# Ensure project root is on sys.path to allow `import app`
PROJECT_ROOT = Path(__file__).resolve().parent.parent
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

# Base en mémoire et Shopware non configuré, avant tout import de app.config
os.environ["DATABASE_URL"] = "sqlite:///:memory:"
for _key in ("SHOPWARE_URL", "SHOPWARE_API_KEY", "SHOPWARE_API_SECRET"):
    os.environ.pop(_key, None)

from app.core.database import db_manager  # noqa: E402
from app.external.shopware_client import ShopwareAPIError  # noqa: E402
from app.repositories.association_repository import AssociationRepository  # noqa: E402
from app.repositories.rule_repository import RuleRepository  # noqa: E402
from app.services.field_catalog import FieldCatalog  # noqa: E402
from app.services.product_record import ProductRecord  # noqa: E402


class FakeProductCatalog:
    """Catalogue produits en mémoire, même interface que ShopwareClient"""

    def __init__(self, products=None, custom_fields=None,
                 products_error: bool = False, custom_fields_error: bool = False):
        self.products = list(products or [])
        self.custom_fields = list(custom_fields or [])
        self.products_error = products_error
        self.custom_fields_error = custom_fields_error
        self.product_calls = 0

    def fetch_all_products(self, page_size: int = 500, include_inactive: bool = False):
        self.product_calls += 1
        if self.products_error:
            raise ShopwareAPIError("Shopware is down", 502)
        return list(self.products)

    def fetch_custom_fields(self):
        if self.custom_fields_error:
            raise ShopwareAPIError("custom-field search failed", 500)
        return list(self.custom_fields)


def make_product(product_id: str, name: str = None, **attributes) -> ProductRecord:
    data = {"id": product_id, "name": name or product_id, "productNumber": f"SW-{product_id}"}
    data.update(attributes)
    return ProductRecord.from_dict(data)


@pytest.fixture
def db_session():
    db_manager.create_tables()
    session = db_manager.get_session()
    try:
        yield session
    finally:
        session.close()
        db_manager.drop_tables()


@pytest.fixture
def rule_repo(db_session):
    return RuleRepository(db_session)


@pytest.fixture
def association_repo(db_session):
    return AssociationRepository(db_session)


@pytest.fixture
def field_catalog():
    return FieldCatalog.from_custom_fields([
        {"field": "customFields.regalSystem", "label": "Regal System", "type": "select"},
        {"field": "customFields.loadCapacity", "label": "Load capacity", "type": "float"},
        {"field": "customFields.outdoor", "label": "Outdoor", "type": "bool"},
    ])


@pytest.fixture
def lamp_catalog():
    """3 lampes et 2 ampoules, plus un produit hors catégorie"""
    products = [
        make_product("lamp-1", "Desk Lamp", categoryNames=["Lamps"], available=True),
        make_product("lamp-2", "Floor Lamp", categoryNames=["Lamps"], available=True),
        make_product("lamp-3", "Wall Lamp", categoryNames=["Lamps", "Outdoor"], available=True),
        make_product("bulb-1", "LED Bulb E27", categoryNames=["LightBulbs"], available=True),
        make_product("bulb-2", "LED Bulb E14", categoryNames=["LightBulbs"], available=True),
        make_product("chair-1", "Office Chair", categoryNames=["Chairs"], available=True),
    ]
    return FakeProductCatalog(products)


@pytest.fixture
def make_rule(rule_repo):
    def _make_rule(name, source_conditions=None, target_criteria=None, active=True, description=None):
        return rule_repo.create_rule({
            "name": name,
            "description": description,
            "active": active,
            "source_conditions": source_conditions or [],
            "target_criteria": target_criteria or [],
        })
    return _make_rule


LAMPS_TO_BULBS = {
    "source_conditions": [{"field": "category", "operator": "equals", "value": "Lamps"}],
    "target_criteria": [{"field": "category", "matchType": "exact", "value": "LightBulbs"}],
}
