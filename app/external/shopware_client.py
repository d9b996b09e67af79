import requests
import logging
import time
from typing import Any, Dict, List, Optional

from app.services.product_record import ProductRecord

logger = logging.getLogger(__name__)

# Marge de sécurité avant l'expiration du token (secondes)
TOKEN_EXPIRY_BUFFER = 60
DEFAULT_TOKEN_LIFETIME = 600

PRODUCT_INCLUDES = {
    "product": [
        "id", "productNumber", "name", "description", "price",
        "stock", "available", "active", "manufacturerNumber", "ean",
        "weight", "width", "height", "length",
        "customFields", "manufacturer", "categories",
    ],
    "product_manufacturer": ["name"],
    "category": ["name"],
}


class ShopwareAPIError(Exception):
    """Erreur de communication avec l'API d'administration Shopware"""

    def __init__(self, message: str, status_code: Optional[int] = None):
        self.status_code = status_code
        super().__init__(message)


class ShopwareClient:
    """Client de l'API d'administration Shopware (lecture du catalogue produits)"""

    def __init__(self, base_url: str, api_key: str, api_secret: str, timeout: int = 30):
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.api_secret = api_secret
        self.timeout = timeout

        self._access_token: Optional[str] = None
        self._token_expiry: float = 0.0

    def _authenticate(self) -> str:
        """Obtient un token OAuth (client_credentials), réutilisé tant qu'il est valide"""
        if self._access_token and time.time() < self._token_expiry:
            return self._access_token

        try:
            response = requests.post(
                f"{self.base_url}/api/oauth/token",
                json={
                    "grant_type": "client_credentials",
                    "client_id": self.api_key,
                    "client_secret": self.api_secret,
                },
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            self._reset_token()
            raise ShopwareAPIError(f"Failed to authenticate with Shopware API: {e}")

        if response.status_code != 200:
            self._reset_token()
            raise ShopwareAPIError(
                f"Authentication failed: {response.status_code} - {response.text}", response.status_code
            )

        data = response.json()
        expires_in = data.get("expires_in") or DEFAULT_TOKEN_LIFETIME
        self._access_token = data["access_token"]
        self._token_expiry = time.time() + expires_in - TOKEN_EXPIRY_BUFFER
        logger.debug(f"Shopware token obtained, valid for {expires_in}s")
        return self._access_token

    def _reset_token(self):
        self._access_token = None
        self._token_expiry = 0.0

    def _request(self, method: str, path: str, payload: Optional[Dict[str, Any]] = None) -> requests.Response:
        """Requête authentifiée; un 401 provoque un seul nouvel essai avec un token neuf"""
        url = f"{self.base_url}{path}"
        try:
            response = self._send(method, url, payload)
            if response.status_code == 401:
                logger.info("Shopware token rejected, re-authenticating")
                self._reset_token()
                response = self._send(method, url, payload)
        except requests.RequestException as e:
            raise ShopwareAPIError(f"Request to {path} failed: {e}")
        return response

    def _send(self, method: str, url: str, payload: Optional[Dict[str, Any]]) -> requests.Response:
        headers = {
            "Content-Type": "application/json",
            "Accept": "application/json",
            "Authorization": f"Bearer {self._authenticate()}",
        }
        return requests.request(method, url, json=payload, headers=headers, timeout=self.timeout)

    def test_connection(self) -> bool:
        """Vérifie que l'API répond avec les identifiants configurés"""
        try:
            response = self._request("GET", "/api/_info/config")
            return response.status_code == 200
        except ShopwareAPIError as e:
            logger.error(f"Shopware connection test failed: {e}")
            return False

    def fetch_products(self, limit: int = 100, page: int = 1,
                       include_inactive: bool = False) -> Dict[str, Any]:
        """Récupère une page de produits: {"products": [...], "total": n}"""
        body: Dict[str, Any] = {
            "limit": limit,
            "page": page,
            "sort": [{"field": "productNumber", "order": "ASC"}],
            "includes": PRODUCT_INCLUDES,
            "associations": {"manufacturer": {}, "categories": {}},
            "total-count-mode": 1,
        }
        if not include_inactive:
            body["filter"] = [{"type": "equals", "field": "active", "value": True}]

        response = self._request("POST", "/api/search/product", body)
        if response.status_code != 200:
            raise ShopwareAPIError(
                f"Failed to fetch products: {response.status_code} - {response.text}", response.status_code
            )

        data = response.json()
        raw_products = data.get("data") or []
        total = (data.get("meta") or {}).get("total") or data.get("total") or len(raw_products)

        products = []
        for raw in raw_products:
            try:
                products.append(ProductRecord.from_dict(map_product(raw)))
            except (ValueError, TypeError, AttributeError) as e:
                logger.warning(f"⚠️ Skipping malformed product {raw.get('id') if isinstance(raw, dict) else raw!r}: {e}")
        return {"products": products, "total": total, "fetched": len(raw_products)}

    def fetch_all_products(self, page_size: int = 500, include_inactive: bool = False) -> List[ProductRecord]:
        """Parcourt toutes les pages du catalogue"""
        products: List[ProductRecord] = []
        page = 1
        while True:
            result = self.fetch_products(limit=page_size, page=page, include_inactive=include_inactive)
            batch = result["products"]
            products.extend(batch)
            logger.debug(f"Fetched page {page}: {len(batch)} products (total collected: {len(products)})")

            if result["fetched"] < page_size:
                break
            page += 1

        logger.info(f"Loaded {len(products)} products from Shopware")
        return products

    def fetch_custom_fields(self) -> List[Dict[str, str]]:
        """Champs personnalisés actifs de la boutique: [{"field", "label", "type"}]"""
        response = self._request("POST", "/api/search/custom-field", {
            "limit": 500,
            "filter": [{"type": "equals", "field": "active", "value": True}],
        })
        if response.status_code != 200:
            raise ShopwareAPIError(
                f"Failed to fetch custom fields: {response.status_code} - {response.text}", response.status_code
            )

        custom_fields = []
        for raw in response.json().get("data") or []:
            attributes = raw.get("attributes") or {}
            name = raw.get("name") or attributes.get("name")
            if not name:
                continue
            label = _config_label(raw.get("config")) or _config_label(attributes.get("config")) or name
            custom_fields.append({
                "field": f"customFields.{name}",
                "label": label,
                "type": raw.get("type") or attributes.get("type") or "text",
            })

        logger.info(f"Fetched {len(custom_fields)} custom fields from Shopware")
        return custom_fields


def _config_label(config: Optional[Dict[str, Any]]) -> Optional[str]:
    label = (config or {}).get("label") or {}
    if isinstance(label, str):
        return label
    return label.get("en-GB") or label.get("de-DE")


def _attr(raw: Dict[str, Any], key: str) -> Any:
    """Lit une propriété à plat ou sous "attributes" (format JSON:API)"""
    value = raw.get(key)
    if value is None:
        value = (raw.get("attributes") or {}).get(key)
    return value


def _gross_price(raw_price: Any) -> Optional[float]:
    if isinstance(raw_price, list) and raw_price:
        first = raw_price[0] or {}
        gross = first.get("gross")
        return float(gross) if gross is not None else None
    return None


def map_product(raw: Dict[str, Any]) -> Dict[str, Any]:
    """Convertit un produit Shopware en dict camelCase pour ProductRecord.from_dict"""
    manufacturer = raw.get("manufacturer") or {}
    categories = raw.get("categories") or []

    if not raw.get("id"):
        raise ValueError("Product without id")

    product = {
        "id": raw["id"],
        "productNumber": _attr(raw, "productNumber") or "",
        "name": _attr(raw, "name") or "",
        "description": _attr(raw, "description"),
        "price": _gross_price(_attr(raw, "price")),
        "stock": _attr(raw, "stock") or 0,
        "available": bool(_attr(raw, "available")),
        "manufacturerNumber": _attr(raw, "manufacturerNumber"),
        "manufacturerName": manufacturer.get("name") or "",
        "categoryNames": [c.get("name") for c in categories if c.get("name")],
        "ean": _attr(raw, "ean"),
        "weight": _attr(raw, "weight"),
        "customFields": _attr(raw, "customFields") or {},
    }

    width, height, length = _attr(raw, "width"), _attr(raw, "height"), _attr(raw, "length")
    if width or height or length:
        product["dimensions"] = {"width": width, "height": height, "length": length, "unit": "cm"}

    return product
