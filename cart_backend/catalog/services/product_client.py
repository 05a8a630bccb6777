# catalog/services/product_client.py

"""
HTTP PRODUCT CATALOG (external product service)

Endpoints used:
- GET {BASE_URL}/api/v1/products/{product_id}
- GET {BASE_URL}/api/v1/products/{product_id}/pricing
- GET {BASE_URL}/api/v1/products/{product_id}/variants/{variant_id}/pricing

Config: settings.PRODUCT_SERVICE = {BASE_URL, API_KEY, TIMEOUT}
No retries here: retry policy belongs to the caller.
"""

from __future__ import annotations

import json
import logging
from decimal import Decimal, InvalidOperation
from typing import Any
from urllib.error import HTTPError, URLError
from urllib.parse import quote
from urllib.request import Request, urlopen

from catalog.services.ports import (
    ProductCatalogError,
    ProductNotFoundError,
    ProductSnapshot,
    product_service_settings,
)

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "http://localhost:3002"
DEFAULT_TIMEOUT = 5


def _safe_preview(text: str, limit: int = 300) -> str:
    text = (text or "").strip()
    if len(text) <= limit:
        return text
    return text[:limit] + " ...(truncated)"


def _to_decimal(value, *, field_name: str) -> Decimal:
    try:
        return Decimal(str(value))
    except (InvalidOperation, ValueError, TypeError) as exc:
        raise ProductCatalogError(f"Product service returned invalid {field_name}: {value!r}") from exc


class HttpProductCatalog:
    def __init__(self, *, base_url: str | None = None, api_key: str | None = None, timeout: float | None = None):
        cfg = product_service_settings()
        self.base_url = (base_url or cfg.get("BASE_URL") or DEFAULT_BASE_URL).rstrip("/")
        self.api_key = (api_key if api_key is not None else cfg.get("API_KEY") or "").strip()
        self.timeout = float(timeout or cfg.get("TIMEOUT") or DEFAULT_TIMEOUT)

    # ---------------------------------------------
    # transport
    # ---------------------------------------------

    def _request_json(self, path: str) -> dict[str, Any]:
        url = f"{self.base_url}{path}"
        headers = {
            "Content-Type": "application/json",
            "Accept": "application/json",
        }
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"

        req = Request(url, headers=headers, method="GET")

        try:
            with urlopen(req, timeout=self.timeout) as resp:
                raw = resp.read().decode("utf-8", errors="replace")
        except HTTPError as e:
            if e.code == 404:
                raise ProductNotFoundError(f"Product resource not found: {path}") from e
            body = ""
            try:
                body = e.read().decode("utf-8", errors="replace")
            except OSError:
                body = ""
            logger.error(
                "Product service HTTP error",
                extra={"url": url, "status": e.code, "body": _safe_preview(body)},
            )
            raise ProductCatalogError(f"Product service HTTPError: {e.code}") from e
        except (URLError, TimeoutError, OSError) as e:
            logger.error("Product service unreachable", extra={"url": url, "error": str(e)})
            raise ProductCatalogError(f"Product service unreachable: {e}") from e

        try:
            parsed = json.loads(raw)
        except ValueError as e:
            raise ProductCatalogError(
                f"Product service returned non-JSON: {_safe_preview(raw)}"
            ) from e

        if not isinstance(parsed, dict):
            raise ProductCatalogError("Product service returned a non-object payload")

        # some deployments wrap payloads as {"data": {...}}
        if isinstance(parsed.get("data"), dict):
            return parsed["data"]
        return parsed

    # ---------------------------------------------
    # port
    # ---------------------------------------------

    def get_product(self, product_id: str, variant_id: str | None = None) -> ProductSnapshot:
        pid = quote(str(product_id), safe="")
        product = self._request_json(f"/api/v1/products/{pid}")

        if variant_id:
            vid = quote(str(variant_id), safe="")
            pricing = self._request_json(f"/api/v1/products/{pid}/variants/{vid}/pricing")
        else:
            pricing = self._request_json(f"/api/v1/products/{pid}/pricing")

        if pricing.get("price") is None:
            raise ProductCatalogError(f"Product {product_id} has no price")

        price = _to_decimal(pricing.get("price"), field_name="price")
        original = pricing.get("originalPrice", pricing.get("original_price"))
        original_price = price if original is None else _to_decimal(original, field_name="originalPrice")

        stock = None
        if variant_id:
            for variant in product.get("variants") or []:
                if str(variant.get("id")) == str(variant_id):
                    stock = variant.get("stock")
                    break
            else:
                raise ProductNotFoundError(f"Variant {variant_id} not found for product {product_id}")

        is_active = bool(product.get("isActive", True)) and not bool(product.get("isDiscontinued", False))
        is_active = is_active and bool(pricing.get("isActive", True))

        return ProductSnapshot(
            product_id=str(product.get("id") or product_id),
            variant_id=str(variant_id) if variant_id else None,
            name=str(product.get("name") or ""),
            price=price,
            original_price=original_price,
            category=product.get("category") or None,
            is_active=is_active,
            stock_quantity=int(stock) if stock is not None else None,
        )
