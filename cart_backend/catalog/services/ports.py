# catalog/services/ports.py

"""
PRODUCT CATALOG PORT

Purpose:
- The interface carts/checkout use to read product price, category and availability.
- The concrete adapter is chosen by settings.PRODUCT_SERVICE["CATALOG_BACKEND"]
  (dotted path to a class), e.g.:
    catalog.services.product_client.HttpProductCatalog   (real service)
    catalog.services.in_memory.InMemoryProductCatalog    (tests / local dev)

Hard rules:
- Adapters raise ProductNotFoundError for unknown products.
- Any other failure (network, bad payload) raises ProductCatalogError; never a fake price.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Protocol, runtime_checkable

from django.conf import settings
from django.utils.module_loading import import_string

DEFAULT_CATALOG_BACKEND = "catalog.services.product_client.HttpProductCatalog"


class ProductCatalogError(Exception):
    """Raised when the product catalog cannot be reached or returns garbage. Retryable."""


class ProductNotFoundError(ProductCatalogError):
    """Raised when the product (or variant) does not exist."""


@dataclass(frozen=True)
class ProductSnapshot:
    product_id: str
    variant_id: str | None
    name: str
    price: Decimal
    original_price: Decimal
    category: str | None = None
    is_active: bool = True
    stock_quantity: int | None = None

    def can_fulfil(self, quantity: int) -> bool:
        if not self.is_active:
            return False
        if self.stock_quantity is None:
            return True
        return self.stock_quantity >= quantity


@runtime_checkable
class ProductCatalogPort(Protocol):
    def get_product(self, product_id: str, variant_id: str | None = None) -> ProductSnapshot:
        ...


def product_service_settings() -> dict:
    return getattr(settings, "PRODUCT_SERVICE", {}) or {}


def get_product_catalog() -> ProductCatalogPort:
    path = product_service_settings().get("CATALOG_BACKEND") or DEFAULT_CATALOG_BACKEND
    backend_cls = import_string(path)
    return backend_cls()
