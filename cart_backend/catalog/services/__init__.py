from .ports import (
    ProductCatalogError,
    ProductCatalogPort,
    ProductNotFoundError,
    ProductSnapshot,
    get_product_catalog,
)

__all__ = [
    "ProductCatalogError",
    "ProductCatalogPort",
    "ProductNotFoundError",
    "ProductSnapshot",
    "get_product_catalog",
]
