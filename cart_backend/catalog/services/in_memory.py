# catalog/services/in_memory.py

"""
IN-MEMORY PRODUCT CATALOG

Dict-backed adapter for tests and local development.
Products are registered on the class so every instance returned by
get_product_catalog() sees the same data.
"""

from __future__ import annotations

from decimal import Decimal

from catalog.services.ports import ProductNotFoundError, ProductSnapshot


class InMemoryProductCatalog:
    products: dict[tuple[str, str | None], ProductSnapshot] = {}

    @classmethod
    def register(
        cls,
        product_id: str,
        price,
        *,
        variant_id: str | None = None,
        name: str = "",
        original_price=None,
        category: str | None = None,
        is_active: bool = True,
        stock_quantity: int | None = None,
    ) -> ProductSnapshot:
        price = Decimal(str(price))
        snapshot = ProductSnapshot(
            product_id=str(product_id),
            variant_id=variant_id,
            name=name or str(product_id),
            price=price,
            original_price=price if original_price is None else Decimal(str(original_price)),
            category=category,
            is_active=is_active,
            stock_quantity=stock_quantity,
        )
        cls.products[(snapshot.product_id, variant_id)] = snapshot
        return snapshot

    @classmethod
    def reset(cls) -> None:
        cls.products.clear()

    def get_product(self, product_id: str, variant_id: str | None = None) -> ProductSnapshot:
        try:
            return self.products[(str(product_id), variant_id or None)]
        except KeyError as exc:
            raise ProductNotFoundError(
                f"Product {product_id}{'/' + variant_id if variant_id else ''} not found"
            ) from exc
