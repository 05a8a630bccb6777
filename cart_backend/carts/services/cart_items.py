# carts/services/cart_items.py

"""
CART ITEM SERVICE

Purpose:
- Create carts (guest or user).
- Add / update / remove / clear items on ACTIVE carts.
- Bulk variants with per-item savepoints and an itemized report.
- Convert a cart into pricing LineItems.

Money rule:
- price is snapshotted server-side from the product catalog on add
  (and refreshed when an existing line is re-added). Clients never send prices.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from django.conf import settings
from django.core.exceptions import ValidationError
from django.db import transaction

from carts.models import Cart, CartItem
from carts.services import cart_store
from carts.services.exceptions import (
    CartNotFoundError,
    CartServiceError,
    CartValidationError,
)
from catalog.services.ports import (
    ProductCatalogError,
    ProductCatalogPort,
    ProductNotFoundError,
    get_product_catalog,
)
from pricing.services.line_items import LineItem

logger = logging.getLogger(__name__)

DEFAULT_MAX_ITEM_QUANTITY = 99


def max_item_quantity() -> int:
    conf = getattr(settings, "CARTS", {}) or {}
    return int(conf.get("MAX_ITEM_QUANTITY") or DEFAULT_MAX_ITEM_QUANTITY)


def _validate_quantity(quantity) -> int:
    if isinstance(quantity, bool) or not isinstance(quantity, int):
        raise CartValidationError("Quantity must be a whole number", code="INVALID_QUANTITY")
    if quantity < 1:
        raise CartValidationError("Quantity must be at least 1", code="INVALID_QUANTITY")
    limit = max_item_quantity()
    if quantity > limit:
        raise CartValidationError(
            f"Maximum quantity per item is {limit}", code="QUANTITY_LIMIT_EXCEEDED"
        )
    return quantity


def _assert_active(cart: Cart) -> None:
    if cart.status != Cart.STATUS_ACTIVE:
        raise CartValidationError(
            f"Cart is {cart.status} and cannot be modified", code="CART_NOT_ACTIVE"
        )


# ============================================================
# CARTS
# ============================================================


def create_cart(*, session_id: str, user_id: str | None = None, currency: str | None = None) -> Cart:
    session_id = (session_id or "").strip()
    if not session_id:
        raise CartValidationError("session_id is required", code="MISSING_SESSION")

    pricing_conf = getattr(settings, "PRICING", {}) or {}
    cart = Cart.objects.create(
        session_id=session_id,
        user_id=str(user_id) if user_id else None,
        currency=currency or pricing_conf.get("DEFAULT_CURRENCY") or "USD",
    )
    logger.info(
        "Cart created",
        extra={"cart_id": str(cart.pk), "user_id": cart.user_id, "guest": cart.is_guest},
    )
    return cart


def get_or_create_user_cart(*, user_id: str, session_id: str) -> tuple[Cart, bool]:
    cart = (
        Cart.objects.filter(user_id=str(user_id), status=Cart.STATUS_ACTIVE)
        .order_by("-updated_at")
        .first()
    )
    if cart is not None:
        return cart, False
    return create_cart(session_id=session_id, user_id=user_id), True


def _get_item(cart: Cart, item_id) -> CartItem:
    try:
        return CartItem.objects.get(pk=item_id, cart=cart)
    except (CartItem.DoesNotExist, ValidationError) as exc:
        raise CartNotFoundError(f"Item {item_id} not found in cart {cart.pk}") from exc


# ============================================================
# SINGLE-ITEM OPERATIONS
# ============================================================


@transaction.atomic
def add_item(
    *,
    cart_id,
    product_id: str,
    quantity: int,
    variant_id: str | None = None,
    metadata: dict | None = None,
    catalog: ProductCatalogPort | None = None,
) -> CartItem:
    """
    Add a product line, or increment the existing (product, variant) line.
    """
    quantity = _validate_quantity(quantity)
    product_id = str(product_id or "").strip()
    if not product_id:
        raise CartValidationError("product_id is required", code="MISSING_PRODUCT_ID")
    variant_id = (str(variant_id).strip() or None) if variant_id else None

    cart = cart_store.find_cart_by_id(cart_id, for_update=True)
    _assert_active(cart)

    catalog = catalog or get_product_catalog()
    try:
        product = catalog.get_product(product_id, variant_id)
    except ProductNotFoundError as exc:
        raise CartValidationError(str(exc), code="PRODUCT_NOT_FOUND") from exc

    existing = CartItem.objects.filter(
        cart=cart, product_id=product_id, variant_id=variant_id or ""
    ).first()
    new_quantity = quantity + (existing.quantity if existing else 0)
    _validate_quantity(new_quantity)

    if not product.can_fulfil(new_quantity):
        raise CartValidationError(
            f"Product {product_id} is not available in the requested quantity",
            code="PRODUCT_UNAVAILABLE",
        )

    if existing is None:
        item = cart_store.create_item(
            cart,
            product_id=product_id,
            variant_id=variant_id,
            quantity=quantity,
            price=product.price,
            original_price=product.original_price,
            category=product.category,
            metadata=metadata,
        )
    else:
        item = cart_store.update_item_quantity_and_price(
            existing, quantity=new_quantity, price=product.price
        )

    cart_store.touch_cart(cart)

    logger.info(
        "Cart item added",
        extra={"cart_id": str(cart.pk), "product_id": product_id, "quantity": item.quantity},
    )
    return item


@transaction.atomic
def update_item_quantity(*, cart_id, item_id, quantity: int) -> CartItem:
    quantity = _validate_quantity(quantity)

    cart = cart_store.find_cart_by_id(cart_id, for_update=True)
    _assert_active(cart)

    item = _get_item(cart, item_id)
    item.quantity = quantity
    item.save(update_fields=["quantity", "updated_at"])

    cart_store.touch_cart(cart)
    return item


@transaction.atomic
def remove_item(*, cart_id, item_id) -> None:
    cart = cart_store.find_cart_by_id(cart_id, for_update=True)
    _assert_active(cart)

    cart_store.delete_item(_get_item(cart, item_id))
    cart_store.touch_cart(cart)


@transaction.atomic
def clear_cart(*, cart_id) -> int:
    cart = cart_store.find_cart_by_id(cart_id, for_update=True)
    _assert_active(cart)

    deleted, _ = CartItem.objects.filter(cart=cart).delete()
    cart_store.touch_cart(cart)

    logger.info("Cart cleared", extra={"cart_id": str(cart.pk), "items_removed": deleted})
    return deleted


# ============================================================
# BULK OPERATIONS
# ============================================================


@dataclass
class BulkOperationResult:
    success: bool
    item_id: str | None = None
    product_id: str | None = None
    error: str | None = None


@dataclass
class BulkOperationReport:
    results: list[BulkOperationResult] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)

    @property
    def total_items(self) -> int:
        return len(self.results)

    @property
    def successful_items(self) -> int:
        return sum(1 for r in self.results if r.success)

    @property
    def failed_items(self) -> int:
        return sum(1 for r in self.results if not r.success)

    @property
    def success(self) -> bool:
        return self.successful_items > 0

    def ok(self, *, item_id=None, product_id=None) -> None:
        self.results.append(
            BulkOperationResult(success=True, item_id=str(item_id) if item_id else None, product_id=product_id)
        )

    def fail(self, label: str, exc: Exception, *, item_id=None, product_id=None) -> None:
        message = getattr(exc, "message", None) or str(exc)
        self.results.append(
            BulkOperationResult(
                success=False,
                item_id=str(item_id) if item_id else None,
                product_id=product_id,
                error=message,
            )
        )
        self.errors.append(f"Item {label}: {message}")


def _ensure_cart_is_mutable(cart_id) -> None:
    # fail the whole batch up front when the cart itself is unusable
    _assert_active(cart_store.find_cart_by_id(cart_id))


def bulk_add_items(*, cart_id, items: list[dict], catalog: ProductCatalogPort | None = None) -> BulkOperationReport:
    """
    Each item runs in its own savepoint: one bad line does not undo the others.
    """
    _ensure_cart_is_mutable(cart_id)
    catalog = catalog or get_product_catalog()
    report = BulkOperationReport()

    for raw in items:
        product_id = str(raw.get("product_id") or "")
        try:
            with transaction.atomic():
                item = add_item(
                    cart_id=cart_id,
                    product_id=product_id,
                    variant_id=raw.get("variant_id"),
                    quantity=raw.get("quantity"),
                    metadata=raw.get("metadata"),
                    catalog=catalog,
                )
        except (CartServiceError, ProductCatalogError) as exc:
            report.fail(product_id, exc, product_id=product_id)
        else:
            report.ok(item_id=item.pk, product_id=product_id)

    logger.info(
        "Bulk add completed",
        extra={"cart_id": str(cart_id), "successful": report.successful_items, "failed": report.failed_items},
    )
    return report


def bulk_update_items(*, cart_id, updates: list[dict]) -> BulkOperationReport:
    _ensure_cart_is_mutable(cart_id)
    report = BulkOperationReport()

    for raw in updates:
        item_id = raw.get("item_id")
        try:
            with transaction.atomic():
                update_item_quantity(cart_id=cart_id, item_id=item_id, quantity=raw.get("quantity"))
        except CartServiceError as exc:
            report.fail(str(item_id), exc, item_id=item_id)
        else:
            report.ok(item_id=item_id)

    return report


def bulk_remove_items(*, cart_id, item_ids: list) -> BulkOperationReport:
    _ensure_cart_is_mutable(cart_id)
    report = BulkOperationReport()

    for item_id in item_ids:
        try:
            with transaction.atomic():
                remove_item(cart_id=cart_id, item_id=item_id)
        except CartServiceError as exc:
            report.fail(str(item_id), exc, item_id=item_id)
        else:
            report.ok(item_id=item_id)

    return report


# ============================================================
# PRICING BRIDGE
# ============================================================


def cart_line_items(cart: Cart) -> tuple[LineItem, ...]:
    return tuple(
        LineItem(
            product_id=item.product_id,
            variant_id=item.variant_id or None,
            quantity=int(item.quantity),
            unit_price=item.price,
            category=item.category or None,
            metadata=dict(item.metadata or {}),
        )
        for item in cart_store.find_items_by_cart(cart)
    )
