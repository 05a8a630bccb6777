# carts/services/cart_store.py

"""
CART STORE (persistence seam)

Purpose:
- The only module that reads/writes Cart, CartItem and CartMetadata rows for
  merge and item services.

Hard rules:
- Writes that belong together run inside run_in_transaction(...).
- Row locks (select_for_update) are only taken inside a transaction.
"""

from __future__ import annotations

import logging
from decimal import Decimal

from django.core.exceptions import ValidationError
from django.db import transaction
from django.utils import timezone

from carts.models import Cart, CartItem, CartMetadata
from carts.services.exceptions import CartNotFoundError

logger = logging.getLogger(__name__)


def run_in_transaction(fn, *args, **kwargs):
    with transaction.atomic():
        return fn(*args, **kwargs)


def find_cart_by_id(cart_id, *, for_update: bool = False) -> Cart:
    qs = Cart.objects.all()
    if for_update:
        qs = qs.select_for_update()
    try:
        return qs.get(pk=cart_id)
    except (Cart.DoesNotExist, ValidationError) as exc:
        # ValidationError: malformed uuid
        raise CartNotFoundError(f"Cart {cart_id} not found") from exc


def find_items_by_cart(cart: Cart) -> list[CartItem]:
    return list(CartItem.objects.filter(cart=cart).order_by("added_at", "id"))


def find_metadata_by_cart(cart: Cart) -> dict[str, str]:
    return dict(CartMetadata.objects.filter(cart=cart).values_list("key", "value"))


def create_item(
    cart: Cart,
    *,
    product_id: str,
    variant_id: str | None,
    quantity: int,
    price: Decimal,
    original_price: Decimal | None = None,
    category: str | None = None,
    metadata: dict | None = None,
) -> CartItem:
    return CartItem.objects.create(
        cart=cart,
        product_id=product_id,
        variant_id=variant_id or "",
        quantity=quantity,
        price=price,
        original_price=price if original_price is None else original_price,
        category=category or "",
        metadata=dict(metadata or {}),
    )


def update_item_quantity_and_price(item: CartItem, *, quantity: int, price: Decimal) -> CartItem:
    item.quantity = quantity
    item.price = price
    item.save(update_fields=["quantity", "price", "updated_at"])
    return item


def delete_item(item: CartItem) -> None:
    item.delete()


def upsert_cart_metadata(cart: Cart, *, key: str, value) -> CartMetadata:
    row, _created = CartMetadata.objects.update_or_create(
        cart=cart,
        key=key,
        defaults={"value": "" if value is None else str(value)},
    )
    return row


def set_cart_status(cart: Cart, status: str) -> Cart:
    previous = cart.status
    cart.status = status
    cart.save(update_fields=["status", "updated_at"])
    logger.debug(
        "Cart status changed",
        extra={"cart_id": str(cart.pk), "from": previous, "to": status},
    )
    return cart


def touch_cart(cart: Cart) -> Cart:
    Cart.objects.filter(pk=cart.pk).update(updated_at=timezone.now())
    cart.refresh_from_db(fields=["updated_at"])
    return cart
