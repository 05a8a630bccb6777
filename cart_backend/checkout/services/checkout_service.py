# checkout/services/checkout_service.py

"""
CHECKOUT SERVICE (APPLICATION SERVICE)

Purpose:
- Turn an ACTIVE cart into a priced, PENDING CheckoutSession.
- Re-validate every cart line against the product catalog first
  (refreshing price snapshots that drifted since the item was added).
- Price with compute_pricing(commit=True): discount/promotion usage is recorded
  in the same transaction that moves the cart to CHECKOUT.

Hard rules:
- Guest carts are matched by session_id, user carts by user_id.
- Money values are computed server-side; the client never sends totals.
- The whole start step is one DB transaction: usage counters, cart status and
  the session row commit together or not at all.

Notes:
- Cancelling or expiring a session returns the cart to ACTIVE. Recorded
  discount usage is not given back.
"""

from __future__ import annotations

import logging
import uuid
from datetime import timedelta

from django.conf import settings
from django.core.exceptions import ValidationError
from django.db import transaction
from django.utils import timezone

from carts.models import Cart
from carts.services import cart_store
from carts.services.cart_items import cart_line_items
from catalog.services.ports import ProductCatalogPort, ProductNotFoundError, get_product_catalog
from checkout.models import CheckoutSession
from checkout.services.exceptions import (
    CheckoutSessionNotFoundError,
    CheckoutValidationError,
)
from pricing.serializers import PriceBreakdownSerializer
from pricing.services.line_items import PricingRequest, build_shipping_address
from pricing.services.pricing_composer import compute_pricing

logger = logging.getLogger(__name__)

DEFAULT_SESSION_TTL_MINUTES = 30


def session_ttl() -> timedelta:
    conf = getattr(settings, "CHECKOUT", {}) or {}
    minutes = int(conf.get("SESSION_TTL_MINUTES") or DEFAULT_SESSION_TTL_MINUTES)
    return timedelta(minutes=minutes)


def _assert_owner(cart: Cart, *, user_id: str | None, session_id: str | None) -> None:
    if cart.user_id:
        if cart.user_id != (str(user_id) if user_id else None):
            raise CheckoutValidationError("Cart does not belong to user", code="CART_OWNER_MISMATCH")
        return

    if (session_id or "").strip() != cart.session_id:
        raise CheckoutValidationError("Cart does not belong to session", code="CART_OWNER_MISMATCH")


def revalidate_cart_lines(cart: Cart, catalog: ProductCatalogPort) -> list[dict]:
    """
    Check every line is still sellable and refresh drifted prices.
    Returns one {item_id, product_id, old_price, new_price} entry per refreshed line.
    """
    changes = []
    for item in cart_store.find_items_by_cart(cart):
        try:
            product = catalog.get_product(item.product_id, item.variant_id or None)
        except ProductNotFoundError as exc:
            raise CheckoutValidationError(
                f"Product {item.product_id} is no longer available", code="PRODUCT_NOT_FOUND"
            ) from exc

        if not product.can_fulfil(item.quantity):
            raise CheckoutValidationError(
                f"Product {item.product_id} is not available in the requested quantity",
                code="PRODUCT_UNAVAILABLE",
            )

        if product.price != item.price:
            changes.append(
                {
                    "item_id": str(item.pk),
                    "product_id": item.product_id,
                    "old_price": f"{item.price:.2f}",
                    "new_price": f"{product.price:.2f}",
                }
            )
            cart_store.update_item_quantity_and_price(item, quantity=item.quantity, price=product.price)

    return changes


@transaction.atomic
def start_checkout(
    cart_id,
    *,
    user_id: str | None = None,
    session_id: str | None = None,
    coupon_codes=(),
    promotion_ids=(),
    shipping_address: dict | None = None,
    catalog: ProductCatalogPort | None = None,
    now=None,
) -> CheckoutSession:
    now = now or timezone.now()

    cart = cart_store.find_cart_by_id(cart_id, for_update=True)
    _assert_owner(cart, user_id=user_id, session_id=session_id)

    if cart.status != Cart.STATUS_ACTIVE:
        raise CheckoutValidationError(
            f"Cart is {cart.status}, only ACTIVE carts can be checked out", code="CART_NOT_ACTIVE"
        )
    if cart.is_empty:
        raise CheckoutValidationError("Cart is empty", code="EMPTY_CART")

    price_changes = revalidate_cart_lines(cart, catalog or get_product_catalog())

    checkout_id = uuid.uuid4()
    address = build_shipping_address(shipping_address)

    breakdown = compute_pricing(
        PricingRequest(
            items=cart_line_items(cart),
            shipping_address=address,
            coupon_codes=tuple(coupon_codes or ()),
            promotion_ids=tuple(str(p) for p in (promotion_ids or ())),
            user_id=cart.user_id,
            currency=cart.currency,
            reference=f"checkout:{checkout_id}",
        ),
        commit=True,
        now=now,
    )

    snapshot = dict(PriceBreakdownSerializer(breakdown).data)
    snapshot["price_changes"] = price_changes

    session = CheckoutSession.objects.create(
        id=checkout_id,
        cart=cart,
        user_id=cart.user_id,
        session_id=cart.session_id,
        coupon_codes=list(coupon_codes or ()),
        promotion_ids=[str(p) for p in (promotion_ids or ())],
        shipping_address=address.as_dict() if address else None,
        currency=breakdown.currency,
        subtotal=breakdown.subtotal,
        discount_total=breakdown.discount_total,
        tax_total=breakdown.tax_total,
        shipping=breakdown.shipping,
        total=breakdown.total,
        pricing_snapshot=snapshot,
        expires_at=now + session_ttl(),
    )

    cart_store.set_cart_status(cart, Cart.STATUS_CHECKOUT)

    logger.info(
        "Checkout started",
        extra={
            "checkout_id": str(session.pk),
            "cart_id": str(cart.pk),
            "total": str(session.total),
            "price_changes": len(price_changes),
        },
    )
    return session


def _find_visible_session(checkout_id, *, user_id=None, session_id=None, for_update=False) -> CheckoutSession:
    qs = CheckoutSession.objects.select_related("cart")
    if for_update:
        qs = qs.select_for_update()
    try:
        session = qs.get(pk=checkout_id)
    except (CheckoutSession.DoesNotExist, ValidationError) as exc:
        raise CheckoutSessionNotFoundError(f"Checkout session {checkout_id} not found") from exc

    if session.user_id:
        visible = session.user_id == (str(user_id) if user_id else None)
    else:
        visible = bool(session_id) and session.session_id == session_id
    if not visible:
        raise CheckoutSessionNotFoundError(f"Checkout session {checkout_id} not found")
    return session


def _release_cart(session: CheckoutSession, status: str) -> None:
    session.status = status
    session.save(update_fields=["status", "updated_at"])

    cart = cart_store.find_cart_by_id(session.cart_id, for_update=True)
    if cart.status == Cart.STATUS_CHECKOUT:
        cart_store.set_cart_status(cart, Cart.STATUS_ACTIVE)


@transaction.atomic
def get_checkout_session(checkout_id, *, user_id=None, session_id=None, now=None) -> CheckoutSession:
    """
    Read a session; a PENDING session past expires_at is expired on read.
    """
    session = _find_visible_session(
        checkout_id, user_id=user_id, session_id=session_id, for_update=True
    )
    if session.is_pending and session.is_expired(now):
        _release_cart(session, CheckoutSession.STATUS_EXPIRED)
        logger.info("Checkout expired", extra={"checkout_id": str(session.pk)})
    return session


@transaction.atomic
def cancel_checkout(checkout_id, *, user_id=None, session_id=None) -> CheckoutSession:
    session = _find_visible_session(
        checkout_id, user_id=user_id, session_id=session_id, for_update=True
    )
    if not session.is_pending:
        raise CheckoutValidationError(
            f"Checkout session is {session.status}", code="CHECKOUT_NOT_PENDING"
        )

    _release_cart(session, CheckoutSession.STATUS_CANCELLED)
    logger.info("Checkout cancelled", extra={"checkout_id": str(session.pk)})
    return session
