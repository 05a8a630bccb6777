# pricing/services/discount_resolver.py

"""
DISCOUNT RESOLVER

Purpose:
- Decide whether a coupon code is usable for an item set (tagged result with a reason).
- Compute the applied amount for a discount against a subtotal / item set.
- Find automatic discounts (bulk quantity, seasonal).
- Record usage with an atomic counter increment.

Hard rules:
- Policy rejections are results, not exceptions (DiscountCheck.rejected).
- Storage failures are exceptions (PricingDependencyError); never collapsed into "not applicable".
- usage_count is incremented in the database (F expression), never read-modify-write.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal

from django.db import DatabaseError
from django.db.models import F, Q
from django.utils import timezone

from pricing.models import Discount, DiscountUsage
from pricing.services.exceptions import PricingDependencyError
from pricing.services.line_items import (
    TWOPLACES,
    ZERO,
    LineItem,
    _money,
    calculate_subtotal,
)

logger = logging.getLogger(__name__)

# ============================================================
# REJECTION REASONS
# ============================================================

REASON_NOT_FOUND = "not_found"
REASON_INACTIVE = "inactive"
REASON_NOT_STARTED = "not_started"
REASON_EXPIRED = "expired"
REASON_USAGE_EXHAUSTED = "usage_exhausted"
REASON_BELOW_MINIMUM_ORDER = "below_minimum_order"
REASON_PRODUCTS_NOT_APPLICABLE = "products_not_applicable"
REASON_CATEGORIES_NOT_APPLICABLE = "categories_not_applicable"
REASON_USER_NOT_ELIGIBLE = "user_not_eligible"
REASON_BELOW_MINIMUM_QUANTITY = "below_minimum_quantity"

REASON_MESSAGES = {
    REASON_NOT_FOUND: "Coupon code does not exist",
    REASON_INACTIVE: "Coupon is no longer active",
    REASON_NOT_STARTED: "Coupon is not valid yet",
    REASON_EXPIRED: "Coupon has expired",
    REASON_USAGE_EXHAUSTED: "Coupon usage limit has been reached",
    REASON_BELOW_MINIMUM_ORDER: "Order total is below the coupon minimum",
    REASON_PRODUCTS_NOT_APPLICABLE: "Coupon does not apply to these products",
    REASON_CATEGORIES_NOT_APPLICABLE: "Coupon does not apply to these categories",
    REASON_USER_NOT_ELIGIBLE: "Coupon is not available for this customer",
    REASON_BELOW_MINIMUM_QUANTITY: "Not enough matching items for this discount",
}


@dataclass(frozen=True)
class DiscountCheck:
    """
    Tagged validation result: either applicable (with the discount) or rejected (with a reason).
    """

    code: str
    discount: Discount | None = None
    reason: str | None = None

    @classmethod
    def applicable(cls, discount: Discount) -> "DiscountCheck":
        return cls(code=discount.code, discount=discount)

    @classmethod
    def rejected(cls, code: str, reason: str, discount: Discount | None = None) -> "DiscountCheck":
        return cls(code=code, discount=discount, reason=reason)

    @property
    def is_applicable(self) -> bool:
        return self.reason is None and self.discount is not None

    @property
    def message(self) -> str:
        if self.is_applicable:
            return "Coupon is applicable"
        return REASON_MESSAGES.get(self.reason, "Coupon is not applicable")


# ============================================================
# LOOKUPS (storage collaborator)
# ============================================================


def _normalize_code(code) -> str:
    return str(code or "").strip().upper()


def find_discount_by_code(code: str) -> Discount | None:
    code = _normalize_code(code)
    if not code:
        return None
    try:
        return Discount.objects.filter(code=code).first()
    except DatabaseError as exc:
        logger.exception("Discount lookup failed", extra={"code": code})
        raise PricingDependencyError(f"Discount lookup failed for {code}") from exc


def find_active_discount_by_code(code: str, *, now=None) -> Discount | None:
    """
    Active + inside validity window. Usage limit is checked by the caller.
    """
    discount = find_discount_by_code(code)
    if discount is None or not discount.is_active:
        return None
    if not discount.is_within_window(now):
        return None
    return discount


# ============================================================
# ELIGIBILITY
# ============================================================


def _matching_items(discount: Discount, items) -> list[LineItem]:
    products = set(discount.applicable_products or [])
    categories = set(discount.applicable_categories or [])

    if not products and not categories:
        return list(items)

    return [
        item
        for item in items
        if item.product_id in products or (item.category and item.category in categories)
    ]


def evaluate_discount(
    discount: Discount,
    items,
    *,
    user_id: str | None = None,
    now=None,
) -> DiscountCheck:
    """
    Run every policy check against an already-loaded discount.
    Order of checks is fixed so the reported reason is stable.
    """
    now = now or timezone.now()
    code = discount.code

    if not discount.is_active:
        return DiscountCheck.rejected(code, REASON_INACTIVE, discount)

    if now < discount.valid_from:
        return DiscountCheck.rejected(code, REASON_NOT_STARTED, discount)

    if discount.valid_to is not None and now > discount.valid_to:
        return DiscountCheck.rejected(code, REASON_EXPIRED, discount)

    if discount.is_usage_exhausted:
        return DiscountCheck.rejected(code, REASON_USAGE_EXHAUSTED, discount)

    subtotal = calculate_subtotal(items)
    if discount.minimum_order_amount is not None and subtotal < discount.minimum_order_amount:
        return DiscountCheck.rejected(code, REASON_BELOW_MINIMUM_ORDER, discount)

    if discount.applicable_products:
        allowed = set(discount.applicable_products)
        if not any(item.product_id in allowed for item in items):
            return DiscountCheck.rejected(code, REASON_PRODUCTS_NOT_APPLICABLE, discount)

    if discount.applicable_categories:
        allowed = set(discount.applicable_categories)
        if not any(item.category and item.category in allowed for item in items):
            return DiscountCheck.rejected(code, REASON_CATEGORIES_NOT_APPLICABLE, discount)

    if discount.applicable_users:
        if not user_id or str(user_id) not in {str(u) for u in discount.applicable_users}:
            return DiscountCheck.rejected(code, REASON_USER_NOT_ELIGIBLE, discount)

    if discount.type == Discount.TYPE_BULK_DISCOUNT:
        required = int(discount.minimum_quantity or 0)
        matched_qty = sum(item.quantity for item in _matching_items(discount, items))
        if matched_qty < required:
            return DiscountCheck.rejected(code, REASON_BELOW_MINIMUM_QUANTITY, discount)

    return DiscountCheck.applicable(discount)


def check_discount(
    code: str,
    items,
    *,
    user_id: str | None = None,
    now=None,
) -> DiscountCheck:
    discount = find_discount_by_code(code)
    if discount is None:
        return DiscountCheck.rejected(_normalize_code(code), REASON_NOT_FOUND)
    return evaluate_discount(discount, items, user_id=user_id, now=now)


def validate_discount(code: str, items, *, user_id: str | None = None, now=None) -> Discount | None:
    """
    Legacy contract: the discount when applicable, otherwise None (reason dropped).
    """
    discount = find_active_discount_by_code(code, now=now)
    if discount is None:
        return None
    check = evaluate_discount(discount, items, user_id=user_id, now=now)
    return check.discount if check.is_applicable else None


# ============================================================
# AMOUNTS
# ============================================================


def _percent_of(amount: Decimal, percent) -> Decimal:
    return (Decimal(amount) * Decimal(percent) / Decimal("100")).quantize(
        TWOPLACES, rounding=ROUND_HALF_UP
    )


def _cap(discount: Discount, amount: Decimal) -> Decimal:
    if discount.maximum_discount_amount is not None:
        amount = min(amount, _money(discount.maximum_discount_amount))
    return amount


def _buy_x_get_y_amount(discount: Discount, items) -> Decimal:
    buy = int(discount.buy_quantity or 0)
    get = int(discount.get_quantity or 0)
    if buy <= 0 or get <= 0:
        return ZERO

    total = ZERO
    group = buy + get
    for item in _matching_items(discount, items):
        free_units = (item.quantity // group) * get
        total += Decimal(free_units) * item.unit_price
    return _money(total)


def discount_amount(discount: Discount, subtotal, items=()) -> Decimal:
    """
    Applied amount for one discount. Never more than subtotal, never negative.
    """
    subtotal = _money(subtotal)
    if subtotal <= ZERO:
        return ZERO

    if discount.type == Discount.TYPE_PERCENTAGE:
        amount = _cap(discount, _percent_of(subtotal, discount.value))

    elif discount.type == Discount.TYPE_FIXED_AMOUNT:
        amount = min(_money(discount.value), subtotal)

    elif discount.type == Discount.TYPE_FREE_SHIPPING:
        # shipping step zeroes shipping instead
        amount = ZERO

    elif discount.type == Discount.TYPE_BULK_DISCOUNT:
        matched = calculate_subtotal(_matching_items(discount, items)) if items else subtotal
        amount = _cap(discount, _percent_of(matched, discount.value))

    elif discount.type == Discount.TYPE_BUY_X_GET_Y:
        amount = _cap(discount, _buy_x_get_y_amount(discount, items))

    else:
        amount = ZERO

    return max(ZERO, min(amount, subtotal))


# ============================================================
# AUTOMATIC DISCOUNTS
# ============================================================


def _active_window_q(now) -> Q:
    return Q(is_active=True, valid_from__lte=now) & (
        Q(valid_to__isnull=True) | Q(valid_to__gte=now)
    )


def automatic_discounts(items, *, user_id: str | None = None, now=None) -> list[tuple[str, Discount]]:
    """
    Bulk discounts whose quantity threshold is met, then seasonal discounts.
    Returns (kind, discount) pairs; kind is "bulk" or "seasonal".
    """
    now = now or timezone.now()
    found: list[tuple[str, Discount]] = []

    try:
        bulk = list(
            Discount.objects.filter(_active_window_q(now), type=Discount.TYPE_BULK_DISCOUNT)
            .exclude(usage_limit__isnull=False, usage_count__gte=F("usage_limit"))
            .order_by("created_at")
        )
        seasonal = list(
            Discount.objects.filter(_active_window_q(now), is_seasonal=True)
            .exclude(type=Discount.TYPE_BULK_DISCOUNT)
            .exclude(usage_limit__isnull=False, usage_count__gte=F("usage_limit"))
            .order_by("created_at")
        )
    except DatabaseError as exc:
        logger.exception("Automatic discount lookup failed")
        raise PricingDependencyError("Automatic discount lookup failed") from exc

    for discount in bulk:
        if evaluate_discount(discount, items, user_id=user_id, now=now).is_applicable:
            found.append(("bulk", discount))

    for discount in seasonal:
        if evaluate_discount(discount, items, user_id=user_id, now=now).is_applicable:
            found.append(("seasonal", discount))

    return found


# ============================================================
# USAGE
# ============================================================


def increment_discount_usage(discount: Discount) -> bool:
    """
    Atomic, limit-guarded increment:
      UPDATE ... SET usage_count = usage_count + 1
      WHERE id = ? AND (usage_limit IS NULL OR usage_count < usage_limit)

    Returns False when a concurrent redemption consumed the last use.
    """
    qs = Discount.objects.filter(pk=discount.pk).filter(
        Q(usage_limit__isnull=True) | Q(usage_count__lt=F("usage_limit"))
    )
    try:
        updated = qs.update(usage_count=F("usage_count") + 1, updated_at=timezone.now())
    except DatabaseError as exc:
        logger.exception("Discount usage increment failed", extra={"discount_id": str(discount.pk)})
        raise PricingDependencyError("Discount usage increment failed") from exc
    return updated == 1


def record_discount_usage(
    discount: Discount,
    *,
    savings,
    user_id: str | None = None,
    reference: str = "",
) -> DiscountUsage | None:
    """
    Increment usage and log a DiscountUsage row.
    Must run inside the caller's transaction so it commits with the order/cart state.
    """
    if not increment_discount_usage(discount):
        logger.warning(
            "Discount usage limit reached during redemption",
            extra={"discount_id": str(discount.pk), "code": discount.code},
        )
        return None

    usage = DiscountUsage.objects.create(
        discount=discount,
        user_id=user_id,
        reference=str(reference or ""),
        savings=_money(savings),
    )

    logger.info(
        "Discount redeemed",
        extra={"discount_id": str(discount.pk), "code": discount.code, "reference": reference},
    )
    return usage
