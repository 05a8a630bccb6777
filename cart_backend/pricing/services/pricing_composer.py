# pricing/services/pricing_composer.py

"""
PRICING COMPOSER

Purpose:
- Turn a PricingRequest into one PriceBreakdown.

Fixed order:
1) validate items, subtotal
2) coupon discounts        (DiscountResolver)
3) promotion rewards       (PromotionResolver)
4) automatic discounts     (bulk + seasonal)
5) stacking policy
6) after_discount = max(0, subtotal - discount_total)
7) taxes on discount-allocated per-line amounts (TaxResolver)
8) shipping (flat, or free via discount/reward/threshold)
9) total = after_discount + tax_total + shipping

commit=False (default): side-effect-free quote.
commit=True: records discount + promotion usage; a lost usage race drops that application
(a promotion is dropped with all its rewards and listed in rejected_promotions).

GUARANTEES:
- after_discount >= 0
- total == after_discount + tax_total + shipping
- lookup failures propagate (never a silent zero)
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from decimal import ROUND_HALF_UP, Decimal

from django.conf import settings
from django.db import transaction

from pricing.models import Discount, Promotion
from pricing.services.discount_resolver import (
    REASON_USAGE_EXHAUSTED,
    DiscountCheck,
    automatic_discounts,
    check_discount,
    discount_amount,
    record_discount_usage,
)
from pricing.services.line_items import (
    TWOPLACES,
    ZERO,
    PricingRequest,
    _money,
    allocate_discount,
    calculate_subtotal,
    validate_line_items,
)
from pricing.services.promotion_resolver import (
    PromotionReward,
    apply_promotion,
    find_active_promotion_by_id,
    is_applicable,
    rewards_for,
)
from pricing.services.tax_resolver import TaxApplication, calculate_taxes

logger = logging.getLogger(__name__)

STACK_ALL = "stack_all"
SINGLE_EXCLUSIVE = "single_exclusive"

SOURCE_COUPON = "coupon"
SOURCE_PROMOTION = "promotion"
SOURCE_AUTOMATIC = "automatic"

PRICING_DEFAULTS = {
    "DEFAULT_CURRENCY": "USD",
    "BASE_SHIPPING_COST": "9.99",
    "FREE_SHIPPING_THRESHOLD": "50.00",
    "STACKING_POLICY": STACK_ALL,
}


def pricing_settings() -> dict:
    conf = dict(PRICING_DEFAULTS)
    conf.update(getattr(settings, "PRICING", {}) or {})
    return conf


@dataclass(frozen=True)
class DiscountApplication:
    id: str
    source: str
    code: str
    name: str
    type: str
    value: Decimal
    amount: Decimal
    is_stackable: bool
    free_shipping: bool = False


@dataclass(frozen=True)
class PriceBreakdown:
    subtotal: Decimal
    discounts: tuple[DiscountApplication, ...]
    discount_total: Decimal
    after_discount: Decimal
    taxes: tuple[TaxApplication, ...]
    tax_total: Decimal
    shipping: Decimal
    total: Decimal
    currency: str
    free_shipping: bool = False
    rewards: tuple[PromotionReward, ...] = field(default_factory=tuple)
    rejected_coupons: tuple[DiscountCheck, ...] = field(default_factory=tuple)
    # promotion ids dropped because their usage limit was reached while recording
    rejected_promotions: tuple[str, ...] = field(default_factory=tuple)


# internal: application plus the row it came from (needed to record usage)
@dataclass
class _Pending:
    application: DiscountApplication
    discount: Discount | None = None
    promotion: Promotion | None = None


def _discount_application(discount: Discount, *, source: str, subtotal, items) -> DiscountApplication:
    return DiscountApplication(
        id=str(discount.pk),
        source=source,
        code=discount.code,
        name=discount.name or discount.code,
        type=discount.type,
        value=Decimal(discount.value),
        amount=discount_amount(discount, subtotal, items),
        is_stackable=bool(discount.is_stackable),
        free_shipping=discount.type == Discount.TYPE_FREE_SHIPPING,
    )


def _promotion_applications(promotion: Promotion, rewards, subtotal) -> list[DiscountApplication]:
    out = []
    for reward in rewards:
        if reward.type == "discount":
            amount = (subtotal * reward.value / Decimal("100")).quantize(
                TWOPLACES, rounding=ROUND_HALF_UP
            )
            out.append(
                DiscountApplication(
                    id=str(promotion.pk),
                    source=SOURCE_PROMOTION,
                    code="",
                    name=promotion.name,
                    type="percentage",
                    value=reward.value,
                    amount=max(ZERO, min(amount, subtotal)),
                    is_stackable=True,
                )
            )
        elif reward.type == "free_shipping":
            out.append(
                DiscountApplication(
                    id=str(promotion.pk),
                    source=SOURCE_PROMOTION,
                    code="",
                    name=promotion.name,
                    type="free_shipping",
                    value=ZERO,
                    amount=ZERO,
                    is_stackable=True,
                    free_shipping=True,
                )
            )
    return out


def apply_stacking_policy(pending: list[_Pending], policy: str) -> list[_Pending]:
    """
    stack_all: everything applies (is_stackable only recorded).
    single_exclusive: every stackable application plus the single largest non-stackable one.
    """
    if policy != SINGLE_EXCLUSIVE:
        return list(pending)

    exclusive = [p for p in pending if not p.application.is_stackable]
    if len(exclusive) <= 1:
        return list(pending)

    keep = max(exclusive, key=lambda p: p.application.amount)
    return [p for p in pending if p.application.is_stackable or p is keep]


def _collect(
    request: PricingRequest, items, subtotal, now
) -> tuple[list[_Pending], list[DiscountCheck], list[tuple[Promotion, list[PromotionReward]]]]:
    pending: list[_Pending] = []
    rejected: list[DiscountCheck] = []
    promotions: list[tuple[Promotion, list[PromotionReward]]] = []
    seen_discounts: set[str] = set()
    seen_promotions: set[str] = set()

    # coupons
    for code in request.coupon_codes:
        check = check_discount(code, items, user_id=request.user_id, now=now)
        if not check.is_applicable:
            rejected.append(check)
            continue
        discount = check.discount
        if str(discount.pk) in seen_discounts:
            continue
        seen_discounts.add(str(discount.pk))
        pending.append(
            _Pending(
                application=_discount_application(
                    discount, source=SOURCE_COUPON, subtotal=subtotal, items=items
                ),
                discount=discount,
            )
        )

    # promotions
    for promotion_id in request.promotion_ids:
        promotion = find_active_promotion_by_id(promotion_id, now=now)
        if promotion is None or str(promotion.pk) in seen_promotions:
            continue
        seen_promotions.add(str(promotion.pk))
        if not is_applicable(promotion, request, now=now):
            continue
        rewards = rewards_for(promotion)
        promotions.append((promotion, rewards))
        for app in _promotion_applications(promotion, rewards, subtotal):
            pending.append(_Pending(application=app, promotion=promotion))

    # automatic
    for _kind, discount in automatic_discounts(items, user_id=request.user_id, now=now):
        if str(discount.pk) in seen_discounts:
            continue
        seen_discounts.add(str(discount.pk))
        pending.append(
            _Pending(
                application=_discount_application(
                    discount, source=SOURCE_AUTOMATIC, subtotal=subtotal, items=items
                ),
                discount=discount,
            )
        )

    return pending, rejected, promotions


def _extra_rewards(promotions) -> tuple[PromotionReward, ...]:
    # discount / free_shipping rewards are already priced as applications
    return tuple(
        reward
        for _promotion, rewards in promotions
        for reward in rewards
        if reward.type not in ("discount", "free_shipping")
    )


def _record_usage(
    pending: list[_Pending], promotions, request: PricingRequest
) -> tuple[list[_Pending], list[DiscountCheck], list, list[str]]:
    """
    Record usage for every kept discount and every applicable promotion
    (whatever its reward types). A promotion that loses the usage race is
    dropped with all of its applications and rewards.
    """
    kept: list[_Pending] = []
    lost: list[DiscountCheck] = []

    kept_promotions = []
    lost_promotions: list[str] = []
    for promotion, rewards in promotions:
        if apply_promotion(promotion, request, record_usage=True):
            kept_promotions.append((promotion, rewards))
        else:
            lost_promotions.append(str(promotion.pk))

    for p in pending:
        if p.discount is not None:
            usage = record_discount_usage(
                p.discount,
                savings=p.application.amount,
                user_id=request.user_id,
                reference=request.reference,
            )
            if usage is None:
                lost.append(DiscountCheck.rejected(p.discount.code, REASON_USAGE_EXHAUSTED, p.discount))
                continue
        elif p.promotion is not None and str(p.promotion.pk) in lost_promotions:
            continue
        kept.append(p)

    return kept, lost, kept_promotions, lost_promotions


def compute_pricing(request: PricingRequest, *, commit: bool = False, now=None) -> PriceBreakdown:
    conf = pricing_settings()

    items = validate_line_items(request.items)
    request = replace(request, items=items)
    subtotal = _money(calculate_subtotal(items))

    with transaction.atomic():
        pending, rejected, promotions = _collect(request, items, subtotal, now)
        rejected_promotions: list[str] = []
        pending = apply_stacking_policy(pending, conf["STACKING_POLICY"])

        if commit:
            pending, lost, promotions, rejected_promotions = _record_usage(pending, promotions, request)
            rejected.extend(lost)

    applications = tuple(p.application for p in pending)
    discount_total = _money(sum((a.amount for a in applications), ZERO))
    after_discount = max(ZERO, subtotal - discount_total)

    line_amounts = allocate_discount(items, discount_total)
    tax = calculate_taxes(items, request.shipping_address, line_amounts=line_amounts, now=now)

    free_shipping = any(a.free_shipping for a in applications)
    threshold = _money(conf["FREE_SHIPPING_THRESHOLD"])
    if free_shipping or after_discount >= threshold:
        shipping = ZERO
    else:
        shipping = _money(conf["BASE_SHIPPING_COST"])

    total = _money(after_discount + tax.total_tax + shipping)

    breakdown = PriceBreakdown(
        subtotal=subtotal,
        discounts=applications,
        discount_total=discount_total,
        after_discount=after_discount,
        taxes=tax.taxes,
        tax_total=tax.total_tax,
        shipping=shipping,
        total=total,
        currency=request.currency or conf["DEFAULT_CURRENCY"],
        free_shipping=free_shipping,
        rewards=_extra_rewards(promotions),
        rejected_coupons=tuple(rejected),
        rejected_promotions=tuple(rejected_promotions),
    )

    logger.info(
        "Pricing calculated",
        extra={
            "reference": request.reference,
            "subtotal": str(subtotal),
            "discount_total": str(discount_total),
            "tax_total": str(tax.total_tax),
            "total": str(total),
            "commit": commit,
        },
    )
    return breakdown
