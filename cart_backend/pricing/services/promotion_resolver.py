# pricing/services/promotion_resolver.py

"""
PROMOTION RESOLVER

Purpose:
- Decide whether a Promotion applies to a PricingRequest (all conditions AND-ed).
- Apply it: re-check, atomically bump usage_count, log a PromotionUsage row, return rewards.

Condition evaluators are registered per condition type in CONDITION_EVALUATORS.
Unknown condition types evaluate False.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone as dt_timezone
from decimal import Decimal, InvalidOperation
from typing import Callable

from django.core.exceptions import ValidationError
from django.db import DatabaseError
from django.db.models import F, Q
from django.utils import timezone
from django.utils.dateparse import parse_datetime

from pricing.models import Promotion, PromotionUsage
from pricing.services.exceptions import PricingDependencyError, PromotionNotFoundError
from pricing.services.line_items import PricingRequest, _money

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PromotionReward:
    type: str
    value: Decimal
    promotion_id: str = ""
    promotion_name: str = ""


# ============================================================
# LOOKUPS
# ============================================================


def find_promotion_by_id(promotion_id) -> Promotion:
    try:
        promotion = Promotion.objects.filter(pk=promotion_id).first()
    except ValidationError as exc:
        # malformed uuid
        raise PromotionNotFoundError(f"Promotion {promotion_id} not found") from exc
    except DatabaseError as exc:
        logger.exception("Promotion lookup failed", extra={"promotion_id": str(promotion_id)})
        raise PricingDependencyError(f"Promotion lookup failed for {promotion_id}") from exc

    if promotion is None:
        raise PromotionNotFoundError(f"Promotion {promotion_id} not found")
    return promotion


def find_active_promotion_by_id(promotion_id, *, now=None) -> Promotion | None:
    """
    Promotion when active and inside its window; None otherwise.
    Raises PromotionNotFoundError when the id does not exist.
    """
    promotion = find_promotion_by_id(promotion_id)
    now = now or timezone.now()
    if not promotion.is_active:
        return None
    if now < promotion.valid_from:
        return None
    if promotion.valid_to is not None and now > promotion.valid_to:
        return None
    return promotion


# ============================================================
# CONDITION EVALUATORS
# ============================================================


def compare_values(actual, operator: str, expected) -> bool:
    try:
        actual = Decimal(str(actual))
        expected = Decimal(str(expected))
    except (InvalidOperation, ValueError, TypeError):
        return False

    if operator == "equals":
        return actual == expected
    if operator == "greater_than":
        return actual > expected
    if operator == "less_than":
        return actual < expected
    if operator == "greater_than_or_equal":
        return actual >= expected
    if operator == "less_than_or_equal":
        return actual <= expected
    return False


def _as_set(value) -> set:
    if value is None:
        return set()
    if isinstance(value, (list, tuple, set)):
        return {str(v) for v in value}
    return {str(value)}


def _minimum_order_amount(condition: dict, request: PricingRequest, now) -> bool:
    return compare_values(request.subtotal, condition.get("operator"), condition.get("value"))


def _minimum_quantity(condition: dict, request: PricingRequest, now) -> bool:
    return compare_values(request.total_quantity, condition.get("operator"), condition.get("value"))


def _specific_products(condition: dict, request: PricingRequest, now) -> bool:
    wanted = _as_set(condition.get("value"))
    has_match = any(item.product_id in wanted for item in request.items)
    return has_match if condition.get("operator") == "contains" else not has_match


def _specific_categories(condition: dict, request: PricingRequest, now) -> bool:
    wanted = _as_set(condition.get("value"))
    has_match = any(item.category and item.category in wanted for item in request.items)
    return has_match if condition.get("operator") == "contains" else not has_match


def _user_type(condition: dict, request: PricingRequest, now) -> bool:
    if not request.user_id:
        return False
    return condition.get("operator") == "equals" and condition.get("value") == "registered"


def _parse_moment(value) -> datetime | None:
    if isinstance(value, datetime):
        return value
    if isinstance(value, str):
        parsed = parse_datetime(value)
        if parsed is not None and timezone.is_naive(parsed):
            parsed = timezone.make_aware(parsed, dt_timezone.utc)
        return parsed
    return None


def _time_based(condition: dict, request: PricingRequest, now) -> bool:
    value = condition.get("value")
    if not isinstance(value, dict):
        return True

    start = _parse_moment(value.get("startTime") or value.get("start_time"))
    end = _parse_moment(value.get("endTime") or value.get("end_time"))
    if start is None or end is None:
        return True
    return start <= now <= end


ConditionEvaluator = Callable[[dict, PricingRequest, datetime], bool]

CONDITION_EVALUATORS: dict[str, ConditionEvaluator] = {
    "minimum_order_amount": _minimum_order_amount,
    "minimum_quantity": _minimum_quantity,
    "specific_products": _specific_products,
    "specific_categories": _specific_categories,
    "user_type": _user_type,
    "time_based": _time_based,
}


def register_condition_evaluator(condition_type: str, evaluator: ConditionEvaluator) -> None:
    CONDITION_EVALUATORS[condition_type] = evaluator


def evaluate_condition(condition: dict, request: PricingRequest, *, now=None) -> bool:
    if not isinstance(condition, dict):
        return False
    evaluator = CONDITION_EVALUATORS.get(condition.get("type"))
    if evaluator is None:
        return False
    return bool(evaluator(condition, request, now or timezone.now()))


# ============================================================
# APPLICABILITY + APPLY
# ============================================================


def is_applicable(promotion: Promotion, request: PricingRequest, *, now=None) -> bool:
    now = now or timezone.now()

    if not promotion.is_active:
        return False
    if now < promotion.valid_from:
        return False
    if promotion.valid_to is not None and now > promotion.valid_to:
        return False
    if promotion.usage_limit is not None and promotion.usage_count >= promotion.usage_limit:
        return False

    return all(evaluate_condition(c, request, now=now) for c in (promotion.conditions or []))


def rewards_for(promotion: Promotion) -> list[PromotionReward]:
    out = []
    for reward in promotion.rewards or []:
        try:
            value = Decimal(str(reward.get("value", 0) or 0))
        except (InvalidOperation, ValueError, TypeError):
            value = Decimal("0")
        out.append(
            PromotionReward(
                type=str(reward.get("type")),
                value=value,
                promotion_id=str(promotion.pk),
                promotion_name=promotion.name,
            )
        )
    return out


def increment_promotion_usage(promotion: Promotion) -> bool:
    qs = Promotion.objects.filter(pk=promotion.pk).filter(
        Q(usage_limit__isnull=True) | Q(usage_count__lt=F("usage_limit"))
    )
    try:
        updated = qs.update(usage_count=F("usage_count") + 1, updated_at=timezone.now())
    except DatabaseError as exc:
        logger.exception("Promotion usage increment failed", extra={"promotion_id": str(promotion.pk)})
        raise PricingDependencyError("Promotion usage increment failed") from exc
    return updated == 1


def apply_promotion(
    promotion: Promotion,
    request: PricingRequest,
    *,
    record_usage: bool = True,
    now=None,
) -> list[PromotionReward]:
    """
    Returns [] when the promotion is not applicable (including a lost usage race).
    """
    if not is_applicable(promotion, request, now=now):
        return []

    if record_usage:
        if not increment_promotion_usage(promotion):
            logger.warning(
                "Promotion usage limit reached during apply",
                extra={"promotion_id": str(promotion.pk)},
            )
            return []

        PromotionUsage.objects.create(
            promotion=promotion,
            user_id=request.user_id,
            reference=str(request.reference or ""),
            item_count=request.total_quantity,
            subtotal=_money(request.subtotal),
        )

        logger.info(
            "Promotion applied",
            extra={"promotion_id": str(promotion.pk), "reference": request.reference},
        )

    return rewards_for(promotion)
