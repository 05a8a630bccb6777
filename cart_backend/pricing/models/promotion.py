# pricing/models/promotion.py

"""
PROMOTION MODEL

Purpose:
- Richer pricing rule: a list of conditions (all must hold) and a list of rewards.

Shape of JSON columns:
- conditions: [{"type": "minimum_order_amount", "operator": "greater_than", "value": 50}, ...]
- rewards:    [{"type": "discount", "value": 10}, {"type": "free_shipping", "value": 0}, ...]
"""

import uuid
from decimal import Decimal

from django.core.exceptions import ValidationError
from django.db import models
from django.utils import timezone

CONDITION_TYPES = {
    "minimum_order_amount",
    "minimum_quantity",
    "specific_products",
    "specific_categories",
    "user_type",
    "time_based",
}

REWARD_TYPES = {"discount", "free_shipping", "free_product", "points"}


class Promotion(models.Model):
    TYPE_COUPON = "coupon"
    TYPE_SEASONAL = "seasonal"
    TYPE_LOYALTY = "loyalty"
    TYPE_BULK = "bulk"
    TYPE_FIRST_TIME = "first_time"
    TYPE_BIRTHDAY = "birthday"
    TYPE_REFERRAL = "referral"

    TYPE_CHOICES = [
        (TYPE_COUPON, "Coupon"),
        (TYPE_SEASONAL, "Seasonal"),
        (TYPE_LOYALTY, "Loyalty"),
        (TYPE_BULK, "Bulk"),
        (TYPE_FIRST_TIME, "First time"),
        (TYPE_BIRTHDAY, "Birthday"),
        (TYPE_REFERRAL, "Referral"),
    ]

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    name = models.CharField(max_length=255)
    description = models.TextField(blank=True)

    type = models.CharField(max_length=32, choices=TYPE_CHOICES, default=TYPE_COUPON)

    is_active = models.BooleanField(default=True)

    valid_from = models.DateTimeField(default=timezone.now)
    valid_to = models.DateTimeField(null=True, blank=True)

    conditions = models.JSONField(default=list, blank=True)
    rewards = models.JSONField(default=list, blank=True)

    usage_limit = models.PositiveIntegerField(null=True, blank=True)
    usage_count = models.PositiveIntegerField(default=0)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-created_at"]

    def clean(self):
        if not isinstance(self.conditions, list):
            raise ValidationError({"conditions": "conditions must be a list"})
        if not isinstance(self.rewards, list):
            raise ValidationError({"rewards": "rewards must be a list"})

        for idx, cond in enumerate(self.conditions):
            if not isinstance(cond, dict) or cond.get("type") not in CONDITION_TYPES:
                raise ValidationError(
                    {"conditions": f"Invalid condition at index {idx}"}
                )

        for idx, reward in enumerate(self.rewards):
            if not isinstance(reward, dict) or reward.get("type") not in REWARD_TYPES:
                raise ValidationError({"rewards": f"Invalid reward at index {idx}"})

        if self.valid_to and self.valid_from and self.valid_to < self.valid_from:
            raise ValidationError({"valid_to": "valid_to must be after valid_from"})

    def save(self, *args, **kwargs):
        self.full_clean()
        return super().save(*args, **kwargs)

    def __str__(self):
        return f"{self.name} ({self.type})"


class PromotionUsage(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    promotion = models.ForeignKey(
        Promotion,
        on_delete=models.PROTECT,
        related_name="usages",
    )

    user_id = models.CharField(max_length=128, null=True, blank=True)
    reference = models.CharField(max_length=128, blank=True)

    item_count = models.PositiveIntegerField(default=0)
    subtotal = models.DecimalField(
        max_digits=12, decimal_places=2, default=Decimal("0.00")
    )

    applied_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["-applied_at"]

    def __str__(self):
        return f"{self.promotion.name} applied at {self.applied_at}"
