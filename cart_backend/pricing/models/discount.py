# pricing/models/discount.py

"""
DISCOUNT MODEL

Purpose:
- Named price adjustment rule, redeemed by coupon code or applied automatically
  (bulk / seasonal).

Rules:
- A discount is usable only while active, inside [valid_from, valid_to]
  (valid_to NULL = open-ended) and while usage_count < usage_limit (if set).
- usage_count is NEVER incremented in Python memory; see
  pricing.services.discount_resolver.record_discount_usage (F() expression).
- Empty applicable_* lists mean "no restriction".
"""

import uuid
from decimal import Decimal

from django.core.exceptions import ValidationError
from django.db import models
from django.utils import timezone


class Discount(models.Model):
    TYPE_PERCENTAGE = "percentage"
    TYPE_FIXED_AMOUNT = "fixed_amount"
    TYPE_FREE_SHIPPING = "free_shipping"
    TYPE_BUY_X_GET_Y = "buy_x_get_y"
    TYPE_BULK_DISCOUNT = "bulk_discount"

    TYPE_CHOICES = [
        (TYPE_PERCENTAGE, "Percentage"),
        (TYPE_FIXED_AMOUNT, "Fixed amount"),
        (TYPE_FREE_SHIPPING, "Free shipping"),
        (TYPE_BUY_X_GET_Y, "Buy X get Y"),
        (TYPE_BULK_DISCOUNT, "Bulk discount"),
    ]

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    code = models.CharField(max_length=64, unique=True, db_index=True)
    name = models.CharField(max_length=255, blank=True)
    description = models.TextField(blank=True)

    type = models.CharField(
        max_length=32,
        choices=TYPE_CHOICES,
        default=TYPE_PERCENTAGE,
    )

    value = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        default=Decimal("0.00"),
        help_text="Percent (e.g. 10.00) for percentage/bulk; currency amount for fixed_amount.",
    )

    minimum_order_amount = models.DecimalField(
        max_digits=12, decimal_places=2, null=True, blank=True
    )
    maximum_discount_amount = models.DecimalField(
        max_digits=12, decimal_places=2, null=True, blank=True
    )

    # bulk_discount: total quantity of matching products required
    minimum_quantity = models.PositiveIntegerField(null=True, blank=True)

    # buy_x_get_y: every (buy + get) matching units, `get` units are free
    buy_quantity = models.PositiveIntegerField(null=True, blank=True)
    get_quantity = models.PositiveIntegerField(null=True, blank=True)

    is_active = models.BooleanField(default=True)
    is_stackable = models.BooleanField(default=False)
    is_seasonal = models.BooleanField(
        default=False,
        help_text="Seasonal discounts apply automatically (no code needed) while valid.",
    )

    valid_from = models.DateTimeField(default=timezone.now)
    valid_to = models.DateTimeField(null=True, blank=True)

    usage_limit = models.PositiveIntegerField(null=True, blank=True)
    usage_count = models.PositiveIntegerField(default=0)

    applicable_products = models.JSONField(default=list, blank=True)
    applicable_categories = models.JSONField(default=list, blank=True)
    applicable_users = models.JSONField(default=list, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["type", "is_active"], name="discount_type_active_idx"),
        ]

    def clean(self):
        if self.value is None or Decimal(self.value) < Decimal("0.00"):
            raise ValidationError({"value": "value cannot be negative"})

        if self.type in (self.TYPE_PERCENTAGE, self.TYPE_BULK_DISCOUNT) and Decimal(
            self.value
        ) > Decimal("100.00"):
            raise ValidationError({"value": "percentage value cannot exceed 100"})

        if self.valid_to and self.valid_from and self.valid_to < self.valid_from:
            raise ValidationError({"valid_to": "valid_to must be after valid_from"})

        if self.type == self.TYPE_BUY_X_GET_Y and not (
            self.buy_quantity and self.get_quantity
        ):
            raise ValidationError(
                "buy_x_get_y discounts require buy_quantity and get_quantity"
            )

    def save(self, *args, **kwargs):
        self.code = (self.code or "").strip().upper()
        self.full_clean()
        return super().save(*args, **kwargs)

    def is_within_window(self, now=None) -> bool:
        now = now or timezone.now()
        if now < self.valid_from:
            return False
        return self.valid_to is None or now <= self.valid_to

    @property
    def is_usage_exhausted(self) -> bool:
        return self.usage_limit is not None and self.usage_count >= self.usage_limit

    def __str__(self):
        return f"{self.code} ({self.type} {self.value})"


class DiscountUsage(models.Model):
    """
    Immutable record of one discount redemption.
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    discount = models.ForeignKey(
        Discount,
        on_delete=models.PROTECT,
        related_name="usages",
    )

    user_id = models.CharField(max_length=128, null=True, blank=True)
    reference = models.CharField(
        max_length=128,
        blank=True,
        help_text="Cart / checkout session / order reference the discount was used for.",
    )
    savings = models.DecimalField(
        max_digits=12, decimal_places=2, default=Decimal("0.00")
    )

    used_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["-used_at"]

    def __str__(self):
        return f"{self.discount.code} used ({self.savings})"
