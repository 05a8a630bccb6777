"""
PATH: checkout/models/checkout_session.py

CHECKOUT SESSION MODEL

Purpose:
- One priced checkout attempt for a cart.
- Stores the inputs (coupons, promotions, address) and the priced totals snapshot
  so later steps (payment, order creation) never re-price silently.

Status lifecycle:
- PENDING -> COMPLETED | CANCELLED | EXPIRED
"""

import uuid
from decimal import Decimal

from django.core.exceptions import ValidationError
from django.db import models
from django.utils import timezone

from carts.models import Cart


class CheckoutSession(models.Model):
    STATUS_PENDING = "PENDING"
    STATUS_COMPLETED = "COMPLETED"
    STATUS_EXPIRED = "EXPIRED"
    STATUS_CANCELLED = "CANCELLED"

    STATUS_CHOICES = [
        (STATUS_PENDING, "Pending"),
        (STATUS_COMPLETED, "Completed"),
        (STATUS_EXPIRED, "Expired"),
        (STATUS_CANCELLED, "Cancelled"),
    ]

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    cart = models.ForeignKey(
        Cart,
        on_delete=models.PROTECT,
        related_name="checkout_sessions",
    )

    user_id = models.CharField(max_length=128, null=True, blank=True, db_index=True)
    session_id = models.CharField(max_length=128, blank=True, default="")

    status = models.CharField(
        max_length=16,
        choices=STATUS_CHOICES,
        default=STATUS_PENDING,
    )

    coupon_codes = models.JSONField(default=list, blank=True)
    promotion_ids = models.JSONField(default=list, blank=True)
    shipping_address = models.JSONField(null=True, blank=True)

    currency = models.CharField(max_length=8, default="USD")
    subtotal = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))
    discount_total = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))
    tax_total = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))
    shipping = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))
    total = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))

    # full PriceBreakdown as rendered by the API (2dp strings)
    pricing_snapshot = models.JSONField(default=dict, blank=True)

    expires_at = models.DateTimeField()

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["cart", "status"], name="checkout_cart_status_idx"),
        ]

    def clean(self):
        for name in ("subtotal", "discount_total", "tax_total", "shipping", "total"):
            value = getattr(self, name)
            if value is None or value < 0:
                raise ValidationError({name: f"{name} must be greater than or equal to zero"})

    def save(self, *args, **kwargs):
        self.full_clean()
        return super().save(*args, **kwargs)

    @property
    def is_pending(self) -> bool:
        return self.status == self.STATUS_PENDING

    def is_expired(self, now=None) -> bool:
        return (now or timezone.now()) >= self.expires_at

    def __str__(self):
        return f"Checkout {self.id} | cart {self.cart_id} | {self.status} | {self.total}"
