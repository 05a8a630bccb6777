"""
PATH: carts/models/cart.py

CART MODEL

Purpose:
- Shopping cart owned either by a guest session (session_id) or a user (user_id).
- Status lifecycle: ACTIVE -> CHECKOUT -> COMPLETED, or ABANDONED / EXPIRED.
- Derive subtotal + item count from CartItems.

Rules:
- A guest cart has no user_id; a user cart has one.
- Only ACTIVE carts accept item changes.
- A guest cart merged into a user cart is marked COMPLETED.
"""

import uuid
from decimal import Decimal

from django.core.exceptions import ValidationError
from django.db import models
from django.db.models import ExpressionWrapper, F, Sum


class Cart(models.Model):
    STATUS_ACTIVE = "ACTIVE"
    STATUS_CHECKOUT = "CHECKOUT"
    STATUS_ABANDONED = "ABANDONED"
    STATUS_COMPLETED = "COMPLETED"
    STATUS_EXPIRED = "EXPIRED"

    STATUS_CHOICES = [
        (STATUS_ACTIVE, "Active"),
        (STATUS_CHECKOUT, "Checkout"),
        (STATUS_ABANDONED, "Abandoned"),
        (STATUS_COMPLETED, "Completed"),
        (STATUS_EXPIRED, "Expired"),
    ]

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    session_id = models.CharField(max_length=128, db_index=True)

    # external identity (auth user pk as string); NULL for guest carts
    user_id = models.CharField(max_length=128, null=True, blank=True, db_index=True)

    status = models.CharField(
        max_length=16,
        choices=STATUS_CHOICES,
        default=STATUS_ACTIVE,
    )

    currency = models.CharField(max_length=8, default="USD")

    expires_at = models.DateTimeField(null=True, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["user_id", "status"], name="cart_user_status_idx"),
            models.Index(fields=["session_id", "status"], name="cart_session_status_idx"),
        ]

    def clean(self):
        if not (self.session_id or "").strip():
            raise ValidationError({"session_id": "session_id is required"})

    def save(self, *args, **kwargs):
        self.full_clean()
        return super().save(*args, **kwargs)

    @property
    def is_guest(self) -> bool:
        return not self.user_id

    @property
    def is_active(self) -> bool:
        return self.status == self.STATUS_ACTIVE

    @property
    def item_count(self) -> int:
        total = self.items.aggregate(total=Sum("quantity")).get("total")
        return int(total or 0)

    @property
    def subtotal_amount(self) -> Decimal:
        total = (
            self.items.annotate(
                line_total=ExpressionWrapper(
                    F("quantity") * F("price"),
                    output_field=models.DecimalField(max_digits=14, decimal_places=2),
                )
            )
            .aggregate(total=Sum("line_total"))
            .get("total")
        )
        return total or Decimal("0.00")

    @property
    def is_empty(self) -> bool:
        return not self.items.exists()

    def __str__(self):
        owner = self.user_id or f"guest:{self.session_id}"
        return f"Cart {self.id} | {owner} | {self.status}"
