"""
PATH: carts/models/cart_item.py

CART ITEM MODEL

Purpose:
- One (product, variant) line in a cart.
- price is the snapshot at time of add; original_price keeps the list price.

Rules:
- One line per (cart, product_id, variant_id). variant_id "" means "no variant".
- Quantity must be > 0; prices must be >= 0.
"""

import uuid
from decimal import Decimal

from django.core.exceptions import ValidationError
from django.db import models

from .cart import Cart


class CartItem(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    cart = models.ForeignKey(
        Cart,
        on_delete=models.CASCADE,
        related_name="items",
    )

    product_id = models.CharField(max_length=128)
    variant_id = models.CharField(max_length=128, blank=True, default="")

    quantity = models.PositiveIntegerField(help_text="Must be greater than zero")

    price = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        help_text="Snapshot price at time of adding to cart (server-controlled)",
    )
    original_price = models.DecimalField(max_digits=12, decimal_places=2)

    category = models.CharField(max_length=128, blank=True, default="")
    metadata = models.JSONField(default=dict, blank=True)

    added_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["added_at"]
        constraints = [
            models.UniqueConstraint(
                fields=["cart", "product_id", "variant_id"],
                name="unique_product_variant_per_cart",
            )
        ]

    def clean(self):
        if self.quantity is None or int(self.quantity) <= 0:
            raise ValidationError({"quantity": "Quantity must be greater than zero"})

        if self.price is None or self.price < 0:
            raise ValidationError({"price": "Price must be greater than or equal to zero"})

        if self.original_price is None or self.original_price < 0:
            raise ValidationError(
                {"original_price": "Original price must be greater than or equal to zero"}
            )

    def save(self, *args, **kwargs):
        self.full_clean()
        return super().save(*args, **kwargs)

    @property
    def line_total(self) -> Decimal:
        return (self.price or Decimal("0.00")) * Decimal(int(self.quantity or 0))

    def __str__(self):
        variant = f" [{self.variant_id}]" if self.variant_id else ""
        return f"{self.product_id}{variant} x {self.quantity}"
