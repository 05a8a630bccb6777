# carts/models/cart_metadata.py

from django.db import models

from .cart import Cart


class CartMetadata(models.Model):
    """
    Free-form key/value pairs attached to a cart (one value per key).
    """

    cart = models.ForeignKey(
        Cart,
        on_delete=models.CASCADE,
        related_name="metadata_entries",
    )

    key = models.CharField(max_length=128)
    value = models.TextField(blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["key"]
        constraints = [
            models.UniqueConstraint(fields=["cart", "key"], name="unique_metadata_key_per_cart")
        ]

    def __str__(self):
        return f"{self.cart_id}:{self.key}"
