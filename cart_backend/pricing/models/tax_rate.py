# pricing/models/tax_rate.py

import uuid
from decimal import Decimal

from django.core.exceptions import ValidationError
from django.db import models
from django.utils import timezone


class TaxRate(models.Model):
    """
    Geographically scoped tax rate.

    Location matching:
    - country is required
    - state / city / postal_code NULL means "any" (wildcard)
    - every active, time-valid matching row applies (they are additive)
    """

    TYPE_VAT = "vat"
    TYPE_GST = "gst"
    TYPE_SALES_TAX = "sales_tax"
    TYPE_CONSUMPTION_TAX = "consumption_tax"

    TYPE_CHOICES = [
        (TYPE_VAT, "Value Added Tax"),
        (TYPE_GST, "Goods and Services Tax"),
        (TYPE_SALES_TAX, "Sales Tax"),
        (TYPE_CONSUMPTION_TAX, "Consumption Tax"),
    ]

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    region = models.CharField(max_length=128, blank=True)

    country = models.CharField(max_length=64, db_index=True)
    state = models.CharField(max_length=64, null=True, blank=True)
    city = models.CharField(max_length=128, null=True, blank=True)
    postal_code = models.CharField(max_length=32, null=True, blank=True)

    type = models.CharField(max_length=32, choices=TYPE_CHOICES, default=TYPE_SALES_TAX)

    rate = models.DecimalField(
        max_digits=6,
        decimal_places=3,
        help_text="Percent, e.g. 8.875",
    )
    is_inclusive = models.BooleanField(default=False)

    applicable_products = models.JSONField(default=list, blank=True)
    applicable_categories = models.JSONField(default=list, blank=True)

    is_active = models.BooleanField(default=True)
    valid_from = models.DateTimeField(default=timezone.now)
    valid_to = models.DateTimeField(null=True, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["country", "state", "city", "postal_code"]
        indexes = [
            models.Index(fields=["country", "state", "city"], name="taxrate_location_idx"),
        ]

    def clean(self):
        if not (self.country or "").strip():
            raise ValidationError({"country": "country is required"})

        if self.rate is None or Decimal(self.rate) < Decimal("0"):
            raise ValidationError({"rate": "rate cannot be negative"})

        if self.valid_to and self.valid_from and self.valid_to < self.valid_from:
            raise ValidationError({"valid_to": "valid_to must be after valid_from"})

    def save(self, *args, **kwargs):
        self.full_clean()
        return super().save(*args, **kwargs)

    @property
    def specificity(self) -> int:
        # postal code > city > state > country
        return sum(
            1 for v in (self.state, self.city, self.postal_code) if v not in (None, "")
        )

    def __str__(self):
        parts = [p for p in (self.country, self.state, self.city, self.postal_code) if p]
        return f"{self.get_type_display()} {self.rate}% [{'/'.join(parts)}]"
