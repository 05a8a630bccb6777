# pricing/apps.py

"""
PRICING APP CONFIG

Discounts, promotions, tax rates and the pricing composer that turns
priced line items into a single PriceBreakdown.
"""

from django.apps import AppConfig


class PricingConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "pricing"
    verbose_name = "Pricing"
