"""
PATH: pricing/models/__init__.py

Pricing models export surface.
"""

from .discount import Discount, DiscountUsage
from .promotion import Promotion, PromotionUsage
from .tax_rate import TaxRate

__all__ = [
    "Discount",
    "DiscountUsage",
    "Promotion",
    "PromotionUsage",
    "TaxRate",
]
