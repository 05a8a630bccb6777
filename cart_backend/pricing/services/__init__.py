from .discount_resolver import check_discount, validate_discount
from .pricing_composer import PriceBreakdown, compute_pricing
from .tax_resolver import calculate_taxes

__all__ = [
    "check_discount",
    "validate_discount",
    "compute_pricing",
    "PriceBreakdown",
    "calculate_taxes",
]
