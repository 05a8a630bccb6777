from .pricing import (
    DiscountCheckSerializer,
    DiscountValidateInputSerializer,
    LineItemInputSerializer,
    PriceBreakdownSerializer,
    PricingQuoteInputSerializer,
    ShippingAddressInputSerializer,
)

__all__ = [
    "LineItemInputSerializer",
    "ShippingAddressInputSerializer",
    "PricingQuoteInputSerializer",
    "DiscountValidateInputSerializer",
    "PriceBreakdownSerializer",
    "DiscountCheckSerializer",
]
