"""
PATH: pricing/urls.py

PRICING URLS

- quote/                (ad-hoc price breakdown)
- discounts/validate/   (coupon check with rejection reason)
"""

from django.urls import path

from pricing.views.api import DiscountValidateView, PricingQuoteView

app_name = "pricing"

urlpatterns = [
    path("quote/", PricingQuoteView.as_view(), name="quote"),
    path("discounts/validate/", DiscountValidateView.as_view(), name="discount-validate"),
]
