"""
PATH: checkout/urls.py

CHECKOUT URLS
"""

from django.urls import path

from checkout.views import CancelCheckoutView, CheckoutSessionDetailView, StartCheckoutView

app_name = "checkout"

urlpatterns = [
    path("", StartCheckoutView.as_view(), name="start"),
    path("<uuid:checkout_id>/", CheckoutSessionDetailView.as_view(), name="detail"),
    path("<uuid:checkout_id>/cancel/", CancelCheckoutView.as_view(), name="cancel"),
]
