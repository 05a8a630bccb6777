from .api import CancelCheckoutView, CheckoutSessionDetailView, StartCheckoutView

__all__ = ["StartCheckoutView", "CheckoutSessionDetailView", "CancelCheckoutView"]
