from .checkout import CheckoutSessionSerializer, StartCheckoutInputSerializer

__all__ = ["StartCheckoutInputSerializer", "CheckoutSessionSerializer"]
