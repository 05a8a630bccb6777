# checkout/services/exceptions.py

"""
CHECKOUT SERVICE ERRORS
"""


class CheckoutServiceError(Exception):
    """Base exception for all checkout service failures."""


class CheckoutSessionNotFoundError(CheckoutServiceError):
    """Raised when a checkout session does not exist (or is not visible to the caller)."""


class CheckoutValidationError(CheckoutServiceError):
    """Raised when the cart or session state does not allow the requested step."""

    def __init__(self, message: str, *, code: str = "INVALID_CHECKOUT"):
        super().__init__(message)
        self.message = message
        self.code = code
