# carts/services/exceptions.py

"""
CART SERVICE ERRORS

Centralized domain errors for cart services.
"""


class CartServiceError(Exception):
    """Base exception for all cart service failures."""


class CartNotFoundError(CartServiceError):
    """Raised when a referenced cart (or cart item) does not exist."""


class CartValidationError(CartServiceError):
    """Raised on malformed input or an operation the cart state does not allow."""

    def __init__(self, message: str, *, code: str = "INVALID_CART_OPERATION"):
        super().__init__(message)
        self.message = message
        self.code = code


class CartMergeValidationError(CartValidationError):
    """Raised when two carts cannot be merged (ownership / status mismatch)."""

    def __init__(self, message: str, *, code: str = "INVALID_MERGE"):
        super().__init__(message, code=code)


class CartMergeTransactionError(CartServiceError):
    """Raised when the merge write fails; nothing was applied."""
