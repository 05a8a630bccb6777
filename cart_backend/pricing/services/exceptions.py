# pricing/services/exceptions.py

"""
PRICING SERVICE ERRORS

Centralized domain errors for pricing services.

Policy rejections (expired coupon, ineligible promotion, ...) are NOT errors:
resolvers return DiscountCheck.rejected(...) / False instead of raising.
"""


class PricingServiceError(Exception):
    """Base exception for all pricing service failures."""


class PricingValidationError(PricingServiceError):
    """Raised when line items or addresses are malformed. Never retried."""

    def __init__(self, message: str, *, field: str | None = None, code: str = "invalid"):
        super().__init__(message)
        self.message = message
        self.field = field
        self.code = code


class PromotionNotFoundError(PricingServiceError):
    """Raised when a referenced promotion id does not exist."""


class PricingDependencyError(PricingServiceError):
    """Raised when a storage lookup fails. Retryable by the caller."""


class TaxUnavailableError(PricingDependencyError):
    """Raised when tax rates cannot be read (distinct from 'zero tax applies')."""
