# pricing/views/api.py

"""
PRICING API VIEWS

Purpose:
- POST quote/               -> PriceBreakdown for an ad-hoc item list (no side effects)
- POST discounts/validate/  -> tagged coupon check (applicable or rejected + reason)

Hard rules:
- Quotes never record discount/promotion usage (commit happens at checkout).
- Dependency failures surface as 503, never as a zero total.
"""

from __future__ import annotations

import logging

from drf_spectacular.utils import OpenApiResponse, extend_schema
from rest_framework import status
from rest_framework.permissions import AllowAny
from rest_framework.response import Response
from rest_framework.throttling import AnonRateThrottle
from rest_framework.views import APIView

from pricing.serializers import (
    DiscountCheckSerializer,
    DiscountValidateInputSerializer,
    PriceBreakdownSerializer,
    PricingQuoteInputSerializer,
)
from pricing.services.discount_resolver import check_discount, discount_amount
from pricing.services.exceptions import (
    PricingDependencyError,
    PricingValidationError,
    PromotionNotFoundError,
    TaxUnavailableError,
)
from pricing.services.line_items import build_pricing_request, validate_line_items, calculate_subtotal
from pricing.services.pricing_composer import compute_pricing

logger = logging.getLogger(__name__)


class PricingQuoteThrottle(AnonRateThrottle):
    scope = "pricing_quote"


def error_response(*, code: str, message: str, http_status: int):
    return Response(
        {"error": {"code": code, "message": message}},
        status=http_status,
    )


def _request_user_id(request) -> str | None:
    user = getattr(request, "user", None)
    if user is not None and user.is_authenticated:
        return str(user.pk)
    return None


def pricing_error_response(exc: Exception):
    """
    Map pricing service errors onto the API error envelope.
    """
    if isinstance(exc, PricingValidationError):
        return error_response(
            code=exc.code.upper(), message=exc.message, http_status=status.HTTP_400_BAD_REQUEST
        )
    if isinstance(exc, PromotionNotFoundError):
        return error_response(
            code="PROMOTION_NOT_FOUND", message=str(exc), http_status=status.HTTP_404_NOT_FOUND
        )
    if isinstance(exc, TaxUnavailableError):
        return error_response(
            code="TAX_UNAVAILABLE",
            message="Tax rates are temporarily unavailable. Please retry.",
            http_status=status.HTTP_503_SERVICE_UNAVAILABLE,
        )
    if isinstance(exc, PricingDependencyError):
        return error_response(
            code="PRICING_UNAVAILABLE",
            message="Pricing is temporarily unavailable. Please retry.",
            http_status=status.HTTP_503_SERVICE_UNAVAILABLE,
        )
    raise exc


class PricingQuoteView(APIView):
    """
    Price an item list. Used by cart pages before checkout.
    """

    permission_classes = [AllowAny]
    throttle_classes = [PricingQuoteThrottle]

    @extend_schema(
        request=PricingQuoteInputSerializer,
        responses={
            200: PriceBreakdownSerializer,
            400: OpenApiResponse(description="Validation error"),
            404: OpenApiResponse(description="Promotion not found"),
            503: OpenApiResponse(description="Tax or discount lookup unavailable"),
        },
        description="Compute subtotal, discounts, taxes, shipping and total for an item list.",
        tags=["Pricing"],
    )
    def post(self, request):
        s = PricingQuoteInputSerializer(data=request.data)
        s.is_valid(raise_exception=True)

        payload = dict(s.validated_data)
        payload["user_id"] = _request_user_id(request)

        try:
            breakdown = compute_pricing(build_pricing_request(payload), commit=False)
        except (PricingValidationError, PromotionNotFoundError, PricingDependencyError) as exc:
            return pricing_error_response(exc)

        return Response(PriceBreakdownSerializer(breakdown).data, status=status.HTTP_200_OK)


class DiscountValidateView(APIView):
    """
    Check one coupon code against an item list and explain a rejection.
    """

    permission_classes = [AllowAny]
    throttle_classes = [PricingQuoteThrottle]

    @extend_schema(
        request=DiscountValidateInputSerializer,
        responses={
            200: DiscountCheckSerializer,
            400: OpenApiResponse(description="Validation error"),
            503: OpenApiResponse(description="Discount lookup unavailable"),
        },
        description="Validate a coupon code. Rejections return 200 with a reason code.",
        tags=["Pricing"],
    )
    def post(self, request):
        s = DiscountValidateInputSerializer(data=request.data)
        s.is_valid(raise_exception=True)

        try:
            items = validate_line_items(s.validated_data["items"])
            check = check_discount(
                s.validated_data["code"], items, user_id=_request_user_id(request)
            )
        except (PricingValidationError, PricingDependencyError) as exc:
            return pricing_error_response(exc)

        data = dict(DiscountCheckSerializer(check).data)
        if check.is_applicable:
            data["amount"] = str(discount_amount(check.discount, calculate_subtotal(items), items))
            data["type"] = check.discount.type
        return Response(data, status=status.HTTP_200_OK)
