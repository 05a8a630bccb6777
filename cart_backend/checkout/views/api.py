# checkout/views/api.py

"""
CHECKOUT API VIEWS

Purpose:
- POST /            -> start checkout for a cart (prices it and records usage)
- GET  /<id>/       -> read a checkout session (expires stale sessions)
- POST /<id>/cancel -> cancel a pending session, cart goes back to ACTIVE

Guest callers identify themselves with session_id (body, or ?session_id= on GET).
"""

from __future__ import annotations

import logging

from drf_spectacular.utils import OpenApiParameter, OpenApiResponse, extend_schema
from rest_framework import status
from rest_framework.permissions import AllowAny
from rest_framework.response import Response
from rest_framework.views import APIView

from carts.services.exceptions import CartNotFoundError
from catalog.services.ports import ProductCatalogError
from checkout.serializers import CheckoutSessionSerializer, StartCheckoutInputSerializer
from checkout.services.checkout_service import (
    cancel_checkout,
    get_checkout_session,
    start_checkout,
)
from checkout.services.exceptions import (
    CheckoutSessionNotFoundError,
    CheckoutValidationError,
)
from pricing.services.exceptions import PricingServiceError
from pricing.views.api import pricing_error_response

logger = logging.getLogger(__name__)


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


def _session_id(request) -> str | None:
    raw = request.query_params.get("session_id")
    if not raw and isinstance(request.data, dict):
        raw = request.data.get("session_id")
    return (str(raw).strip() or None) if raw else None


session_id_param = OpenApiParameter(
    name="session_id", type=str, required=False, description="Guest session id (guest carts only)"
)


class StartCheckoutView(APIView):
    permission_classes = [AllowAny]
    serializer_class = CheckoutSessionSerializer

    @extend_schema(
        request=StartCheckoutInputSerializer,
        responses={
            201: CheckoutSessionSerializer,
            400: OpenApiResponse(description="Cart empty / not active / not owned, or invalid input"),
            404: OpenApiResponse(description="Cart or promotion not found"),
            503: OpenApiResponse(description="Product catalog, discount or tax lookup unavailable"),
        },
        description="Re-validate the cart, price it, record discount usage and open a checkout session.",
        tags=["Checkout"],
    )
    def post(self, request):
        s = StartCheckoutInputSerializer(data=request.data)
        s.is_valid(raise_exception=True)
        data = s.validated_data

        try:
            session = start_checkout(
                data["cart_id"],
                user_id=_request_user_id(request),
                session_id=data.get("session_id") or None,
                coupon_codes=data.get("coupon_codes") or (),
                promotion_ids=data.get("promotion_ids") or (),
                shipping_address=data.get("shipping_address") or None,
            )
        except CartNotFoundError as exc:
            return error_response(
                code="CART_NOT_FOUND", message=str(exc), http_status=status.HTTP_404_NOT_FOUND
            )
        except CheckoutValidationError as exc:
            return error_response(
                code=exc.code, message=exc.message, http_status=status.HTTP_400_BAD_REQUEST
            )
        except ProductCatalogError as exc:
            logger.warning("Checkout blocked by product catalog", extra={"error": str(exc)})
            return error_response(
                code="PRODUCT_SERVICE_UNAVAILABLE",
                message="Product catalog is temporarily unavailable. Please retry.",
                http_status=status.HTTP_503_SERVICE_UNAVAILABLE,
            )
        except PricingServiceError as exc:
            return pricing_error_response(exc)

        return Response(CheckoutSessionSerializer(session).data, status=status.HTTP_201_CREATED)


class CheckoutSessionDetailView(APIView):
    permission_classes = [AllowAny]
    serializer_class = CheckoutSessionSerializer

    @extend_schema(
        parameters=[session_id_param],
        responses={200: CheckoutSessionSerializer, 404: OpenApiResponse(description="Not found")},
        description="Get a checkout session. Pending sessions past their expiry are expired on read.",
        tags=["Checkout"],
    )
    def get(self, request, checkout_id):
        try:
            session = get_checkout_session(
                checkout_id, user_id=_request_user_id(request), session_id=_session_id(request)
            )
        except CheckoutSessionNotFoundError as exc:
            return error_response(
                code="CHECKOUT_NOT_FOUND", message=str(exc), http_status=status.HTTP_404_NOT_FOUND
            )
        return Response(CheckoutSessionSerializer(session).data, status=status.HTTP_200_OK)


class CancelCheckoutView(APIView):
    permission_classes = [AllowAny]
    serializer_class = CheckoutSessionSerializer

    @extend_schema(
        parameters=[session_id_param],
        request=None,
        responses={
            200: CheckoutSessionSerializer,
            400: OpenApiResponse(description="Session is not pending"),
            404: OpenApiResponse(description="Not found"),
        },
        description="Cancel a pending checkout session and reopen its cart.",
        tags=["Checkout"],
    )
    def post(self, request, checkout_id):
        try:
            session = cancel_checkout(
                checkout_id, user_id=_request_user_id(request), session_id=_session_id(request)
            )
        except CheckoutSessionNotFoundError as exc:
            return error_response(
                code="CHECKOUT_NOT_FOUND", message=str(exc), http_status=status.HTTP_404_NOT_FOUND
            )
        except CheckoutValidationError as exc:
            return error_response(
                code=exc.code, message=exc.message, http_status=status.HTTP_400_BAD_REQUEST
            )
        return Response(CheckoutSessionSerializer(session).data, status=status.HTTP_200_OK)
