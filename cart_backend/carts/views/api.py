# carts/views/api.py

"""
CART API VIEWS

Purpose:
- Cart lifecycle (create / read) for guests and authenticated users
- Add/update/remove/clear items (server-owned pricing)
- Bulk item operations with per-item results
- Guest -> user cart merge (preview, apply, history)

Hard rules:
- A cart with a user_id is only visible to that user.
- A guest cart is addressed by its id (the client keeps it with its session).
- Money is server-owned: price is snapshotted from the product catalog on add.
"""

from __future__ import annotations

import logging

from drf_spectacular.utils import OpenApiParameter, OpenApiResponse, extend_schema
from rest_framework import status
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from carts.models import Cart
from carts.serializers import (
    AddCartItemInputSerializer,
    BulkAddItemsInputSerializer,
    BulkOperationReportSerializer,
    BulkRemoveItemsInputSerializer,
    BulkUpdateItemsInputSerializer,
    CartSerializer,
    CreateCartInputSerializer,
    MergeCartsInputSerializer,
    MergeHistoryEntrySerializer,
    MergePreviewSerializer,
    MergeResultSerializer,
    UpdateCartItemInputSerializer,
)
from carts.services import cart_items, cart_merger, cart_store
from carts.services.exceptions import (
    CartMergeTransactionError,
    CartNotFoundError,
    CartServiceError,
    CartValidationError,
)
from catalog.services.ports import ProductCatalogError

logger = logging.getLogger(__name__)


# =====================================================
# API ERROR NORMALIZATION
# =====================================================


def error_response(*, code: str, message: str, http_status: int):
    return Response(
        {"error": {"code": code, "message": message}},
        status=http_status,
    )


def cart_error_response(exc: Exception):
    if isinstance(exc, CartNotFoundError):
        return error_response(
            code="CART_NOT_FOUND", message=str(exc), http_status=status.HTTP_404_NOT_FOUND
        )
    if isinstance(exc, CartValidationError):
        return error_response(
            code=exc.code, message=exc.message, http_status=status.HTTP_400_BAD_REQUEST
        )
    if isinstance(exc, CartMergeTransactionError):
        return error_response(
            code="MERGE_FAILED", message=str(exc), http_status=status.HTTP_409_CONFLICT
        )
    if isinstance(exc, ProductCatalogError):
        return error_response(
            code="PRODUCT_SERVICE_UNAVAILABLE",
            message="Product catalog is temporarily unavailable. Please retry.",
            http_status=status.HTTP_503_SERVICE_UNAVAILABLE,
        )
    raise exc


# =====================================================
# HELPERS
# =====================================================


def _request_user_id(request) -> str | None:
    user = getattr(request, "user", None)
    if user is not None and user.is_authenticated:
        return str(user.pk)
    return None


def _get_visible_cart(request, cart_id) -> Cart:
    """
    Load a cart the caller may act on.
    User carts of other users are reported as not found.
    """
    cart = cart_store.find_cart_by_id(cart_id)
    if cart.user_id and cart.user_id != _request_user_id(request):
        raise CartNotFoundError(f"Cart {cart_id} not found")
    return cart


def _cart_payload(cart_id) -> dict:
    cart = Cart.objects.prefetch_related("items", "metadata_entries").get(pk=cart_id)
    return CartSerializer(cart).data


# =====================================================
# CART LIFECYCLE
# =====================================================


class CreateCartView(APIView):
    """
    Create a cart.
    - anonymous caller: a new guest cart
    - authenticated caller: the user's ACTIVE cart (created if missing)
    """

    permission_classes = [AllowAny]
    serializer_class = CartSerializer

    @extend_schema(
        request=CreateCartInputSerializer,
        responses={201: CartSerializer, 200: CartSerializer},
        description="Create a guest cart, or get-or-create the authenticated user's active cart.",
        tags=["Carts"],
    )
    def post(self, request):
        s = CreateCartInputSerializer(data=request.data)
        s.is_valid(raise_exception=True)

        session_id = s.validated_data["session_id"]
        user_id = _request_user_id(request)

        try:
            if user_id:
                cart, created = cart_items.get_or_create_user_cart(
                    user_id=user_id, session_id=session_id
                )
            else:
                cart = cart_items.create_cart(
                    session_id=session_id, currency=s.validated_data.get("currency") or None
                )
                created = True
        except CartServiceError as exc:
            return cart_error_response(exc)

        return Response(
            _cart_payload(cart.pk),
            status=status.HTTP_201_CREATED if created else status.HTTP_200_OK,
        )


class CartDetailView(APIView):
    permission_classes = [AllowAny]
    serializer_class = CartSerializer

    @extend_schema(
        responses={200: CartSerializer, 404: OpenApiResponse(description="Cart not found")},
        description="Get a cart with its items and server-derived totals.",
        tags=["Carts"],
    )
    def get(self, request, cart_id):
        try:
            cart = _get_visible_cart(request, cart_id)
        except CartServiceError as exc:
            return cart_error_response(exc)
        return Response(_cart_payload(cart.pk), status=status.HTTP_200_OK)


# =====================================================
# ITEMS
# =====================================================


class AddCartItemView(APIView):
    """
    Add a product to the cart (increments quantity if the line exists).
    """

    permission_classes = [AllowAny]
    serializer_class = CartSerializer

    @extend_schema(
        request=AddCartItemInputSerializer,
        responses={
            200: CartSerializer,
            400: OpenApiResponse(description="Invalid quantity, unknown or unavailable product"),
            404: OpenApiResponse(description="Cart not found"),
            503: OpenApiResponse(description="Product catalog unavailable"),
        },
        description="Add a product to the cart. Price is taken from the product catalog.",
        tags=["Carts"],
    )
    def post(self, request, cart_id):
        s = AddCartItemInputSerializer(data=request.data)
        s.is_valid(raise_exception=True)

        try:
            _get_visible_cart(request, cart_id)
            cart_items.add_item(
                cart_id=cart_id,
                product_id=s.validated_data["product_id"],
                variant_id=s.validated_data.get("variant_id"),
                quantity=s.validated_data["quantity"],
                metadata=s.validated_data.get("metadata"),
            )
        except (CartServiceError, ProductCatalogError) as exc:
            return cart_error_response(exc)

        return Response(_cart_payload(cart_id), status=status.HTTP_200_OK)


class CartItemView(APIView):
    permission_classes = [AllowAny]
    serializer_class = CartSerializer

    @extend_schema(
        request=UpdateCartItemInputSerializer,
        responses={200: CartSerializer},
        description="Set the quantity of a cart item.",
        tags=["Carts"],
    )
    def patch(self, request, cart_id, item_id):
        s = UpdateCartItemInputSerializer(data=request.data)
        s.is_valid(raise_exception=True)

        try:
            _get_visible_cart(request, cart_id)
            cart_items.update_item_quantity(
                cart_id=cart_id, item_id=item_id, quantity=s.validated_data["quantity"]
            )
        except CartServiceError as exc:
            return cart_error_response(exc)

        return Response(_cart_payload(cart_id), status=status.HTTP_200_OK)

    @extend_schema(
        responses={200: CartSerializer},
        description="Remove an item from the cart.",
        tags=["Carts"],
    )
    def delete(self, request, cart_id, item_id):
        try:
            _get_visible_cart(request, cart_id)
            cart_items.remove_item(cart_id=cart_id, item_id=item_id)
        except CartServiceError as exc:
            return cart_error_response(exc)

        return Response(_cart_payload(cart_id), status=status.HTTP_200_OK)


class ClearCartView(APIView):
    permission_classes = [AllowAny]
    serializer_class = CartSerializer

    @extend_schema(
        responses={200: CartSerializer},
        description="Remove every item from the cart.",
        tags=["Carts"],
    )
    def delete(self, request, cart_id):
        try:
            _get_visible_cart(request, cart_id)
            cart_items.clear_cart(cart_id=cart_id)
        except CartServiceError as exc:
            return cart_error_response(exc)

        return Response(_cart_payload(cart_id), status=status.HTTP_200_OK)


# =====================================================
# BULK
# =====================================================


class BulkAddItemsView(APIView):
    permission_classes = [AllowAny]
    serializer_class = BulkOperationReportSerializer

    @extend_schema(
        request=BulkAddItemsInputSerializer,
        responses={200: BulkOperationReportSerializer},
        description="Add several products; each line succeeds or fails on its own.",
        tags=["Carts"],
    )
    def post(self, request, cart_id):
        s = BulkAddItemsInputSerializer(data=request.data)
        s.is_valid(raise_exception=True)

        try:
            _get_visible_cart(request, cart_id)
            report = cart_items.bulk_add_items(cart_id=cart_id, items=s.validated_data["items"])
        except (CartServiceError, ProductCatalogError) as exc:
            return cart_error_response(exc)

        return Response(BulkOperationReportSerializer(report).data, status=status.HTTP_200_OK)


class BulkUpdateItemsView(APIView):
    permission_classes = [AllowAny]
    serializer_class = BulkOperationReportSerializer

    @extend_schema(
        request=BulkUpdateItemsInputSerializer,
        responses={200: BulkOperationReportSerializer},
        description="Set quantities for several items; each line succeeds or fails on its own.",
        tags=["Carts"],
    )
    def post(self, request, cart_id):
        s = BulkUpdateItemsInputSerializer(data=request.data)
        s.is_valid(raise_exception=True)

        try:
            _get_visible_cart(request, cart_id)
            report = cart_items.bulk_update_items(cart_id=cart_id, updates=s.validated_data["items"])
        except CartServiceError as exc:
            return cart_error_response(exc)

        return Response(BulkOperationReportSerializer(report).data, status=status.HTTP_200_OK)


class BulkRemoveItemsView(APIView):
    permission_classes = [AllowAny]
    serializer_class = BulkOperationReportSerializer

    @extend_schema(
        request=BulkRemoveItemsInputSerializer,
        responses={200: BulkOperationReportSerializer},
        description="Remove several items; each line succeeds or fails on its own.",
        tags=["Carts"],
    )
    def post(self, request, cart_id):
        s = BulkRemoveItemsInputSerializer(data=request.data)
        s.is_valid(raise_exception=True)

        try:
            _get_visible_cart(request, cart_id)
            report = cart_items.bulk_remove_items(
                cart_id=cart_id, item_ids=s.validated_data["item_ids"]
            )
        except CartServiceError as exc:
            return cart_error_response(exc)

        return Response(BulkOperationReportSerializer(report).data, status=status.HTTP_200_OK)


# =====================================================
# MERGE
# =====================================================


def _merge_request(request):
    """
    Validate merge input and check the caller owns the target cart.
    Returns (guest_cart_id, user_cart_id, options).
    """
    s = MergeCartsInputSerializer(data=request.data)
    s.is_valid(raise_exception=True)

    guest_cart_id = s.validated_data["guest_cart_id"]
    user_cart_id = s.validated_data["user_cart_id"]

    user_cart = cart_store.find_cart_by_id(user_cart_id)
    if user_cart.user_id != _request_user_id(request):
        raise CartNotFoundError(f"Cart {user_cart_id} not found")

    options = cart_merger.CartMergeOptions.from_dict(s.validated_data.get("options"))
    return guest_cart_id, user_cart_id, options


class MergePreviewView(APIView):
    permission_classes = [IsAuthenticated]
    serializer_class = MergePreviewSerializer

    @extend_schema(
        request=MergeCartsInputSerializer,
        responses={
            200: MergePreviewSerializer,
            400: OpenApiResponse(description="Carts cannot be merged"),
            404: OpenApiResponse(description="Cart not found"),
        },
        description="Show what merging the guest cart into the user cart would do. No writes.",
        tags=["Carts"],
    )
    def post(self, request):
        try:
            guest_cart_id, user_cart_id, options = _merge_request(request)
            preview = cart_merger.preview_merge(guest_cart_id, user_cart_id, options)
        except CartServiceError as exc:
            return cart_error_response(exc)

        return Response(MergePreviewSerializer(preview).data, status=status.HTTP_200_OK)


class MergeCartsView(APIView):
    permission_classes = [IsAuthenticated]
    serializer_class = MergeResultSerializer

    @extend_schema(
        request=MergeCartsInputSerializer,
        responses={
            200: MergeResultSerializer,
            400: OpenApiResponse(description="Carts cannot be merged"),
            404: OpenApiResponse(description="Cart not found"),
            409: OpenApiResponse(description="Merge failed; nothing was applied"),
        },
        description="Merge the guest cart into the authenticated user's cart (atomic).",
        tags=["Carts"],
    )
    def post(self, request):
        try:
            guest_cart_id, user_cart_id, options = _merge_request(request)
            result = cart_merger.merge_carts(guest_cart_id, user_cart_id, options)
        except CartServiceError as exc:
            return cart_error_response(exc)

        return Response(
            {
                **MergeResultSerializer(result).data,
                "cart": _cart_payload(user_cart_id),
            },
            status=status.HTTP_200_OK,
        )


class MergeHistoryView(APIView):
    permission_classes = [IsAuthenticated]
    serializer_class = MergeHistoryEntrySerializer

    @extend_schema(
        parameters=[
            OpenApiParameter(name="limit", type=int, required=False, description="1..100, default 10"),
        ],
        responses={200: MergeHistoryEntrySerializer(many=True)},
        description="Carts of the authenticated user that received a guest merge, newest first.",
        tags=["Carts"],
    )
    def get(self, request):
        try:
            limit = int(request.query_params.get("limit") or 10)
        except ValueError:
            return error_response(
                code="INVALID_LIMIT",
                message="limit must be an integer",
                http_status=status.HTTP_400_BAD_REQUEST,
            )

        history = cart_merger.merge_history(_request_user_id(request), limit=limit)
        return Response(MergeHistoryEntrySerializer(history, many=True).data, status=status.HTTP_200_OK)
