"""
PATH: carts/urls.py

CART URLS

- cart lifecycle (create / read)
- item operations (single + bulk)
- guest -> user merge (preview / apply / history)
"""

from django.urls import path

from carts.views import (
    AddCartItemView,
    BulkAddItemsView,
    BulkRemoveItemsView,
    BulkUpdateItemsView,
    CartDetailView,
    CartItemView,
    ClearCartView,
    CreateCartView,
    MergeCartsView,
    MergeHistoryView,
    MergePreviewView,
)

app_name = "carts"

urlpatterns = [
    path("", CreateCartView.as_view(), name="create-cart"),

    path("merge/", MergeCartsView.as_view(), name="merge"),
    path("merge/preview/", MergePreviewView.as_view(), name="merge-preview"),
    path("merge/history/", MergeHistoryView.as_view(), name="merge-history"),

    path("<uuid:cart_id>/", CartDetailView.as_view(), name="cart-detail"),
    path("<uuid:cart_id>/clear/", ClearCartView.as_view(), name="clear-cart"),

    path("<uuid:cart_id>/items/", AddCartItemView.as_view(), name="add-cart-item"),
    path("<uuid:cart_id>/items/<uuid:item_id>/", CartItemView.as_view(), name="cart-item"),

    path("<uuid:cart_id>/items/bulk/add/", BulkAddItemsView.as_view(), name="bulk-add-items"),
    path("<uuid:cart_id>/items/bulk/update/", BulkUpdateItemsView.as_view(), name="bulk-update-items"),
    path("<uuid:cart_id>/items/bulk/remove/", BulkRemoveItemsView.as_view(), name="bulk-remove-items"),
]
