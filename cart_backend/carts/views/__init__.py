from .api import (
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

__all__ = [
    "CreateCartView",
    "CartDetailView",
    "AddCartItemView",
    "CartItemView",
    "ClearCartView",
    "BulkAddItemsView",
    "BulkUpdateItemsView",
    "BulkRemoveItemsView",
    "MergePreviewView",
    "MergeCartsView",
    "MergeHistoryView",
]
