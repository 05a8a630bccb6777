from .cart import (
    AddCartItemInputSerializer,
    BulkAddItemsInputSerializer,
    BulkOperationReportSerializer,
    BulkRemoveItemsInputSerializer,
    BulkUpdateItemsInputSerializer,
    CartItemSerializer,
    CartSerializer,
    CreateCartInputSerializer,
    UpdateCartItemInputSerializer,
)
from .merge import (
    MergeCartsInputSerializer,
    MergeHistoryEntrySerializer,
    MergePreviewSerializer,
    MergeResultSerializer,
)

__all__ = [
    "CartSerializer",
    "CartItemSerializer",
    "CreateCartInputSerializer",
    "AddCartItemInputSerializer",
    "UpdateCartItemInputSerializer",
    "BulkAddItemsInputSerializer",
    "BulkUpdateItemsInputSerializer",
    "BulkRemoveItemsInputSerializer",
    "BulkOperationReportSerializer",
    "MergeCartsInputSerializer",
    "MergePreviewSerializer",
    "MergeResultSerializer",
    "MergeHistoryEntrySerializer",
]
