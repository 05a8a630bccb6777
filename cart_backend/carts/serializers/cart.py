"""
PATH: carts/serializers/cart.py

CART SERIALIZERS

Purpose:
- Return a cart in a frontend-friendly shape.
- Keep money + totals server-derived (single source of truth).
- Input serializers for item operations (price is never accepted from the client).
"""

from rest_framework import serializers

from carts.models import Cart, CartItem


class CartItemSerializer(serializers.ModelSerializer):
    variant_id = serializers.SerializerMethodField()

    price = serializers.DecimalField(max_digits=12, decimal_places=2, read_only=True)
    original_price = serializers.DecimalField(max_digits=12, decimal_places=2, read_only=True)
    line_total = serializers.DecimalField(max_digits=12, decimal_places=2, read_only=True)

    class Meta:
        model = CartItem
        fields = [
            "id",
            "product_id",
            "variant_id",
            "quantity",
            "price",
            "original_price",
            "line_total",
            "category",
            "metadata",
            "added_at",
            "updated_at",
        ]
        read_only_fields = fields

    def get_variant_id(self, obj) -> str | None:
        return obj.variant_id or None


class CartSerializer(serializers.ModelSerializer):
    """
    Guarantees:
    - items are read-only
    - totals are computed server-side (never trusted from client)
    """

    items = CartItemSerializer(many=True, read_only=True)

    item_count = serializers.IntegerField(read_only=True)
    subtotal_amount = serializers.SerializerMethodField()
    metadata = serializers.SerializerMethodField()

    class Meta:
        model = Cart
        fields = [
            "id",
            "session_id",
            "user_id",
            "status",
            "currency",
            "items",
            "item_count",
            "subtotal_amount",
            "metadata",
            "expires_at",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields

    def get_subtotal_amount(self, obj) -> str:
        # string avoids float serialization issues
        return f"{obj.subtotal_amount:.2f}"

    def get_metadata(self, obj) -> dict:
        return {row.key: row.value for row in obj.metadata_entries.all()}


# ======================================================
# INPUT
# ======================================================


class CreateCartInputSerializer(serializers.Serializer):
    session_id = serializers.CharField(max_length=128)
    currency = serializers.CharField(max_length=8, required=False, allow_blank=True)


class AddCartItemInputSerializer(serializers.Serializer):
    product_id = serializers.CharField(max_length=128)
    variant_id = serializers.CharField(max_length=128, required=False, allow_null=True, allow_blank=True)
    quantity = serializers.IntegerField(min_value=1)
    metadata = serializers.DictField(required=False, default=dict)


class UpdateCartItemInputSerializer(serializers.Serializer):
    quantity = serializers.IntegerField(min_value=1)


class BulkUpdateItemInputSerializer(serializers.Serializer):
    item_id = serializers.UUIDField()
    quantity = serializers.IntegerField(min_value=1)


class BulkAddItemsInputSerializer(serializers.Serializer):
    items = AddCartItemInputSerializer(many=True, allow_empty=False)


class BulkUpdateItemsInputSerializer(serializers.Serializer):
    items = BulkUpdateItemInputSerializer(many=True, allow_empty=False)


class BulkRemoveItemsInputSerializer(serializers.Serializer):
    item_ids = serializers.ListField(child=serializers.UUIDField(), allow_empty=False)


# ======================================================
# BULK REPORT (read-only, over BulkOperationReport)
# ======================================================


class BulkOperationResultSerializer(serializers.Serializer):
    success = serializers.BooleanField(read_only=True)
    item_id = serializers.CharField(read_only=True, allow_null=True)
    product_id = serializers.CharField(read_only=True, allow_null=True)
    error = serializers.CharField(read_only=True, allow_null=True)


class BulkOperationReportSerializer(serializers.Serializer):
    success = serializers.BooleanField(read_only=True)
    total_items = serializers.IntegerField(read_only=True)
    successful_items = serializers.IntegerField(read_only=True)
    failed_items = serializers.IntegerField(read_only=True)
    results = BulkOperationResultSerializer(many=True, read_only=True)
    errors = serializers.ListField(child=serializers.CharField(), read_only=True)
