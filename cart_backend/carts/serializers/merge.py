# carts/serializers/merge.py

"""
CART MERGE SERIALIZERS

Input:
- MergeCartsInputSerializer: guest/user cart ids + merge options

Output (read-only, over cart_merger dataclasses):
- MergePreviewSerializer, MergeResultSerializer, MergeHistoryEntrySerializer
"""

from rest_framework import serializers

from carts.services.cart_merger import POLICIES


class CartMergeOptionsSerializer(serializers.Serializer):
    combine_quantities = serializers.BooleanField(required=False, default=True)
    preserve_metadata = serializers.BooleanField(required=False, default=True)
    prefer_guest_price = serializers.BooleanField(required=False, default=False)
    prefer_user_price = serializers.BooleanField(required=False, default=False)
    conflict_resolution = serializers.ChoiceField(
        choices=sorted(POLICIES), required=False, allow_null=True, default=None
    )

    def validate(self, attrs):
        if attrs.get("prefer_guest_price") and attrs.get("prefer_user_price"):
            raise serializers.ValidationError(
                "prefer_guest_price and prefer_user_price are mutually exclusive."
            )
        return attrs


class MergeCartsInputSerializer(serializers.Serializer):
    guest_cart_id = serializers.UUIDField()
    user_cart_id = serializers.UUIDField()
    options = CartMergeOptionsSerializer(required=False, default=dict)


# ======================================================
# OUTPUT
# ======================================================


class MergeConflictSerializer(serializers.Serializer):
    product_id = serializers.CharField(read_only=True)
    variant_id = serializers.CharField(read_only=True, allow_null=True)
    guest_quantity = serializers.IntegerField(read_only=True)
    user_quantity = serializers.IntegerField(read_only=True)
    guest_price = serializers.DecimalField(max_digits=12, decimal_places=2, read_only=True)
    user_price = serializers.DecimalField(max_digits=12, decimal_places=2, read_only=True)
    resolution = serializers.CharField(read_only=True)


class AddOperationSerializer(serializers.Serializer):
    product_id = serializers.CharField(read_only=True)
    variant_id = serializers.CharField(read_only=True, allow_null=True)
    quantity = serializers.IntegerField(read_only=True)
    price = serializers.DecimalField(max_digits=12, decimal_places=2, read_only=True)


class UpdateOperationSerializer(serializers.Serializer):
    item_id = serializers.CharField(read_only=True)
    product_id = serializers.CharField(read_only=True)
    variant_id = serializers.CharField(read_only=True, allow_null=True)
    quantity = serializers.IntegerField(read_only=True)
    price = serializers.DecimalField(max_digits=12, decimal_places=2, read_only=True)


class MergePreviewSerializer(serializers.Serializer):
    guest_cart_id = serializers.CharField(read_only=True)
    user_cart_id = serializers.CharField(read_only=True)
    conflicts = MergeConflictSerializer(many=True, read_only=True)
    items_to_add = AddOperationSerializer(many=True, read_only=True)
    items_to_update = UpdateOperationSerializer(many=True, read_only=True)
    estimated_total = serializers.DecimalField(max_digits=12, decimal_places=2, read_only=True)


class MergeResultSerializer(serializers.Serializer):
    guest_cart_id = serializers.CharField(read_only=True)
    user_cart_id = serializers.CharField(read_only=True)
    items_added = serializers.IntegerField(read_only=True)
    items_updated = serializers.IntegerField(read_only=True)
    conflicts = MergeConflictSerializer(many=True, read_only=True)
    metadata_keys_merged = serializers.ListField(child=serializers.CharField(), read_only=True)


class MergeHistoryEntrySerializer(serializers.Serializer):
    cart_id = serializers.CharField(read_only=True)
    guest_cart_id = serializers.CharField(read_only=True)
    merged_at = serializers.CharField(read_only=True)
    status = serializers.CharField(read_only=True)
    item_count = serializers.IntegerField(read_only=True)
