# checkout/serializers/checkout.py

from rest_framework import serializers

from checkout.models import CheckoutSession
from pricing.serializers import ShippingAddressInputSerializer


class StartCheckoutInputSerializer(serializers.Serializer):
    cart_id = serializers.UUIDField()
    session_id = serializers.CharField(max_length=128, required=False, allow_blank=True)
    coupon_codes = serializers.ListField(
        child=serializers.CharField(max_length=64), required=False, default=list
    )
    promotion_ids = serializers.ListField(
        child=serializers.CharField(max_length=64), required=False, default=list
    )
    shipping_address = ShippingAddressInputSerializer(required=False, allow_null=True)


class CheckoutSessionSerializer(serializers.ModelSerializer):
    """
    Totals are the priced snapshot taken when checkout started.
    """

    cart_id = serializers.UUIDField(read_only=True)

    class Meta:
        model = CheckoutSession
        fields = [
            "id",
            "cart_id",
            "status",
            "coupon_codes",
            "promotion_ids",
            "shipping_address",
            "currency",
            "subtotal",
            "discount_total",
            "tax_total",
            "shipping",
            "total",
            "pricing_snapshot",
            "expires_at",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields
