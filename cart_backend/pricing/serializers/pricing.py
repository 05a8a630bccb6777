# pricing/serializers/pricing.py

"""
PRICING SERIALIZERS

Input:
- LineItemInputSerializer / ShippingAddressInputSerializer
- PricingQuoteInputSerializer (items + address + coupon codes + promotion ids)
- DiscountValidateInputSerializer

Output (read-only, over service dataclasses):
- PriceBreakdownSerializer and its nested application serializers

Money is rendered as 2dp decimal strings.
"""

from rest_framework import serializers


class LineItemInputSerializer(serializers.Serializer):
    product_id = serializers.CharField(max_length=128)
    variant_id = serializers.CharField(max_length=128, required=False, allow_null=True, allow_blank=True)
    quantity = serializers.IntegerField(min_value=1)
    unit_price = serializers.DecimalField(max_digits=12, decimal_places=2, min_value=0)
    category = serializers.CharField(max_length=128, required=False, allow_null=True, allow_blank=True)
    metadata = serializers.DictField(required=False, default=dict)


class ShippingAddressInputSerializer(serializers.Serializer):
    country = serializers.CharField(max_length=64)
    state = serializers.CharField(max_length=64, required=False, allow_null=True, allow_blank=True)
    city = serializers.CharField(max_length=128, required=False, allow_null=True, allow_blank=True)
    postal_code = serializers.CharField(max_length=32, required=False, allow_null=True, allow_blank=True)


class PricingQuoteInputSerializer(serializers.Serializer):
    items = LineItemInputSerializer(many=True, allow_empty=False)
    shipping_address = ShippingAddressInputSerializer(required=False, allow_null=True)
    coupon_codes = serializers.ListField(
        child=serializers.CharField(max_length=64), required=False, default=list
    )
    promotion_ids = serializers.ListField(
        child=serializers.CharField(max_length=64), required=False, default=list
    )
    currency = serializers.CharField(max_length=8, required=False, allow_blank=True)


class DiscountValidateInputSerializer(serializers.Serializer):
    code = serializers.CharField(max_length=64)
    items = LineItemInputSerializer(many=True, allow_empty=False)


# ======================================================
# OUTPUT
# ======================================================


class DiscountApplicationSerializer(serializers.Serializer):
    id = serializers.CharField(read_only=True)
    source = serializers.CharField(read_only=True)
    code = serializers.CharField(read_only=True)
    name = serializers.CharField(read_only=True)
    type = serializers.CharField(read_only=True)
    value = serializers.DecimalField(max_digits=12, decimal_places=2, read_only=True)
    amount = serializers.DecimalField(max_digits=12, decimal_places=2, read_only=True)
    is_stackable = serializers.BooleanField(read_only=True)
    free_shipping = serializers.BooleanField(read_only=True)


class TaxApplicationSerializer(serializers.Serializer):
    id = serializers.CharField(read_only=True)
    name = serializers.CharField(read_only=True)
    type = serializers.CharField(read_only=True)
    rate = serializers.DecimalField(max_digits=6, decimal_places=3, read_only=True)
    taxable_amount = serializers.DecimalField(max_digits=12, decimal_places=2, read_only=True)
    amount = serializers.DecimalField(max_digits=12, decimal_places=2, read_only=True)
    region = serializers.CharField(read_only=True)
    is_inclusive = serializers.BooleanField(read_only=True)


class PromotionRewardSerializer(serializers.Serializer):
    type = serializers.CharField(read_only=True)
    value = serializers.DecimalField(max_digits=12, decimal_places=2, read_only=True)
    promotion_id = serializers.CharField(read_only=True)
    promotion_name = serializers.CharField(read_only=True)


class DiscountCheckSerializer(serializers.Serializer):
    code = serializers.CharField(read_only=True)
    is_applicable = serializers.BooleanField(read_only=True)
    reason = serializers.CharField(read_only=True, allow_null=True)
    message = serializers.CharField(read_only=True)


class PriceBreakdownSerializer(serializers.Serializer):
    subtotal = serializers.DecimalField(max_digits=12, decimal_places=2, read_only=True)
    discounts = DiscountApplicationSerializer(many=True, read_only=True)
    discount_total = serializers.DecimalField(max_digits=12, decimal_places=2, read_only=True)
    after_discount = serializers.DecimalField(max_digits=12, decimal_places=2, read_only=True)
    taxes = TaxApplicationSerializer(many=True, read_only=True)
    tax_total = serializers.DecimalField(max_digits=12, decimal_places=2, read_only=True)
    shipping = serializers.DecimalField(max_digits=12, decimal_places=2, read_only=True)
    total = serializers.DecimalField(max_digits=12, decimal_places=2, read_only=True)
    currency = serializers.CharField(read_only=True)
    free_shipping = serializers.BooleanField(read_only=True)
    rewards = PromotionRewardSerializer(many=True, read_only=True)
    rejected_coupons = DiscountCheckSerializer(many=True, read_only=True)
    rejected_promotions = serializers.ListField(child=serializers.CharField(), read_only=True)
