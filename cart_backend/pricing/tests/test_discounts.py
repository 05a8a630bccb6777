# pricing/tests/test_discounts.py

from datetime import timedelta
from decimal import Decimal

from django.test import TestCase
from django.utils import timezone

from pricing.models import Discount, DiscountUsage
from pricing.services.discount_resolver import (
    REASON_BELOW_MINIMUM_ORDER,
    REASON_BELOW_MINIMUM_QUANTITY,
    REASON_CATEGORIES_NOT_APPLICABLE,
    REASON_EXPIRED,
    REASON_INACTIVE,
    REASON_NOT_FOUND,
    REASON_NOT_STARTED,
    REASON_PRODUCTS_NOT_APPLICABLE,
    REASON_USAGE_EXHAUSTED,
    REASON_USER_NOT_ELIGIBLE,
    automatic_discounts,
    check_discount,
    discount_amount,
    increment_discount_usage,
    record_discount_usage,
    validate_discount,
)
from pricing.services.line_items import LineItem


def _item(product_id="P-1", quantity=1, unit_price="100.00", category=None):
    return LineItem(
        product_id=product_id,
        quantity=quantity,
        unit_price=Decimal(unit_price),
        category=category,
    )


class DiscountCheckTests(TestCase):
    """
    GUARANTEES:
    - Every rejection carries a specific reason (tagged result)
    - validate_discount keeps the legacy Discount-or-None contract
    """

    def setUp(self):
        self.items = [_item()]

    def test_unknown_code_is_not_found(self):
        check = check_discount("NOPE", self.items)
        self.assertFalse(check.is_applicable)
        self.assertEqual(check.reason, REASON_NOT_FOUND)
        self.assertIsNone(validate_discount("NOPE", self.items))

    def test_validate_discount_only_returns_active_discounts(self):
        now = timezone.now()
        live = Discount.objects.create(code="LIVE", type=Discount.TYPE_FIXED_AMOUNT, value=Decimal("5"))
        Discount.objects.create(code="OFF", value=Decimal("5"), is_active=False)
        Discount.objects.create(
            code="PAST",
            value=Decimal("5"),
            valid_from=now - timedelta(days=10),
            valid_to=now - timedelta(days=1),
        )
        Discount.objects.create(code="BIG", value=Decimal("5"), minimum_order_amount=Decimal("500"))

        self.assertEqual(validate_discount("live", self.items), live)
        self.assertIsNone(validate_discount("OFF", self.items))
        self.assertIsNone(validate_discount("PAST", self.items))
        self.assertIsNone(validate_discount("BIG", self.items))

    def test_code_lookup_is_case_insensitive(self):
        Discount.objects.create(code="save10", type=Discount.TYPE_FIXED_AMOUNT, value=Decimal("10"))
        check = check_discount(" Save10 ", self.items)
        self.assertTrue(check.is_applicable)
        self.assertEqual(check.discount.code, "SAVE10")

    def test_inactive(self):
        Discount.objects.create(code="OFF", value=Decimal("5"), is_active=False)
        self.assertEqual(check_discount("OFF", self.items).reason, REASON_INACTIVE)

    def test_not_started_and_expired(self):
        now = timezone.now()
        Discount.objects.create(code="FUTURE", value=Decimal("5"), valid_from=now + timedelta(days=1))
        Discount.objects.create(
            code="PAST",
            value=Decimal("5"),
            valid_from=now - timedelta(days=10),
            valid_to=now - timedelta(days=1),
        )
        self.assertEqual(check_discount("FUTURE", self.items).reason, REASON_NOT_STARTED)
        self.assertEqual(check_discount("PAST", self.items).reason, REASON_EXPIRED)

    def test_usage_exhausted(self):
        Discount.objects.create(code="ONCE", value=Decimal("5"), usage_limit=1, usage_count=1)
        check = check_discount("ONCE", self.items)
        self.assertEqual(check.reason, REASON_USAGE_EXHAUSTED)
        self.assertEqual(check.message, "Coupon usage limit has been reached")

    def test_minimum_order_amount(self):
        Discount.objects.create(code="BIG", value=Decimal("5"), minimum_order_amount=Decimal("150.00"))
        self.assertEqual(check_discount("BIG", self.items).reason, REASON_BELOW_MINIMUM_ORDER)

    def test_applicable_products_and_categories(self):
        Discount.objects.create(code="PRODS", value=Decimal("5"), applicable_products=["P-9"])
        Discount.objects.create(code="CATS", value=Decimal("5"), applicable_categories=["shoes"])

        self.assertEqual(check_discount("PRODS", self.items).reason, REASON_PRODUCTS_NOT_APPLICABLE)
        self.assertEqual(check_discount("CATS", self.items).reason, REASON_CATEGORIES_NOT_APPLICABLE)

        items = [_item(), _item(product_id="P-9", category="shoes")]
        self.assertTrue(check_discount("PRODS", items).is_applicable)
        self.assertTrue(check_discount("CATS", items).is_applicable)

    def test_applicable_users_requires_user_id(self):
        Discount.objects.create(code="VIP", value=Decimal("5"), applicable_users=["42"])

        self.assertEqual(check_discount("VIP", self.items).reason, REASON_USER_NOT_ELIGIBLE)
        self.assertEqual(check_discount("VIP", self.items, user_id="7").reason, REASON_USER_NOT_ELIGIBLE)
        self.assertTrue(check_discount("VIP", self.items, user_id="42").is_applicable)

    def test_bulk_minimum_quantity(self):
        Discount.objects.create(
            code="BULK",
            type=Discount.TYPE_BULK_DISCOUNT,
            value=Decimal("10"),
            minimum_quantity=5,
        )
        self.assertEqual(check_discount("BULK", self.items).reason, REASON_BELOW_MINIMUM_QUANTITY)
        self.assertTrue(check_discount("BULK", [_item(quantity=5, unit_price="2.00")]).is_applicable)


class DiscountAmountTests(TestCase):
    """
    GUARANTEES:
    - Percentage discounts never exceed maximum_discount_amount
    - Fixed discounts never exceed the subtotal
    - Free shipping contributes 0 to the discount total
    """

    def test_percentage_is_capped_for_any_subtotal(self):
        discount = Discount.objects.create(
            code="PCT",
            type=Discount.TYPE_PERCENTAGE,
            value=Decimal("20"),
            maximum_discount_amount=Decimal("25.00"),
        )
        for subtotal in ("0.01", "50.00", "125.00", "126.00", "1000000000.00"):
            amount = discount_amount(discount, Decimal(subtotal))
            self.assertLessEqual(amount, Decimal("25.00"))
            self.assertGreaterEqual(amount, Decimal("0.00"))

        self.assertEqual(discount_amount(discount, Decimal("50.00")), Decimal("10.00"))

    def test_fixed_amount_is_bounded_by_subtotal(self):
        discount = Discount.objects.create(code="FIX", type=Discount.TYPE_FIXED_AMOUNT, value=Decimal("30"))
        self.assertEqual(discount_amount(discount, Decimal("100.00")), Decimal("30.00"))
        self.assertEqual(discount_amount(discount, Decimal("12.50")), Decimal("12.50"))

    def test_free_shipping_is_zero(self):
        discount = Discount.objects.create(code="SHIP", type=Discount.TYPE_FREE_SHIPPING)
        self.assertEqual(discount_amount(discount, Decimal("100.00")), Decimal("0.00"))

    def test_bulk_applies_to_matching_lines_only(self):
        discount = Discount.objects.create(
            code="BULKCAT",
            type=Discount.TYPE_BULK_DISCOUNT,
            value=Decimal("10"),
            minimum_quantity=3,
            applicable_categories=["paper"],
        )
        items = [
            _item(product_id="A", quantity=3, unit_price="10.00", category="paper"),
            _item(product_id="B", quantity=1, unit_price="70.00", category="ink"),
        ]
        self.assertEqual(discount_amount(discount, Decimal("100.00"), items), Decimal("3.00"))

    def test_buy_x_get_y_frees_units(self):
        discount = Discount.objects.create(
            code="B2G1",
            type=Discount.TYPE_BUY_X_GET_Y,
            buy_quantity=2,
            get_quantity=1,
        )
        items = [_item(quantity=7, unit_price="4.00")]
        # 7 units -> two complete groups of 3 -> 2 free units
        self.assertEqual(discount_amount(discount, Decimal("28.00"), items), Decimal("8.00"))


class DiscountUsageTests(TestCase):
    """
    GUARANTEES:
    - usage_count increments in the database
    - increments stop at usage_limit
    """

    def test_increment_is_limit_guarded(self):
        discount = Discount.objects.create(code="TWICE", value=Decimal("5"), usage_limit=2)

        self.assertTrue(increment_discount_usage(discount))
        self.assertTrue(increment_discount_usage(discount))
        self.assertFalse(increment_discount_usage(discount))

        discount.refresh_from_db()
        self.assertEqual(discount.usage_count, 2)

    def test_record_usage_writes_row(self):
        discount = Discount.objects.create(code="LOG", value=Decimal("5"))
        usage = record_discount_usage(discount, savings=Decimal("5"), user_id="u-1", reference="cart-1")

        self.assertIsNotNone(usage)
        self.assertEqual(DiscountUsage.objects.filter(discount=discount).count(), 1)
        discount.refresh_from_db()
        self.assertEqual(discount.usage_count, 1)

    def test_record_usage_returns_none_when_exhausted(self):
        discount = Discount.objects.create(code="GONE", value=Decimal("5"), usage_limit=1, usage_count=1)
        self.assertIsNone(record_discount_usage(discount, savings=Decimal("5")))
        self.assertEqual(DiscountUsage.objects.count(), 0)


class AutomaticDiscountTests(TestCase):
    def test_bulk_and_seasonal_are_found(self):
        bulk = Discount.objects.create(
            code="AUTO-BULK",
            type=Discount.TYPE_BULK_DISCOUNT,
            value=Decimal("5"),
            minimum_quantity=10,
        )
        seasonal = Discount.objects.create(
            code="WINTER",
            type=Discount.TYPE_PERCENTAGE,
            value=Decimal("15"),
            is_seasonal=True,
        )
        Discount.objects.create(code="PLAIN", value=Decimal("50"))

        found = automatic_discounts([_item(quantity=2, unit_price="5.00")])
        self.assertEqual(found, [("seasonal", seasonal)])

        found = automatic_discounts([_item(quantity=10, unit_price="5.00")])
        self.assertEqual(found, [("bulk", bulk), ("seasonal", seasonal)])
