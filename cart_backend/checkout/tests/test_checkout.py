# checkout/tests/test_checkout.py

from datetime import timedelta
from decimal import Decimal
from unittest import mock

from django.test import TestCase, override_settings
from django.urls import reverse
from django.utils import timezone
from rest_framework import status
from rest_framework.test import APIClient

from carts.models import Cart, CartItem
from carts.services import cart_items
from catalog.services.in_memory import InMemoryProductCatalog
from checkout.models import CheckoutSession
from checkout.services.checkout_service import cancel_checkout, get_checkout_session, start_checkout
from checkout.services.exceptions import CheckoutSessionNotFoundError, CheckoutValidationError
from pricing.models import Discount, DiscountUsage
from pricing.services.exceptions import TaxUnavailableError

IN_MEMORY_CATALOG = {"CATALOG_BACKEND": "catalog.services.in_memory.InMemoryProductCatalog"}
PRICING = {
    "DEFAULT_CURRENCY": "USD",
    "BASE_SHIPPING_COST": "9.99",
    "FREE_SHIPPING_THRESHOLD": "50.00",
    "STACKING_POLICY": "stack_all",
}


@override_settings(PRODUCT_SERVICE=IN_MEMORY_CATALOG, PRICING=PRICING, CHECKOUT={"SESSION_TTL_MINUTES": 15})
class StartCheckoutTests(TestCase):
    """
    GUARANTEES:
    - an ACTIVE, non-empty, owned cart becomes CHECKOUT with a PENDING priced session
    - coupon usage is recorded exactly when the session is created
    - drifted catalog prices are refreshed before pricing and reported
    - any failure leaves cart, items and usage counters untouched
    """

    def setUp(self):
        InMemoryProductCatalog.reset()
        self.addCleanup(InMemoryProductCatalog.reset)
        InMemoryProductCatalog.register("P-1", "50.00")

        self.cart = cart_items.create_cart(session_id="sess-1")
        cart_items.add_item(cart_id=self.cart.pk, product_id="P-1", quantity=2)
        self.coupon = Discount.objects.create(
            code="SAVE10", type=Discount.TYPE_FIXED_AMOUNT, value=Decimal("10"), usage_limit=5
        )

    def test_start_checkout(self):
        session = start_checkout(self.cart.pk, session_id="sess-1", coupon_codes=["SAVE10"])

        self.assertEqual(session.status, CheckoutSession.STATUS_PENDING)
        self.assertEqual(session.subtotal, Decimal("100.00"))
        self.assertEqual(session.discount_total, Decimal("10.00"))
        self.assertEqual(session.shipping, Decimal("0.00"))
        self.assertEqual(session.total, Decimal("90.00"))
        self.assertEqual(session.pricing_snapshot["total"], "90.00")
        self.assertEqual(session.pricing_snapshot["price_changes"], [])
        self.assertAlmostEqual(
            (session.expires_at - session.created_at).total_seconds(), 15 * 60, delta=5
        )

        self.cart.refresh_from_db()
        self.coupon.refresh_from_db()
        self.assertEqual(self.cart.status, Cart.STATUS_CHECKOUT)
        self.assertEqual(self.coupon.usage_count, 1)
        self.assertEqual(DiscountUsage.objects.filter(discount=self.coupon).count(), 1)

    def test_price_drift_is_refreshed(self):
        InMemoryProductCatalog.register("P-1", "45.00")

        session = start_checkout(self.cart.pk, session_id="sess-1")

        self.assertEqual(session.subtotal, Decimal("90.00"))
        self.assertEqual(
            session.pricing_snapshot["price_changes"][0]["new_price"], "45.00"
        )
        self.assertEqual(CartItem.objects.get(cart=self.cart).price, Decimal("45.00"))

    def test_rejections(self):
        with self.assertRaises(CheckoutValidationError) as ctx:
            start_checkout(self.cart.pk, session_id="someone-else")
        self.assertEqual(ctx.exception.code, "CART_OWNER_MISMATCH")

        empty = cart_items.create_cart(session_id="sess-2")
        with self.assertRaises(CheckoutValidationError) as ctx:
            start_checkout(empty.pk, session_id="sess-2")
        self.assertEqual(ctx.exception.code, "EMPTY_CART")

        start_checkout(self.cart.pk, session_id="sess-1")
        with self.assertRaises(CheckoutValidationError) as ctx:
            start_checkout(self.cart.pk, session_id="sess-1")
        self.assertEqual(ctx.exception.code, "CART_NOT_ACTIVE")

    def test_unavailable_product_blocks_checkout(self):
        InMemoryProductCatalog.register("P-1", "50.00", stock_quantity=1)
        with self.assertRaises(CheckoutValidationError) as ctx:
            start_checkout(self.cart.pk, session_id="sess-1")
        self.assertEqual(ctx.exception.code, "PRODUCT_UNAVAILABLE")

    def test_pricing_failure_rolls_back(self):
        InMemoryProductCatalog.register("P-1", "45.00")
        with mock.patch(
            "checkout.services.checkout_service.compute_pricing",
            side_effect=TaxUnavailableError("down"),
        ):
            with self.assertRaises(TaxUnavailableError):
                start_checkout(self.cart.pk, session_id="sess-1", coupon_codes=["SAVE10"])

        self.cart.refresh_from_db()
        self.coupon.refresh_from_db()
        self.assertEqual(self.cart.status, Cart.STATUS_ACTIVE)
        self.assertEqual(self.coupon.usage_count, 0)
        self.assertEqual(CartItem.objects.get(cart=self.cart).price, Decimal("50.00"))
        self.assertFalse(CheckoutSession.objects.exists())


@override_settings(PRODUCT_SERVICE=IN_MEMORY_CATALOG, PRICING=PRICING)
class CheckoutSessionLifecycleTests(TestCase):
    """
    GUARANTEES:
    - cancel reopens the cart; only PENDING sessions can be cancelled
    - a PENDING session read after expires_at becomes EXPIRED and reopens the cart
    - sessions are invisible to other guests
    """

    def setUp(self):
        InMemoryProductCatalog.reset()
        self.addCleanup(InMemoryProductCatalog.reset)
        InMemoryProductCatalog.register("P-1", "20.00")

        self.cart = cart_items.create_cart(session_id="sess-1")
        cart_items.add_item(cart_id=self.cart.pk, product_id="P-1", quantity=1)
        self.session = start_checkout(self.cart.pk, session_id="sess-1")

    def test_cancel(self):
        session = cancel_checkout(self.session.pk, session_id="sess-1")
        self.assertEqual(session.status, CheckoutSession.STATUS_CANCELLED)
        self.cart.refresh_from_db()
        self.assertEqual(self.cart.status, Cart.STATUS_ACTIVE)

        with self.assertRaises(CheckoutValidationError):
            cancel_checkout(self.session.pk, session_id="sess-1")

    def test_expiry_on_read(self):
        later = timezone.now() + timedelta(days=1)
        session = get_checkout_session(self.session.pk, session_id="sess-1", now=later)

        self.assertEqual(session.status, CheckoutSession.STATUS_EXPIRED)
        self.cart.refresh_from_db()
        self.assertEqual(self.cart.status, Cart.STATUS_ACTIVE)

    def test_invisible_to_other_guest(self):
        with self.assertRaises(CheckoutSessionNotFoundError):
            get_checkout_session(self.session.pk, session_id="other")
        with self.assertRaises(CheckoutSessionNotFoundError):
            get_checkout_session("not-a-uuid", session_id="sess-1")


@override_settings(PRODUCT_SERVICE=IN_MEMORY_CATALOG, PRICING=PRICING)
class CheckoutApiTests(TestCase):
    def setUp(self):
        InMemoryProductCatalog.reset()
        self.addCleanup(InMemoryProductCatalog.reset)
        InMemoryProductCatalog.register("P-1", "20.00")

        self.client = APIClient()
        self.cart = cart_items.create_cart(session_id="sess-1")
        cart_items.add_item(cart_id=self.cart.pk, product_id="P-1", quantity=1)

    def test_start_get_cancel(self):
        res = self.client.post(
            reverse("checkout:start"),
            {"cart_id": str(self.cart.pk), "session_id": "sess-1"},
            format="json",
        )
        self.assertEqual(res.status_code, status.HTTP_201_CREATED, res.data)
        self.assertEqual(res.data["status"], "PENDING")
        self.assertEqual(res.data["shipping"], "9.99")
        self.assertEqual(res.data["total"], "29.99")
        checkout_id = res.data["id"]

        res = self.client.get(
            reverse("checkout:detail", kwargs={"checkout_id": checkout_id}), {"session_id": "sess-1"}
        )
        self.assertEqual(res.status_code, status.HTTP_200_OK)

        res = self.client.post(
            reverse("checkout:cancel", kwargs={"checkout_id": checkout_id}) + "?session_id=sess-1"
        )
        self.assertEqual(res.status_code, status.HTTP_200_OK, res.data)
        self.assertEqual(res.data["status"], "CANCELLED")

    def test_unknown_cart_is_404(self):
        res = self.client.post(
            reverse("checkout:start"),
            {"cart_id": "00000000-0000-0000-0000-000000000000", "session_id": "x"},
            format="json",
        )
        self.assertEqual(res.status_code, status.HTTP_404_NOT_FOUND)
        self.assertEqual(res.data["error"]["code"], "CART_NOT_FOUND")

    def test_unknown_promotion_is_404(self):
        res = self.client.post(
            reverse("checkout:start"),
            {
                "cart_id": str(self.cart.pk),
                "session_id": "sess-1",
                "promotion_ids": ["00000000-0000-0000-0000-000000000000"],
            },
            format="json",
        )
        self.assertEqual(res.status_code, status.HTTP_404_NOT_FOUND)
        self.assertEqual(res.data["error"]["code"], "PROMOTION_NOT_FOUND")
        self.cart.refresh_from_db()
        self.assertEqual(self.cart.status, Cart.STATUS_ACTIVE)
