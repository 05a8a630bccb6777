# carts/tests/test_items.py

from decimal import Decimal
from unittest import mock

from django.test import TestCase, override_settings

from carts.models import Cart, CartItem
from carts.services import cart_items
from carts.services.exceptions import CartNotFoundError, CartValidationError
from catalog.services.in_memory import InMemoryProductCatalog
from catalog.services.ports import ProductCatalogError

IN_MEMORY_CATALOG = {"CATALOG_BACKEND": "catalog.services.in_memory.InMemoryProductCatalog"}


@override_settings(PRODUCT_SERVICE=IN_MEMORY_CATALOG, CARTS={"MAX_ITEM_QUANTITY": 10})
class CartItemServiceTests(TestCase):
    """
    GUARANTEES:
    - price is snapshotted from the catalog; re-adding increments qty and refreshes price
    - only ACTIVE carts accept item changes
    - quantity must be 1..MAX_ITEM_QUANTITY
    - unknown / unavailable products are rejected with explicit codes
    """

    def setUp(self):
        InMemoryProductCatalog.reset()
        self.addCleanup(InMemoryProductCatalog.reset)
        InMemoryProductCatalog.register("P-1", "12.50", category="books")
        InMemoryProductCatalog.register("P-2", "3.00", variant_id="blue", stock_quantity=2)
        InMemoryProductCatalog.register("P-OFF", "1.00", is_active=False)

        self.cart = cart_items.create_cart(session_id="sess-1")

    def test_create_cart_requires_session(self):
        with self.assertRaises(CartValidationError):
            cart_items.create_cart(session_id="  ")

    def test_add_item_snapshots_catalog_price(self):
        item = cart_items.add_item(cart_id=self.cart.pk, product_id="P-1", quantity=2)

        self.assertEqual(item.price, Decimal("12.50"))
        self.assertEqual(item.category, "books")
        self.assertEqual(item.variant_id, "")
        self.cart.refresh_from_db()
        self.assertEqual(self.cart.subtotal_amount, Decimal("25.00"))

    def test_re_add_increments_and_refreshes_price(self):
        cart_items.add_item(cart_id=self.cart.pk, product_id="P-1", quantity=1)
        InMemoryProductCatalog.register("P-1", "11.00", category="books")

        item = cart_items.add_item(cart_id=self.cart.pk, product_id="P-1", quantity=2)

        self.assertEqual(item.quantity, 3)
        self.assertEqual(item.price, Decimal("11.00"))
        self.assertEqual(CartItem.objects.filter(cart=self.cart).count(), 1)

    def test_variant_stock_is_enforced(self):
        cart_items.add_item(cart_id=self.cart.pk, product_id="P-2", variant_id="blue", quantity=2)
        with self.assertRaises(CartValidationError) as ctx:
            cart_items.add_item(cart_id=self.cart.pk, product_id="P-2", variant_id="blue", quantity=1)
        self.assertEqual(ctx.exception.code, "PRODUCT_UNAVAILABLE")

    def test_unknown_and_inactive_products(self):
        with self.assertRaises(CartValidationError) as ctx:
            cart_items.add_item(cart_id=self.cart.pk, product_id="NOPE", quantity=1)
        self.assertEqual(ctx.exception.code, "PRODUCT_NOT_FOUND")

        with self.assertRaises(CartValidationError) as ctx:
            cart_items.add_item(cart_id=self.cart.pk, product_id="P-OFF", quantity=1)
        self.assertEqual(ctx.exception.code, "PRODUCT_UNAVAILABLE")

    def test_quantity_bounds(self):
        for bad in (0, -1, 11):
            with self.subTest(quantity=bad):
                with self.assertRaises(CartValidationError):
                    cart_items.add_item(cart_id=self.cart.pk, product_id="P-1", quantity=bad)

        cart_items.add_item(cart_id=self.cart.pk, product_id="P-1", quantity=8)
        with self.assertRaises(CartValidationError) as ctx:
            cart_items.add_item(cart_id=self.cart.pk, product_id="P-1", quantity=3)
        self.assertEqual(ctx.exception.code, "QUANTITY_LIMIT_EXCEEDED")

    def test_inactive_cart_is_read_only(self):
        self.cart.status = Cart.STATUS_CHECKOUT
        self.cart.save()

        with self.assertRaises(CartValidationError) as ctx:
            cart_items.add_item(cart_id=self.cart.pk, product_id="P-1", quantity=1)
        self.assertEqual(ctx.exception.code, "CART_NOT_ACTIVE")

    def test_update_remove_clear(self):
        a = cart_items.add_item(cart_id=self.cart.pk, product_id="P-1", quantity=1)
        cart_items.add_item(cart_id=self.cart.pk, product_id="P-2", variant_id="blue", quantity=1)

        updated = cart_items.update_item_quantity(cart_id=self.cart.pk, item_id=a.pk, quantity=4)
        self.assertEqual(updated.quantity, 4)

        cart_items.remove_item(cart_id=self.cart.pk, item_id=a.pk)
        self.assertFalse(CartItem.objects.filter(pk=a.pk).exists())

        with self.assertRaises(CartNotFoundError):
            cart_items.remove_item(cart_id=self.cart.pk, item_id=a.pk)

        self.assertEqual(cart_items.clear_cart(cart_id=self.cart.pk), 1)
        self.assertTrue(self.cart.is_empty)

    def test_item_of_another_cart_is_not_found(self):
        other = cart_items.create_cart(session_id="sess-2")
        item = cart_items.add_item(cart_id=other.pk, product_id="P-1", quantity=1)

        with self.assertRaises(CartNotFoundError):
            cart_items.update_item_quantity(cart_id=self.cart.pk, item_id=item.pk, quantity=2)

    def test_catalog_outage_propagates(self):
        with mock.patch.object(
            InMemoryProductCatalog, "get_product", side_effect=ProductCatalogError("down")
        ):
            with self.assertRaises(ProductCatalogError):
                cart_items.add_item(cart_id=self.cart.pk, product_id="P-1", quantity=1)
        self.assertTrue(self.cart.is_empty)

    def test_cart_line_items(self):
        cart_items.add_item(cart_id=self.cart.pk, product_id="P-1", quantity=2)
        cart_items.add_item(cart_id=self.cart.pk, product_id="P-2", variant_id="blue", quantity=1)

        lines = cart_items.cart_line_items(self.cart)

        self.assertEqual([(l.product_id, l.variant_id, l.quantity) for l in lines], [
            ("P-1", None, 2),
            ("P-2", "blue", 1),
        ])
        self.assertEqual(lines[0].unit_price, Decimal("12.50"))
        self.assertEqual(lines[0].category, "books")

    def test_user_cart_is_reused(self):
        first, created = cart_items.get_or_create_user_cart(user_id="u-1", session_id="s")
        second, created_again = cart_items.get_or_create_user_cart(user_id="u-1", session_id="s")

        self.assertTrue(created)
        self.assertFalse(created_again)
        self.assertEqual(first.pk, second.pk)


@override_settings(PRODUCT_SERVICE=IN_MEMORY_CATALOG)
class BulkOperationTests(TestCase):
    """
    GUARANTEES:
    - each line succeeds or fails independently
    - report counts and "Item X: message" errors match the per-item results
    - success is true when at least one line succeeded
    """

    def setUp(self):
        InMemoryProductCatalog.reset()
        self.addCleanup(InMemoryProductCatalog.reset)
        InMemoryProductCatalog.register("P-1", "5.00")
        InMemoryProductCatalog.register("P-2", "7.00")
        self.cart = cart_items.create_cart(session_id="sess-1")

    def test_bulk_add_partial_failure(self):
        report = cart_items.bulk_add_items(
            cart_id=self.cart.pk,
            items=[
                {"product_id": "P-1", "quantity": 1},
                {"product_id": "MISSING", "quantity": 1},
                {"product_id": "P-2", "quantity": 2},
            ],
        )

        self.assertTrue(report.success)
        self.assertEqual(report.total_items, 3)
        self.assertEqual(report.successful_items, 2)
        self.assertEqual(report.failed_items, 1)
        self.assertEqual(len(report.errors), 1)
        self.assertTrue(report.errors[0].startswith("Item MISSING: "))
        self.assertEqual(CartItem.objects.filter(cart=self.cart).count(), 2)

    def test_bulk_update_and_remove(self):
        a = cart_items.add_item(cart_id=self.cart.pk, product_id="P-1", quantity=1)
        b = cart_items.add_item(cart_id=self.cart.pk, product_id="P-2", quantity=1)
        missing = "00000000-0000-0000-0000-000000000000"

        report = cart_items.bulk_update_items(
            cart_id=self.cart.pk,
            updates=[
                {"item_id": a.pk, "quantity": 3},
                {"item_id": b.pk, "quantity": 0},
                {"item_id": missing, "quantity": 1},
            ],
        )
        self.assertEqual(report.successful_items, 1)
        self.assertEqual(report.failed_items, 2)
        a.refresh_from_db()
        b.refresh_from_db()
        self.assertEqual((a.quantity, b.quantity), (3, 1))

        report = cart_items.bulk_remove_items(cart_id=self.cart.pk, item_ids=[a.pk, missing])
        self.assertTrue(report.success)
        self.assertEqual(report.failed_items, 1)
        self.assertEqual(report.errors, [f"Item {missing}: Item {missing} not found in cart {self.cart.pk}"])

    def test_all_failed_is_not_success(self):
        report = cart_items.bulk_add_items(
            cart_id=self.cart.pk, items=[{"product_id": "MISSING", "quantity": 1}]
        )
        self.assertFalse(report.success)

    def test_inactive_cart_fails_whole_batch(self):
        self.cart.status = Cart.STATUS_COMPLETED
        self.cart.save()
        with self.assertRaises(CartValidationError):
            cart_items.bulk_remove_items(cart_id=self.cart.pk, item_ids=[])
