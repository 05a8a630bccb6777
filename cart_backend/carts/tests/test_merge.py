# carts/tests/test_merge.py

from datetime import timedelta
from decimal import Decimal
from unittest import mock

from django.db import DatabaseError
from django.test import TestCase, override_settings
from django.utils import timezone

from carts.models import Cart, CartItem, CartMetadata
from carts.services import cart_store
from carts.services.cart_merger import (
    MERGED_FROM_GUEST_KEY,
    CartMergeOptions,
    merge_carts,
    merge_history,
    preview_merge,
)
from carts.services.exceptions import (
    CartMergeTransactionError,
    CartMergeValidationError,
    CartNotFoundError,
)


def _cart(user_id=None, status=Cart.STATUS_ACTIVE, session_id="sess-1"):
    return Cart.objects.create(session_id=session_id, user_id=user_id, status=status)


def _line(cart, product_id, quantity, price, variant_id=""):
    return CartItem.objects.create(
        cart=cart,
        product_id=product_id,
        variant_id=variant_id,
        quantity=quantity,
        price=Decimal(price),
        original_price=Decimal(price),
    )


def _lines(cart):
    return {
        (i.product_id, i.variant_id): (i.quantity, i.price)
        for i in CartItem.objects.filter(cart=cart)
    }


class MergeExampleTests(TestCase):
    """
    GUARANTEES:
    - guest qty 2 @ 10 + user qty 1 @ 12 with combine_quantities -> qty 3 @ 12, "combined"
    - guest cart ends COMPLETED; user cart records merged_from_guest
    - a combined quantity never exceeds CARTS["MAX_ITEM_QUANTITY"]
    """

    def test_combined_overlap(self):
        guest = _cart()
        user = _cart(user_id="u-1", session_id="sess-2")
        _line(guest, "P", 2, "10.00")
        _line(user, "P", 1, "12.00")

        result = merge_carts(guest.pk, user.pk, CartMergeOptions(combine_quantities=True))

        self.assertEqual(result.items_added, 0)
        self.assertEqual(result.items_updated, 1)
        self.assertEqual(len(result.conflicts), 1)
        self.assertEqual(result.conflicts[0].resolution, "combined")
        self.assertEqual(_lines(user), {("P", ""): (3, Decimal("12.00"))})

        guest.refresh_from_db()
        self.assertEqual(guest.status, Cart.STATUS_COMPLETED)
        self.assertEqual(
            CartMetadata.objects.get(cart=user, key=MERGED_FROM_GUEST_KEY).value, str(guest.pk)
        )

    @override_settings(CARTS={"MAX_ITEM_QUANTITY": 10})
    def test_combined_quantity_is_clamped_to_item_limit(self):
        guest = _cart()
        user = _cart(user_id="u-1", session_id="sess-2")
        _line(guest, "P", 6, "10.00")
        _line(user, "P", 6, "10.00")

        preview = preview_merge(guest.pk, user.pk)
        self.assertEqual(preview.items_to_update[0].quantity, 10)
        self.assertEqual(preview.estimated_total, Decimal("100.00"))

        merge_carts(guest.pk, user.pk)
        self.assertEqual(_lines(user), {("P", ""): (10, Decimal("10.00"))})

    def test_combined_prefers_guest_price_when_asked(self):
        guest = _cart()
        user = _cart(user_id="u-1", session_id="sess-2")
        _line(guest, "P", 2, "10.00")
        _line(user, "P", 1, "12.00")

        merge_carts(
            guest.pk,
            user.pk,
            CartMergeOptions(combine_quantities=True, prefer_guest_price=True),
        )
        self.assertEqual(_lines(user), {("P", ""): (3, Decimal("10.00"))})


class MergeLawTests(TestCase):
    """
    GUARANTEES:
    - disjoint carts: user cart ends with the union of lines, unchanged values
    - combine law: for every overlapping key, merged qty == guest qty + user qty
    - variants are distinct keys
    """

    def test_disjoint_merge_is_union(self):
        guest = _cart()
        user = _cart(user_id="u-1", session_id="sess-2")
        _line(guest, "A", 1, "5.00")
        _line(guest, "B", 4, "2.50", variant_id="red")
        _line(user, "C", 2, "9.00")

        result = merge_carts(guest.pk, user.pk)

        self.assertEqual(result.items_added, 2)
        self.assertEqual(result.items_updated, 0)
        self.assertEqual(result.conflicts, ())
        self.assertEqual(
            _lines(user),
            {
                ("A", ""): (1, Decimal("5.00")),
                ("B", "red"): (4, Decimal("2.50")),
                ("C", ""): (2, Decimal("9.00")),
            },
        )

    def test_combine_law_over_many_keys(self):
        guest = _cart()
        user = _cart(user_id="u-1", session_id="sess-2")
        pairs = {"A": (1, 3), "B": (5, 2), "C": (7, 7)}
        for pid, (gq, uq) in pairs.items():
            _line(guest, pid, gq, "1.00")
            _line(user, pid, uq, "1.00")
        _line(guest, "A", 9, "1.00", variant_id="v2")

        merge_carts(guest.pk, user.pk, CartMergeOptions(combine_quantities=True))

        merged = _lines(user)
        for pid, (gq, uq) in pairs.items():
            self.assertEqual(merged[(pid, "")][0], gq + uq)
        self.assertEqual(merged[("A", "v2")][0], 9)


class ConflictResolutionTests(TestCase):
    """
    GUARANTEES:
    - without combine, differing prices follow prefer_* flags, then the policy
    - equal prices keep the user line
    """

    def setUp(self):
        self.guest = _cart()
        self.user = _cart(user_id="u-1", session_id="sess-2")
        self.guest_line = _line(self.guest, "P", 2, "10.00")
        self.user_line = _line(self.user, "P", 1, "12.00")

    def _merge(self, **opts):
        return merge_carts(
            self.guest.pk, self.user.pk, CartMergeOptions(combine_quantities=False, **opts)
        )

    def test_prefer_guest_price_overwrites_user_line(self):
        result = self._merge(prefer_guest_price=True)
        self.assertEqual(result.conflicts[0].resolution, "guest")
        self.assertEqual(_lines(self.user), {("P", ""): (2, Decimal("10.00"))})

    def test_prefer_user_price_keeps_user_line(self):
        result = self._merge(prefer_user_price=True)
        self.assertEqual(result.conflicts[0].resolution, "user")
        self.assertEqual(result.items_updated, 0)
        self.assertEqual(_lines(self.user), {("P", ""): (1, Decimal("12.00"))})

    @override_settings(CART_MERGE={"DEFAULT_CONFLICT_RESOLUTION": "guest"})
    def test_default_policy_from_settings(self):
        result = self._merge()
        self.assertEqual(result.conflicts[0].resolution, "guest")

    def test_explicit_user_policy(self):
        result = self._merge(conflict_resolution="user")
        self.assertEqual(result.conflicts[0].resolution, "user")

    def test_newer_policy_compares_item_timestamps(self):
        now = timezone.now()
        CartItem.objects.filter(pk=self.guest_line.pk).update(updated_at=now - timedelta(hours=2))
        CartItem.objects.filter(pk=self.user_line.pk).update(updated_at=now - timedelta(hours=1))

        result = self._merge(conflict_resolution="newer")
        self.assertEqual(result.conflicts[0].resolution, "user")

    def test_equal_prices_keep_user_line(self):
        CartItem.objects.filter(pk=self.guest_line.pk).update(price=Decimal("12.00"))
        result = self._merge()
        self.assertEqual(result.conflicts[0].resolution, "user")
        self.assertEqual(_lines(self.user), {("P", ""): (1, Decimal("12.00"))})


class MergePreviewTests(TestCase):
    """
    GUARANTEES:
    - preview writes nothing
    - preview.estimated_total equals the user cart subtotal after the real merge
    """

    def test_preview_matches_merge(self):
        guest = _cart()
        user = _cart(user_id="u-1", session_id="sess-2")
        _line(guest, "P", 2, "10.00")
        _line(guest, "Q", 1, "4.50")
        _line(user, "P", 1, "12.00")

        options = CartMergeOptions(combine_quantities=True)
        preview = preview_merge(guest.pk, user.pk, options)

        self.assertEqual(len(preview.items_to_add), 1)
        self.assertEqual(len(preview.items_to_update), 1)
        self.assertEqual(_lines(user), {("P", ""): (1, Decimal("12.00"))})
        guest.refresh_from_db()
        self.assertEqual(guest.status, Cart.STATUS_ACTIVE)

        merge_carts(guest.pk, user.pk, options)
        user.refresh_from_db()
        self.assertEqual(preview.estimated_total, Decimal("40.50"))
        self.assertEqual(user.subtotal_amount, preview.estimated_total)


class MergeValidationTests(TestCase):
    """
    GUARANTEES:
    - ownership and status are checked before any write
    - unknown carts raise CartNotFoundError
    """

    def test_rejections(self):
        guest = _cart()
        user = _cart(user_id="u-1", session_id="sess-2")
        other_user = _cart(user_id="u-2", session_id="sess-3")
        closed_guest = _cart(status=Cart.STATUS_COMPLETED, session_id="sess-4")

        cases = [
            (guest.pk, guest.pk, "SAME_CART"),
            (other_user.pk, user.pk, "GUEST_CART_HAS_USER"),
            (guest.pk, _cart(session_id="sess-5").pk, "USER_CART_HAS_NO_USER"),
            (closed_guest.pk, user.pk, "GUEST_CART_NOT_ACTIVE"),
        ]
        for guest_id, user_id, code in cases:
            with self.subTest(code=code):
                with self.assertRaises(CartMergeValidationError) as ctx:
                    merge_carts(guest_id, user_id)
                self.assertEqual(ctx.exception.code, code)

    def test_user_cart_not_active(self):
        guest = _cart()
        user = _cart(user_id="u-1", status=Cart.STATUS_CHECKOUT, session_id="sess-2")
        with self.assertRaises(CartMergeValidationError) as ctx:
            preview_merge(guest.pk, user.pk)
        self.assertEqual(ctx.exception.code, "USER_CART_NOT_ACTIVE")

    def test_unknown_cart(self):
        user = _cart(user_id="u-1")
        with self.assertRaises(CartNotFoundError):
            merge_carts("00000000-0000-0000-0000-000000000000", user.pk)
        with self.assertRaises(CartNotFoundError):
            merge_carts("not-a-uuid", user.pk)


class MergeAtomicityTests(TestCase):
    """
    GUARANTEES:
    - a storage failure mid-merge leaves both carts exactly as before
    """

    def test_failure_rolls_back_everything(self):
        guest = _cart()
        user = _cart(user_id="u-1", session_id="sess-2")
        _line(guest, "P", 2, "10.00")
        _line(guest, "Q", 1, "3.00")
        _line(user, "P", 1, "12.00")
        before = _lines(user)

        with mock.patch(
            "carts.services.cart_store.set_cart_status", side_effect=DatabaseError("boom")
        ):
            with self.assertRaises(CartMergeTransactionError):
                merge_carts(guest.pk, user.pk)

        self.assertEqual(_lines(user), before)
        self.assertFalse(CartMetadata.objects.filter(cart=user).exists())
        guest.refresh_from_db()
        self.assertEqual(guest.status, Cart.STATUS_ACTIVE)

    def test_writes_run_inside_store_transaction(self):
        guest = _cart()
        user = _cart(user_id="u-1", session_id="sess-2")
        _line(guest, "P", 2, "10.00")

        with mock.patch(
            "carts.services.cart_store.run_in_transaction",
            wraps=cart_store.run_in_transaction,
        ) as spy:
            merge_carts(guest.pk, user.pk)

        self.assertEqual(spy.call_count, 1)
        self.assertEqual(_lines(user), {("P", ""): (2, Decimal("10.00"))})


class MergeMetadataAndHistoryTests(TestCase):
    """
    GUARANTEES:
    - guest metadata is copied when preserve_metadata is on, skipped otherwise
    - history lists merges of the user's carts, newest first
    """

    def test_metadata_preserved(self):
        guest = _cart()
        user = _cart(user_id="u-1", session_id="sess-2")
        CartMetadata.objects.create(cart=guest, key="utm_source", value="newsletter")

        result = merge_carts(guest.pk, user.pk)

        self.assertEqual(result.metadata_keys_merged, ("utm_source",))
        self.assertEqual(CartMetadata.objects.get(cart=user, key="utm_source").value, "newsletter")

    def test_metadata_not_preserved(self):
        guest = _cart()
        user = _cart(user_id="u-1", session_id="sess-2")
        CartMetadata.objects.create(cart=guest, key="utm_source", value="newsletter")

        merge_carts(guest.pk, user.pk, CartMergeOptions(preserve_metadata=False))

        self.assertFalse(CartMetadata.objects.filter(cart=user, key="utm_source").exists())
        self.assertTrue(CartMetadata.objects.filter(cart=user, key=MERGED_FROM_GUEST_KEY).exists())

    def test_history(self):
        user = _cart(user_id="u-1", session_id="sess-2")
        guest = _cart()
        _line(guest, "P", 2, "10.00")
        merge_carts(guest.pk, user.pk)

        _cart(user_id="u-2", session_id="sess-9")

        history = merge_history("u-1")
        self.assertEqual(len(history), 1)
        self.assertEqual(history[0].cart_id, str(user.pk))
        self.assertEqual(history[0].guest_cart_id, str(guest.pk))
        self.assertEqual(history[0].item_count, 2)
        self.assertEqual(merge_history("u-2"), [])
