# carts/tests/test_api.py

from decimal import Decimal

from django.contrib.auth import get_user_model
from django.test import TestCase, override_settings
from django.urls import reverse
from rest_framework import status
from rest_framework.test import APIClient

from carts.models import Cart, CartItem
from catalog.services.in_memory import InMemoryProductCatalog

User = get_user_model()

IN_MEMORY_CATALOG = {"CATALOG_BACKEND": "catalog.services.in_memory.InMemoryProductCatalog"}


@override_settings(PRODUCT_SERVICE=IN_MEMORY_CATALOG)
class CartApiTests(TestCase):
    """
    GUARANTEES:
    - anonymous callers get guest carts; authenticated callers reuse one active cart
    - item endpoints return the cart with server-derived totals
    - user carts are invisible to other callers (404)
    - domain errors use the {"error": {"code", "message"}} envelope
    """

    def setUp(self):
        InMemoryProductCatalog.reset()
        self.addCleanup(InMemoryProductCatalog.reset)
        InMemoryProductCatalog.register("P-1", "10.00")

        self.client = APIClient()
        self.user = User.objects.create_user(username="alice", password="pass1234")

    def _create_guest_cart(self):
        res = self.client.post(reverse("carts:create-cart"), {"session_id": "sess-1"}, format="json")
        self.assertEqual(res.status_code, status.HTTP_201_CREATED, res.data)
        return res.data["id"]

    def test_guest_cart_item_flow(self):
        cart_id = self._create_guest_cart()

        res = self.client.post(
            reverse("carts:add-cart-item", kwargs={"cart_id": cart_id}),
            {"product_id": "P-1", "quantity": 2},
            format="json",
        )
        self.assertEqual(res.status_code, status.HTTP_200_OK, res.data)
        self.assertEqual(res.data["item_count"], 2)
        self.assertEqual(res.data["subtotal_amount"], "20.00")
        self.assertEqual(res.data["items"][0]["price"], "10.00")
        self.assertIsNone(res.data["items"][0]["variant_id"])
        item_id = res.data["items"][0]["id"]

        res = self.client.patch(
            reverse("carts:cart-item", kwargs={"cart_id": cart_id, "item_id": item_id}),
            {"quantity": 5},
            format="json",
        )
        self.assertEqual(res.status_code, status.HTTP_200_OK, res.data)
        self.assertEqual(res.data["subtotal_amount"], "50.00")

        res = self.client.delete(reverse("carts:clear-cart", kwargs={"cart_id": cart_id}))
        self.assertEqual(res.status_code, status.HTTP_200_OK)
        self.assertEqual(res.data["items"], [])

    def test_price_from_client_is_ignored(self):
        cart_id = self._create_guest_cart()
        self.client.post(
            reverse("carts:add-cart-item", kwargs={"cart_id": cart_id}),
            {"product_id": "P-1", "quantity": 1, "price": "0.01"},
            format="json",
        )
        self.assertEqual(CartItem.objects.get(cart_id=cart_id).price, Decimal("10.00"))

    def test_unknown_product_is_400(self):
        cart_id = self._create_guest_cart()
        res = self.client.post(
            reverse("carts:add-cart-item", kwargs={"cart_id": cart_id}),
            {"product_id": "NOPE", "quantity": 1},
            format="json",
        )
        self.assertEqual(res.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(res.data["error"]["code"], "PRODUCT_NOT_FOUND")

    def test_authenticated_create_reuses_active_cart(self):
        self.client.force_authenticate(self.user)

        first = self.client.post(reverse("carts:create-cart"), {"session_id": "s"}, format="json")
        second = self.client.post(reverse("carts:create-cart"), {"session_id": "s"}, format="json")

        self.assertEqual(first.status_code, status.HTTP_201_CREATED)
        self.assertEqual(second.status_code, status.HTTP_200_OK)
        self.assertEqual(first.data["id"], second.data["id"])
        self.assertEqual(first.data["user_id"], str(self.user.pk))

    def test_user_cart_hidden_from_others(self):
        cart = Cart.objects.create(session_id="s", user_id=str(self.user.pk))

        res = self.client.get(reverse("carts:cart-detail", kwargs={"cart_id": cart.pk}))
        self.assertEqual(res.status_code, status.HTTP_404_NOT_FOUND)
        self.assertEqual(res.data["error"]["code"], "CART_NOT_FOUND")

        self.client.force_authenticate(self.user)
        res = self.client.get(reverse("carts:cart-detail", kwargs={"cart_id": cart.pk}))
        self.assertEqual(res.status_code, status.HTTP_200_OK)

    def test_bulk_add_reports_per_item(self):
        cart_id = self._create_guest_cart()
        res = self.client.post(
            reverse("carts:bulk-add-items", kwargs={"cart_id": cart_id}),
            {
                "items": [
                    {"product_id": "P-1", "quantity": 1},
                    {"product_id": "NOPE", "quantity": 1},
                ]
            },
            format="json",
        )
        self.assertEqual(res.status_code, status.HTTP_200_OK, res.data)
        self.assertTrue(res.data["success"])
        self.assertEqual(res.data["successful_items"], 1)
        self.assertEqual(res.data["failed_items"], 1)
        self.assertEqual(len(res.data["errors"]), 1)


@override_settings(PRODUCT_SERVICE=IN_MEMORY_CATALOG)
class MergeApiTests(TestCase):
    """
    GUARANTEES:
    - merge endpoints require authentication
    - the target cart must belong to the caller
    - preview does not write; merge applies and returns the merged cart
    """

    def setUp(self):
        self.client = APIClient()
        self.user = User.objects.create_user(username="bob", password="pass1234")
        self.other = User.objects.create_user(username="eve", password="pass1234")

        self.guest = Cart.objects.create(session_id="g")
        self.user_cart = Cart.objects.create(session_id="u", user_id=str(self.user.pk))
        CartItem.objects.create(
            cart=self.guest, product_id="P", quantity=2, price=Decimal("10.00"), original_price=Decimal("10.00")
        )
        CartItem.objects.create(
            cart=self.user_cart, product_id="P", quantity=1, price=Decimal("12.00"), original_price=Decimal("12.00")
        )
        self.payload = {
            "guest_cart_id": str(self.guest.pk),
            "user_cart_id": str(self.user_cart.pk),
            "options": {"combine_quantities": True},
        }

    def test_requires_authentication(self):
        res = self.client.post(reverse("carts:merge"), self.payload, format="json")
        self.assertIn(res.status_code, (status.HTTP_401_UNAUTHORIZED, status.HTTP_403_FORBIDDEN))

    def test_target_cart_must_be_callers(self):
        self.client.force_authenticate(self.other)
        res = self.client.post(reverse("carts:merge"), self.payload, format="json")
        self.assertEqual(res.status_code, status.HTTP_404_NOT_FOUND)

    def test_preview_then_merge(self):
        self.client.force_authenticate(self.user)

        res = self.client.post(reverse("carts:merge-preview"), self.payload, format="json")
        self.assertEqual(res.status_code, status.HTTP_200_OK, res.data)
        self.assertEqual(res.data["estimated_total"], "36.00")
        self.assertEqual(res.data["conflicts"][0]["resolution"], "combined")
        self.assertEqual(CartItem.objects.get(cart=self.user_cart).quantity, 1)

        res = self.client.post(reverse("carts:merge"), self.payload, format="json")
        self.assertEqual(res.status_code, status.HTTP_200_OK, res.data)
        self.assertEqual(res.data["items_updated"], 1)
        self.assertEqual(res.data["cart"]["subtotal_amount"], "36.00")

        res = self.client.get(reverse("carts:merge-history"))
        self.assertEqual(res.status_code, status.HTTP_200_OK)
        self.assertEqual(res.data[0]["guest_cart_id"], str(self.guest.pk))

    def test_merge_twice_is_rejected(self):
        self.client.force_authenticate(self.user)
        self.client.post(reverse("carts:merge"), self.payload, format="json")

        res = self.client.post(reverse("carts:merge"), self.payload, format="json")
        self.assertEqual(res.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(res.data["error"]["code"], "GUEST_CART_NOT_ACTIVE")

    def test_conflicting_price_flags_rejected(self):
        self.client.force_authenticate(self.user)
        payload = dict(self.payload, options={"prefer_guest_price": True, "prefer_user_price": True})
        res = self.client.post(reverse("carts:merge"), payload, format="json")
        self.assertEqual(res.status_code, status.HTTP_400_BAD_REQUEST)
