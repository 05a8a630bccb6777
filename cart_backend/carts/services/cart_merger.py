# carts/services/cart_merger.py

"""
CART MERGER (guest cart -> user cart on login)

Purpose:
- Plan a merge item-by-item (pure): adds for new (product, variant) keys,
  updates for overlapping keys, one MergeConflict per overlap.
- Preview the plan (no writes) including the user cart's estimated total.
- Apply the plan atomically: adds + updates + metadata + both status writes.

Conflict resolution (resolve_conflict, shared by preview and merge):
- combine_quantities          -> combined: qty = user + guest, price = guest if prefer_guest_price else user
                                 qty is clamped to CARTS["MAX_ITEM_QUANTITY"] (the merge never fails on it)
- prices differ:
    prefer_guest_price        -> guest: overwrite user row with guest qty + price
    prefer_user_price         -> user: no change
    neither                   -> options.conflict_resolution (guest | user | newer)
- prices equal                -> user: no change

GUARANTEES:
- All merge writes commit together or not at all (CartMergeTransactionError).
- Guest cart ends COMPLETED; user cart keeps "merged_from_guest" metadata.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal

from django.conf import settings
from django.core.exceptions import ValidationError
from django.db import DatabaseError
from django.utils import timezone

from carts.models import Cart, CartMetadata
from carts.services import cart_store
from carts.services.cart_items import max_item_quantity
from carts.services.exceptions import (
    CartMergeTransactionError,
    CartMergeValidationError,
)

logger = logging.getLogger(__name__)

TWOPLACES = Decimal("0.01")

RESOLUTION_GUEST = "guest"
RESOLUTION_USER = "user"
RESOLUTION_COMBINED = "combined"

POLICY_GUEST = "guest"
POLICY_USER = "user"
POLICY_NEWER = "newer"
POLICIES = {POLICY_GUEST, POLICY_USER, POLICY_NEWER}

OWNER_GUEST = "guest"
OWNER_USER = "user"

MERGED_FROM_GUEST_KEY = "merged_from_guest"
MERGED_AT_KEY = "merged_at"


def _money(v) -> Decimal:
    if v is None or v == "":
        return Decimal("0.00")
    return Decimal(str(v)).quantize(TWOPLACES, rounding=ROUND_HALF_UP)


def default_conflict_resolution() -> str:
    conf = getattr(settings, "CART_MERGE", {}) or {}
    policy = str(conf.get("DEFAULT_CONFLICT_RESOLUTION") or POLICY_GUEST).lower()
    return policy if policy in POLICIES else POLICY_GUEST


# ============================================================
# VALUE OBJECTS
# ============================================================


@dataclass(frozen=True)
class CartLine:
    item_id: str
    product_id: str
    variant_id: str | None
    quantity: int
    price: Decimal
    original_price: Decimal
    category: str | None = None
    metadata: dict = field(default_factory=dict)
    updated_at: datetime | None = None

    @property
    def key(self) -> tuple[str, str | None]:
        return (self.product_id, self.variant_id)


@dataclass(frozen=True)
class CartSnapshot:
    cart_id: str
    owner_kind: str
    user_id: str | None
    status: str
    items: tuple[CartLine, ...]
    metadata: dict
    updated_at: datetime | None = None

    @classmethod
    def from_cart(cls, cart: Cart) -> "CartSnapshot":
        lines = tuple(
            CartLine(
                item_id=str(item.pk),
                product_id=item.product_id,
                variant_id=item.variant_id or None,
                quantity=int(item.quantity),
                price=_money(item.price),
                original_price=_money(item.original_price),
                category=item.category or None,
                metadata=dict(item.metadata or {}),
                updated_at=item.updated_at,
            )
            for item in cart_store.find_items_by_cart(cart)
        )
        return cls(
            cart_id=str(cart.pk),
            owner_kind=OWNER_GUEST if cart.is_guest else OWNER_USER,
            user_id=cart.user_id,
            status=cart.status,
            items=lines,
            metadata=cart_store.find_metadata_by_cart(cart),
            updated_at=cart.updated_at,
        )


@dataclass(frozen=True)
class CartMergeOptions:
    combine_quantities: bool = True
    preserve_metadata: bool = True
    prefer_guest_price: bool = False
    prefer_user_price: bool = False
    conflict_resolution: str | None = None

    @property
    def effective_conflict_resolution(self) -> str:
        policy = (self.conflict_resolution or "").lower()
        return policy if policy in POLICIES else default_conflict_resolution()

    @classmethod
    def from_dict(cls, data: dict | None) -> "CartMergeOptions":
        data = data or {}

        def _flag(snake, camel, default):
            value = data.get(snake, data.get(camel))
            return default if value is None else bool(value)

        return cls(
            combine_quantities=_flag("combine_quantities", "combineQuantities", True),
            preserve_metadata=_flag("preserve_metadata", "preserveMetadata", True),
            prefer_guest_price=_flag("prefer_guest_price", "preferGuestPrice", False),
            prefer_user_price=_flag("prefer_user_price", "preferUserPrice", False),
            conflict_resolution=data.get("conflict_resolution", data.get("conflictResolution")) or None,
        )


@dataclass(frozen=True)
class MergeConflict:
    product_id: str
    variant_id: str | None
    guest_quantity: int
    user_quantity: int
    guest_price: Decimal
    user_price: Decimal
    resolution: str


@dataclass(frozen=True)
class AddOperation:
    product_id: str
    variant_id: str | None
    quantity: int
    price: Decimal
    original_price: Decimal
    category: str | None = None
    metadata: dict = field(default_factory=dict)


@dataclass(frozen=True)
class UpdateOperation:
    item_id: str
    product_id: str
    variant_id: str | None
    quantity: int
    price: Decimal


@dataclass(frozen=True)
class MergePlan:
    items_to_add: tuple[AddOperation, ...]
    items_to_update: tuple[UpdateOperation, ...]
    conflicts: tuple[MergeConflict, ...]


@dataclass(frozen=True)
class MergePreview:
    guest_cart_id: str
    user_cart_id: str
    conflicts: tuple[MergeConflict, ...]
    items_to_add: tuple[AddOperation, ...]
    items_to_update: tuple[UpdateOperation, ...]
    estimated_total: Decimal


@dataclass(frozen=True)
class MergeResult:
    guest_cart_id: str
    user_cart_id: str
    items_added: int
    items_updated: int
    conflicts: tuple[MergeConflict, ...]
    applied_adds: tuple[AddOperation, ...]
    applied_updates: tuple[UpdateOperation, ...]
    metadata_keys_merged: tuple[str, ...] = ()


@dataclass(frozen=True)
class MergeHistoryEntry:
    cart_id: str
    guest_cart_id: str
    merged_at: str
    status: str
    item_count: int


# ============================================================
# PURE PLANNING
# ============================================================


def _default_resolution(guest: CartLine, user: CartLine, policy: str) -> str:
    if policy == POLICY_USER:
        return RESOLUTION_USER
    if policy == POLICY_NEWER:
        if guest.updated_at and user.updated_at and guest.updated_at > user.updated_at:
            return RESOLUTION_GUEST
        return RESOLUTION_USER
    return RESOLUTION_GUEST


def resolve_conflict(
    guest: CartLine,
    user: CartLine,
    options: CartMergeOptions,
) -> tuple[MergeConflict, UpdateOperation | None]:
    """
    Decide one overlapping (product, variant) key.
    Returns the conflict record and the update to apply to the user line (or None).
    """
    if options.combine_quantities:
        resolution = RESOLUTION_COMBINED
    elif guest.price != user.price:
        if options.prefer_guest_price:
            resolution = RESOLUTION_GUEST
        elif options.prefer_user_price:
            resolution = RESOLUTION_USER
        else:
            resolution = _default_resolution(guest, user, options.effective_conflict_resolution)
    else:
        resolution = RESOLUTION_USER

    conflict = MergeConflict(
        product_id=guest.product_id,
        variant_id=guest.variant_id,
        guest_quantity=guest.quantity,
        user_quantity=user.quantity,
        guest_price=guest.price,
        user_price=user.price,
        resolution=resolution,
    )

    if resolution == RESOLUTION_COMBINED:
        update = UpdateOperation(
            item_id=user.item_id,
            product_id=user.product_id,
            variant_id=user.variant_id,
            quantity=min(user.quantity + guest.quantity, max_item_quantity()),
            price=guest.price if options.prefer_guest_price else user.price,
        )
    elif resolution == RESOLUTION_GUEST:
        update = UpdateOperation(
            item_id=user.item_id,
            product_id=user.product_id,
            variant_id=user.variant_id,
            quantity=guest.quantity,
            price=guest.price,
        )
    else:
        update = None

    return conflict, update


def plan_merge(guest: CartSnapshot, user: CartSnapshot, options: CartMergeOptions) -> MergePlan:
    user_by_key = {line.key: line for line in user.items}

    adds: list[AddOperation] = []
    updates: list[UpdateOperation] = []
    conflicts: list[MergeConflict] = []

    for guest_line in guest.items:
        user_line = user_by_key.get(guest_line.key)

        if user_line is None:
            adds.append(
                AddOperation(
                    product_id=guest_line.product_id,
                    variant_id=guest_line.variant_id,
                    quantity=guest_line.quantity,
                    price=guest_line.price,
                    original_price=guest_line.original_price,
                    category=guest_line.category,
                    metadata=dict(guest_line.metadata),
                )
            )
            continue

        conflict, update = resolve_conflict(guest_line, user_line, options)
        conflicts.append(conflict)
        if update is not None:
            updates.append(update)

    return MergePlan(
        items_to_add=tuple(adds),
        items_to_update=tuple(updates),
        conflicts=tuple(conflicts),
    )


def estimate_merged_total(user: CartSnapshot, plan: MergePlan) -> Decimal:
    """
    Total of the user cart exactly as the plan would leave it.
    """
    updates = {u.item_id: u for u in plan.items_to_update}

    total = Decimal("0.00")
    for line in user.items:
        u = updates.get(line.item_id)
        qty, price = (u.quantity, u.price) if u else (line.quantity, line.price)
        total += price * Decimal(qty)

    for add in plan.items_to_add:
        total += add.price * Decimal(add.quantity)

    return _money(total)


def validate_merge_pair(guest: Cart, user: Cart) -> None:
    if str(guest.pk) == str(user.pk):
        raise CartMergeValidationError("Cannot merge a cart into itself", code="SAME_CART")

    if guest.user_id:
        raise CartMergeValidationError(
            "Source cart is not a guest cart", code="GUEST_CART_HAS_USER"
        )

    if not user.user_id:
        raise CartMergeValidationError(
            "Target cart does not belong to a user", code="USER_CART_HAS_NO_USER"
        )

    if guest.status != Cart.STATUS_ACTIVE:
        raise CartMergeValidationError(
            f"Guest cart is {guest.status}, only ACTIVE carts can be merged",
            code="GUEST_CART_NOT_ACTIVE",
        )

    if user.status != Cart.STATUS_ACTIVE:
        raise CartMergeValidationError(
            f"User cart is {user.status}, only ACTIVE carts can receive a merge",
            code="USER_CART_NOT_ACTIVE",
        )


# ============================================================
# PREVIEW (read-only)
# ============================================================


def preview_merge(guest_cart_id, user_cart_id, options: CartMergeOptions | None = None) -> MergePreview:
    options = options or CartMergeOptions()

    guest = cart_store.find_cart_by_id(guest_cart_id)
    user = cart_store.find_cart_by_id(user_cart_id)
    validate_merge_pair(guest, user)

    guest_snap = CartSnapshot.from_cart(guest)
    user_snap = CartSnapshot.from_cart(user)
    plan = plan_merge(guest_snap, user_snap, options)

    return MergePreview(
        guest_cart_id=guest_snap.cart_id,
        user_cart_id=user_snap.cart_id,
        conflicts=plan.conflicts,
        items_to_add=plan.items_to_add,
        items_to_update=plan.items_to_update,
        estimated_total=estimate_merged_total(user_snap, plan),
    )


# ============================================================
# MERGE (atomic write)
# ============================================================


def _lock_pair(guest_cart_id, user_cart_id) -> tuple[Cart, Cart]:
    # consistent lock order avoids deadlocks between concurrent merges
    first, second = sorted([str(guest_cart_id), str(user_cart_id)])
    locked = {
        first: cart_store.find_cart_by_id(first, for_update=True),
    }
    if second != first:
        locked[second] = cart_store.find_cart_by_id(second, for_update=True)
    return locked[str(guest_cart_id)], locked[str(user_cart_id)]


def _apply_plan(guest: Cart, user: Cart, guest_snap: CartSnapshot, plan: MergePlan, options: CartMergeOptions) -> tuple[str, ...]:
    for add in plan.items_to_add:
        cart_store.create_item(
            user,
            product_id=add.product_id,
            variant_id=add.variant_id,
            quantity=add.quantity,
            price=add.price,
            original_price=add.original_price,
            category=add.category,
            metadata=add.metadata,
        )

    if plan.items_to_update:
        items_by_id = {str(i.pk): i for i in cart_store.find_items_by_cart(user)}
        for update in plan.items_to_update:
            cart_store.update_item_quantity_and_price(
                items_by_id[update.item_id],
                quantity=update.quantity,
                price=update.price,
            )

    merged_keys: list[str] = []
    if options.preserve_metadata:
        for key, value in guest_snap.metadata.items():
            if key in (MERGED_FROM_GUEST_KEY, MERGED_AT_KEY):
                continue
            cart_store.upsert_cart_metadata(user, key=key, value=value)
            merged_keys.append(key)

    cart_store.upsert_cart_metadata(user, key=MERGED_FROM_GUEST_KEY, value=str(guest.pk))
    cart_store.upsert_cart_metadata(user, key=MERGED_AT_KEY, value=timezone.now().isoformat())

    cart_store.set_cart_status(guest, Cart.STATUS_COMPLETED)
    cart_store.touch_cart(user)

    return tuple(merged_keys)


def _locked_merge(guest_cart_id, user_cart_id, options: CartMergeOptions) -> tuple[MergePlan, tuple[str, ...]]:
    guest, user = _lock_pair(guest_cart_id, user_cart_id)
    validate_merge_pair(guest, user)

    guest_snap = CartSnapshot.from_cart(guest)
    user_snap = CartSnapshot.from_cart(user)
    plan = plan_merge(guest_snap, user_snap, options)

    return plan, _apply_plan(guest, user, guest_snap, plan, options)


def merge_carts(guest_cart_id, user_cart_id, options: CartMergeOptions | None = None) -> MergeResult:
    options = options or CartMergeOptions()

    try:
        plan, merged_keys = cart_store.run_in_transaction(
            _locked_merge, guest_cart_id, user_cart_id, options
        )
    except (DatabaseError, ValidationError) as exc:
        logger.exception(
            "Cart merge failed, no changes applied",
            extra={"guest_cart_id": str(guest_cart_id), "user_cart_id": str(user_cart_id)},
        )
        raise CartMergeTransactionError("Cart merge failed, no changes were applied") from exc

    result = MergeResult(
        guest_cart_id=str(guest_cart_id),
        user_cart_id=str(user_cart_id),
        items_added=len(plan.items_to_add),
        items_updated=len(plan.items_to_update),
        conflicts=plan.conflicts,
        applied_adds=plan.items_to_add,
        applied_updates=plan.items_to_update,
        metadata_keys_merged=merged_keys,
    )

    logger.info(
        "Cart merge completed",
        extra={
            "guest_cart_id": result.guest_cart_id,
            "user_cart_id": result.user_cart_id,
            "items_added": result.items_added,
            "items_updated": result.items_updated,
            "conflicts": len(result.conflicts),
        },
    )
    return result


# ============================================================
# HISTORY
# ============================================================


def merge_history(user_id: str, *, limit: int = 10) -> list[MergeHistoryEntry]:
    limit = max(1, min(int(limit or 10), 100))

    rows = (
        CartMetadata.objects.filter(cart__user_id=str(user_id), key=MERGED_FROM_GUEST_KEY)
        .select_related("cart")
        .order_by("-updated_at")[:limit]
    )

    out = []
    for row in rows:
        merged_at = (
            CartMetadata.objects.filter(cart=row.cart, key=MERGED_AT_KEY)
            .values_list("value", flat=True)
            .first()
        )
        out.append(
            MergeHistoryEntry(
                cart_id=str(row.cart_id),
                guest_cart_id=row.value,
                merged_at=merged_at or row.updated_at.isoformat(),
                status=row.cart.status,
                item_count=row.cart.item_count,
            )
        )
    return out
