# pricing/services/line_items.py

"""
LINE ITEMS + MONEY HELPERS

Purpose:
- LineItem / ShippingAddress / PricingRequest value objects used by every resolver.
- Input normalization (rejects quantity <= 0, negative prices, missing product ids).
- Money rounding and discount allocation across lines.

Hard rules:
- Quantities are integer units.
- Money is Decimal, rounded ROUND_HALF_UP to 2dp at the boundaries.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

from pricing.services.exceptions import PricingValidationError

TWOPLACES = Decimal("0.01")
ZERO = Decimal("0.00")


def _money(v) -> Decimal:
    if v is None or v == "":
        return ZERO
    return Decimal(str(v)).quantize(TWOPLACES, rounding=ROUND_HALF_UP)


def _to_decimal(value, *, field_name: str) -> Decimal:
    if isinstance(value, bool):
        raise PricingValidationError(
            f"{field_name} must be a decimal number", field=field_name
        )
    try:
        return Decimal(str(value))
    except (InvalidOperation, ValueError, TypeError) as exc:
        raise PricingValidationError(
            f"{field_name} must be a decimal number", field=field_name
        ) from exc


def _to_int_qty(value, *, field_name: str) -> int:
    if isinstance(value, bool):
        raise PricingValidationError(
            f"{field_name} must be a whole integer unit", field=field_name
        )

    if isinstance(value, int):
        return value

    if isinstance(value, str):
        s = value.strip()
        if s.isdigit():
            return int(s)

    raise PricingValidationError(
        f"{field_name} must be a whole integer unit", field=field_name
    )


@dataclass(frozen=True)
class LineItem:
    product_id: str
    quantity: int
    unit_price: Decimal
    variant_id: str | None = None
    category: str | None = None
    metadata: dict = field(default_factory=dict)

    @property
    def line_total(self) -> Decimal:
        return self.unit_price * Decimal(self.quantity)

    @property
    def key(self) -> tuple[str, str | None]:
        return (self.product_id, self.variant_id)


@dataclass(frozen=True)
class ShippingAddress:
    country: str
    state: str | None = None
    city: str | None = None
    postal_code: str | None = None

    def as_dict(self) -> dict:
        return {
            "country": self.country,
            "state": self.state,
            "city": self.city,
            "postal_code": self.postal_code,
        }


@dataclass(frozen=True)
class PricingRequest:
    items: tuple[LineItem, ...]
    shipping_address: ShippingAddress | None = None
    coupon_codes: tuple[str, ...] = ()
    promotion_ids: tuple[str, ...] = ()
    user_id: str | None = None
    currency: str | None = None
    reference: str = ""

    @property
    def subtotal(self) -> Decimal:
        return calculate_subtotal(self.items)

    @property
    def total_quantity(self) -> int:
        return sum(item.quantity for item in self.items)


def build_line_item(raw: dict, *, index: int = 0) -> LineItem:
    """
    Normalize one untrusted dict into a LineItem.
    Accepts both snake_case and camelCase keys.
    """
    prefix = f"items[{index}]"

    product_id = str(raw.get("product_id") or raw.get("productId") or "").strip()
    if not product_id:
        raise PricingValidationError(
            "Product ID is required for all items",
            field=f"{prefix}.product_id",
            code="missing_product_id",
        )

    quantity = _to_int_qty(raw.get("quantity"), field_name=f"{prefix}.quantity")
    if quantity <= 0:
        raise PricingValidationError(
            "Quantity must be greater than 0",
            field=f"{prefix}.quantity",
            code="invalid_quantity",
        )

    raw_price = raw.get("unit_price", raw.get("unitPrice"))
    if raw_price is None or raw_price == "":
        raise PricingValidationError(
            "Unit price is required",
            field=f"{prefix}.unit_price",
            code="invalid_unit_price",
        )
    unit_price = _to_decimal(raw_price, field_name=f"{prefix}.unit_price")
    if unit_price < ZERO:
        raise PricingValidationError(
            "Unit price must be greater than or equal to 0",
            field=f"{prefix}.unit_price",
            code="invalid_unit_price",
        )

    variant_id = raw.get("variant_id", raw.get("variantId"))
    category = raw.get("category")

    return LineItem(
        product_id=product_id,
        quantity=quantity,
        unit_price=unit_price,
        variant_id=str(variant_id).strip() or None if variant_id is not None else None,
        category=str(category).strip() or None if category is not None else None,
        metadata=dict(raw.get("metadata") or {}),
    )


def validate_line_items(items) -> tuple[LineItem, ...]:
    """
    Re-check already-built LineItems (or build them from dicts).
    An empty item list is rejected.
    """
    items = list(items or [])
    if not items:
        raise PricingValidationError(
            "At least one item is required for pricing calculation",
            field="items",
            code="no_items",
        )

    out = []
    for idx, item in enumerate(items):
        if isinstance(item, LineItem):
            if not item.product_id:
                raise PricingValidationError(
                    "Product ID is required for all items",
                    field=f"items[{idx}].product_id",
                    code="missing_product_id",
                )
            if item.quantity <= 0:
                raise PricingValidationError(
                    "Quantity must be greater than 0",
                    field=f"items[{idx}].quantity",
                    code="invalid_quantity",
                )
            if item.unit_price < ZERO:
                raise PricingValidationError(
                    "Unit price must be greater than or equal to 0",
                    field=f"items[{idx}].unit_price",
                    code="invalid_unit_price",
                )
            out.append(item)
        else:
            out.append(build_line_item(item, index=idx))
    return tuple(out)


def build_shipping_address(raw: dict | None) -> ShippingAddress | None:
    if not raw:
        return None

    country = str(raw.get("country") or "").strip()
    if not country:
        raise PricingValidationError(
            "shipping_address.country is required",
            field="shipping_address.country",
            code="missing_country",
        )

    def _opt(*keys):
        for k in keys:
            v = raw.get(k)
            if v not in (None, ""):
                return str(v).strip()
        return None

    return ShippingAddress(
        country=country,
        state=_opt("state"),
        city=_opt("city"),
        postal_code=_opt("postal_code", "postalCode"),
    )


def calculate_subtotal(items) -> Decimal:
    return sum((item.line_total for item in items), ZERO)


def allocate_discount(items, discount_total: Decimal) -> list[Decimal]:
    """
    Spread discount_total over the lines proportionally to their line totals.

    Returns per-line discounted amounts (same order as items), never negative,
    summing exactly to max(0, subtotal - discount_total). The last non-zero
    line absorbs the rounding remainder.
    """
    line_totals = [_money(item.line_total) for item in items]
    subtotal = sum(line_totals, ZERO)
    target = max(ZERO, subtotal - _money(discount_total))

    if subtotal <= ZERO:
        return [ZERO for _ in line_totals]
    if target == subtotal:
        return line_totals

    amounts = [
        (lt * target / subtotal).quantize(TWOPLACES, rounding=ROUND_HALF_UP)
        for lt in line_totals
    ]

    remainder = target - sum(amounts, ZERO)
    if remainder:
        for idx in range(len(amounts) - 1, -1, -1):
            if line_totals[idx] > ZERO:
                amounts[idx] = max(ZERO, amounts[idx] + remainder)
                break

    return amounts


def build_pricing_request(payload: dict) -> PricingRequest:
    """
    Build a PricingRequest from an untrusted dict (API payload or cart snapshot).
    """
    payload = payload or {}
    items = validate_line_items(payload.get("items") or [])

    coupon_codes = payload.get("coupon_codes", payload.get("couponCodes")) or []
    promotion_ids = payload.get("promotion_ids", payload.get("promotionIds")) or []
    user_id = payload.get("user_id", payload.get("userId"))

    return PricingRequest(
        items=items,
        shipping_address=build_shipping_address(
            payload.get("shipping_address", payload.get("shippingAddress"))
        ),
        coupon_codes=tuple(str(c).strip() for c in coupon_codes if str(c).strip()),
        promotion_ids=tuple(str(p) for p in promotion_ids if p),
        user_id=str(user_id) if user_id not in (None, "") else None,
        currency=payload.get("currency") or None,
        reference=str(payload.get("reference") or ""),
    )
