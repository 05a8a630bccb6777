# pricing/services/tax_resolver.py

"""
TAX RESOLVER

Purpose:
- Select every active, time-valid TaxRate matching a shipping address.
- Tax each rate's applicable subset of items; round per rate; sum.

Location matching:
- rate.country must equal address.country
- rate.state / city / postal_code are NULL (wildcard) or equal the address field
- all matches apply; specificity only orders the result (postal > city > state > country)

GUARANTEES:
- Pure function of (items, address, rate table): repeated calls give identical output.
- Storage failure raises TaxUnavailableError; "no matching rates" returns zero tax.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from decimal import ROUND_HALF_UP, Decimal

from django.db import DatabaseError
from django.db.models import Q
from django.utils import timezone

from pricing.models import TaxRate
from pricing.services.exceptions import TaxUnavailableError
from pricing.services.line_items import TWOPLACES, ZERO, ShippingAddress, _money

logger = logging.getLogger(__name__)

TAX_NAMES = dict(TaxRate.TYPE_CHOICES)


@dataclass(frozen=True)
class TaxApplication:
    id: str
    name: str
    type: str
    rate: Decimal
    taxable_amount: Decimal
    amount: Decimal
    region: str
    is_inclusive: bool


@dataclass(frozen=True)
class TaxCalculation:
    taxes: tuple[TaxApplication, ...] = field(default_factory=tuple)
    total_tax: Decimal = ZERO


def _wildcard(field_name: str, value) -> Q:
    q = Q(**{f"{field_name}__isnull": True}) | Q(**{field_name: ""})
    if value:
        q |= Q(**{field_name: value})
    return q


def _specificity_key(rate: TaxRate):
    return (
        0 if rate.postal_code else 1,
        0 if rate.city else 1,
        0 if rate.state else 1,
        rate.country,
        str(rate.pk),
    )


def find_tax_rates_matching_address(address: ShippingAddress, *, now=None) -> list[TaxRate]:
    now = now or timezone.now()

    try:
        qs = (
            TaxRate.objects.filter(
                is_active=True,
                country=address.country,
                valid_from__lte=now,
            )
            .filter(Q(valid_to__isnull=True) | Q(valid_to__gte=now))
            .filter(_wildcard("state", address.state))
            .filter(_wildcard("city", address.city))
            .filter(_wildcard("postal_code", address.postal_code))
        )
        rates = list(qs)
    except DatabaseError as exc:
        logger.exception("Tax rate lookup failed", extra={"address": address.as_dict()})
        raise TaxUnavailableError("Tax rates could not be loaded") from exc

    return sorted(rates, key=_specificity_key)


def _taxable_indexes(rate: TaxRate, items) -> list[int]:
    if rate.applicable_products:
        allowed = {str(p) for p in rate.applicable_products}
        return [i for i, item in enumerate(items) if item.product_id in allowed]

    if rate.applicable_categories:
        allowed = {str(c) for c in rate.applicable_categories}
        return [i for i, item in enumerate(items) if item.category and item.category in allowed]

    return list(range(len(items)))


def calculate_taxes(
    items,
    shipping_address: ShippingAddress | None,
    *,
    line_amounts=None,
    now=None,
) -> TaxCalculation:
    """
    line_amounts: post-discount amount per line (same order as items).
    Defaults to each item's line total.
    """
    items = list(items)
    if shipping_address is None or not items:
        return TaxCalculation()

    if line_amounts is None:
        line_amounts = [_money(item.line_total) for item in items]
    else:
        line_amounts = [_money(a) for a in line_amounts]

    rates = find_tax_rates_matching_address(shipping_address, now=now)

    taxes = []
    total = ZERO
    for rate in rates:
        idx = _taxable_indexes(rate, items)
        if not idx:
            continue

        taxable = sum((line_amounts[i] for i in idx), ZERO)
        if taxable <= ZERO:
            continue

        amount = (taxable * Decimal(rate.rate) / Decimal("100")).quantize(
            TWOPLACES, rounding=ROUND_HALF_UP
        )

        taxes.append(
            TaxApplication(
                id=str(rate.pk),
                name=TAX_NAMES.get(rate.type, rate.type),
                type=rate.type,
                rate=Decimal(rate.rate),
                taxable_amount=taxable,
                amount=amount,
                region=rate.region or rate.country,
                is_inclusive=rate.is_inclusive,
            )
        )
        total += amount

    logger.debug(
        "Taxes calculated",
        extra={"rates": len(taxes), "total_tax": str(total), "country": shipping_address.country},
    )

    return TaxCalculation(taxes=tuple(taxes), total_tax=_money(total))
