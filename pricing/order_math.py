"""
Order-level arithmetic: item subtotals and plain tax amounts, in cents.
"""

from __future__ import annotations

import logging
from decimal import Decimal
from typing import Any, Iterable, Mapping

from pricing.money import to_cents, to_decimal

logger = logging.getLogger(__name__)


def _item_value(item: Any, key: str) -> Any:
    if isinstance(item, Mapping):
        return item.get(key)
    return getattr(item, key, None)


def calculate_order_subtotal(items: Iterable[Any] | None) -> int:
    """
    Sum price * quantity over order items and return cents.

    Prices are major units. An unparsable price or quantity counts as 0, and
    fractional quantities are truncated. Anything that is not a list/tuple
    of items yields 0.
    """
    if not isinstance(items, (list, tuple)) or not items:
        return 0

    subtotal = Decimal("0")
    for item in items:
        try:
            price = to_decimal(_item_value(item, "price"), "item price")
        except ValueError:
            price = Decimal("0")
        try:
            quantity = int(to_decimal(_item_value(item, "quantity"), "item quantity"))
        except ValueError:
            quantity = 0
        subtotal += price * quantity

    return to_cents(subtotal)


def calculate_tax_cents(subtotal_cents: int, tax_rate: Decimal) -> int:
    """Tax on a subtotal, rounded half-up to the cent. tax_rate is a fraction."""
    return to_cents(Decimal(subtotal_cents) * tax_rate / 100)
