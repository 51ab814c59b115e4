"""
Decimal money helpers. Amounts are major units (dollars) as Decimal; cents are int.
"""

from __future__ import annotations

from decimal import Decimal, InvalidOperation, ROUND_HALF_UP

CENT = Decimal("0.01")
ZERO = Decimal("0")
HUNDRED = Decimal("100")


def to_decimal(value: object, context: str = "amount") -> Decimal:
    """
    Convert a number or numeric string to Decimal.

    Floats go through str() so 0.3 becomes Decimal("0.3"), not its binary
    expansion. Raises ValueError on booleans, NaN, Inf or unparsable input.
    """
    if isinstance(value, Decimal):
        result = value
    elif isinstance(value, bool):
        raise ValueError(f"Invalid {context}: boolean {value!r}")
    elif isinstance(value, int):
        result = Decimal(value)
    elif isinstance(value, (float, str)):
        try:
            result = Decimal(str(value).strip())
        except InvalidOperation:
            raise ValueError(f"Invalid {context}: {value!r}") from None
    else:
        raise ValueError(f"Invalid {context}: unsupported type {type(value).__name__}")

    if not result.is_finite():
        raise ValueError(f"Invalid {context}: {value!r} is not finite")
    return result


def round_half_up(amount: Decimal) -> Decimal:
    """Round a major-unit amount to the nearest cent, halves away from zero."""
    return amount.quantize(CENT, rounding=ROUND_HALF_UP)


def to_cents(amount: Decimal) -> int:
    """Major units -> integer cents (round half up)."""
    return int((amount * HUNDRED).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def from_cents(cents: int) -> Decimal:
    return Decimal(cents) / HUNDRED


def percent_of(amount: Decimal, percentage: Decimal) -> Decimal:
    """amount * percentage / 100, e.g. percent_of(20, 5) == 1."""
    return amount * percentage / HUNDRED
