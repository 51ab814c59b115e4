"""
Validation functions for fee configurations and amounts at engine boundaries.

Every check raises ConfigurationError (a ValueError) on degenerate input:
negative or out-of-range percentages, a processor percentage that would make
the gross-up denominator non-positive, non-positive amounts in cents.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Any

from pricing.models import NUMERIC_FIELDS, FeeConfiguration, FeeType
from pricing.money import HUNDRED, ZERO, to_decimal


class ConfigurationError(ValueError):
    """Raised when a fee configuration or input amount cannot be priced. Not retryable."""
    pass


def _as_decimal(value: Any, context: str) -> Decimal:
    try:
        return to_decimal(value, context)
    except ValueError as e:
        raise ConfigurationError(str(e)) from None


def validate_percentage(p: Any, context: str = "percentage") -> Decimal:
    """
    Validate a percentage is finite and within [0, 100].

    Raises:
        ConfigurationError: If the value is not numeric, NaN, infinite, negative or > 100.
    """
    p = _as_decimal(p, context)
    if p < ZERO:
        raise ConfigurationError(f"Invalid {context}: negative value {p}")
    if p > HUNDRED:
        raise ConfigurationError(f"Invalid {context}: {p} out of range [0, 100]")
    return p


def validate_amount(a: Any, context: str = "amount") -> Decimal:
    """Validate a major-unit amount is finite and non-negative."""
    a = _as_decimal(a, context)
    if a < ZERO:
        raise ConfigurationError(f"Invalid {context}: negative value {a}")
    return a


def validate_tax_rate(r: Any, context: str = "tax rate") -> Decimal:
    """Tax rate is a fraction (0.085 = 8.5%), so it must sit in [0, 1]."""
    r = _as_decimal(r, context)
    if r < ZERO or r > 1:
        raise ConfigurationError(f"Invalid {context}: {r} out of range [0, 1]")
    return r


def validate_processor_percentage(p: Any, context: str = "processor fee percentage") -> Decimal:
    """
    The gross-up divides by (1 - p/100), so p must be strictly below 100.
    """
    p = validate_percentage(p, context)
    if p >= HUNDRED:
        raise ConfigurationError(
            f"Invalid {context}: {p} >= 100 leaves nothing after processing"
        )
    return p


def validate_positive_cents(cents: int, context: str = "amount in cents") -> int:
    """Integer cents, strictly positive. Booleans and floats are rejected."""
    if isinstance(cents, bool) or not isinstance(cents, int):
        raise ConfigurationError(f"Invalid {context}: {cents!r} is not an integer number of cents")
    if cents <= 0:
        raise ConfigurationError(f"Invalid {context}: {cents} must be positive")
    return cents


def validate_fee_configuration(config: FeeConfiguration) -> FeeConfiguration:
    """Check every field of a resolved configuration. Returns it unchanged."""
    if not isinstance(config.fee_type, FeeType):
        raise ConfigurationError(f"Invalid fee type: {config.fee_type!r}")
    for name in NUMERIC_FIELDS:
        value = getattr(config, name)
        if not isinstance(value, Decimal):
            raise ConfigurationError(f"Invalid {name.replace('_', ' ')}: {value!r} is not a number")
    validate_amount(config.service_fee_fixed, "service fee fixed")
    validate_percentage(config.service_fee_percentage, "service fee percentage")
    validate_percentage(config.venue_fee_percentage, "venue fee percentage")
    validate_tax_rate(config.tax_rate)
    validate_processor_percentage(config.processor_fee_percentage)
    validate_amount(config.processor_flat_fee, "processor flat fee")
    validate_amount(config.minimum_order_amount, "minimum order amount")
    return config
