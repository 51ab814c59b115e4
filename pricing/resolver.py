"""
Fee configuration resolver. Merges a restaurant's stored fee record, its
venue's fee and the platform defaults into one FeeConfiguration.

Priority per field:
  1. explicit value on the restaurant's fee record
  2. venue fee percentage (venue fee only, when the restaurant sits in a venue)
  3. platform defaults

Resolution never fails: a missing record, an unreadable field or a store
error all fall back to platform defaults. Degenerate values are rejected at
write time by prepare_record(); the pricing engine re-checks before dividing.
Nothing is cached here; caching belongs to the store.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Mapping, Protocol, runtime_checkable

from config import PlatformDefaults
from monitor.tracking import tracked
from pricing.models import FeeConfiguration, FeeType
from pricing.money import to_decimal
from pricing.validation import (
    ConfigurationError,
    validate_fee_configuration,
    validate_percentage,
)

logger = logging.getLogger(__name__)

# Stored document key -> (FeeConfiguration attribute, legacy aliases)
_DECIMAL_FIELDS: dict[str, tuple[str, tuple[str, ...]]] = {
    "serviceFeeFixed": ("service_fee_fixed", ()),
    "serviceFeePercentage": ("service_fee_percentage", ()),
    "venueFeePercentage": ("venue_fee_percentage", ()),
    "taxRate": ("tax_rate", ()),
    "processorFeePercentage": ("processor_fee_percentage", ("stripeFeePercentage",)),
    "processorFlatFee": ("processor_flat_fee", ("stripeFlatFee",)),
    "minimumOrderAmount": ("minimum_order_amount", ()),
}


@runtime_checkable
class FeeConfigStore(Protocol):
    """Read side of the external configuration store. Documents use camelCase keys."""

    def get_fee_config(self, restaurant_id: str) -> Mapping[str, Any] | None:
        """Stored fee record for a restaurant, or None."""
        ...

    def get_restaurant(self, restaurant_id: str) -> Mapping[str, Any] | None:
        """Restaurant document (used for venueId / venueName), or None."""
        ...

    def get_venue_fee_config(self, venue_id: str) -> Mapping[str, Any] | None:
        """Venue fee document ({"defaultFeePercentage", "venueName"}), or None."""
        ...


@dataclass
class InMemoryConfigStore:
    """Dict-backed FeeConfigStore for tests and the CLI."""

    fee_configs: dict[str, Mapping[str, Any]] = field(default_factory=dict)
    restaurants: dict[str, Mapping[str, Any]] = field(default_factory=dict)
    venues: dict[str, Mapping[str, Any]] = field(default_factory=dict)

    def get_fee_config(self, restaurant_id: str) -> Mapping[str, Any] | None:
        return self.fee_configs.get(restaurant_id)

    def get_restaurant(self, restaurant_id: str) -> Mapping[str, Any] | None:
        return self.restaurants.get(restaurant_id)

    def get_venue_fee_config(self, venue_id: str) -> Mapping[str, Any] | None:
        return self.venues.get(venue_id)


def _lookup(doc: Mapping[str, Any] | None, key: str, aliases: tuple[str, ...] = ()) -> Any:
    if not doc:
        return None
    for k in (key, *aliases):
        value = doc.get(k)
        if value is not None:
            return value
    return None


def parse_fee_type(value: Any, strict: bool = False) -> FeeType:
    """
    Map a stored feeType string to FeeType.
    Unknown values fall back to FIXED, or raise ConfigurationError when strict.
    """
    if isinstance(value, FeeType):
        return value
    try:
        return FeeType(str(value).strip().lower())
    except ValueError:
        if strict:
            raise ConfigurationError(f"Invalid fee type: {value!r}") from None
        logger.warning("Unknown fee type %r, defaulting to fixed", value)
        return FeeType.FIXED


_TRUE_STRINGS = frozenset({"true", "1", "yes", "y", "on"})


def parse_flag(value: Any) -> bool:
    """Stored boolean flag. Strings are parsed, so "false" stays False."""
    if value is None:
        return False
    if isinstance(value, str):
        return value.strip().lower() in _TRUE_STRINGS
    return bool(value)


def to_document(config: FeeConfiguration, include_venue_fee: bool = True) -> dict:
    """
    Serialize a configuration to the camelCase document the store keeps.

    With include_venue_fee=False the venueFeePercentage key is left out, so the
    venue overlay keeps applying when the record is resolved.
    """
    doc: dict[str, Any] = {
        "restaurantId": config.restaurant_id,
        "feeType": config.fee_type.value,
        "isNegotiated": config.is_negotiated,
        "venueId": config.venue_id,
        "venueName": config.venue_name,
    }
    for key, (attr, _) in _DECIMAL_FIELDS.items():
        if key == "venueFeePercentage" and not include_venue_fee:
            continue
        doc[key] = float(getattr(config, attr))
    return doc


class FeeConfigResolver:
    """Resolve effective fee configurations. Stateless apart from its collaborators."""

    def __init__(self, store: FeeConfigStore, defaults: PlatformDefaults | None = None):
        self._store = store
        self._defaults = defaults or PlatformDefaults()

    def default_configuration(self, restaurant_id: str) -> FeeConfiguration:
        d = self._defaults
        return FeeConfiguration(
            restaurant_id=restaurant_id,
            fee_type=parse_fee_type(d.fee_type),
            service_fee_fixed=d.service_fee_fixed,
            service_fee_percentage=d.service_fee_percentage,
            venue_fee_percentage=d.venue_fee_percentage,
            tax_rate=d.tax_rate,
            processor_fee_percentage=d.processor_fee_percentage,
            processor_flat_fee=d.processor_flat_fee,
            minimum_order_amount=d.minimum_order_amount,
            is_default=True,
        )

    @tracked("FeeConfigResolver.resolve")
    def resolve(self, restaurant_id: str) -> FeeConfiguration:
        """Effective configuration for a restaurant. Never raises."""
        try:
            record = self._store.get_fee_config(restaurant_id)
            restaurant = self._store.get_restaurant(restaurant_id)
            venue_id = _lookup(restaurant, "venueId") or _lookup(record, "venueId")
            venue = self._store.get_venue_fee_config(venue_id) if venue_id else None
        except Exception as e:
            logger.warning(
                "Fee config lookup failed for %s, using platform defaults: %s",
                restaurant_id, e,
            )
            return self.default_configuration(restaurant_id)

        config = self._merge(restaurant_id, record, restaurant, venue, venue_id)
        logger.debug(
            "Fee config resolved: restaurant=%s type=%s venue=%s venue_pct=%s default=%s",
            restaurant_id, config.fee_type.value, config.venue_id,
            config.venue_fee_percentage, config.is_default,
        )
        return config

    def _merge(
        self,
        restaurant_id: str,
        record: Mapping[str, Any] | None,
        restaurant: Mapping[str, Any] | None,
        venue: Mapping[str, Any] | None,
        venue_id: str | None,
    ) -> FeeConfiguration:
        base = self.default_configuration(restaurant_id)
        values: dict[str, Any] = {}

        for key, (attr, aliases) in _DECIMAL_FIELDS.items():
            raw = _lookup(record, key, aliases)
            if raw is None:
                continue
            try:
                values[attr] = to_decimal(raw, key)
            except ValueError as e:
                logger.warning("Ignoring stored %s for %s: %s", key, restaurant_id, e)

        raw_type = _lookup(record, "feeType")
        if raw_type is not None:
            values["fee_type"] = parse_fee_type(raw_type)

        # Venue overlay: restaurant's explicit venue percentage wins
        if "venue_fee_percentage" not in values:
            venue_pct = _lookup(venue, "defaultFeePercentage", ("venueFeePercentage",))
            if venue_pct is not None:
                try:
                    values["venue_fee_percentage"] = to_decimal(venue_pct, "venue fee percentage")
                except ValueError as e:
                    logger.warning("Ignoring venue fee for %s: %s", venue_id, e)

        venue_name = (
            _lookup(venue, "venueName")
            or _lookup(restaurant, "venueName")
            or _lookup(record, "venueName")
        )

        return FeeConfiguration(
            restaurant_id=restaurant_id,
            fee_type=values.get("fee_type", base.fee_type),
            service_fee_fixed=values.get("service_fee_fixed", base.service_fee_fixed),
            service_fee_percentage=values.get("service_fee_percentage", base.service_fee_percentage),
            venue_fee_percentage=values.get("venue_fee_percentage", base.venue_fee_percentage),
            tax_rate=values.get("tax_rate", base.tax_rate),
            processor_fee_percentage=values.get("processor_fee_percentage", base.processor_fee_percentage),
            processor_flat_fee=values.get("processor_flat_fee", base.processor_flat_fee),
            minimum_order_amount=values.get("minimum_order_amount", base.minimum_order_amount),
            venue_id=venue_id or None,
            venue_name=venue_name or None,
            is_negotiated=parse_flag(_lookup(record, "isNegotiated")),
            is_default=record is None,
        )

    def prepare_record(
        self,
        restaurant_id: str,
        changes: Mapping[str, Any],
        venue_id: str | None = None,
        venue_name: str | None = None,
    ) -> dict:
        """
        Build the validated document a caller should persist for a restaurant.

        `changes` uses the stored camelCase keys. Unset fields take platform
        defaults, except venueFeePercentage: it is written only when `changes`
        sets it, otherwise the venue's own percentage keeps applying. Raises
        ConfigurationError on any degenerate value, so bad configurations
        never reach the store.
        """
        if not restaurant_id:
            raise ConfigurationError("Restaurant ID is required")
        base = self.default_configuration(restaurant_id)

        kwargs: dict[str, Any] = {}
        for key, (attr, aliases) in _DECIMAL_FIELDS.items():
            raw = _lookup(changes, key, aliases)
            if raw is None:
                kwargs[attr] = getattr(base, attr)
                continue
            try:
                kwargs[attr] = to_decimal(raw, key)
            except ValueError as e:
                raise ConfigurationError(str(e)) from None

        raw_type = _lookup(changes, "feeType")
        fee_type = base.fee_type if raw_type is None else parse_fee_type(raw_type, strict=True)

        config = FeeConfiguration(
            restaurant_id=restaurant_id,
            fee_type=fee_type,
            venue_id=venue_id or _lookup(changes, "venueId"),
            venue_name=venue_name or _lookup(changes, "venueName"),
            is_negotiated=parse_flag(_lookup(changes, "isNegotiated")),
            **kwargs,
        )
        validate_fee_configuration(config)
        logger.info(
            "Fee record prepared: restaurant=%s type=%s venue_pct=%s negotiated=%s",
            restaurant_id, config.fee_type.value, config.venue_fee_percentage,
            config.is_negotiated,
        )
        explicit_venue_fee = _lookup(changes, "venueFeePercentage") is not None
        return to_document(config, include_venue_fee=explicit_venue_fee)


def apply_venue_fee(record: Mapping[str, Any], venue_fee_percentage: Any) -> dict:
    """Copy of a stored record with a new, validated venue fee percentage."""
    try:
        pct = to_decimal(venue_fee_percentage, "venue fee percentage")
    except ValueError as e:
        raise ConfigurationError(str(e)) from None
    validate_percentage(pct, "venue fee percentage")
    updated = dict(record)
    updated["venueFeePercentage"] = float(pct)
    return updated
