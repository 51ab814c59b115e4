"""
Configuration loaded from environment variables. Fail-fast on invalid values.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal

from pydantic_settings import BaseSettings
from pydantic import Field


class Config(BaseSettings):
    model_config = {"env_file": ".env", "env_file_encoding": "utf-8", "frozen": True, "extra": "ignore"}

    # Platform-wide fee defaults (applied to any field a restaurant record leaves unset)
    default_fee_type: str = Field(default="fixed", pattern="^(fixed|percentage|hybrid)$")
    default_service_fee_fixed: float = Field(default=2.00, ge=0)
    default_service_fee_percentage: float = Field(default=0.0, ge=0, le=100)
    # Fraction, not percent: 0.085 = 8.5%
    default_tax_rate: float = Field(default=0.085, ge=0, le=1.0)
    # Card processor takes pct of the gross charge plus a flat amount per transaction
    default_processor_fee_percentage: float = Field(default=2.9, ge=0, lt=100)
    default_processor_flat_fee: float = Field(default=0.30, ge=0)
    default_venue_fee_percentage: float = Field(default=0.0, ge=0, le=100)
    default_minimum_order_amount: float = Field(default=0.0, ge=0)

    # Settlement: max cents the four split parts may drift from the captured total
    split_tolerance_cents: int = Field(default=1, ge=0, le=1)

    # Analytics: only orders with this status are counted ("" counts everything)
    analytics_status_filter: str = "completed"

    log_level: str = "INFO"


@dataclass(frozen=True)
class PlatformDefaults:
    """Platform fee defaults in engine units (Decimal major units / percents)."""

    fee_type: str = "fixed"
    service_fee_fixed: Decimal = Decimal("2.00")
    service_fee_percentage: Decimal = Decimal("0")
    tax_rate: Decimal = Decimal("0.085")
    processor_fee_percentage: Decimal = Decimal("2.9")
    processor_flat_fee: Decimal = Decimal("0.30")
    venue_fee_percentage: Decimal = Decimal("0")
    minimum_order_amount: Decimal = Decimal("0")


def platform_defaults(cfg: Config) -> PlatformDefaults:
    """Convert float settings to Decimal defaults for the resolver."""
    return PlatformDefaults(
        fee_type=cfg.default_fee_type,
        service_fee_fixed=Decimal(str(cfg.default_service_fee_fixed)),
        service_fee_percentage=Decimal(str(cfg.default_service_fee_percentage)),
        tax_rate=Decimal(str(cfg.default_tax_rate)),
        processor_fee_percentage=Decimal(str(cfg.default_processor_fee_percentage)),
        processor_flat_fee=Decimal(str(cfg.default_processor_flat_fee)),
        venue_fee_percentage=Decimal(str(cfg.default_venue_fee_percentage)),
        minimum_order_amount=Decimal(str(cfg.default_minimum_order_amount)),
    )


def load_config() -> Config:
    """Load and validate config from environment. Raises on invalid fields."""
    return Config()
