"""
Data models for the pricing and settlement engine.

Money inside the engine is Decimal in major units (dollars); everything that
leaves the engine as an amount is an integer number of cents.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum


class FeeType(Enum):
    FIXED = "fixed"
    PERCENTAGE = "percentage"
    HYBRID = "hybrid"


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


NUMERIC_FIELDS = (
    "service_fee_fixed",
    "service_fee_percentage",
    "venue_fee_percentage",
    "tax_rate",
    "processor_fee_percentage",
    "processor_flat_fee",
    "minimum_order_amount",
)


@dataclass(frozen=True)
class FeeConfiguration:
    restaurant_id: str
    fee_type: FeeType = FeeType.FIXED
    service_fee_fixed: Decimal = Decimal("2.00")      # major units
    service_fee_percentage: Decimal = Decimal("0")    # percent of subtotal
    venue_fee_percentage: Decimal = Decimal("0")      # percent of subtotal
    tax_rate: Decimal = Decimal("0.085")              # fraction, 0.085 = 8.5%
    processor_fee_percentage: Decimal = Decimal("2.9")
    processor_flat_fee: Decimal = Decimal("0.30")     # major units
    minimum_order_amount: Decimal = Decimal("0")      # major units
    venue_id: str | None = None
    venue_name: str | None = None
    is_negotiated: bool = False
    is_default: bool = False

    def __post_init__(self):
        # Plain numbers become exact Decimals; anything else is left for validation to reject
        for name in NUMERIC_FIELDS:
            value = getattr(self, name)
            if isinstance(value, (int, float)) and not isinstance(value, bool):
                object.__setattr__(self, name, Decimal(str(value)))

    @property
    def has_venue_fee(self) -> bool:
        return self.venue_fee_percentage > 0


@dataclass(frozen=True)
class PricingQuote:
    """Customer-facing quote. The four cent fields always sum to total_cents."""

    subtotal_cents: int
    tax_cents: int
    service_fee_cents: int
    venue_fee_cents: int
    total_cents: int
    # Display percentages, expressed against the subtotal
    service_fee_percentage: float
    venue_fee_percentage: float
    desired_service_fee_cents: int
    desired_venue_fee_cents: int
    tax_rate_percentage: float
    processor_fee_percentage: float
    processor_flat_fee_cents: int
    restaurant_id: str = ""
    venue_id: str | None = None
    venue_name: str | None = None
    margin_protected: bool = True
    calculated_at: str = field(default_factory=_now_iso)

    def to_dict(self) -> dict:
        return {
            "restaurantId": self.restaurant_id,
            "subtotalCents": self.subtotal_cents,
            "taxCents": self.tax_cents,
            "serviceFeeCents": self.service_fee_cents,
            "venueFeeCents": self.venue_fee_cents,
            "totalCents": self.total_cents,
            "serviceFeePercentage": self.service_fee_percentage,
            "venueFeePercentage": self.venue_fee_percentage,
            "taxRate": self.tax_rate_percentage,
            "desiredServiceFeeCents": self.desired_service_fee_cents,
            "desiredVenueFeeCents": self.desired_venue_fee_cents,
            "processorFeePercentage": self.processor_fee_percentage,
            "processorFlatFeeCents": self.processor_flat_fee_cents,
            "marginProtected": self.margin_protected,
            "venueId": self.venue_id,
            "venueName": self.venue_name,
            "calculatedAt": self.calculated_at,
        }


@dataclass(frozen=True)
class PaymentSplit:
    """Settlement of a captured total. restaurant_amount_cents is the residual."""

    total_cents: int
    processor_fee_cents: int
    platform_fee_cents: int
    venue_fee_cents: int
    restaurant_amount_cents: int
    net_amount_cents: int
    restaurant_id: str = ""
    venue_id: str | None = None
    calculated_at: str = field(default_factory=_now_iso)

    @property
    def parts_sum_cents(self) -> int:
        return (
            self.processor_fee_cents
            + self.platform_fee_cents
            + self.venue_fee_cents
            + self.restaurant_amount_cents
        )

    def to_dict(self) -> dict:
        return {
            "restaurantId": self.restaurant_id,
            "venueId": self.venue_id,
            "totalCents": self.total_cents,
            "processorFeeAmount": self.processor_fee_cents,
            "platformFeeAmount": self.platform_fee_cents,
            "venueFeeAmount": self.venue_fee_cents,
            "restaurantAmount": self.restaurant_amount_cents,
            "netAmount": self.net_amount_cents,
            "calculatedAt": self.calculated_at,
        }

    def to_record(self, status: str = "completed") -> dict:
        """Order-shaped analytics record in major units."""
        return {
            "restaurantId": self.restaurant_id,
            "venueId": self.venue_id,
            "total": Decimal(self.total_cents) / 100,
            "serviceFee": Decimal(self.platform_fee_cents) / 100,
            "venueFee": Decimal(self.venue_fee_cents) / 100,
            "processorFee": Decimal(self.processor_fee_cents) / 100,
            "createdAt": self.calculated_at,
            "status": status,
        }


@dataclass(frozen=True)
class PricingBreakdown:
    """Desired vs charged fees for admin/testing views of a quote."""

    subtotal: Decimal
    tax: Decimal
    service_fee: Decimal
    venue_fee: Decimal
    total: Decimal
    desired_service_fee: Decimal
    desired_venue_fee: Decimal
    gross_up_amount: Decimal
    service_fee_percentage: float
    venue_fee_percentage: float
    tax_rate_percentage: float
    venue_id: str | None = None
    venue_name: str | None = None


@dataclass(frozen=True)
class MarginCheck:
    """What each party keeps if the processor charges its fee on the quoted total."""

    processor_fee: Decimal
    net_after_processor: Decimal
    platform_margin: Decimal
    venue_margin: Decimal
    desired_platform_margin: Decimal
    desired_venue_margin: Decimal

    @property
    def platform_shortfall(self) -> Decimal:
        return self.desired_platform_margin - self.platform_margin

    @property
    def venue_shortfall(self) -> Decimal:
        return self.desired_venue_margin - self.venue_margin
