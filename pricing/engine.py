"""
Protected pricing: the gross-up solver.

The processor deducts pct * total + flat from the very total we are solving
for, so adding fees on top of the subtotal under-collects. Solving

    total - (total * p + flat) = base

for total gives the closed form

    total = (base + flat) / (1 - p)

where base = subtotal + tax + desired service fee + desired venue fee. No
iteration is involved, so the result is deterministic.

Display split of the gross margin (total - subtotal - tax):
  - venue fee   = desired venue fee / (1 - p)   (venue pct is percent of subtotal;
                  the venue's line also carries the processor's cut on it)
  - service fee = the rest (platform fee, processor cut on subtotal/tax/platform
                  fee, and the flat fee)

All arithmetic is Decimal in major units; cents are rounded half-up only at
the end, and the service fee absorbs the rounding so the four cent fields sum
to the total exactly.
"""

from __future__ import annotations

import logging
from decimal import Decimal

from monitor.tracking import tracked
from pricing.models import (
    FeeConfiguration,
    FeeType,
    MarginCheck,
    PricingBreakdown,
    PricingQuote,
)
from pricing.money import HUNDRED, ZERO, from_cents, percent_of, to_cents
from pricing.order_math import calculate_tax_cents
from pricing.validation import (
    ConfigurationError,
    validate_fee_configuration,
    validate_positive_cents,
)

logger = logging.getLogger(__name__)


def platform_fee_for(config: FeeConfiguration, amount: Decimal) -> Decimal:
    """
    Platform fee on `amount` selected by fee_type:
      fixed      -> service_fee_fixed
      percentage -> amount * pct / 100
      hybrid     -> service_fee_fixed + amount * pct / 100
    """
    if config.fee_type == FeeType.PERCENTAGE:
        return percent_of(amount, config.service_fee_percentage)
    if config.fee_type == FeeType.HYBRID:
        return config.service_fee_fixed + percent_of(amount, config.service_fee_percentage)
    return config.service_fee_fixed


def processor_keep_ratio(processor_fee_percentage: Decimal) -> Decimal:
    """Fraction of each charged dollar left after the processor's percentage."""
    keep = 1 - processor_fee_percentage / HUNDRED
    if keep <= ZERO:
        raise ConfigurationError(
            f"Processor fee percentage {processor_fee_percentage} leaves nothing to gross up"
        )
    return keep


def gross_up(base: Decimal, processor_fee_percentage: Decimal, processor_flat_fee: Decimal) -> Decimal:
    """Amount to charge so that `base` remains after the processor's fee."""
    return (base + processor_flat_fee) / processor_keep_ratio(processor_fee_percentage)


def _display_pct(cents: int, subtotal_cents: int) -> float:
    return round(cents / subtotal_cents * 100.0, 2)


class PricingEngine:
    """Stateless quote calculator. Safe to share across threads."""

    @staticmethod
    def desired_service_fee(subtotal: Decimal, config: FeeConfiguration) -> Decimal:
        """Platform's wanted cut before gross-up, including any minimum-order shortfall."""
        fee = platform_fee_for(config, subtotal)
        if subtotal < config.minimum_order_amount:
            # Shortfall joins the service fee before gross-up so its processor cut is covered too
            fee += config.minimum_order_amount - subtotal
        return fee

    @tracked("PricingEngine.quote")
    def quote(self, subtotal_cents: int, config: FeeConfiguration) -> PricingQuote:
        """
        Compute the customer quote for a subtotal.

        Raises:
            ConfigurationError: subtotal_cents <= 0, processor pct >= 100, or any
                other degenerate configuration value.
        """
        validate_positive_cents(subtotal_cents, "subtotal in cents")
        validate_fee_configuration(config)

        subtotal = from_cents(subtotal_cents)
        desired_service = self.desired_service_fee(subtotal, config)
        desired_venue = percent_of(subtotal, config.venue_fee_percentage)
        tax = subtotal * config.tax_rate

        base = subtotal + tax + desired_service + desired_venue
        keep = processor_keep_ratio(config.processor_fee_percentage)
        total = (base + config.processor_flat_fee) / keep
        displayed_venue = desired_venue / keep

        total_cents = to_cents(total)
        tax_cents = calculate_tax_cents(subtotal_cents, config.tax_rate)
        venue_cents = to_cents(displayed_venue)
        service_cents = total_cents - subtotal_cents - tax_cents - venue_cents
        if service_cents < 0:
            # Only reachable with no platform fee and no processor fee, when
            # tax and venue both round up by half a cent.
            logger.debug("Rounding left service fee at %d cents, moving to venue fee", service_cents)
            venue_cents += service_cents
            service_cents = 0

        quote = PricingQuote(
            subtotal_cents=subtotal_cents,
            tax_cents=tax_cents,
            service_fee_cents=service_cents,
            venue_fee_cents=venue_cents,
            total_cents=total_cents,
            service_fee_percentage=_display_pct(service_cents, subtotal_cents),
            venue_fee_percentage=_display_pct(venue_cents, subtotal_cents),
            desired_service_fee_cents=to_cents(desired_service),
            desired_venue_fee_cents=to_cents(desired_venue),
            tax_rate_percentage=float(round(config.tax_rate * HUNDRED, 2)),
            processor_fee_percentage=float(round(config.processor_fee_percentage, 2)),
            processor_flat_fee_cents=to_cents(config.processor_flat_fee),
            restaurant_id=config.restaurant_id,
            venue_id=config.venue_id,
            venue_name=config.venue_name,
        )

        logger.debug(
            "Quote %s: subtotal=%d tax=%d service=%d (desired %d) venue=%d (desired %d) total=%d",
            config.restaurant_id, subtotal_cents, tax_cents, service_cents,
            quote.desired_service_fee_cents, venue_cents, quote.desired_venue_fee_cents,
            total_cents,
        )
        return quote

    @staticmethod
    def breakdown(quote: PricingQuote) -> PricingBreakdown:
        """Desired vs charged fees in major units, for admin and test views."""
        charged = quote.service_fee_cents + quote.venue_fee_cents
        desired = quote.desired_service_fee_cents + quote.desired_venue_fee_cents
        return PricingBreakdown(
            subtotal=from_cents(quote.subtotal_cents),
            tax=from_cents(quote.tax_cents),
            service_fee=from_cents(quote.service_fee_cents),
            venue_fee=from_cents(quote.venue_fee_cents),
            total=from_cents(quote.total_cents),
            desired_service_fee=from_cents(quote.desired_service_fee_cents),
            desired_venue_fee=from_cents(quote.desired_venue_fee_cents),
            gross_up_amount=from_cents(charged - desired),
            service_fee_percentage=quote.service_fee_percentage,
            venue_fee_percentage=quote.venue_fee_percentage,
            tax_rate_percentage=quote.tax_rate_percentage,
            venue_id=quote.venue_id,
            venue_name=quote.venue_name,
        )

    @staticmethod
    def verify_margins(quote: PricingQuote, config: FeeConfiguration) -> MarginCheck:
        """
        Charge the processor's fee on the quoted total and report what the
        platform and venue keep. Differences from the desired margins come
        from cent rounding only.
        """
        total = from_cents(quote.total_cents)
        processor_fee = percent_of(total, config.processor_fee_percentage) + config.processor_flat_fee
        net = total - processor_fee
        venue_fee = from_cents(quote.venue_fee_cents)
        venue_margin = venue_fee - percent_of(venue_fee, config.processor_fee_percentage)
        platform_margin = net - from_cents(quote.subtotal_cents) - from_cents(quote.tax_cents) - venue_margin

        check = MarginCheck(
            processor_fee=processor_fee,
            net_after_processor=net,
            platform_margin=platform_margin,
            venue_margin=venue_margin,
            desired_platform_margin=from_cents(quote.desired_service_fee_cents),
            desired_venue_margin=from_cents(quote.desired_venue_fee_cents),
        )
        logger.debug(
            "Margin check %s: processor=%s platform=%s (short %s) venue=%s (short %s)",
            config.restaurant_id, processor_fee, platform_margin, check.platform_shortfall,
            venue_margin, check.venue_shortfall,
        )
        return check
