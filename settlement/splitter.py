"""
Settlement of a captured payment into processor / platform / venue /
restaurant shares.

The captured total is fixed. Each fee is computed from it independently:

    processor = total * p/100 + flat
    net       = total - processor
    platform  = fee_type switch applied to net
    venue     = net * venue_pct / 100

Processor, platform and venue fees are each rounded half-up to the cent. The
restaurant amount is the integer residual, so the four parts always sum to the
captured total and the restaurant bears all rounding noise.

This is not the inverse of PricingEngine.quote: a captured total
can differ from the quote by a cent, and the books must still balance.
"""

from __future__ import annotations

import logging

from monitor.tracking import tracked
from pricing.engine import platform_fee_for
from pricing.models import FeeConfiguration, PaymentSplit
from pricing.money import from_cents, percent_of, to_cents
from pricing.validation import validate_fee_configuration, validate_positive_cents

logger = logging.getLogger(__name__)


class SplitIntegrityError(Exception):
    """Raised when split parts do not add up to the captured total. Never persist the split."""
    pass


class SettlementSplitter:
    """Stateless four-way splitter. Safe to share across threads."""

    def __init__(self, tolerance_cents: int = 1):
        self.tolerance_cents = tolerance_cents

    @tracked("SettlementSplitter.split")
    def split(self, total_cents: int, config: FeeConfiguration) -> PaymentSplit:
        """
        Split an already-captured total.

        Raises:
            ConfigurationError: total_cents is not a positive integer, or the
                configuration is degenerate.
            SplitIntegrityError: parts drift from the total by more than the tolerance.
        """
        validate_positive_cents(total_cents, "captured total in cents")
        validate_fee_configuration(config)

        total = from_cents(total_cents)
        processor_fee = percent_of(total, config.processor_fee_percentage) + config.processor_flat_fee
        net = total - processor_fee
        platform_fee = platform_fee_for(config, net)
        venue_fee = percent_of(net, config.venue_fee_percentage)

        processor_cents = to_cents(processor_fee)
        platform_cents = to_cents(platform_fee)
        venue_cents = to_cents(venue_fee)
        restaurant_cents = total_cents - processor_cents - platform_cents - venue_cents

        split = PaymentSplit(
            total_cents=total_cents,
            processor_fee_cents=processor_cents,
            platform_fee_cents=platform_cents,
            venue_fee_cents=venue_cents,
            restaurant_amount_cents=restaurant_cents,
            net_amount_cents=to_cents(net),
            restaurant_id=config.restaurant_id,
            venue_id=config.venue_id,
        )
        self._check_integrity(split)

        if restaurant_cents < 0:
            logger.warning(
                "Fees exceed captured total for %s: total=%d processor=%d platform=%d venue=%d",
                config.restaurant_id, total_cents, processor_cents, platform_cents, venue_cents,
            )

        logger.info(
            "Split %s: total=%d processor=%d platform=%d venue=%d restaurant=%d",
            config.restaurant_id, total_cents, processor_cents, platform_cents,
            venue_cents, restaurant_cents,
        )
        return split

    def _check_integrity(self, split: PaymentSplit) -> None:
        """Fail loudly rather than emit books that do not balance."""
        difference = split.parts_sum_cents - split.total_cents
        if abs(difference) > self.tolerance_cents:
            logger.critical(
                "Payment split validation failed: expected=%d calculated=%d difference=%d",
                split.total_cents, split.parts_sum_cents, difference,
            )
            raise SplitIntegrityError(
                f"Split parts sum to {split.parts_sum_cents}, captured total is "
                f"{split.total_cents} (difference {difference} cents)"
            )
