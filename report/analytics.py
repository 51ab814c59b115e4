"""
Fee analytics: fold historical order/split records into revenue metrics.

Records are duck-typed. Mappings and plain objects both work, and every
numeric field is optional. A missing or unreadable value contributes zero to
the metrics it would have touched, so one malformed historical record never
breaks a report.

Record fields (major units):
  total, serviceFee, venueFee, processorFee (legacy: stripeFee), tax,
  restaurantId, venueId, createdAt, status
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Iterable, Mapping

from monitor.tracking import tracked
from pricing.money import ZERO, to_decimal
from report.periods import record_timestamp, week_key

logger = logging.getLogger(__name__)

UNKNOWN_RESTAURANT = "unknown"


def _raw(record: Any, key: str) -> Any:
    if isinstance(record, Mapping):
        return record.get(key)
    return getattr(record, key, None)


def record_amount(record: Any, *keys: str) -> Decimal:
    """First readable amount among `keys`, else zero."""
    for key in keys:
        value = _raw(record, key)
        if value is None:
            continue
        try:
            return to_decimal(value, key)
        except ValueError:
            logger.debug("Unreadable %s on record, counting as zero: %r", key, value)
            return ZERO
    return ZERO


def _average(total: Decimal, count: int) -> Decimal:
    return total / count if count > 0 else ZERO


@dataclass
class RestaurantRevenue:
    revenue: Decimal = ZERO
    service_fees: Decimal = ZERO
    venue_fees: Decimal = ZERO
    processor_fees: Decimal = ZERO
    orders: int = 0

    @property
    def average_order_value(self) -> Decimal:
        return _average(self.revenue, self.orders)


@dataclass
class VenueRevenue:
    revenue: Decimal = ZERO
    service_fees: Decimal = ZERO
    venue_fees: Decimal = ZERO
    processor_fees: Decimal = ZERO
    orders: int = 0
    restaurant_ids: set[str] = field(default_factory=set)

    @property
    def restaurant_count(self) -> int:
        return len(self.restaurant_ids)


@dataclass
class FeeAnalytics:
    """Aggregate revenue metrics. All-zero when built from no records."""

    total_revenue: Decimal = ZERO
    total_service_fees: Decimal = ZERO
    total_venue_fees: Decimal = ZERO
    total_processor_fees: Decimal = ZERO
    total_tax: Decimal = ZERO
    order_count: int = 0
    revenue_by_restaurant: dict[str, RestaurantRevenue] = field(default_factory=dict)
    revenue_by_venue: dict[str, VenueRevenue] = field(default_factory=dict)

    @property
    def platform_commission(self) -> Decimal:
        return self.total_service_fees

    @property
    def venue_commission(self) -> Decimal:
        return self.total_venue_fees

    @property
    def processor_cost(self) -> Decimal:
        return self.total_processor_fees

    @property
    def average_order_value(self) -> Decimal:
        return _average(self.total_revenue, self.order_count)

    @property
    def average_service_fee(self) -> Decimal:
        return _average(self.total_service_fees, self.order_count)

    @property
    def average_venue_fee(self) -> Decimal:
        return _average(self.total_venue_fees, self.order_count)

    @property
    def average_processor_fee(self) -> Decimal:
        return _average(self.total_processor_fees, self.order_count)

    def summary(self) -> dict:
        """JSON-friendly summary, amounts rounded to cents."""
        return {
            "total_revenue": round(float(self.total_revenue), 2),
            "platform_commission": round(float(self.platform_commission), 2),
            "venue_commission": round(float(self.venue_commission), 2),
            "processor_cost": round(float(self.processor_cost), 2),
            "total_tax": round(float(self.total_tax), 2),
            "order_count": self.order_count,
            "average_order_value": round(float(self.average_order_value), 2),
            "average_service_fee": round(float(self.average_service_fee), 2),
            "average_venue_fee": round(float(self.average_venue_fee), 2),
            "average_processor_fee": round(float(self.average_processor_fee), 2),
            "revenue_by_restaurant": {
                rid: {
                    "revenue": round(float(r.revenue), 2),
                    "service_fees": round(float(r.service_fees), 2),
                    "venue_fees": round(float(r.venue_fees), 2),
                    "processor_fees": round(float(r.processor_fees), 2),
                    "orders": r.orders,
                }
                for rid, r in self.revenue_by_restaurant.items()
            },
            "revenue_by_venue": {
                vid: {
                    "revenue": round(float(v.revenue), 2),
                    "service_fees": round(float(v.service_fees), 2),
                    "venue_fees": round(float(v.venue_fees), 2),
                    "processor_fees": round(float(v.processor_fees), 2),
                    "orders": v.orders,
                    "restaurant_count": v.restaurant_count,
                }
                for vid, v in self.revenue_by_venue.items()
            },
        }


class FeeAnalyticsAggregator:
    """Single-pass fold over records. Holds no state between calls."""

    @tracked("FeeAnalyticsAggregator.aggregate")
    def aggregate(self, records: Iterable[Any] | None, status: str | None = None) -> FeeAnalytics:
        """
        Aggregate records into FeeAnalytics. Time filtering is the caller's job.
        With `status` set, only records whose status equals it are counted.
        """
        analytics = FeeAnalytics()
        skipped = 0

        for record in records or ():
            if record is None:
                skipped += 1
                continue
            if status and _raw(record, "status") != status:
                skipped += 1
                continue

            total = record_amount(record, "total")
            service_fee = record_amount(record, "serviceFee")
            venue_fee = record_amount(record, "venueFee")
            processor_fee = record_amount(record, "processorFee", "stripeFee")

            analytics.total_revenue += total
            analytics.total_service_fees += service_fee
            analytics.total_venue_fees += venue_fee
            analytics.total_processor_fees += processor_fee
            analytics.total_tax += record_amount(record, "tax")
            analytics.order_count += 1

            restaurant_id = str(_raw(record, "restaurantId") or UNKNOWN_RESTAURANT)
            by_restaurant = analytics.revenue_by_restaurant.setdefault(restaurant_id, RestaurantRevenue())
            by_restaurant.revenue += total
            by_restaurant.service_fees += service_fee
            by_restaurant.venue_fees += venue_fee
            by_restaurant.processor_fees += processor_fee
            by_restaurant.orders += 1

            venue_id = _raw(record, "venueId")
            if venue_id:
                by_venue = analytics.revenue_by_venue.setdefault(str(venue_id), VenueRevenue())
                by_venue.revenue += total
                by_venue.service_fees += service_fee
                by_venue.venue_fees += venue_fee
                by_venue.processor_fees += processor_fee
                by_venue.orders += 1
                by_venue.restaurant_ids.add(restaurant_id)

        logger.info(
            "Fee analytics: orders=%d revenue=%s platform=%s venue=%s processor=%s skipped=%d",
            analytics.order_count, analytics.total_revenue, analytics.total_service_fees,
            analytics.total_venue_fees, analytics.total_processor_fees, skipped,
        )
        return analytics


def top_restaurants(analytics: FeeAnalytics, limit: int = 10) -> list[tuple[str, RestaurantRevenue]]:
    """Restaurants ranked by revenue, highest first."""
    ranked = sorted(
        analytics.revenue_by_restaurant.items(),
        key=lambda item: item[1].revenue,
        reverse=True,
    )
    return ranked[:max(0, limit)]


def venue_payment_summary(records: Iterable[Any], venue_id: str, status: str | None = None) -> FeeAnalytics:
    """Analytics restricted to one venue; revenue_by_restaurant is the per-restaurant breakdown."""
    venue_records = [r for r in records if r is not None and _raw(r, "venueId") == venue_id]
    return FeeAnalyticsAggregator().aggregate(venue_records, status=status)


@dataclass
class TrendBucket:
    revenue: Decimal = ZERO
    payments: int = 0
    platform_fees: Decimal = ZERO
    venue_fees: Decimal = ZERO
    processor_fees: Decimal = ZERO


def _bucket_key(ts, group_by: str) -> str:
    if group_by == "week":
        return week_key(ts.date())
    if group_by == "month":
        return f"{ts.year}-{ts.month:02d}"
    return ts.date().isoformat()


def revenue_trends(records: Iterable[Any], group_by: str = "day") -> dict[str, TrendBucket]:
    """
    Bucket records by day (YYYY-MM-DD), week (YYYY-WNN) or month (YYYY-MM).
    Records without a readable createdAt are left out. Keys come back sorted.
    """
    if group_by not in ("day", "week", "month"):
        logger.warning("Unknown trend grouping %r, using day", group_by)
        group_by = "day"

    trends: dict[str, TrendBucket] = {}
    for record in records:
        if record is None:
            continue
        ts = record_timestamp(record)
        if ts is None:
            continue
        bucket = trends.setdefault(_bucket_key(ts, group_by), TrendBucket())
        bucket.revenue += record_amount(record, "total")
        bucket.payments += 1
        bucket.platform_fees += record_amount(record, "serviceFee")
        bucket.venue_fees += record_amount(record, "venueFee")
        bucket.processor_fees += record_amount(record, "processorFee", "stripeFee")

    return dict(sorted(trends.items()))
