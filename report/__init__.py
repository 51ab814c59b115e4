"""
Report module -- fee analytics over historical orders and settlements.

Usage:
    from report import FeeAnalyticsAggregator, filter_by_period
    analytics = FeeAnalyticsAggregator().aggregate(filter_by_period(orders, "month"))
"""

from __future__ import annotations

from report.analytics import (
    FeeAnalytics,
    FeeAnalyticsAggregator,
    RestaurantRevenue,
    TrendBucket,
    VenueRevenue,
    revenue_trends,
    top_restaurants,
    venue_payment_summary,
)
from report.periods import filter_by_period, period_start, week_key

__all__ = [
    "FeeAnalytics",
    "FeeAnalyticsAggregator",
    "RestaurantRevenue",
    "TrendBucket",
    "VenueRevenue",
    "filter_by_period",
    "period_start",
    "revenue_trends",
    "top_restaurants",
    "venue_payment_summary",
    "week_key",
]
