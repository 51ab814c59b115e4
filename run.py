#!/usr/bin/env python3
"""
Fee engine CLI -- quote, settle and report from JSON inputs.

  1. Load platform defaults from the environment (.env)
  2. Resolve the restaurant's fee configuration from a store snapshot
  3. Quote a subtotal, split a captured total, or aggregate order history
  4. Print the result as JSON on stdout (logs go to stderr)

Usage:
  python run.py quote --store store.json --restaurant r1 --subtotal-cents 2500
  python run.py quote --store store.json --restaurant r1 --items items.json
  python run.py split --store store.json --restaurant r1 --total-cents 2937
  python run.py analytics --orders orders.jsonl --period month --top 5
  python run.py trends --orders orders.jsonl --group-by week

store.json holds {"feeConfigs": {...}, "restaurants": {...}, "venues": {...}},
each keyed by id with camelCase documents. Orders are JSON lines.
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from dataclasses import asdict
from decimal import Decimal
from pathlib import Path

from config import load_config, platform_defaults
from monitor.logger import setup_logging
from pricing.engine import PricingEngine
from pricing.order_math import calculate_order_subtotal
from pricing.resolver import FeeConfigResolver, InMemoryConfigStore
from pricing.validation import ConfigurationError
from report.analytics import FeeAnalyticsAggregator, revenue_trends, top_restaurants
from report.periods import filter_by_period
from settlement.splitter import SettlementSplitter, SplitIntegrityError

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_CONFIG_ERROR = 2
EXIT_SPLIT_INTEGRITY = 3


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Restaurant fee pricing and settlement engine")
    parser.add_argument("--json-log", type=str, default=None, help="Path to JSON log file for machine-readable output")
    parser.add_argument("--log-dir", type=str, default=None, help="Directory for a verbose debug log file")
    sub = parser.add_subparsers(dest="command", required=True)

    quote = sub.add_parser("quote", help="Customer quote for a subtotal")
    quote.add_argument("--store", type=str, required=True, help="JSON store snapshot")
    quote.add_argument("--restaurant", type=str, required=True, help="Restaurant ID")
    amount = quote.add_mutually_exclusive_group(required=True)
    amount.add_argument("--subtotal-cents", type=int, help="Order subtotal in cents")
    amount.add_argument("--items", type=str, help="JSON list of {price, quantity} order items")
    quote.add_argument("--breakdown", action="store_true", help="Include desired vs charged fee breakdown")

    split = sub.add_parser("split", help="Settle a captured total")
    split.add_argument("--store", type=str, required=True, help="JSON store snapshot")
    split.add_argument("--restaurant", type=str, required=True, help="Restaurant ID")
    split.add_argument("--total-cents", type=int, required=True, help="Captured total in cents")

    analytics = sub.add_parser("analytics", help="Aggregate order history")
    analytics.add_argument("--orders", type=str, required=True, help="JSON lines order records")
    analytics.add_argument("--period", type=str, default="all", help="today|week|month|quarter|year|all")
    analytics.add_argument("--status", type=str, default=None, help="Count only this status (default from config)")
    analytics.add_argument("--top", type=int, default=0, help="Also list the top N restaurants by revenue")

    trends = sub.add_parser("trends", help="Revenue trends by day, week or month")
    trends.add_argument("--orders", type=str, required=True, help="JSON lines order records")
    trends.add_argument("--group-by", type=str, default="day", choices=("day", "week", "month"))

    return parser.parse_args(argv)


def load_store(path: str) -> InMemoryConfigStore:
    data = json.loads(Path(path).read_text())
    return InMemoryConfigStore(
        fee_configs=data.get("feeConfigs", {}),
        restaurants=data.get("restaurants", {}),
        venues=data.get("venues", {}),
    )


def load_orders(path: str) -> list[dict]:
    """Read JSON lines; blank lines are skipped, bad lines logged and dropped."""
    orders = []
    with open(path) as f:
        for lineno, line in enumerate(f, 1):
            line = line.strip()
            if not line:
                continue
            try:
                orders.append(json.loads(line))
            except json.JSONDecodeError as e:
                logger.warning("Skipping %s:%d: %s", path, lineno, e)
    return orders


def _json_default(value):
    if isinstance(value, Decimal):
        return float(value)
    if isinstance(value, set):
        return sorted(value)
    raise TypeError(f"Not JSON serializable: {type(value).__name__}")


def _emit(payload: dict) -> None:
    print(json.dumps(payload, default=_json_default, indent=2))


def cmd_quote(args: argparse.Namespace, resolver: FeeConfigResolver) -> int:
    config = resolver.resolve(args.restaurant)
    subtotal_cents = args.subtotal_cents
    if subtotal_cents is None:
        subtotal_cents = calculate_order_subtotal(json.loads(Path(args.items).read_text()))
        logger.info("Order subtotal from %s: %d cents", args.items, subtotal_cents)
    engine = PricingEngine()
    quote = engine.quote(subtotal_cents, config)
    payload = {"quote": quote.to_dict()}
    if args.breakdown:
        payload["breakdown"] = asdict(engine.breakdown(quote))
        check = engine.verify_margins(quote, config)
        payload["margins"] = {
            **asdict(check),
            "platformShortfall": check.platform_shortfall,
            "venueShortfall": check.venue_shortfall,
        }
    _emit(payload)
    return EXIT_OK


def cmd_split(args: argparse.Namespace, resolver: FeeConfigResolver, tolerance_cents: int) -> int:
    config = resolver.resolve(args.restaurant)
    split = SettlementSplitter(tolerance_cents=tolerance_cents).split(args.total_cents, config)
    _emit({"split": split.to_dict()})
    return EXIT_OK


def cmd_analytics(args: argparse.Namespace, default_status: str) -> int:
    orders = load_orders(args.orders)
    if args.period != "all":
        orders = filter_by_period(orders, args.period)
    status = args.status if args.status is not None else default_status
    analytics = FeeAnalyticsAggregator().aggregate(orders, status=status or None)
    payload = {"period": args.period, "analytics": analytics.summary()}
    if args.top > 0:
        payload["topRestaurants"] = [
            {"restaurantId": rid, "revenue": rev.revenue, "orders": rev.orders,
             "averageOrderValue": round(rev.average_order_value, 2)}
            for rid, rev in top_restaurants(analytics, args.top)
        ]
    _emit(payload)
    return EXIT_OK


def cmd_trends(args: argparse.Namespace) -> int:
    trends = revenue_trends(load_orders(args.orders), group_by=args.group_by)
    _emit({
        "groupBy": args.group_by,
        "trends": {key: asdict(bucket) for key, bucket in trends.items()},
        "totalPeriods": len(trends),
    })
    return EXIT_OK


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)
    cfg = load_config()
    setup_logging(cfg.log_level, json_log_file=args.json_log, log_dir=args.log_dir)

    resolver = FeeConfigResolver(
        load_store(args.store) if hasattr(args, "store") else InMemoryConfigStore(),
        platform_defaults(cfg),
    )

    try:
        if args.command == "quote":
            return cmd_quote(args, resolver)
        if args.command == "split":
            return cmd_split(args, resolver, cfg.split_tolerance_cents)
        if args.command == "analytics":
            return cmd_analytics(args, cfg.analytics_status_filter)
        return cmd_trends(args)
    except ConfigurationError as e:
        logger.error("Rejected: %s", e)
        return EXIT_CONFIG_ERROR
    except SplitIntegrityError as e:
        logger.critical("Settlement not recorded: %s", e)
        return EXIT_SPLIT_INTEGRITY


if __name__ == "__main__":
    sys.exit(main())
