"""
Reporting time windows. The aggregator takes pre-filtered records; these
helpers let callers build the window and bucket keys.
"""

from __future__ import annotations

import logging
import math
from datetime import date, datetime, timedelta, timezone
from typing import Any, Iterable, Mapping

logger = logging.getLogger(__name__)

PERIODS = ("today", "week", "month", "quarter", "year")


def _as_utc(dt: datetime) -> datetime:
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt


def parse_timestamp(value: Any) -> datetime | None:
    """
    Accept a datetime, a date, an ISO 8601 string (trailing Z allowed) or epoch
    seconds. Naive values are taken as UTC. Returns None when unparsable.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, datetime):
        return _as_utc(value)
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day, tzinfo=timezone.utc)
    if isinstance(value, (int, float)):
        try:
            return datetime.fromtimestamp(value, tz=timezone.utc)
        except (OverflowError, OSError, ValueError):
            return None
    if isinstance(value, str) and value.strip():
        try:
            return _as_utc(datetime.fromisoformat(value.strip().replace("Z", "+00:00")))
        except ValueError:
            return None
    return None


def period_start(period: str, now: datetime | None = None) -> datetime | None:
    """
    Start of a reporting period ending at `now`.

      today   -> midnight today
      week    -> exactly 7 days ago
      month   -> first day of this month
      quarter -> first day of this quarter
      year    -> January 1st

    Unknown periods return None (no lower bound).
    """
    now = _as_utc(now) if now is not None else datetime.now(timezone.utc)
    midnight = now.replace(hour=0, minute=0, second=0, microsecond=0)
    key = (period or "").lower()

    if key == "today":
        return midnight
    if key == "week":
        return now - timedelta(days=7)
    if key == "month":
        return midnight.replace(day=1)
    if key == "quarter":
        quarter_month = ((now.month - 1) // 3) * 3 + 1
        return midnight.replace(month=quarter_month, day=1)
    if key == "year":
        return midnight.replace(month=1, day=1)

    logger.warning("Invalid time period: %r", period)
    return None


def week_key(d: date) -> str:
    """YYYY-WNN week bucket; weeks start on Sunday, week 1 holds January 1st."""
    start_of_year = date(d.year, 1, 1)
    days = (d - start_of_year).days
    # Sunday = 0 .. Saturday = 6
    first_dow = (start_of_year.weekday() + 1) % 7
    week = math.ceil((days + first_dow + 1) / 7)
    return f"{d.year}-W{week:02d}"


def record_timestamp(record: Any, key: str = "createdAt") -> datetime | None:
    if isinstance(record, Mapping):
        raw = record.get(key)
    else:
        raw = getattr(record, key, None)
    return parse_timestamp(raw)


def filter_by_period(
    records: Iterable[Any],
    period: str,
    now: datetime | None = None,
    key: str = "createdAt",
) -> list[Any]:
    """Keep records created at or after the period start. Unknown period keeps all."""
    start = period_start(period, now)
    if start is None:
        return list(records)
    kept = []
    for record in records:
        ts = record_timestamp(record, key)
        if ts is not None and ts >= start:
            kept.append(record)
    return kept
