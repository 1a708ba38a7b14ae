"""Calendar bucketing for report time series."""

from __future__ import annotations

from datetime import date, datetime, timedelta, timezone, tzinfo

from freight_reporting.models.reporting import Frequency


def local_date(value: date | datetime, tz: tzinfo) -> date:
    """Calendar date of ``value`` in the report timezone.

    Naive datetimes are read as UTC. Plain dates are already calendar dates.
    """

    if isinstance(value, datetime):
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return value.astimezone(tz).date()
    return value


def bucket(value: date | datetime, frequency: Frequency, tz: tzinfo) -> date:
    day = local_date(value, tz)
    if frequency is Frequency.DAILY:
        return day
    if frequency is Frequency.WEEKLY:
        return day - timedelta(days=day.weekday())
    if frequency is Frequency.MONTHLY:
        return date(day.year, day.month, 1)
    quarter_month = 3 * ((day.month - 1) // 3) + 1
    return date(day.year, quarter_month, 1)


def _next_bucket(current: date, frequency: Frequency) -> date:
    if frequency is Frequency.DAILY:
        return current + timedelta(days=1)
    if frequency is Frequency.WEEKLY:
        return current + timedelta(days=7)
    step = 1 if frequency is Frequency.MONTHLY else 3
    month_index = current.month - 1 + step
    return date(current.year + month_index // 12, month_index % 12 + 1, 1)


def bucket_range(start_date: date, end_date: date, frequency: Frequency) -> list[date]:
    """Every bucket key from the bucket of ``start_date`` to that of ``end_date``."""

    current = bucket(start_date, frequency, timezone.utc)
    end = bucket(end_date, frequency, timezone.utc)
    buckets: list[date] = []
    while current <= end:
        buckets.append(current)
        current = _next_bucket(current, frequency)
    return buckets
