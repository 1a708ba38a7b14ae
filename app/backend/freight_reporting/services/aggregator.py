"""KPI, time series, category and client ranking aggregation."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, tzinfo
from decimal import Decimal

from freight_reporting.models.entities import BookingStatus, EntryType
from freight_reporting.models.reporting import (
    AggregateSummary,
    CategoryRow,
    ClientRankRow,
    Kpis,
    ReportFilter,
    ReportSlice,
    SeriesRow,
)
from freight_reporting.services.amounts import ZERO, q2, safe_ratio
from freight_reporting.services.period_bucketer import bucket, bucket_range


@dataclass(slots=True)
class _Totals:
    revenue: Decimal = ZERO
    expenses: Decimal = ZERO

    def add(self, entry_type: EntryType, amount: Decimal) -> None:
        if entry_type is EntryType.REVENUE:
            self.revenue += amount
        else:
            self.expenses += amount

    @property
    def net(self) -> Decimal:
        return self.revenue - self.expenses


@dataclass(slots=True)
class _ClientTotals(_Totals):
    bookings: int = 0


def _kpis(report_slice: ReportSlice, totals: _Totals) -> Kpis:
    booking_count = len(report_slice.bookings)
    delivered = sum(1 for row in report_slice.bookings if row.status is BookingStatus.DELIVERED)
    return Kpis(
        bookings=booking_count,
        delivered=delivered,
        delivery_rate_pct=safe_ratio(Decimal(delivered), Decimal(booking_count)),
        revenue=q2(totals.revenue),
        expenses=q2(totals.expenses),
        net_profit=q2(totals.net),
        margin_pct=safe_ratio(totals.net, totals.revenue),
    )


def _series(report_slice: ReportSlice, report_filter: ReportFilter, tz: tzinfo) -> tuple[SeriesRow, ...]:
    by_period: dict[date, _Totals] = {
        period: _Totals()
        for period in bucket_range(report_filter.start_date, report_filter.end_date, report_filter.frequency)
    }
    for entry in report_slice.entries:
        period = bucket(entry.entry_date, report_filter.frequency, tz)
        by_period.setdefault(period, _Totals()).add(entry.type, entry.amount)

    return tuple(
        SeriesRow(
            period=period,
            revenue=q2(totals.revenue),
            expenses=q2(totals.expenses),
            net_profit=q2(totals.net),
        )
        for period, totals in sorted(by_period.items())
    )


def _by_category(report_slice: ReportSlice) -> tuple[CategoryRow, ...]:
    amounts: dict[str, Decimal] = {}
    for entry in report_slice.entries:
        if entry.type is EntryType.EXPENSE:
            amounts[entry.category] = amounts.get(entry.category, ZERO) + entry.amount
    total = sum(amounts.values(), ZERO)

    ordered = sorted(amounts.items(), key=lambda item: (-item[1], item[0]))
    return tuple(
        CategoryRow(category=category, amount=q2(amount), pct=safe_ratio(amount, total))
        for category, amount in ordered
    )


def _top_clients(report_slice: ReportSlice, limit: int | None) -> tuple[ClientRankRow, ...]:
    by_client: dict[str, _ClientTotals] = {}
    for booking in report_slice.bookings:
        by_client.setdefault(booking.client_id, _ClientTotals()).bookings += 1

    for entry in report_slice.entries:
        booking = report_slice.bookings_by_id.get(entry.booking_id) if entry.booking_id else None
        if booking is None:
            continue
        totals = by_client.get(booking.client_id)
        if totals is not None:
            totals.add(entry.type, entry.amount)

    rows = [
        ClientRankRow(
            client_id=client_id,
            client=report_slice.client_name(client_id),
            bookings=totals.bookings,
            revenue=q2(totals.revenue),
            margin_pct=safe_ratio(totals.net, totals.revenue),
        )
        for client_id, totals in by_client.items()
    ]
    rows.sort(key=lambda row: (-row.revenue, -row.bookings, row.client, row.client_id))
    if limit is not None:
        rows = rows[:limit]
    return tuple(rows)


def aggregate(report_slice: ReportSlice, report_filter: ReportFilter, tz: tzinfo) -> AggregateSummary:
    totals = _Totals()
    for entry in report_slice.entries:
        totals.add(entry.type, entry.amount)

    return AggregateSummary(
        kpis=_kpis(report_slice, totals),
        series=_series(report_slice, report_filter, tz),
        by_category=_by_category(report_slice),
        top_clients=_top_clients(report_slice, report_filter.top_clients_limit),
    )
