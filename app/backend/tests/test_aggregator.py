from __future__ import annotations

from datetime import date, datetime, timezone
from decimal import Decimal
from zoneinfo import ZoneInfo

from freight_reporting.models.entities import BookingMode, BookingStatus, EntryType
from freight_reporting.models.reporting import (
    BookingRecord,
    EntryRecord,
    Frequency,
    ReportFilter,
    ReportSlice,
)
from freight_reporting.services.aggregator import aggregate

MANILA = ZoneInfo("Asia/Manila")


def _booking(booking_id: str, client_id: str, status: BookingStatus = BookingStatus.IN_TRANSIT) -> BookingRecord:
    return BookingRecord(
        booking_id=booking_id,
        client_id=client_id,
        company_id="jjb-main",
        mode=BookingMode.TRUCK,
        status=status,
        created_at=datetime(2026, 1, 10, tzinfo=timezone.utc),
        dispatched_at=None,
        delivered_at=None,
        revenue_amount=Decimal("0.00"),
        expense_amount=Decimal("0.00"),
        currency="PHP",
    )


def _entry(
    entry_id: str,
    entry_type: EntryType,
    amount: str,
    *,
    booking_id: str | None = None,
    category: str = "Freight",
    entry_date: date = date(2026, 1, 15),
) -> EntryRecord:
    return EntryRecord(
        entry_id=entry_id,
        type=entry_type,
        amount=Decimal(amount),
        currency="PHP",
        company_id="jjb-main",
        booking_id=booking_id,
        category=category,
        entry_date=entry_date,
    )


def _slice(bookings: list[BookingRecord], entries: list[EntryRecord], **names: str) -> ReportSlice:
    return ReportSlice(
        bookings=tuple(bookings),
        entries=tuple(entries),
        bookings_by_id={row.booking_id: row for row in bookings},
        client_names=names,
    )


def _filter(start: date, end: date, frequency: Frequency = Frequency.MONTHLY, **overrides: object) -> ReportFilter:
    return ReportFilter(start_date=start, end_date=end, frequency=frequency, **overrides)


def test_empty_slice_yields_zero_kpis_without_division_errors() -> None:
    summary = aggregate(_slice([], []), _filter(date(2026, 1, 1), date(2026, 3, 31)), MANILA)

    kpis = summary.kpis
    assert kpis.bookings == 0
    assert kpis.delivered == 0
    assert kpis.delivery_rate_pct == Decimal("0")
    assert kpis.margin_pct == Decimal("0")
    assert kpis.revenue == Decimal("0.00")
    assert summary.by_category == ()
    assert summary.top_clients == ()
    assert [row.period for row in summary.series] == [date(2026, 1, 1), date(2026, 2, 1), date(2026, 3, 1)]
    assert all(row.net_profit == Decimal("0.00") for row in summary.series)


def test_kpis_from_entries_and_booking_counts() -> None:
    bookings = [
        _booking("BK-1", "CL-1", BookingStatus.DELIVERED),
        _booking("BK-2", "CL-1", BookingStatus.DELIVERED),
        _booking("BK-3", "CL-2", BookingStatus.FOR_DELIVERY),
    ]
    entries = [
        _entry("EN-1", EntryType.REVENUE, "1000.00", booking_id="BK-1"),
        _entry("EN-2", EntryType.EXPENSE, "250.00", booking_id="BK-1"),
    ]

    kpis = aggregate(_slice(bookings, entries), _filter(date(2026, 1, 1), date(2026, 1, 31)), MANILA).kpis

    assert kpis.bookings == 3
    assert kpis.delivered == 2
    assert kpis.delivery_rate_pct == Decimal("0.6667")
    assert kpis.revenue == Decimal("1000.00")
    assert kpis.expenses == Decimal("250.00")
    assert kpis.net_profit == Decimal("750.00")
    assert kpis.margin_pct == Decimal("0.7500")


def test_expense_only_slice_has_zero_margin() -> None:
    entries = [_entry("EN-1", EntryType.EXPENSE, "80.00")]
    kpis = aggregate(_slice([], entries), _filter(date(2026, 1, 1), date(2026, 1, 31)), MANILA).kpis

    assert kpis.net_profit == Decimal("-80.00")
    assert kpis.margin_pct == Decimal("0")


def test_series_fills_gaps_with_zero_rows() -> None:
    entries = [
        _entry("EN-1", EntryType.REVENUE, "300.00", entry_date=date(2026, 1, 5)),
        _entry("EN-2", EntryType.EXPENSE, "100.00", entry_date=date(2026, 3, 9)),
    ]
    series = aggregate(
        _slice([], entries), _filter(date(2026, 1, 1), date(2026, 3, 31)), MANILA
    ).series

    assert [(row.period, row.revenue, row.expenses, row.net_profit) for row in series] == [
        (date(2026, 1, 1), Decimal("300.00"), Decimal("0.00"), Decimal("300.00")),
        (date(2026, 2, 1), Decimal("0.00"), Decimal("0.00"), Decimal("0.00")),
        (date(2026, 3, 1), Decimal("0.00"), Decimal("100.00"), Decimal("-100.00")),
    ]


def test_weekly_series_row_per_week() -> None:
    series = aggregate(
        _slice([], []), _filter(date(2026, 1, 1), date(2026, 1, 31), Frequency.WEEKLY), MANILA
    ).series

    assert [row.period for row in series] == [
        date(2025, 12, 29),
        date(2026, 1, 5),
        date(2026, 1, 12),
        date(2026, 1, 19),
        date(2026, 1, 26),
    ]


def test_category_breakdown_orders_and_sums_to_one() -> None:
    entries = [
        _entry("EN-1", EntryType.EXPENSE, "100.00", category="Fuel"),
        _entry("EN-2", EntryType.EXPENSE, "100.00", category="Brokerage"),
        _entry("EN-3", EntryType.EXPENSE, "100.00", category="Tolls"),
        _entry("EN-4", EntryType.EXPENSE, "50.00", category="Fuel"),
        _entry("EN-5", EntryType.REVENUE, "999.00", category="Freight"),
    ]
    rows = aggregate(_slice([], entries), _filter(date(2026, 1, 1), date(2026, 1, 31)), MANILA).by_category

    assert [(row.category, row.amount) for row in rows] == [
        ("Fuel", Decimal("150.00")),
        ("Brokerage", Decimal("100.00")),
        ("Tolls", Decimal("100.00")),
    ]
    assert [row.pct for row in rows] == [Decimal("0.4286"), Decimal("0.2857"), Decimal("0.2857")]
    assert abs(sum(row.pct for row in rows) - Decimal("1")) <= Decimal("0.001")


def test_top_clients_rank_by_revenue_then_bookings_then_name() -> None:
    bookings = [
        _booking("BK-1", "CL-A"),
        _booking("BK-2", "CL-B"),
        _booking("BK-3", "CL-B"),
        _booking("BK-4", "CL-C"),
        _booking("BK-5", "CL-D"),
    ]
    entries = [
        _entry("EN-1", EntryType.REVENUE, "500.00", booking_id="BK-1"),
        _entry("EN-2", EntryType.REVENUE, "500.00", booking_id="BK-2"),
        _entry("EN-3", EntryType.EXPENSE, "100.00", booking_id="BK-3"),
        _entry("EN-4", EntryType.REVENUE, "900.00", booking_id="BK-4"),
        _entry("EN-5", EntryType.REVENUE, "900.00", booking_id=None),
    ]
    report_slice = _slice(
        bookings,
        entries,
        **{"CL-A": "Acme", "CL-B": "Bravo", "CL-C": "Cargo One", "CL-D": "Delta"},
    )

    rows = aggregate(report_slice, _filter(date(2026, 1, 1), date(2026, 1, 31)), MANILA).top_clients

    assert [(row.client, row.bookings, row.revenue) for row in rows] == [
        ("Cargo One", 1, Decimal("900.00")),
        ("Bravo", 2, Decimal("500.00")),
        ("Acme", 1, Decimal("500.00")),
        ("Delta", 1, Decimal("0.00")),
    ]
    assert rows[1].margin_pct == Decimal("0.8000")
    assert rows[3].margin_pct == Decimal("0")


def test_top_clients_equal_keys_fall_back_to_name() -> None:
    bookings = [_booking("BK-1", "CL-2"), _booking("BK-2", "CL-1")]
    rows = aggregate(
        _slice(bookings, [], **{"CL-1": "Zulu Lines", "CL-2": "Alpha Cargo"}),
        _filter(date(2026, 1, 1), date(2026, 1, 31)),
        MANILA,
    ).top_clients

    assert [row.client for row in rows] == ["Alpha Cargo", "Zulu Lines"]


def test_top_clients_limit() -> None:
    bookings = [_booking(f"BK-{index}", f"CL-{index}") for index in range(5)]
    rows = aggregate(
        _slice(bookings, []),
        _filter(date(2026, 1, 1), date(2026, 1, 31), top_clients_limit=2),
        MANILA,
    ).top_clients

    assert [row.client_id for row in rows] == ["CL-0", "CL-1"]
