"""Data hygiene checks over a filtered report slice.

Detection only: rows are reported, never corrected.
"""

from __future__ import annotations

from datetime import tzinfo

from freight_reporting.models.entities import BookingStatus, EntryType
from freight_reporting.models.reporting import (
    ExceptionLists,
    NegativeBookingRow,
    ReportSlice,
    UnbilledDeliveredRow,
    UnlinkedExpenseRow,
)
from freight_reporting.services.amounts import q2
from freight_reporting.services.period_bucketer import local_date


def negative_bookings(report_slice: ReportSlice) -> tuple[NegativeBookingRow, ...]:
    # Uses the booking's own amounts, independent of ledger posting state.
    rows = [
        NegativeBookingRow(
            booking_id=booking.booking_id,
            client=report_slice.client_name(booking.client_id),
            revenue=q2(booking.revenue_amount),
            expense=q2(booking.expense_amount),
            net=q2(booking.revenue_amount - booking.expense_amount),
            company=report_slice.company_name(booking.company_id),
        )
        for booking in report_slice.bookings
        if booking.revenue_amount - booking.expense_amount < 0
    ]
    return tuple(sorted(rows, key=lambda row: row.booking_id))


def unlinked_expenses(report_slice: ReportSlice, tz: tzinfo) -> tuple[UnlinkedExpenseRow, ...]:
    rows = [
        UnlinkedExpenseRow(
            entry_id=entry.entry_id,
            date=local_date(entry.entry_date, tz),
            category=entry.category,
            amount=q2(entry.amount),
            company=report_slice.company_name(entry.company_id),
        )
        for entry in report_slice.entries
        if entry.type is EntryType.EXPENSE and not entry.booking_id
    ]
    return tuple(sorted(rows, key=lambda row: row.entry_id))


def unbilled_delivered(report_slice: ReportSlice, tz: tzinfo) -> tuple[UnbilledDeliveredRow, ...]:
    rows = [
        UnbilledDeliveredRow(
            booking_id=booking.booking_id,
            client=report_slice.client_name(booking.client_id),
            delivered_date=local_date(booking.delivered_at, tz),
            company=report_slice.company_name(booking.company_id),
        )
        for booking in report_slice.bookings
        if booking.status is BookingStatus.DELIVERED
        and booking.delivered_at is not None
        and booking.booking_id not in report_slice.billed_booking_ids
    ]
    return tuple(sorted(rows, key=lambda row: row.booking_id))


def scan(report_slice: ReportSlice, tz: tzinfo) -> ExceptionLists:
    return ExceptionLists(
        negative_bookings=negative_bookings(report_slice),
        unlinked_expenses=unlinked_expenses(report_slice, tz),
        unbilled_delivered=unbilled_delivered(report_slice, tz),
    )
