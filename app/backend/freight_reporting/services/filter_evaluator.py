"""Per-record inclusion tests for report requests."""

from __future__ import annotations

from collections.abc import Collection, Mapping
from datetime import tzinfo

from freight_reporting.models.entities import EntryType
from freight_reporting.models.reporting import (
    BookingRecord,
    EntryRecord,
    RecordSnapshot,
    ReportFilter,
    ReportSlice,
)
from freight_reporting.services.period_bucketer import local_date


def _in_set(value: object, allowed: Collection[object]) -> bool:
    return not allowed or value in allowed


def matches_booking(booking: BookingRecord, report_filter: ReportFilter, tz: tzinfo) -> bool:
    basis_value = booking.basis_timestamp(report_filter.date_basis)
    if basis_value is None:
        return False
    day = local_date(basis_value, tz)
    if day < report_filter.start_date or day > report_filter.end_date:
        return False
    return (
        _in_set(booking.company_id, report_filter.company_ids)
        and _in_set(booking.client_id, report_filter.client_ids)
        and _in_set(booking.mode, report_filter.modes)
        and _in_set(booking.status, report_filter.statuses)
    )


def matches_entry(
    entry: EntryRecord,
    report_filter: ReportFilter,
    tz: tzinfo,
    bookings_by_id: Mapping[str, BookingRecord],
) -> bool:
    """Entry inclusion test.

    Entries carry only a company. Client, mode and status are read from the
    linked booking; an entry without a known booking passes those dimensions
    only while they are unfiltered.
    """

    day = local_date(entry.entry_date, tz)
    if day < report_filter.start_date or day > report_filter.end_date:
        return False
    if not _in_set(entry.company_id, report_filter.company_ids):
        return False

    booking_scoped = report_filter.client_ids or report_filter.modes or report_filter.statuses
    if not booking_scoped:
        return True
    booking = bookings_by_id.get(entry.booking_id) if entry.booking_id else None
    if booking is None:
        return False
    return (
        _in_set(booking.client_id, report_filter.client_ids)
        and _in_set(booking.mode, report_filter.modes)
        and _in_set(booking.status, report_filter.statuses)
    )


def filter_records(snapshot: RecordSnapshot, report_filter: ReportFilter, tz: tzinfo) -> ReportSlice:
    """Apply the filter once to both collections."""

    bookings_by_id = {booking.booking_id: booking for booking in snapshot.bookings}
    billed_booking_ids = frozenset(
        entry.booking_id
        for entry in snapshot.entries
        if entry.type is EntryType.REVENUE and entry.booking_id is not None
    )
    return ReportSlice(
        bookings=tuple(row for row in snapshot.bookings if matches_booking(row, report_filter, tz)),
        entries=tuple(
            row for row in snapshot.entries if matches_entry(row, report_filter, tz, bookings_by_id)
        ),
        bookings_by_id=bookings_by_id,
        billed_booking_ids=billed_booking_ids,
        client_names={client.client_id: client.name for client in snapshot.clients},
        company_names={company.company_id: company.name for company in snapshot.companies},
    )
