"""Compose filtering, aggregation and exception scanning into one report."""

from __future__ import annotations

import logging
import time
from collections.abc import Iterable
from concurrent.futures import ThreadPoolExecutor
from datetime import date, tzinfo
from enum import Enum
from typing import TypeVar

from freight_reporting.core.errors import InvalidFilter, UnsupportedOption
from freight_reporting.models.entities import BookingMode, BookingStatus
from freight_reporting.models.reporting import (
    DateBasis,
    Frequency,
    RecordSnapshot,
    ReportFilter,
    ReportResult,
    ReportSlice,
)
from freight_reporting.services.aggregator import aggregate
from freight_reporting.services.exception_scanner import scan
from freight_reporting.services.filter_evaluator import filter_records

LOGGER = logging.getLogger(__name__)

E = TypeVar("E", bound=Enum)


def _parse_option(enum_cls: type[E], field: str, value: object) -> E:
    if isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(value)
    except ValueError:
        raise UnsupportedOption(field, value) from None


def _parse_options(enum_cls: type[E], field: str, values: Iterable[object] | None) -> frozenset[E]:
    return frozenset(_parse_option(enum_cls, field, value) for value in values or ())


def _parse_currency(value: str | None) -> str | None:
    if value is None or not value.strip():
        return None
    code = value.strip().upper()
    if len(code) != 3 or not code.isalpha():
        raise UnsupportedOption("currency", value, f"currency must be a three-letter code, got {value!r}.")
    return code


def build_report_filter(
    *,
    start_date: date,
    end_date: date,
    frequency: str | Frequency = Frequency.MONTHLY,
    company_ids: Iterable[str] | None = None,
    client_ids: Iterable[str] | None = None,
    modes: Iterable[str | BookingMode] | None = None,
    statuses: Iterable[str | BookingStatus] | None = None,
    date_basis: str | DateBasis = DateBasis.CREATED,
    currency: str | None = None,
    top_clients_limit: int | None = None,
) -> ReportFilter:
    """Parse raw request values, naming the offending field on failure."""

    if top_clients_limit is not None and top_clients_limit < 1:
        raise UnsupportedOption(
            "top_clients_limit",
            top_clients_limit,
            "top_clients_limit must be a positive integer.",
        )
    return ReportFilter(
        start_date=start_date,
        end_date=end_date,
        frequency=_parse_option(Frequency, "frequency", frequency),
        company_ids=frozenset(company_ids or ()),
        client_ids=frozenset(client_ids or ()),
        modes=_parse_options(BookingMode, "modes", modes),
        statuses=_parse_options(BookingStatus, "statuses", statuses),
        date_basis=_parse_option(DateBasis, "date_basis", date_basis),
        currency=_parse_currency(currency),
        top_clients_limit=top_clients_limit,
    )


def _resolve_currency(report_slice: ReportSlice, report_filter: ReportFilter) -> str | None:
    currencies = {row.currency.upper() for row in report_slice.bookings}
    currencies.update(row.currency.upper() for row in report_slice.entries)

    if report_filter.currency is not None:
        foreign = sorted(currencies - {report_filter.currency})
        if foreign:
            raise UnsupportedOption(
                "currency",
                report_filter.currency,
                f"Matching records use {', '.join(foreign)} but the report currency is "
                f"{report_filter.currency}; currency conversion is not supported.",
            )
        return report_filter.currency
    if len(currencies) > 1:
        raise UnsupportedOption(
            "currency",
            None,
            f"Matching records span multiple currencies ({', '.join(sorted(currencies))}); "
            "narrow the filter or set a report currency.",
        )
    return next(iter(currencies), None)


def select_slice(
    snapshot: RecordSnapshot,
    report_filter: ReportFilter,
    tz: tzinfo,
) -> tuple[ReportSlice, str | None]:
    """Validate the filter and return the matching slice with its single currency."""

    if report_filter.end_date < report_filter.start_date:
        raise InvalidFilter(
            f"end_date {report_filter.end_date.isoformat()} must be greater than or equal to "
            f"start_date {report_filter.start_date.isoformat()}."
        )
    report_slice = filter_records(snapshot, report_filter, tz)
    return report_slice, _resolve_currency(report_slice, report_filter)


def assemble_report(snapshot: RecordSnapshot, report_filter: ReportFilter, *, tz: tzinfo) -> ReportResult:
    started = time.perf_counter()
    report_slice, currency = select_slice(snapshot, report_filter, tz)

    # Both stages only read the slice; the executor exit is the single join.
    with ThreadPoolExecutor(max_workers=2, thread_name_prefix="report") as executor:
        summary_future = executor.submit(aggregate, report_slice, report_filter, tz)
        exceptions_future = executor.submit(scan, report_slice, tz)
        summary = summary_future.result()
        exceptions = exceptions_future.result()

    LOGGER.info(
        "Assembled report %s..%s (%s): %d/%d bookings, %d/%d entries in %.1f ms",
        report_filter.start_date.isoformat(),
        report_filter.end_date.isoformat(),
        report_filter.frequency.value,
        len(report_slice.bookings),
        len(snapshot.bookings),
        len(report_slice.entries),
        len(snapshot.entries),
        (time.perf_counter() - started) * 1000,
    )
    return ReportResult(
        report_filter=report_filter,
        currency=currency,
        kpis=summary.kpis,
        series=summary.series,
        by_category=summary.by_category,
        top_clients=summary.top_clients,
        negative_bookings=exceptions.negative_bookings,
        unlinked_expenses=exceptions.unlinked_expenses,
        unbilled_delivered=exceptions.unbilled_delivered,
    )
