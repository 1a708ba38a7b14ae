"""Immutable value objects consumed and produced by the reporting engine."""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal

from freight_reporting.models.entities import BookingMode, BookingStatus, EntryType


class Frequency(str, enum.Enum):
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    QUARTERLY = "quarterly"


class DateBasis(str, enum.Enum):
    """Booking timestamp that anchors date-range membership."""

    CREATED = "created"
    DISPATCHED = "dispatched"
    DELIVERED = "delivered"


@dataclass(frozen=True, slots=True)
class BookingRecord:
    booking_id: str
    client_id: str
    company_id: str
    mode: BookingMode
    status: BookingStatus
    created_at: datetime
    dispatched_at: datetime | None
    delivered_at: datetime | None
    revenue_amount: Decimal
    expense_amount: Decimal
    currency: str

    def basis_timestamp(self, basis: DateBasis) -> datetime | None:
        if basis is DateBasis.CREATED:
            return self.created_at
        if basis is DateBasis.DISPATCHED:
            return self.dispatched_at
        return self.delivered_at


@dataclass(frozen=True, slots=True)
class EntryRecord:
    entry_id: str
    type: EntryType
    amount: Decimal
    currency: str
    company_id: str
    booking_id: str | None
    category: str
    entry_date: date | datetime


@dataclass(frozen=True, slots=True)
class ClientRef:
    client_id: str
    name: str


@dataclass(frozen=True, slots=True)
class CompanyRef:
    company_id: str
    name: str


@dataclass(frozen=True, slots=True)
class RecordSnapshot:
    """One complete fetch of the record store."""

    bookings: tuple[BookingRecord, ...] = ()
    entries: tuple[EntryRecord, ...] = ()
    clients: tuple[ClientRef, ...] = ()
    companies: tuple[CompanyRef, ...] = ()


@dataclass(frozen=True, slots=True)
class ReportFilter:
    start_date: date
    end_date: date
    frequency: Frequency = Frequency.MONTHLY
    company_ids: frozenset[str] = frozenset()
    client_ids: frozenset[str] = frozenset()
    modes: frozenset[BookingMode] = frozenset()
    statuses: frozenset[BookingStatus] = frozenset()
    date_basis: DateBasis = DateBasis.CREATED
    currency: str | None = None
    top_clients_limit: int | None = None

    def as_dict(self) -> dict[str, object]:
        return {
            "start_date": self.start_date.isoformat(),
            "end_date": self.end_date.isoformat(),
            "frequency": self.frequency.value,
            "company_ids": sorted(self.company_ids),
            "client_ids": sorted(self.client_ids),
            "modes": sorted(mode.value for mode in self.modes),
            "statuses": sorted(status.value for status in self.statuses),
            "date_basis": self.date_basis.value,
            "currency": self.currency,
            "top_clients_limit": self.top_clients_limit,
        }


@dataclass(frozen=True, slots=True)
class ReportSlice:
    """Records matching one filter, with lookups built from the full snapshot."""

    bookings: tuple[BookingRecord, ...]
    entries: tuple[EntryRecord, ...]
    bookings_by_id: dict[str, BookingRecord] = field(default_factory=dict)
    billed_booking_ids: frozenset[str] = frozenset()
    client_names: dict[str, str] = field(default_factory=dict)
    company_names: dict[str, str] = field(default_factory=dict)

    def client_name(self, client_id: str) -> str:
        return self.client_names.get(client_id, client_id)

    def company_name(self, company_id: str) -> str:
        return self.company_names.get(company_id, company_id)


@dataclass(frozen=True, slots=True)
class Kpis:
    bookings: int
    delivered: int
    delivery_rate_pct: Decimal
    revenue: Decimal
    expenses: Decimal
    net_profit: Decimal
    margin_pct: Decimal


@dataclass(frozen=True, slots=True)
class SeriesRow:
    period: date
    revenue: Decimal
    expenses: Decimal
    net_profit: Decimal


@dataclass(frozen=True, slots=True)
class CategoryRow:
    category: str
    amount: Decimal
    pct: Decimal


@dataclass(frozen=True, slots=True)
class ClientRankRow:
    client_id: str
    client: str
    bookings: int
    revenue: Decimal
    margin_pct: Decimal


@dataclass(frozen=True, slots=True)
class NegativeBookingRow:
    booking_id: str
    client: str
    revenue: Decimal
    expense: Decimal
    net: Decimal
    company: str


@dataclass(frozen=True, slots=True)
class UnlinkedExpenseRow:
    entry_id: str
    date: date
    category: str
    amount: Decimal
    company: str


@dataclass(frozen=True, slots=True)
class UnbilledDeliveredRow:
    booking_id: str
    client: str
    delivered_date: date
    company: str


@dataclass(frozen=True, slots=True)
class AggregateSummary:
    kpis: Kpis
    series: tuple[SeriesRow, ...]
    by_category: tuple[CategoryRow, ...]
    top_clients: tuple[ClientRankRow, ...]


@dataclass(frozen=True, slots=True)
class ExceptionLists:
    negative_bookings: tuple[NegativeBookingRow, ...]
    unlinked_expenses: tuple[UnlinkedExpenseRow, ...]
    unbilled_delivered: tuple[UnbilledDeliveredRow, ...]


@dataclass(frozen=True, slots=True)
class ReportResult:
    report_filter: ReportFilter
    currency: str | None
    kpis: Kpis
    series: tuple[SeriesRow, ...]
    by_category: tuple[CategoryRow, ...]
    top_clients: tuple[ClientRankRow, ...]
    negative_bookings: tuple[NegativeBookingRow, ...]
    unlinked_expenses: tuple[UnlinkedExpenseRow, ...]
    unbilled_delivered: tuple[UnbilledDeliveredRow, ...]


@dataclass(frozen=True, slots=True)
class ExportFilePayload:
    media_type: str
    filename: str
    content: bytes
    row_count: int = 0
