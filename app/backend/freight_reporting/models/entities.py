"""ORM entities for the booking and ledger record store."""

from __future__ import annotations

import enum
from datetime import date, datetime, timezone
from decimal import Decimal

from sqlalchemy import CheckConstraint, Date, DateTime, ForeignKey, Index, Numeric, String, TypeDecorator
from sqlalchemy import Enum as SQLEnum
from sqlalchemy.orm import Mapped, mapped_column

from freight_reporting.db.base import Base


class BookingMode(str, enum.Enum):
    AIR = "Air"
    SEA = "Sea"
    TRUCK = "Truck"
    DOMESTIC = "Domestic"


class BookingStatus(str, enum.Enum):
    CREATED = "Created"
    FOR_DELIVERY = "For Delivery"
    IN_TRANSIT = "In Transit"
    DELIVERED = "Delivered"
    CANCELLED = "Cancelled"
    CLOSED = "Closed"


class EntryType(str, enum.Enum):
    REVENUE = "revenue"
    EXPENSE = "expense"


class UtcDateTime(TypeDecorator):
    """Timezone-aware timestamp stored as UTC.

    Backends without an offset column (SQLite) keep only the wall-clock value,
    so every timestamp is converted to UTC before binding and read back as UTC.
    Naive input is taken to be UTC already.
    """

    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value: datetime | None, dialect) -> datetime | None:
        if value is None:
            return None
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)

    def process_result_value(self, value: datetime | None, dialect) -> datetime | None:
        if value is None:
            return None
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)


class Company(Base):
    __tablename__ = "companies"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)


class Client(Base):
    __tablename__ = "clients"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)


class Booking(Base):
    __tablename__ = "bookings"
    __table_args__ = (
        CheckConstraint("revenue_amount >= 0", name="ck_bookings_revenue_non_negative"),
        CheckConstraint("expense_amount >= 0", name="ck_bookings_expense_non_negative"),
        CheckConstraint(
            "status <> 'Delivered' OR delivered_at IS NOT NULL",
            name="ck_bookings_delivered_has_timestamp",
        ),
        Index("ix_bookings_company_id", "company_id"),
        Index("ix_bookings_client_id", "client_id"),
        Index("ix_bookings_created_at", "created_at"),
    )

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    client_id: Mapped[str] = mapped_column(String(64), ForeignKey("clients.id"), nullable=False)
    company_id: Mapped[str] = mapped_column(String(64), ForeignKey("companies.id"), nullable=False)
    mode: Mapped[BookingMode] = mapped_column(
        SQLEnum(
            BookingMode,
            name="booking_mode",
            values_callable=lambda enum_cls: [member.value for member in enum_cls],
        ),
        nullable=False,
    )
    status: Mapped[BookingStatus] = mapped_column(
        SQLEnum(
            BookingStatus,
            name="booking_status",
            values_callable=lambda enum_cls: [member.value for member in enum_cls],
        ),
        nullable=False,
    )
    created_at: Mapped[datetime] = mapped_column(UtcDateTime(), nullable=False)
    dispatched_at: Mapped[datetime | None] = mapped_column(UtcDateTime(), nullable=True)
    delivered_at: Mapped[datetime | None] = mapped_column(UtcDateTime(), nullable=True)
    revenue_amount: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False, default=Decimal("0.00"))
    expense_amount: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False, default=Decimal("0.00"))
    currency: Mapped[str] = mapped_column(String(3), nullable=False)


class LedgerEntry(Base):
    __tablename__ = "ledger_entries"
    __table_args__ = (
        CheckConstraint("amount >= 0", name="ck_ledger_entries_amount_non_negative"),
        Index("ix_ledger_entries_company_id", "company_id"),
        Index("ix_ledger_entries_booking_id", "booking_id"),
        Index("ix_ledger_entries_entry_date", "entry_date"),
    )

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    type: Mapped[EntryType] = mapped_column(
        SQLEnum(
            EntryType,
            name="entry_type",
            values_callable=lambda enum_cls: [member.value for member in enum_cls],
        ),
        nullable=False,
    )
    amount: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False)
    currency: Mapped[str] = mapped_column(String(3), nullable=False)
    company_id: Mapped[str] = mapped_column(String(64), ForeignKey("companies.id"), nullable=False)
    # Null marks an unlinked entry.
    booking_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    category: Mapped[str] = mapped_column(String(128), nullable=False)
    entry_date: Mapped[date] = mapped_column(Date, nullable=False)
