"""ORM model package."""

from freight_reporting.models.entities import (
    Booking,
    BookingMode,
    BookingStatus,
    Client,
    Company,
    EntryType,
    LedgerEntry,
)

__all__ = [
    "Booking",
    "BookingMode",
    "BookingStatus",
    "Client",
    "Company",
    "EntryType",
    "LedgerEntry",
]
