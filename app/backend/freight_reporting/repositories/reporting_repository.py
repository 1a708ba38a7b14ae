"""Read-only queries over the booking and ledger record store."""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager

from sqlalchemy import select
from sqlalchemy.orm import Session

from freight_reporting.models.entities import Booking, Client, Company, LedgerEntry

# Isolation level that gives every read in one transaction the same point in time.
SNAPSHOT_ISOLATION: dict[str, str] = {"postgresql": "REPEATABLE READ"}


class ReportingRepository:
    """Full-collection reads; filtering happens in the reporting engine."""

    def __init__(self, db: Session) -> None:
        self.db = db

    @contextmanager
    def snapshot(self) -> Iterator[None]:
        """Run the enclosed reads in one transaction and end it afterwards.

        On failure the transaction is left for the caller to roll back.
        """

        level = SNAPSHOT_ISOLATION.get(self.db.get_bind().dialect.name)
        if level is not None:
            self.db.connection(execution_options={"isolation_level": level})
        yield
        self.db.rollback()

    def list_bookings(self) -> list[Booking]:
        return self.db.scalars(select(Booking).order_by(Booking.id.asc())).all()

    def list_entries(self) -> list[LedgerEntry]:
        return self.db.scalars(select(LedgerEntry).order_by(LedgerEntry.id.asc())).all()

    def list_clients(self) -> list[Client]:
        return self.db.scalars(select(Client).order_by(Client.id.asc())).all()

    def list_companies(self) -> list[Company]:
        return self.db.scalars(select(Company).order_by(Company.id.asc())).all()
