"""Snapshot fetching from the record store with bounded retries."""

from __future__ import annotations

import logging
import time
from collections.abc import Callable

from sqlalchemy.exc import SQLAlchemyError

from freight_reporting.core.errors import SourceUnavailable
from freight_reporting.models.entities import Booking, LedgerEntry
from freight_reporting.models.reporting import (
    BookingRecord,
    ClientRef,
    CompanyRef,
    EntryRecord,
    RecordSnapshot,
)
from freight_reporting.repositories.reporting_repository import ReportingRepository

LOGGER = logging.getLogger(__name__)

TRANSIENT_ERRORS: tuple[type[Exception], ...] = (SQLAlchemyError, OSError, TimeoutError)


def booking_record(row: Booking) -> BookingRecord:
    return BookingRecord(
        booking_id=row.id,
        client_id=row.client_id,
        company_id=row.company_id,
        mode=row.mode,
        status=row.status,
        created_at=row.created_at,
        dispatched_at=row.dispatched_at,
        delivered_at=row.delivered_at,
        revenue_amount=row.revenue_amount,
        expense_amount=row.expense_amount,
        currency=row.currency,
    )


def entry_record(row: LedgerEntry) -> EntryRecord:
    return EntryRecord(
        entry_id=row.id,
        type=row.type,
        amount=row.amount,
        currency=row.currency,
        company_id=row.company_id,
        booking_id=row.booking_id,
        category=row.category,
        entry_date=row.entry_date,
    )


class SnapshotLoader:
    """Loads one consistent ``RecordSnapshot`` per call.

    A failed attempt discards everything it read; the next attempt starts from
    scratch, so a snapshot never mixes rows from two fetches.
    """

    def __init__(
        self,
        repo: ReportingRepository,
        *,
        max_attempts: int = 3,
        backoff_seconds: float = 0.2,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.repo = repo
        self.max_attempts = max(1, max_attempts)
        self.backoff_seconds = backoff_seconds
        self._sleep = sleep

    def _fetch_once(self) -> RecordSnapshot:
        with self.repo.snapshot():
            bookings = tuple(booking_record(row) for row in self.repo.list_bookings())
            entries = tuple(entry_record(row) for row in self.repo.list_entries())
            clients = tuple(ClientRef(client_id=row.id, name=row.name) for row in self.repo.list_clients())
            companies = tuple(
                CompanyRef(company_id=row.id, name=row.name) for row in self.repo.list_companies()
            )
        return RecordSnapshot(bookings=bookings, entries=entries, clients=clients, companies=companies)

    def _reset_session(self) -> None:
        try:
            self.repo.db.rollback()
        except SQLAlchemyError:
            LOGGER.warning("Session rollback failed after fetch error", exc_info=True)

    def load(self) -> RecordSnapshot:
        last_error: Exception | None = None
        for attempt in range(1, self.max_attempts + 1):
            try:
                snapshot = self._fetch_once()
            except TRANSIENT_ERRORS as exc:
                last_error = exc
                self._reset_session()
                if attempt == self.max_attempts:
                    break
                delay = self.backoff_seconds * (2 ** (attempt - 1))
                LOGGER.warning(
                    "Record fetch attempt %d/%d failed (%s); retrying in %.2fs",
                    attempt,
                    self.max_attempts,
                    exc,
                    delay,
                )
                self._sleep(delay)
                continue
            LOGGER.debug(
                "Loaded snapshot: %d bookings, %d entries, %d clients, %d companies",
                len(snapshot.bookings),
                len(snapshot.entries),
                len(snapshot.clients),
                len(snapshot.companies),
            )
            return snapshot

        LOGGER.error("Record fetch failed after %d attempt(s): %s", self.max_attempts, last_error)
        raise SourceUnavailable(self.max_attempts, str(last_error)) from last_error
