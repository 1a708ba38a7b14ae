from __future__ import annotations

from datetime import date, datetime, timezone
from decimal import Decimal
from zoneinfo import ZoneInfo

import pytest
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session

from freight_reporting.core.errors import SourceUnavailable
from freight_reporting.models.entities import (
    Booking,
    BookingMode,
    BookingStatus,
    Client,
    Company,
    EntryType,
    LedgerEntry,
)
from freight_reporting.models.reporting import ReportFilter
from freight_reporting.repositories.reporting_repository import SNAPSHOT_ISOLATION, ReportingRepository
from freight_reporting.services.filter_evaluator import filter_records
from freight_reporting.services.record_source import SnapshotLoader


def _seed(db: Session) -> None:
    db.add_all(
        [
            Company(id="jjb-main", name="JJB Main"),
            Client(id="CL-1", name="Cebu Traders"),
        ]
    )
    db.flush()
    db.add(
        Booking(
            id="BK-1",
            client_id="CL-1",
            company_id="jjb-main",
            mode=BookingMode.TRUCK,
            status=BookingStatus.CREATED,
            created_at=datetime(2026, 6, 1, 3, 0, tzinfo=timezone.utc),
            revenue_amount=Decimal("450.00"),
            expense_amount=Decimal("120.00"),
            currency="PHP",
        )
    )
    db.add(
        LedgerEntry(
            id="EN-1",
            type=EntryType.EXPENSE,
            amount=Decimal("120.00"),
            currency="PHP",
            company_id="jjb-main",
            booking_id=None,
            category="Fuel",
            entry_date=date(2026, 6, 2),
        )
    )
    db.commit()


class _FlakyRepository(ReportingRepository):
    def __init__(self, db: Session, failures: int) -> None:
        super().__init__(db)
        self.failures = failures
        self.calls = 0

    def list_bookings(self) -> list[Booking]:
        self.calls += 1
        if self.calls <= self.failures:
            raise OperationalError("SELECT 1", {}, Exception("connection reset"))
        return super().list_bookings()


def test_loads_snapshot_from_database(db_session: Session) -> None:
    _seed(db_session)

    snapshot = SnapshotLoader(ReportingRepository(db_session)).load()

    [booking] = snapshot.bookings
    assert booking.booking_id == "BK-1"
    assert booking.mode is BookingMode.TRUCK
    assert booking.revenue_amount == Decimal("450.00")
    [entry] = snapshot.entries
    assert entry.booking_id is None
    assert entry.type is EntryType.EXPENSE
    assert [(row.client_id, row.name) for row in snapshot.clients] == [("CL-1", "Cebu Traders")]
    assert [(row.company_id, row.name) for row in snapshot.companies] == [("jjb-main", "JJB Main")]


def test_retries_with_exponential_backoff(db_session: Session) -> None:
    _seed(db_session)
    delays: list[float] = []
    repo = _FlakyRepository(db_session, failures=2)

    snapshot = SnapshotLoader(repo, max_attempts=3, backoff_seconds=0.5, sleep=delays.append).load()

    assert len(snapshot.bookings) == 1
    assert delays == [0.5, 1.0]
    assert repo.calls == 3


def test_gives_up_after_max_attempts(db_session: Session) -> None:
    delays: list[float] = []
    repo = _FlakyRepository(db_session, failures=10)

    with pytest.raises(SourceUnavailable) as exc_info:
        SnapshotLoader(repo, max_attempts=3, backoff_seconds=0.1, sleep=delays.append).load()

    assert exc_info.value.attempts == 3
    assert exc_info.value.code == "SOURCE_UNAVAILABLE"
    assert repo.calls == 3
    assert len(delays) == 2


def test_local_timestamps_keep_their_instant(db_session: Session) -> None:
    _seed(db_session)
    late_evening = datetime(2026, 1, 31, 23, 30, tzinfo=ZoneInfo("Asia/Manila"))
    db_session.add(
        Booking(
            id="BK-2",
            client_id="CL-1",
            company_id="jjb-main",
            mode=BookingMode.SEA,
            status=BookingStatus.CREATED,
            created_at=late_evening,
            revenue_amount=Decimal("10.00"),
            expense_amount=Decimal("0.00"),
            currency="PHP",
        )
    )
    db_session.commit()

    snapshot = SnapshotLoader(ReportingRepository(db_session)).load()
    booking = next(row for row in snapshot.bookings if row.booking_id == "BK-2")
    assert booking.created_at == late_evening
    assert booking.created_at.tzinfo is not None

    january = ReportFilter(start_date=date(2026, 1, 1), end_date=date(2026, 1, 31))
    report_slice = filter_records(snapshot, january, ZoneInfo("Asia/Manila"))
    assert [row.booking_id for row in report_slice.bookings] == ["BK-2"]


def test_reads_share_one_transaction(db_session: Session, monkeypatch: pytest.MonkeyPatch) -> None:
    _seed(db_session)
    monkeypatch.setitem(SNAPSHOT_ISOLATION, "sqlite", "SERIALIZABLE")
    requested: list[object] = []
    original = db_session.connection

    def recording_connection(*args: object, **kwargs: object):
        requested.append(kwargs.get("execution_options"))
        return original(*args, **kwargs)

    monkeypatch.setattr(db_session, "connection", recording_connection)

    snapshot = SnapshotLoader(ReportingRepository(db_session)).load()

    assert len(snapshot.bookings) == 1
    assert requested == [{"isolation_level": "SERIALIZABLE"}]
    assert not db_session.in_transaction()
