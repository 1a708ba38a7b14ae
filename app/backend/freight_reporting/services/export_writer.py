"""Column-stable CSV, XLSX and ZIP exports of report data."""

from __future__ import annotations

import csv
import io
import logging
import zipfile
from collections.abc import Iterable, Sequence
from datetime import datetime, timezone, tzinfo
from decimal import Decimal
from pathlib import Path

from openpyxl import Workbook

from freight_reporting.core.errors import ExportTooLarge, UnsupportedOption
from freight_reporting.models.reporting import (
    BookingRecord,
    EntryRecord,
    ExportFilePayload,
    ReportFilter,
    ReportResult,
    ReportSlice,
)
from freight_reporting.services.amounts import q2
from freight_reporting.services.period_bucketer import local_date
from freight_reporting.services.report_serializer import TABLE_COLUMNS, TABLE_KEYS, report_tables

LOGGER = logging.getLogger(__name__)

DEFAULT_ROW_LIMIT = 200_000

CSV_MEDIA_TYPE = "text/csv; charset=utf-8"
XLSX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"
ZIP_MEDIA_TYPE = "application/zip"
# Fixed member timestamp keeps archives byte-identical across runs.
ZIP_TIMESTAMP = (1980, 1, 1, 0, 0, 0)
MANIFEST_NAME = "README.txt"

RAW_KINDS = ("bookings", "entries")
RAW_FORMATS = ("csv", "xlsx")

BOOKING_COLUMNS: tuple[tuple[str, str], ...] = (
    ("booking_id", "Unique, stable booking reference."),
    ("client_id", "Identifier of the client that owns the shipment."),
    ("client_name", "Client display name at export time."),
    ("company_id", "Identifier of the operating company."),
    ("company_name", "Operating company display name at export time."),
    ("mode", "Transport mode (Air, Sea, Truck, Domestic)."),
    ("status", "Booking status at export time; Delivered is terminal."),
    ("created_at", "Booking creation timestamp."),
    ("dispatched_at", "Dispatch timestamp; empty if not dispatched."),
    ("delivered_at", "Delivery timestamp; empty if not delivered."),
    ("revenue_amount", "Revenue recorded on the booking itself (not ledger entries)."),
    ("expense_amount", "Expense recorded on the booking itself (not ledger entries)."),
    ("currency", "ISO 4217 currency code of the booking amounts."),
)

ENTRY_COLUMNS: tuple[tuple[str, str], ...] = (
    ("entry_id", "Unique ledger entry reference."),
    ("type", "revenue or expense; the sign is carried here, amounts are never negative."),
    ("amount", "Entry amount, zero or greater."),
    ("currency", "ISO 4217 currency code of the amount."),
    ("entry_date", "Ledger posting date."),
    ("company_id", "Identifier of the operating company."),
    ("company_name", "Operating company display name at export time."),
    ("booking_id", "Linked booking; empty marks an unlinked entry."),
    ("category", "Free-form ledger category label."),
)

AGGREGATE_SHEETS: dict[str, str] = {
    "kpis": "kpis",
    "series": "series",
    "byCategory": "by_category",
    "topClients": "top_clients",
    "negativeBookings": "negative_bookings",
    "unlinkedExpenses": "unlinked_expenses",
    "unbilledDelivered": "unbilled_delivered",
}

_NULL_SORT_KEY = datetime.min.replace(tzinfo=timezone.utc)


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def _money(value: Decimal) -> str:
    return str(q2(value))


def _csv_bytes(columns: Sequence[str], rows: Iterable[dict[str, str]]) -> bytes:
    with io.StringIO(newline="") as sio:
        writer = csv.DictWriter(sio, fieldnames=list(columns), lineterminator="\r\n")
        writer.writeheader()
        writer.writerows(rows)
        return sio.getvalue().encode("utf-8")


def _xlsx_bytes(sheets: Sequence[tuple[str, Sequence[str], Sequence[dict[str, str]]]]) -> bytes:
    workbook = Workbook()
    workbook.remove(workbook.active)
    for title, columns, rows in sheets:
        sheet = workbook.create_sheet(title=title)
        sheet.append(list(columns))
        for row in rows:
            sheet.append([row.get(column, "") for column in columns])

    with io.BytesIO() as output:
        workbook.save(output)
        return output.getvalue()


def zip_bytes(members: Sequence[tuple[str, bytes]]) -> bytes:
    with io.BytesIO() as buffer:
        with zipfile.ZipFile(buffer, mode="w", compression=zipfile.ZIP_DEFLATED) as archive:
            for name, content in members:
                info = zipfile.ZipInfo(filename=name, date_time=ZIP_TIMESTAMP)
                info.compress_type = zipfile.ZIP_DEFLATED
                info.external_attr = 0o644 << 16
                archive.writestr(info, content)
        return buffer.getvalue()


def package_files(files: Sequence[ExportFilePayload], filename: str) -> ExportFilePayload:
    """Bundle several export files into one archive download."""

    return ExportFilePayload(
        media_type=ZIP_MEDIA_TYPE,
        filename=filename,
        content=zip_bytes([(payload.filename, payload.content) for payload in files]),
        row_count=sum(payload.row_count for payload in files),
    )


def save_exports(files: Sequence[ExportFilePayload], directory: Path) -> list[Path]:
    """Write export files into ``directory``.

    Each file goes to a hidden ``.partial`` sibling first and is renamed into
    place only once fully written, so an interrupted write never leaves a
    truncated export behind.
    """

    directory.mkdir(parents=True, exist_ok=True)
    saved: list[Path] = []
    for payload in files:
        target = directory / payload.filename
        partial = directory / f".{payload.filename}.partial"
        try:
            with partial.open("wb") as handle:
                handle.write(payload.content)
            partial.replace(target)
        finally:
            partial.unlink(missing_ok=True)
        saved.append(target)
        LOGGER.info("Saved export %s (%d rows, %d bytes)", target, payload.row_count, len(payload.content))
    return saved


class ExportWriter:
    """Serializes report results and raw record sets into export files."""

    def __init__(
        self,
        *,
        prefix: str,
        tz: tzinfo,
        row_limit: int = DEFAULT_ROW_LIMIT,
        chunking_enabled: bool = True,
    ) -> None:
        self.prefix = prefix
        self.tz = tz
        self.row_limit = row_limit
        self.chunking_enabled = chunking_enabled

    # ---------- Filenames ----------
    def _range_part(self, report_filter: ReportFilter) -> str:
        return f"{report_filter.start_date.isoformat()}_{report_filter.end_date.isoformat()}"

    def raw_stem(self, kind: str, report_filter: ReportFilter) -> str:
        span = self._range_part(report_filter)
        freq = report_filter.frequency.value
        if kind == "bookings":
            return f"{self.prefix}_bookings_{span}_{report_filter.date_basis.value}_{freq}"
        return f"{self.prefix}_entries_{span}_{freq}"

    def bundle_filename(self, report_filter: ReportFilter) -> str:
        return f"{self.prefix}_raw_{self._range_part(report_filter)}_{report_filter.frequency.value}.zip"

    def _report_stem(self, name: str, report_filter: ReportFilter) -> str:
        return f"{self.prefix}_{name}_{self._range_part(report_filter)}_{report_filter.frequency.value}"

    # ---------- Raw rows ----------
    def _timestamp(self, value: datetime | None) -> str:
        if value is None:
            return ""
        return _as_utc(value).astimezone(self.tz).isoformat()

    def booking_rows(self, report_slice: ReportSlice) -> list[dict[str, str]]:
        """Matching bookings by delivered_at (nulls last), then booking_id."""

        def sort_key(booking: BookingRecord) -> tuple[bool, datetime, str]:
            delivered = booking.delivered_at
            return (delivered is None, _as_utc(delivered) if delivered else _NULL_SORT_KEY, booking.booking_id)

        return [
            {
                "booking_id": booking.booking_id,
                "client_id": booking.client_id,
                "client_name": report_slice.client_name(booking.client_id),
                "company_id": booking.company_id,
                "company_name": report_slice.company_name(booking.company_id),
                "mode": booking.mode.value,
                "status": booking.status.value,
                "created_at": self._timestamp(booking.created_at),
                "dispatched_at": self._timestamp(booking.dispatched_at),
                "delivered_at": self._timestamp(booking.delivered_at),
                "revenue_amount": _money(booking.revenue_amount),
                "expense_amount": _money(booking.expense_amount),
                "currency": booking.currency,
            }
            for booking in sorted(report_slice.bookings, key=sort_key)
        ]

    def entry_rows(self, report_slice: ReportSlice) -> list[dict[str, str]]:
        """Matching entries by entry_date, then entry_id."""

        def sort_key(entry: EntryRecord) -> tuple[str, str]:
            return (local_date(entry.entry_date, self.tz).isoformat(), entry.entry_id)

        return [
            {
                "entry_id": entry.entry_id,
                "type": entry.type.value,
                "amount": _money(entry.amount),
                "currency": entry.currency,
                "entry_date": local_date(entry.entry_date, self.tz).isoformat(),
                "company_id": entry.company_id,
                "company_name": report_slice.company_name(entry.company_id),
                "booking_id": entry.booking_id or "",
                "category": entry.category,
            }
            for entry in sorted(report_slice.entries, key=sort_key)
        ]

    def _chunks(self, rows: list[dict[str, str]]) -> list[list[dict[str, str]]]:
        if len(rows) <= self.row_limit:
            return [rows]
        if not self.chunking_enabled:
            raise ExportTooLarge(len(rows), self.row_limit)
        return [rows[start : start + self.row_limit] for start in range(0, len(rows), self.row_limit)]

    # ---------- Raw exports ----------
    def write_raw(
        self,
        report_slice: ReportSlice,
        kind: str,
        report_filter: ReportFilter,
        format_name: str = "csv",
    ) -> list[ExportFilePayload]:
        if kind not in RAW_KINDS:
            raise UnsupportedOption("kind", kind)
        if format_name not in RAW_FORMATS:
            raise UnsupportedOption("format", format_name, "raw exports support formats: csv, xlsx.")

        if kind == "bookings":
            columns = tuple(name for name, _ in BOOKING_COLUMNS)
            rows = self.booking_rows(report_slice)
        else:
            columns = tuple(name for name, _ in ENTRY_COLUMNS)
            rows = self.entry_rows(report_slice)

        chunks = self._chunks(rows)
        stem = self.raw_stem(kind, report_filter)
        files: list[ExportFilePayload] = []
        for index, chunk in enumerate(chunks, start=1):
            suffix = f"_part{index:02d}" if len(chunks) > 1 else ""
            if format_name == "csv":
                files.append(
                    ExportFilePayload(
                        media_type=CSV_MEDIA_TYPE,
                        filename=f"{stem}{suffix}.csv",
                        content=_csv_bytes(columns, chunk),
                        row_count=len(chunk),
                    )
                )
            else:
                files.append(
                    ExportFilePayload(
                        media_type=XLSX_MEDIA_TYPE,
                        filename=f"{stem}{suffix}.xlsx",
                        content=_xlsx_bytes([(kind, columns, chunk)]),
                        row_count=len(chunk),
                    )
                )
        LOGGER.info("Wrote raw %s export %s: %d rows in %d file(s)", kind, stem, len(rows), len(files))
        return files

    def manifest(self, report_filter: ReportFilter, files: Sequence[ExportFilePayload]) -> str:
        basis = report_filter.date_basis.value

        def listed(values: Iterable[str]) -> str:
            return ", ".join(sorted(values)) or "all"

        lines = [
            f"{self.prefix} raw data export",
            "",
            f"Period: {report_filter.start_date.isoformat()} to {report_filter.end_date.isoformat()} (inclusive)",
            f"Frequency: {report_filter.frequency.value}",
            f"Date basis: {basis}",
            f"  Bookings are included when {basis}_at falls inside the period;",
            "  bookings without that timestamp are excluded.",
            "  Ledger entries are always included by entry_date.",
            f"Timezone: {self.tz}",
            f"Companies: {listed(report_filter.company_ids)}",
            f"Clients: {listed(report_filter.client_ids)}",
            f"Modes: {listed(mode.value for mode in report_filter.modes)}",
            f"Statuses: {listed(status.value for status in report_filter.statuses)}",
            f"Currency: {report_filter.currency or 'single currency of the matching records'}",
            "",
            "Files",
        ]
        lines.extend(f"  {payload.filename}: {payload.row_count} rows" for payload in files)
        lines.extend(["", "Booking columns"])
        lines.extend(f"  {name}: {meaning}" for name, meaning in BOOKING_COLUMNS)
        lines.extend(["", "Entry columns"])
        lines.extend(f"  {name}: {meaning}" for name, meaning in ENTRY_COLUMNS)
        lines.extend(
            [
                "",
                "Conventions",
                "  Bookings are sorted by delivered_at (empty last), then booking_id.",
                "  Entries are sorted by entry_date, then entry_id.",
                f"  Files above {self.row_limit} rows are split into _partNN files in sort order.",
                f"  Timestamps are ISO 8601 in {self.tz}; amounts have two decimal places.",
                "  An empty cell means the value is not set.",
                "",
            ]
        )
        return "\n".join(lines)

    def write_bundle(self, report_slice: ReportSlice, report_filter: ReportFilter) -> ExportFilePayload:
        files = self.write_raw(report_slice, "bookings", report_filter) + self.write_raw(
            report_slice, "entries", report_filter
        )
        members = [(MANIFEST_NAME, self.manifest(report_filter, files).encode("utf-8"))]
        members.extend((payload.filename, payload.content) for payload in files)
        return ExportFilePayload(
            media_type=ZIP_MEDIA_TYPE,
            filename=self.bundle_filename(report_filter),
            content=zip_bytes(members),
            row_count=sum(payload.row_count for payload in files),
        )

    # ---------- Aggregate exports ----------
    def write_aggregates(self, result: ReportResult, format_name: str) -> ExportFilePayload:
        tables = report_tables(result)
        stem = self._report_stem("report", result.report_filter)
        row_count = sum(len(rows) for rows in tables.values())

        if format_name == "csv":
            columns: list[str] = ["section"]
            for section_columns in TABLE_COLUMNS.values():
                columns.extend(column for column in section_columns if column not in columns)
            flat_rows: list[dict[str, str]] = []
            for section, rows in tables.items():
                for row in rows:
                    flat_rows.append({"section": AGGREGATE_SHEETS[section], **row})
            return ExportFilePayload(
                media_type=CSV_MEDIA_TYPE,
                filename=f"{stem}.csv",
                content=_csv_bytes(columns, flat_rows),
                row_count=row_count,
            )
        if format_name == "xlsx":
            sheets = [
                (AGGREGATE_SHEETS[section], TABLE_COLUMNS[section], rows)
                for section, rows in tables.items()
            ]
            return ExportFilePayload(
                media_type=XLSX_MEDIA_TYPE,
                filename=f"{stem}.xlsx",
                content=_xlsx_bytes(sheets),
                row_count=row_count,
            )
        raise UnsupportedOption("format", format_name, "aggregate exports support formats: csv, xlsx.")

    def write_table(self, result: ReportResult, table: str) -> ExportFilePayload:
        section = TABLE_KEYS.get(table)
        if section is None:
            raise UnsupportedOption("table", table, f"table must be one of: {', '.join(TABLE_KEYS)}.")
        rows = report_tables(result)[section]
        return ExportFilePayload(
            media_type=CSV_MEDIA_TYPE,
            filename=f"{self._report_stem(table, result.report_filter)}.csv",
            content=_csv_bytes(TABLE_COLUMNS[section], rows),
            row_count=len(rows),
        )

