"""Report and export application service."""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import date
from pathlib import Path

from fastapi import HTTPException, status
from sqlalchemy.orm import Session

from freight_reporting.core.config import get_settings
from freight_reporting.core.errors import (
    ExportTooLarge,
    InvalidFilter,
    ReportingError,
    SourceUnavailable,
    UnsupportedOption,
)
from freight_reporting.models.reporting import ExportFilePayload, RecordSnapshot, ReportFilter
from freight_reporting.repositories.reporting_repository import ReportingRepository
from freight_reporting.services.export_writer import ExportWriter, package_files, save_exports
from freight_reporting.services.record_source import SnapshotLoader
from freight_reporting.services.report_assembler import assemble_report, build_report_filter, select_slice
from freight_reporting.services.report_serializer import serialize_report

LOGGER = logging.getLogger(__name__)

EXPORT_KINDS = ("aggregates", "raw-bookings", "raw-entries", "raw-bundle", "table")

ERROR_STATUS: dict[type[ReportingError], int] = {
    InvalidFilter: status.HTTP_422_UNPROCESSABLE_ENTITY,
    UnsupportedOption: status.HTTP_422_UNPROCESSABLE_ENTITY,
    SourceUnavailable: status.HTTP_503_SERVICE_UNAVAILABLE,
    ExportTooLarge: status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
}


@dataclass(slots=True)
class ReportRequestData:
    start_date: date
    end_date: date
    frequency: str = "monthly"
    company_ids: list[str] | None = None
    client_ids: list[str] | None = None
    modes: list[str] | None = None
    statuses: list[str] | None = None
    date_basis: str = "created"
    currency: str | None = None
    top_clients_limit: int | None = None


@contextmanager
def _as_http_errors() -> Iterator[None]:
    try:
        yield
    except ReportingError as exc:
        status_code = ERROR_STATUS.get(type(exc), status.HTTP_400_BAD_REQUEST)
        LOGGER.info("Reporting request rejected (%s): %s", exc.code, exc)
        raise HTTPException(status_code=status_code, detail=exc.as_detail()) from exc


class ReportingService:
    """Service implementing report assembly and export contracts."""

    def __init__(self, db: Session, *, snapshot_loader: Callable[[], RecordSnapshot] | None = None) -> None:
        self.db = db
        self.repo = ReportingRepository(db)
        self.settings = get_settings()
        self._load_snapshot = snapshot_loader or SnapshotLoader(
            self.repo,
            max_attempts=self.settings.source_fetch_max_attempts,
            backoff_seconds=self.settings.source_fetch_backoff_seconds,
        ).load

    def _writer(self) -> ExportWriter:
        return ExportWriter(
            prefix=self.settings.export_prefix,
            tz=self.settings.tzinfo,
            row_limit=self.settings.export_row_limit,
            chunking_enabled=self.settings.export_chunking_enabled,
        )

    @staticmethod
    def _filter(request: ReportRequestData) -> ReportFilter:
        return build_report_filter(
            start_date=request.start_date,
            end_date=request.end_date,
            frequency=request.frequency,
            company_ids=request.company_ids,
            client_ids=request.client_ids,
            modes=request.modes,
            statuses=request.statuses,
            date_basis=request.date_basis,
            currency=request.currency,
            top_clients_limit=request.top_clients_limit,
        )

    def build_report(self, request: ReportRequestData) -> dict[str, object]:
        with _as_http_errors():
            report_filter = self._filter(request)
            result = assemble_report(self._load_snapshot(), report_filter, tz=self.settings.tzinfo)
        return serialize_report(result)

    def export(
        self,
        request: ReportRequestData,
        *,
        kind: str,
        format_name: str,
        table: str | None = None,
    ) -> ExportFilePayload:
        normalized_kind = kind.strip().lower()
        normalized_format = format_name.strip().lower()
        with _as_http_errors():
            if normalized_kind not in EXPORT_KINDS:
                raise UnsupportedOption("kind", kind, f"kind must be one of: {', '.join(EXPORT_KINDS)}.")
            report_filter = self._filter(request)
            files = self._export_files(report_filter, normalized_kind, normalized_format, table)

        if self.settings.export_output_dir:
            try:
                save_exports(files, Path(self.settings.export_output_dir))
            except OSError:
                LOGGER.exception("Archiving export to %s failed", self.settings.export_output_dir)
        if len(files) == 1:
            return files[0]
        # Chunked raw exports travel as one archive of their parts.
        stem = files[0].filename.rsplit("_part", 1)[0]
        return package_files(files, f"{stem}.zip")

    def _export_files(
        self,
        report_filter: ReportFilter,
        kind: str,
        format_name: str,
        table: str | None,
    ) -> list[ExportFilePayload]:
        writer = self._writer()
        tz = self.settings.tzinfo
        snapshot = self._load_snapshot()

        if kind in {"aggregates", "table"}:
            result = assemble_report(snapshot, report_filter, tz=tz)
            if kind == "aggregates":
                return [writer.write_aggregates(result, format_name)]
            if format_name != "csv":
                raise UnsupportedOption("format", format_name, "table exports support format: csv.")
            if not table:
                raise UnsupportedOption("table", table, "table is required when kind is table.")
            return [writer.write_table(result, table)]

        report_slice, _currency = select_slice(snapshot, report_filter, tz)
        if kind == "raw-bundle":
            if format_name != "zip":
                raise UnsupportedOption("format", format_name, "raw-bundle exports support format: zip.")
            return [writer.write_bundle(report_slice, report_filter)]
        raw_kind = "bookings" if kind == "raw-bookings" else "entries"
        return writer.write_raw(report_slice, raw_kind, report_filter, format_name)
