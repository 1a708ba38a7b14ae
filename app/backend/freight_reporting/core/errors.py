"""Reporting engine error taxonomy."""

from __future__ import annotations


class ReportingError(Exception):
    """Base class for errors surfaced to report and export callers."""

    code: str = "REPORTING_ERROR"

    def as_detail(self) -> dict[str, object]:
        return {"code": self.code, "message": str(self)}


class InvalidFilter(ReportingError):
    """The requested date range is inverted."""

    code = "INVALID_FILTER"


class UnsupportedOption(ReportingError):
    """A request field carries a value the engine does not support."""

    code = "UNSUPPORTED_OPTION"

    def __init__(self, field: str, value: object, reason: str | None = None) -> None:
        self.field = field
        self.value = value
        message = reason or f"Unsupported value {value!r} for {field}."
        super().__init__(message)

    def as_detail(self) -> dict[str, object]:
        return {"code": self.code, "message": str(self), "field": self.field}


class SourceUnavailable(ReportingError):
    """The raw record collections could not be fetched."""

    code = "SOURCE_UNAVAILABLE"

    def __init__(self, attempts: int, reason: str) -> None:
        self.attempts = attempts
        self.reason = reason
        super().__init__(f"Record source unavailable after {attempts} attempt(s): {reason}")


class ExportTooLarge(ReportingError):
    """A raw export exceeds the row limit while chunking is disabled."""

    code = "EXPORT_TOO_LARGE"

    def __init__(self, row_count: int, limit: int) -> None:
        self.row_count = row_count
        self.limit = limit
        super().__init__(
            f"Export has {row_count} rows which exceeds the limit of {limit} and chunking is disabled."
        )
