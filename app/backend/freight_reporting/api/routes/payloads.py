"""Request bodies shared by report and export endpoints."""

from __future__ import annotations

from datetime import date

from pydantic import BaseModel, Field

from freight_reporting.services.reporting_service import ReportRequestData


class ReportRequestPayload(BaseModel):
    start_date: date
    end_date: date
    frequency: str = "monthly"
    company_ids: list[str] = Field(default_factory=list)
    client_ids: list[str] = Field(default_factory=list)
    modes: list[str] = Field(default_factory=list)
    statuses: list[str] = Field(default_factory=list)
    date_basis: str = "created"
    currency: str | None = Field(default=None, max_length=8)
    top_clients_limit: int | None = None

    def to_request(self) -> ReportRequestData:
        return ReportRequestData(
            start_date=self.start_date,
            end_date=self.end_date,
            frequency=self.frequency,
            company_ids=self.company_ids,
            client_ids=self.client_ids,
            modes=self.modes,
            statuses=self.statuses,
            date_basis=self.date_basis,
            currency=self.currency,
            top_clients_limit=self.top_clients_limit,
        )


class ExportRequestPayload(ReportRequestPayload):
    kind: str = Field(min_length=1)
    format: str = "csv"
    table: str | None = None
