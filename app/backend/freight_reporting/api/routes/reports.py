"""Reporting endpoint for KPI, trend and data hygiene analytics."""

from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from freight_reporting.api.routes.payloads import ReportRequestPayload
from freight_reporting.db.dependencies import get_db_session
from freight_reporting.services.reporting_service import ReportingService

router = APIRouter(prefix="/reports", tags=["reports"])


def _service(db: Session) -> ReportingService:
    return ReportingService(db)


@router.post("")
def create_report(
    payload: ReportRequestPayload,
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    service = _service(db)
    return service.build_report(payload.to_request())
