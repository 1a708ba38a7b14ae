"""Export endpoint for report datasets."""

from __future__ import annotations

from fastapi import APIRouter, Depends
from fastapi.responses import Response
from sqlalchemy.orm import Session

from freight_reporting.api.routes.payloads import ExportRequestPayload
from freight_reporting.db.dependencies import get_db_session
from freight_reporting.services.reporting_service import ReportingService

router = APIRouter(prefix="/exports", tags=["exports"])


def _service(db: Session) -> ReportingService:
    return ReportingService(db)


@router.post("")
def export_report(
    payload: ExportRequestPayload,
    db: Session = Depends(get_db_session),
) -> Response:
    service = _service(db)
    exported = service.export(
        payload.to_request(),
        kind=payload.kind,
        format_name=payload.format,
        table=payload.table,
    )
    return Response(
        content=exported.content,
        media_type=exported.media_type,
        headers={
            "Content-Disposition": f'attachment; filename="{exported.filename}"',
            "X-Export-Row-Count": str(exported.row_count),
        },
    )
