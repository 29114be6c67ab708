# FILE: app/api/routes_report_records.py
from __future__ import annotations

from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from app.api.deps import get_db
from app.api.response import ok
from app.core.config import settings
from app.core.errors import ReportNotFound
from app.schemas.report import IssuedReportOut, ReportSnapshotIn
from app.services.report_links import api_base_from_request, build_report_url
from app.services.report_records import (create_report_record,
                                         get_report_record, record_to_dict)

router = APIRouter(prefix="/report-records", tags=["Report Records"])


@router.post("")
def create_record(
        payload: ReportSnapshotIn,
        request: Request,
        db: Session = Depends(get_db),
):
    issued = create_report_record(db, payload)
    base = api_base_from_request(request, settings.API_V1_STR)
    out = IssuedReportOut(
        report_id=issued.report_id,
        token=issued.token,
        url=build_report_url(base, issued.report_id, issued.token),
    )
    return ok(out.model_dump(by_alias=True), status_code=201)


@router.get("/{report_id}")
def read_record(report_id: str, db: Session = Depends(get_db)):
    record = get_report_record(db, report_id)
    if record is None:
        raise ReportNotFound("Report not found")
    return ok(record_to_dict(record))
