# FILE: app/api/routes_lab_reports.py
from __future__ import annotations

from fastapi import APIRouter, Depends, Request
from fastapi.responses import HTMLResponse
from sqlalchemy.orm import Session

from app.api.deps import get_db, get_letterhead_store, get_profile_store
from app.api.response import ok
from app.core.config import settings
from app.schemas.report import LabReportCreate, LabReportStatusIn
from app.services.field_resolver import HospitalProfileStore
from app.services.lab_reports import (finalize_lab_report, get_lab_report,
                                      lab_report_to_dict,
                                      list_patient_lab_reports,
                                      render_lab_report_preview,
                                      save_lab_report, update_lab_report_status)
from app.services.letterhead_store import LetterheadStore
from app.services.report_links import api_base_from_request

router = APIRouter(tags=["Lab Reports"])


@router.post("/lab-reports")
def create_lab_report(payload: LabReportCreate, db: Session = Depends(get_db)):
    row = save_lab_report(db, payload)
    return ok(lab_report_to_dict(row), status_code=201)


@router.get("/lab-reports/{lab_report_id}")
def read_lab_report(lab_report_id: str, db: Session = Depends(get_db)):
    return ok(lab_report_to_dict(get_lab_report(db, lab_report_id)))


@router.get("/patients/{patient_id}/lab-reports")
def patient_lab_reports(patient_id: str, db: Session = Depends(get_db)):
    rows = list_patient_lab_reports(db, patient_id)
    return ok([lab_report_to_dict(r) for r in rows], meta={"count": len(rows)})


@router.patch("/lab-reports/{lab_report_id}/status")
def change_status(
        lab_report_id: str,
        payload: LabReportStatusIn,
        db: Session = Depends(get_db),
):
    row = update_lab_report_status(db, lab_report_id, payload.status)
    return ok(lab_report_to_dict(row))


@router.post("/lab-reports/{lab_report_id}/finalize")
def finalize(
        lab_report_id: str,
        request: Request,
        db: Session = Depends(get_db),
):
    out = finalize_lab_report(db, lab_report_id,
                              api_base_from_request(request,
                                                    settings.API_V1_STR))
    return ok(out.model_dump(by_alias=True))


@router.get("/lab-reports/{lab_report_id}/preview",
            response_class=HTMLResponse)
def preview(
        lab_report_id: str,
        request: Request,
        db: Session = Depends(get_db),
        letterheads: LetterheadStore = Depends(get_letterhead_store),
        profiles: HospitalProfileStore = Depends(get_profile_store),
):
    row = get_lab_report(db, lab_report_id)
    template = None
    hospital = None
    if not settings.REPORT_HEADER_IMAGE:
        template = letterheads.get_default_template("report")
        hospital = profiles.get_or_default(row.hospital_id)
    html = render_lab_report_preview(
        db,
        lab_report_id,
        base_url=api_base_from_request(request, settings.API_V1_STR),
        letterhead=template,
        hospital=hospital,
    )
    return HTMLResponse(html)
