# FILE: app/services/lab_reports.py
from __future__ import annotations

import logging
import uuid
from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.errors import (ReportConflict, ReportNotFound, ReportStoreError,
                             ReportValidationError)
from app.models.report import LabReport, ReportRecord
from app.schemas.letterhead import LetterheadTemplate
from app.schemas.report import (FinalizedReportOut, LabReportCreate,
                                LabReportStatus)
from app.services.field_resolver import HospitalProfile
from app.services.report_html import render_report_html
from app.services.report_layout import (ReportDocument, evaluate_range,
                                        prepare_rows)
from app.services.report_links import (build_report_url, build_verify_url,
                                       new_report_id, new_token)
from app.services.report_records import (age_text,
                                         ensure_verification_identifiers,
                                         get_report_record)

logger = logging.getLogger(__name__)

STATUS_ORDER: Dict[str, int] = {"draft": 0, "completed": 1, "printed": 2}


def new_lab_report_id() -> str:
    return "LR" + uuid.uuid4().hex.upper()


def default_link_base() -> str:
    """Link base for callers without an inbound request."""
    return settings.SITE_URL.rstrip("/") + settings.API_V1_STR.rstrip("/")


def _commit(db: Session, what: str) -> None:
    try:
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.exception("lab report store failure during %s", what)
        raise ReportStoreError() from e


def clean_parameters(params: List[Any]) -> List[Dict[str, Any]]:
    """
    Drop entries without id/label, default optional text to "",
    recompute isAbnormal from value vs refRange.
    """
    out: List[Dict[str, Any]] = []
    for p in params:
        if p is None or not p.id or not p.label:
            continue
        value = p.value or ""
        ref = p.ref_range or ""
        out.append({
            "id": p.id,
            "label": p.label,
            "value": value,
            "unit": p.unit or "",
            "refRange": ref,
            "isAbnormal": evaluate_range(value, ref) is not None,
            "notes": p.notes or "",
        })
    return out


# ---------------------------
# CRUD
# ---------------------------
def save_lab_report(db: Session, payload: LabReportCreate) -> LabReport:
    if not (payload.patient_id or "").strip() or not (payload.test_id
                                                      or "").strip():
        raise ReportValidationError(
            "Missing required fields: patientId or testId")
    if payload.parameters is None:
        raise ReportValidationError("Invalid parameters data")

    now = datetime.utcnow()
    age = payload.patient_age
    row = LabReport(
        id=new_lab_report_id(),
        patient_id=payload.patient_id.strip(),
        patient_name=payload.patient_name or "",
        patient_age=str(age) if age not in (None, "") else "0",
        patient_gender=payload.patient_gender or "Unknown",
        referred_by=payload.referred_by,
        test_id=payload.test_id.strip(),
        test_name=payload.test_name or "",
        hospital_id=payload.hospital_id,
        parameters=clean_parameters(payload.parameters),
        collected_at=payload.collected_at or now,
        reported_at=payload.reported_at or now,
        collected_by=payload.collected_by or "System",
        technician_name=payload.technician_name or "System",
        status=payload.status or "draft",
        created_at=now,
        updated_at=now,
    )
    db.add(row)
    _commit(db, "save")
    db.refresh(row)
    logger.info("Lab report saved: %s (patient=%s test=%s)", row.id,
                row.patient_id, row.test_id)
    return row


def get_lab_report(db: Session, lab_report_id: str) -> LabReport:
    try:
        row = db.get(LabReport, lab_report_id)
    except SQLAlchemyError as e:
        logger.exception("lab report lookup failed: %s", lab_report_id)
        raise ReportStoreError() from e
    if row is None:
        raise ReportNotFound("Report not found")
    return row


def list_patient_lab_reports(db: Session, patient_id: str) -> List[LabReport]:
    stmt = (select(LabReport).where(LabReport.patient_id == patient_id).order_by(
        LabReport.created_at.desc(), LabReport.id.desc()))
    try:
        return list(db.execute(stmt).scalars().all())
    except SQLAlchemyError as e:
        logger.exception("lab report list failed: patient=%s", patient_id)
        raise ReportStoreError() from e


def update_lab_report_status(db: Session, lab_report_id: str,
                             status: LabReportStatus) -> LabReport:
    """draft -> completed -> printed. Same status is a no-op."""
    row = get_lab_report(db, lab_report_id)
    current = row.status or "draft"
    if status == current:
        return row
    if STATUS_ORDER[status] < STATUS_ORDER.get(current, 0):
        raise ReportConflict(f"Cannot move report from {current} to {status}")
    row.status = status
    row.updated_at = datetime.utcnow()
    _commit(db, "status")
    db.refresh(row)
    logger.info("Lab report %s status %s -> %s", row.id, current, status)
    return row


def lab_report_to_dict(row: LabReport) -> Dict[str, Any]:
    return {
        "id": row.id,
        "patientId": row.patient_id,
        "patientName": row.patient_name,
        "patientAge": row.patient_age,
        "patientGender": row.patient_gender,
        "referredBy": row.referred_by,
        "testId": row.test_id,
        "testName": row.test_name,
        "hospitalId": row.hospital_id,
        "parameters": row.parameters or [],
        "collectedAt": row.collected_at,
        "reportedAt": row.reported_at,
        "collectedBy": row.collected_by,
        "technicianName": row.technician_name,
        "status": row.status,
        "reportId": row.report_id,
        "createdAt": row.created_at,
        "updatedAt": row.updated_at,
    }


# ---------------------------
# Finalize -> immutable snapshot
# ---------------------------
def _snapshot_from_lab_report(row: LabReport) -> ReportRecord:
    params = row.parameters or []
    return ReportRecord(
        report_id=new_report_id(),
        patient_id=row.patient_id,
        test_id=row.test_id,
        test_name=row.test_name or "",
        hospital_id=row.hospital_id,
        patient={
            "id": row.patient_id,
            "name": row.patient_name,
            "age": row.patient_age,
            "gender": row.patient_gender,
        },
        parameters={p["id"]: {"value": p.get("value", "")} for p in params},
        test_config={
            "fields": [{
                "id": p["id"],
                "label": p.get("label") or p["id"],
                "unit": p.get("unit") or None,
                "refRange": p.get("refRange") or None,
            } for p in params]
        },
        referred_by=row.referred_by,
        collected_at=row.collected_at,
        reported_at=row.reported_at,
        token=new_token(),
    )


def finalize_lab_report(db: Session,
                        lab_report_id: str,
                        base_url: Optional[str] = None) -> FinalizedReportOut:
    base_url = base_url or default_link_base()
    row = get_lab_report(db, lab_report_id)

    record = get_report_record(db, row.report_id) if row.report_id else None
    if record is None:
        record = _snapshot_from_lab_report(row)
        db.add(record)
        row.report_id = record.report_id
        if row.status == "draft":
            row.status = "completed"
        row.updated_at = datetime.utcnow()
        _commit(db, "finalize")
        db.refresh(record)
        logger.info("Lab report %s finalized as %s", row.id, record.report_id)

    record = ensure_verification_identifiers(db, record)
    return FinalizedReportOut(
        lab_report_id=row.id,
        report_id=record.report_id,
        token=record.token,
        url=build_report_url(base_url, record.report_id, record.token),
        verify_url=build_verify_url(base_url, record.qr_id, record.token),
    )


# ---------------------------
# Print preview
# ---------------------------
def lab_report_to_document(
        row: LabReport,
        *,
        verification_url: Optional[str] = None,
        letterhead: Optional[LetterheadTemplate] = None,
        hospital: Optional[HospitalProfile] = None) -> ReportDocument:
    return ReportDocument(
        report_id=row.report_id or row.id,
        patient_name=row.patient_name or "",
        patient_age=age_text(row.patient_age),
        patient_gender=row.patient_gender or "",
        referred_by=row.referred_by or settings.REPORT_DEFAULT_REFERRER,
        test_name=row.test_name or "",
        collected_at=row.collected_at,
        reported_at=row.reported_at,
        rows=prepare_rows(row.parameters or []),
        verification_url=verification_url,
        header_image=settings.REPORT_HEADER_IMAGE or None,
        footer_image=settings.REPORT_FOOTER_IMAGE or None,
        watermark_image=settings.REPORT_WATERMARK_IMAGE or None,
        letterhead=letterhead,
        hospital=hospital,
        signatories=list(settings.REPORT_SIGNATORIES),
        verified_by=settings.REPORT_VERIFIED_BY,
    )


def render_lab_report_preview(
        db: Session,
        lab_report_id: str,
        *,
        base_url: Optional[str] = None,
        letterhead: Optional[LetterheadTemplate] = None,
        hospital: Optional[HospitalProfile] = None) -> str:
    """
    Print-preview HTML. The QR points at the verification link once the
    report has been finalized; drafts render without one.
    """
    row = get_lab_report(db, lab_report_id)
    base_url = base_url or default_link_base()
    verify_url = None
    if row.report_id:
        record = get_report_record(db, row.report_id)
        if record is not None:
            record = ensure_verification_identifiers(db, record)
            verify_url = build_verify_url(base_url, record.qr_id, record.token)
    doc = lab_report_to_document(row,
                                 verification_url=verify_url,
                                 letterhead=letterhead,
                                 hospital=hospital)
    return render_report_html(doc)
