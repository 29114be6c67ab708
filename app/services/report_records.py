# FILE: app/services/report_records.py
from __future__ import annotations

import hmac
import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from sqlalchemy import select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.errors import (ReportForbidden, ReportStoreError,
                             ReportValidationError)
from app.models.report import ReportRecord
from app.schemas.letterhead import LetterheadTemplate
from app.schemas.report import ReportSnapshotIn
from app.services.field_resolver import HospitalProfile
from app.services.report_layout import ReportDocument, prepare_rows
from app.services.report_links import new_qr_id, new_report_id, new_token

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class IssuedReport:
    report_id: str
    token: Optional[str]


def _store_call(db: Session, what: str, fn):
    try:
        return fn()
    except SQLAlchemyError as e:
        db.rollback()
        logger.exception("report store failure during %s", what)
        raise ReportStoreError() from e


# ---------------------------
# Create / read
# ---------------------------
def create_report_record(db: Session,
                         snapshot: ReportSnapshotIn) -> IssuedReport:
    if not (snapshot.patient_id or "").strip():
        raise ReportValidationError("Missing patientId")
    if not (snapshot.test_id or "").strip():
        raise ReportValidationError("Missing testId")

    token = new_token() if snapshot.issue_token else None
    rec = ReportRecord(
        report_id=new_report_id(),
        patient_id=snapshot.patient_id.strip(),
        test_id=snapshot.test_id.strip(),
        test_name=snapshot.test_name or "",
        hospital_id=snapshot.hospital_id,
        patient=snapshot.patient.model_dump(mode="json", by_alias=True),
        parameters={
            k: v.model_dump(mode="json", by_alias=True)
            for k, v in snapshot.parameters.items()
        },
        test_config=snapshot.test_config.model_dump(mode="json",
                                                    by_alias=True,
                                                    exclude_none=True),
        referred_by=snapshot.referred_by,
        collected_at=snapshot.collected_at,
        reported_at=snapshot.reported_at,
        token=token,
    )

    def _save():
        db.add(rec)
        db.commit()
        db.refresh(rec)

    _store_call(db, "create", _save)
    logger.info("Report record created: %s (patient=%s test=%s)",
                rec.report_id, rec.patient_id, rec.test_id)
    return IssuedReport(report_id=rec.report_id, token=token)


def get_report_record(db: Session, report_id: str) -> Optional[ReportRecord]:
    return _store_call(db, "lookup",
                       lambda: db.get(ReportRecord, report_id))


def get_report_record_by_qr_id(db: Session,
                               qr_id: str) -> Optional[ReportRecord]:
    stmt = select(ReportRecord).where(ReportRecord.qr_id == qr_id).limit(1)
    return _store_call(db, "lookup", lambda: db.execute(stmt).scalars().first())


# ---------------------------
# Verification identifiers
# ---------------------------
def ensure_verification_identifiers(db: Session,
                                    record: ReportRecord) -> ReportRecord:
    """
    Set token / qr_id only where still NULL, then re-read.
    Concurrent first reads converge on whichever write landed first.
    """
    if record.token and record.qr_id:
        return record

    rid = record.report_id

    def _provision():
        if not record.token:
            db.execute(
                update(ReportRecord).where(
                    ReportRecord.report_id == rid,
                    ReportRecord.token.is_(None)).values(token=new_token()))
        if not record.qr_id:
            db.execute(
                update(ReportRecord).where(
                    ReportRecord.report_id == rid,
                    ReportRecord.qr_id.is_(None)).values(qr_id=new_qr_id()))
        db.commit()
        db.expire(record)
        db.refresh(record)
        return record

    out = _store_call(db, "ensure_ids", _provision)
    logger.info("Verification identifiers ensured for %s", rid)
    return out


def check_token(record: ReportRecord, supplied: Optional[str]) -> None:
    """Stored token -> exact match required. No stored token -> open."""
    stored = record.token
    if not stored:
        return
    if supplied is None or not hmac.compare_digest(
            str(supplied).encode("utf-8"), stored.encode("utf-8")):
        raise ReportForbidden()


# ---------------------------
# Snapshot -> renderer input
# ---------------------------
def age_text(age: Any) -> str:
    if age is None or str(age).strip() == "":
        return ""
    s = str(age).strip()
    return f"{s} Years" if s.replace(".", "", 1).isdigit() else s


def snapshot_parameters(record: ReportRecord) -> List[Dict[str, Any]]:
    """
    Parameter rows in testConfig.fields order. Values present in the
    snapshot without a field config are appended using the field id.
    """
    params: Dict[str, Any] = record.parameters or {}
    fields = (record.test_config or {}).get("fields") or []

    out: List[Dict[str, Any]] = []
    seen = set()
    for f in fields:
        fid = f.get("id")
        if not fid:
            continue
        seen.add(fid)
        pv = params.get(fid) or {}
        out.append({
            "label": f.get("label") or fid,
            "value": pv.get("value") if isinstance(pv, dict) else pv,
            "unit": f.get("unit"),
            "refRange": f.get("refRange"),
        })
    for fid, pv in params.items():
        if fid in seen:
            continue
        out.append({
            "label": fid,
            "value": pv.get("value") if isinstance(pv, dict) else pv,
        })
    return out


def record_to_document(record: ReportRecord,
                       *,
                       verification_url: Optional[str],
                       letterhead: Optional[LetterheadTemplate] = None,
                       hospital: Optional[HospitalProfile] = None
                       ) -> ReportDocument:
    patient = record.patient or {}
    return ReportDocument(
        report_id=record.report_id,
        patient_name=str(patient.get("name") or ""),
        patient_age=age_text(patient.get("age")),
        patient_gender=str(patient.get("gender") or ""),
        referred_by=record.referred_by or settings.REPORT_DEFAULT_REFERRER,
        test_name=record.test_name or "",
        collected_at=record.collected_at,
        reported_at=record.reported_at or record.created_at,
        rows=prepare_rows(snapshot_parameters(record)),
        verification_url=verification_url,
        header_image=settings.REPORT_HEADER_IMAGE or None,
        footer_image=settings.REPORT_FOOTER_IMAGE or None,
        watermark_image=settings.REPORT_WATERMARK_IMAGE or None,
        letterhead=letterhead,
        hospital=hospital,
        signatories=list(settings.REPORT_SIGNATORIES),
        verified_by=settings.REPORT_VERIFIED_BY,
    )


def record_to_dict(record: ReportRecord) -> Dict[str, Any]:
    """Snapshot for JSON responses. The token is never included."""
    return {
        "reportId": record.report_id,
        "patientId": record.patient_id,
        "testId": record.test_id,
        "testName": record.test_name,
        "hospitalId": record.hospital_id,
        "patient": record.patient or {},
        "parameters": record.parameters or {},
        "testConfig": record.test_config or {},
        "referredBy": record.referred_by,
        "collectedAt": record.collected_at,
        "reportedAt": record.reported_at,
        "createdAt": record.created_at,
        "qrId": record.qr_id,
        "hasToken": bool(record.token),
    }
