# FILE: app/api/routes_public_report.py
from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FuturesTimeout
from typing import Any, Callable, Literal, Optional, Tuple

from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import HTMLResponse, Response
from sqlalchemy.orm import Session

from app.api.deps import get_db, get_letterhead_store, get_profile_store
from app.core.config import settings
from app.core.errors import (ReportError, ReportNotFound, ReportRenderTimeout,
                             ReportStoreError, ReportValidationError)
from app.models.report import ReportRecord
from app.schemas.letterhead import LetterheadTemplate
from app.services.field_resolver import HospitalProfile, HospitalProfileStore
from app.services.letterhead_store import LetterheadStore
from app.services.pdf_lab_report import build_report_pdf
from app.services.report_html import (render_report_html,
                                      render_verification_page)
from app.services.report_links import (build_report_url, build_verify_url,
                                       report_base_from_request)
from app.services.report_records import (check_token,
                                         ensure_verification_identifiers,
                                         get_report_record,
                                         get_report_record_by_qr_id,
                                         record_to_document)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/report", tags=["Public Report"])

# PDF/HTML generation runs here so the request can give up on it
_render_pool = ThreadPoolExecutor(max_workers=settings.REPORT_RENDER_WORKERS,
                                  thread_name_prefix="report-render")


# ---------------- helpers ----------------


def _render(fn: Callable[..., Any], *args: Any, ref: str) -> Any:
    fut = _render_pool.submit(fn, *args)
    try:
        return fut.result(timeout=settings.REPORT_RENDER_TIMEOUT_SECONDS)
    except FuturesTimeout as e:
        fut.cancel()
        logger.error("Report render timed out: report=%s stage=render", ref)
        raise ReportRenderTimeout() from e
    except ReportError:
        raise
    except Exception as e:
        logger.exception("Report render failed: report=%s stage=render", ref)
        raise ReportError() from e


def _lookup(fn: Callable[[], Optional[ReportRecord]],
            ref: str) -> Optional[ReportRecord]:
    try:
        return fn()
    except ReportStoreError:
        logger.error("Report lookup failed: %s stage=lookup", ref)
        raise


def _branding(
    letterheads: LetterheadStore,
    profiles: HospitalProfileStore,
    record: ReportRecord,
) -> Tuple[Optional[LetterheadTemplate], Optional[HospitalProfile]]:
    """Composed header band only when no header image is configured."""
    if settings.REPORT_HEADER_IMAGE:
        return None, None
    template = letterheads.get_default_template("report")
    if template is None:
        return None, None
    return template, profiles.get_or_default(record.hospital_id)


# ---------------- endpoints ----------------


@router.get("", include_in_schema=False)
@router.get("/", include_in_schema=False)
def missing_report_id():
    raise ReportValidationError("Missing reportId")


@router.get("/verify", include_in_schema=False)
@router.get("/verify/", include_in_schema=False)
def missing_qr_id():
    raise ReportValidationError("Missing qrId")


@router.get("/verify/{qr_id}", response_class=HTMLResponse)
def verify_report(
        qr_id: str,
        request: Request,
        token: Optional[str] = Query(None),
        db: Session = Depends(get_db),
):
    qr_id = qr_id.strip()
    if not qr_id:
        raise ReportValidationError("Missing qrId")

    record = _lookup(lambda: get_report_record_by_qr_id(db, qr_id),
                     f"qr={qr_id}")
    if record is None:
        raise ReportNotFound("QR not found")

    check_token(record, token)

    report_url = build_report_url(report_base_from_request(request),
                                  record.report_id, record.token)
    logger.info("QR verified for report %s", record.report_id)
    return HTMLResponse(render_verification_page(report_url))


@router.get("/{report_id}")
def fetch_report(
        report_id: str,
        request: Request,
        token: Optional[str] = Query(None),
        format: Literal["pdf", "html"] = Query("pdf"),
        db: Session = Depends(get_db),
        letterheads: LetterheadStore = Depends(get_letterhead_store),
        profiles: HospitalProfileStore = Depends(get_profile_store),
):
    report_id = report_id.strip()
    if not report_id:
        raise ReportValidationError("Missing reportId")

    record = _lookup(lambda: get_report_record(db, report_id),
                     f"report={report_id}")
    if record is None:
        raise ReportNotFound("Report not found")

    check_token(record, token)

    try:
        record = ensure_verification_identifiers(db, record)
    except ReportStoreError:
        logger.error("Report fetch failed: report=%s stage=ensure_ids",
                     report_id)
        raise

    verify_url = build_verify_url(report_base_from_request(request),
                                  record.qr_id, record.token)
    template, hospital = _branding(letterheads, profiles, record)
    doc = record_to_document(record,
                             verification_url=verify_url,
                             letterhead=template,
                             hospital=hospital)

    if format == "html":
        html = _render(render_report_html, doc, ref=report_id)
        return HTMLResponse(html)

    pdf = _render(build_report_pdf, doc, ref=report_id)
    return Response(
        content=pdf,
        media_type="application/pdf",
        headers={
            "Content-Disposition": f"inline; filename=report-{report_id}.pdf"
        },
    )
