# FILE: app/services/report_html.py
from __future__ import annotations

from pathlib import Path
from typing import Optional

from jinja2 import Environment, FileSystemLoader, select_autoescape

from app.core.config import settings
from app.schemas.letterhead import LetterheadTemplate
from app.services import report_layout as L
from app.services.field_resolver import HospitalProfile
from app.services.letterhead_render import (image_src_for_html,
                                            render_letterhead_html)
from app.services.qr import qr_data_uri
from app.services.report_layout import ReportDocument

# ---------- Jinja environment for report pages ----------
TEMPLATES_DIR = Path(__file__).resolve().parents[1] / "templates"
_env = Environment(
    loader=FileSystemLoader(str(TEMPLATES_DIR)),
    autoescape=select_autoescape(["html", "xml"]),
)

REDIRECT_DELAY_MS = 400
HEADER_BAND_PX = L.HEADER_BAND_MM / 25.4 * 96


def render_report_html(doc: ReportDocument) -> str:
    """
    Screen/print rendering of a lab report.
    QR sits between the two patient columns; missing QR leaves the slot empty.
    """
    letterhead_html = None
    footer_note = None
    if doc.letterhead is not None and doc.hospital is not None:
        if not doc.header_image:
            letterhead_html = render_letterhead_html(
                doc.letterhead, doc.hospital, height_px=HEADER_BAND_PX)
        if doc.letterhead.settings.show_footer:
            footer_note = doc.hospital.footer_note or None

    tpl = _env.get_template("report/lab_report.html")
    return tpl.render(
        doc=doc,
        L=L,
        qr_src=qr_data_uri(doc.verification_url or ""),
        header_src=image_src_for_html(doc.header_image),
        footer_src=image_src_for_html(doc.footer_image),
        watermark_src=image_src_for_html(doc.watermark_image),
        letterhead_html=letterhead_html,
        footer_note=footer_note,
    )


def render_verification_page(report_url: str,
                             verified_by: Optional[str] = None) -> str:
    tpl = _env.get_template("report/verify.html")
    return tpl.render(
        report_url=report_url,
        verified_by=verified_by or settings.REPORT_VERIFIED_BY,
        delay_ms=REDIRECT_DELAY_MS,
    )


def render_letterhead_page(template: LetterheadTemplate,
                           hospital: HospitalProfile) -> str:
    tpl = _env.get_template("letterhead/preview.html")
    return tpl.render(
        template=template,
        hospital=hospital,
        L=L,
        letterhead_html=render_letterhead_html(template, hospital,
                                               height_px=HEADER_BAND_PX),
    )
