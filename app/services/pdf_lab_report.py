# FILE: app/services/pdf_lab_report.py
from __future__ import annotations

import logging
from io import BytesIO
from typing import List, Optional

from reportlab.lib import colors
from reportlab.lib.units import mm
from reportlab.lib.utils import ImageReader
from reportlab.pdfbase.pdfmetrics import stringWidth
from reportlab.pdfgen import canvas

from app.core.config import settings
from app.services import report_layout as L
from app.services.letterhead_render import (draw_letterhead,
                                            draw_text_watermark, image_reader)
from app.services.qr import make_qr_png
from app.services.report_layout import ReportDocument, ReportRow

logger = logging.getLogger(__name__)

INK = colors.HexColor("#0F172A")
MUTED = colors.HexColor("#475569")
LINE = colors.HexColor("#E2E8F0")
SOFT = colors.HexColor("#F8FAFC")
HEAD = colors.HexColor("#3B82F6")
BADGE = colors.HexColor("#2563EB")
OK_GREEN = colors.HexColor("#15803D")
RED = colors.HexColor(L.ABNORMAL_COLOR)
WHITE = colors.white


def _wrap_simple(text: str, font: str, size: float, max_w: float) -> List[str]:
    s = (text or "").replace("\n", " ").strip()
    if not s:
        return []
    words = s.split()
    lines: List[str] = []
    cur = ""
    for w in words:
        cand = (cur + " " + w).strip()
        if stringWidth(cand, font, size) <= max_w:
            cur = cand
        else:
            if cur:
                lines.append(cur)
            cur = w
    if cur:
        lines.append(cur)
    return lines


def _draw_band_image(c: canvas.Canvas, reader: ImageReader, *, y: float,
                     h: float, page_w: float, anchor: str) -> None:
    try:
        c.drawImage(reader,
                    0,
                    y,
                    width=page_w,
                    height=h,
                    preserveAspectRatio=True,
                    anchor=anchor,
                    mask="auto")
    except Exception:
        logger.exception("Failed to draw report band image")


def build_report_pdf(doc: ReportDocument,
                     *,
                     compress: Optional[bool] = None) -> bytes:
    """
    A4 lab report.
    Header/footer bands and the table header repeat on every page;
    signatures, QR block and footnotes close the last page.
    """
    if compress is None:
        compress = settings.PDF_PAGE_COMPRESSION

    buf = BytesIO()
    c = canvas.Canvas(buf, pagesize=(L.PAGE_W_PT, L.PAGE_H_PT),
                      pageCompression=1 if compress else 0)
    c.setTitle(f"Lab Report {doc.report_id}")
    c.setAuthor(doc.verified_by or settings.REPORT_VERIFIED_BY)
    page_w, page_h = L.PAGE_W_PT, L.PAGE_H_PT

    HEADER_H = L.HEADER_BAND_MM * mm
    FOOTER_H = L.FOOTER_BAND_MM * mm
    LEFT = L.BODY_SIDE_MARGIN_MM * mm
    RIGHT = L.BODY_SIDE_MARGIN_MM * mm
    TABLE_W = page_w - LEFT - RIGHT
    PAD = 2 * mm

    widths = L.column_widths_pt(TABLE_W)
    col_x = [LEFT]
    for w in widths[:-1]:
        col_x.append(col_x[-1] + w)

    ROW_LIMIT = FOOTER_H + 5 * mm
    QR_SIZE = L.QR_SIZE_MM * mm
    QR_X = page_w - RIGHT - QR_SIZE
    QR_Y = (L.SIGNATURE_OFFSET_MM + 10) * mm
    CLOSING_TOP = QR_Y + QR_SIZE + 8 * mm

    header_reader = image_reader(doc.header_image)
    footer_reader = image_reader(doc.footer_image)
    watermark_reader = image_reader(doc.watermark_image)
    show_footer_note = bool(doc.letterhead is not None
                            and doc.letterhead.settings.show_footer
                            and doc.hospital is not None
                            and doc.hospital.footer_note)

    qr_png = make_qr_png(doc.verification_url or "")
    qr_reader = ImageReader(BytesIO(qr_png)) if qr_png else None

    page_no = 1
    current_y = page_h

    def draw_watermark():
        if watermark_reader is not None:
            c.saveState()
            try:
                c.setFillAlpha(0.1)
                c.drawImage(watermark_reader,
                            page_w * 0.1,
                            page_h * 0.1,
                            width=page_w * 0.8,
                            height=page_h * 0.8,
                            preserveAspectRatio=True,
                            anchor="c",
                            mask="auto")
            except Exception:
                logger.exception("Failed to draw watermark")
            finally:
                c.restoreState()
        elif doc.letterhead is not None:
            draw_text_watermark(c, doc.letterhead, page_w=page_w,
                                page_h=page_h)

    def draw_bands():
        if header_reader is not None:
            _draw_band_image(c, header_reader, y=page_h - HEADER_H,
                             h=HEADER_H, page_w=page_w, anchor="n")
        elif doc.letterhead is not None and doc.hospital is not None:
            draw_letterhead(c, doc.letterhead, doc.hospital, top_y=page_h)

        if footer_reader is not None:
            _draw_band_image(c, footer_reader, y=0, h=FOOTER_H,
                             page_w=page_w, anchor="s")
        elif show_footer_note:
            c.setFont("Helvetica", 8)
            c.setFillColor(MUTED)
            c.drawCentredString(page_w / 2, FOOTER_H / 2,
                                doc.hospital.footer_note)

        c.setFont("Helvetica", 7.2)
        c.setFillColor(MUTED)
        c.drawRightString(page_w - RIGHT, 3 * mm, f"Page {page_no}")

    def draw_table_header():
        nonlocal current_y
        h = 7 * mm
        c.setFillColor(HEAD)
        c.rect(LEFT, current_y - h, TABLE_W, h, stroke=0, fill=1)
        c.setFont("Helvetica-Bold", 9.5)
        c.setFillColor(WHITE)
        for i, title in enumerate(L.COLUMN_TITLES):
            if i == 0:
                c.drawString(col_x[i] + PAD, current_y - 4.8 * mm, title)
            else:
                c.drawCentredString(col_x[i] + widths[i] / 2,
                                    current_y - 4.8 * mm, title)
        current_y -= h + 1.5 * mm

    def draw_patient_block():
        nonlocal current_y
        # badge
        c.setFont("Helvetica-Bold", 9.5)
        tw = stringWidth("Lab Report", "Helvetica-Bold", 9.5)
        bw, bh = tw + 6 * mm, 5.5 * mm
        c.setFillColor(BADGE)
        c.roundRect((page_w - bw) / 2, current_y - bh, bw, bh, 2,
                    stroke=0, fill=1)
        c.setFillColor(WHITE)
        c.drawCentredString(page_w / 2, current_y - 3.9 * mm, "Lab Report")
        current_y -= bh + 5 * mm

        left_pairs = [
            ("Name:", doc.patient_name or "N/A"),
            ("Age:", doc.patient_age or "N/A"),
            ("Referred By:", doc.referred_by or "N/A"),
        ]
        right_pairs = [
            ("Gender:", doc.patient_gender or "N/A"),
            ("Received On:", doc.collected_text),
            ("Reported On:", doc.reported_text),
        ]
        label_w = 24 * mm
        right_x = LEFT + TABLE_W / 2 + 10 * mm
        for i, ((lk, lv), (rk, rv)) in enumerate(zip(left_pairs,
                                                     right_pairs)):
            y = current_y - i * 6 * mm
            c.setFillColor(MUTED)
            c.setFont("Helvetica-Bold", 10)
            c.drawString(LEFT, y, lk)
            c.drawString(right_x, y, rk)
            c.setFillColor(INK)
            c.setFont("Helvetica-Bold", 11)
            c.drawString(LEFT + label_w, y, str(lv))
            c.drawString(right_x + label_w, y, str(rv))
        current_y -= 3 * 6 * mm + 4 * mm

        # test banner
        title = doc.test_name or "Laboratory Test"
        c.setFont("Helvetica-Bold", 13)
        c.setFillColor(INK)
        c.drawCentredString(page_w / 2, current_y, title)
        tw = stringWidth(title, "Helvetica-Bold", 13)
        c.setStrokeColor(INK)
        c.setLineWidth(1.2)
        c.line((page_w - tw) / 2 - 3 * mm, current_y - 2 * mm,
               (page_w + tw) / 2 + 3 * mm, current_y - 2 * mm)
        current_y -= 8 * mm

    def start_page(first: bool, with_table: bool = True):
        nonlocal current_y
        draw_watermark()
        draw_bands()
        current_y = page_h - HEADER_H - L.BODY_TOP_GAP_MM * mm
        if first:
            draw_patient_block()
        if with_table:
            draw_table_header()

    def new_page(with_table: bool = True):
        nonlocal page_no
        c.showPage()
        page_no += 1
        start_page(first=False, with_table=with_table)

    def draw_arrow(x: float, y: float, up: bool):
        size = 2.4 * mm
        p = c.beginPath()
        if up:
            p.moveTo(x, y)
            p.lineTo(x + size, y)
            p.lineTo(x + size / 2, y + size)
        else:
            p.moveTo(x, y + size)
            p.lineTo(x + size, y + size)
            p.lineTo(x + size / 2, y)
        p.close()
        c.setFillColor(RED)
        c.drawPath(p, stroke=0, fill=1)

    def draw_row(row: ReportRow, zebra: bool):
        nonlocal current_y
        if row.placeholder:
            h = 10 * mm
            if current_y - h < ROW_LIMIT:
                new_page()
            c.setFont("Helvetica-Oblique", 9.5)
            c.setFillColor(MUTED)
            c.drawCentredString(page_w / 2, current_y - 6 * mm, row.label)
            current_y -= h
            return

        label_lines = _wrap_simple(row.label, "Helvetica-Bold", 9.5,
                                   widths[0] - 2 * PAD) or ["-"]
        ref_lines = _wrap_simple(row.ref_range or "-", "Helvetica", 9,
                                 widths[3] - 2 * PAD) or ["-"]
        n = max(len(label_lines), len(ref_lines), 1)
        h = (n * 4.4 + 3.0) * mm

        if current_y - h < ROW_LIMIT:
            new_page()

        top = current_y
        bottom = top - h
        if zebra:
            c.setFillColor(SOFT)
            c.rect(LEFT, bottom, TABLE_W, h, stroke=0, fill=1)

        y_line = top - 4.6 * mm

        c.setFillColor(INK)
        c.setFont("Helvetica-Bold", 9.5)
        for i, ln in enumerate(label_lines):
            c.drawString(col_x[0] + PAD, y_line - i * 4.4 * mm, ln)

        value_font = "Helvetica-Bold"
        c.setFont(value_font, 10.5)
        c.setFillColor(RED if row.abnormal else INK)
        cx = col_x[1] + widths[1] / 2
        c.drawCentredString(cx, y_line, row.value)
        if row.abnormal:
            vw = stringWidth(row.value, value_font, 10.5)
            draw_arrow(cx + vw / 2 + 1.2 * mm, y_line,
                       up=row.abnormal == "high")

        c.setFillColor(MUTED)
        c.setFont("Helvetica", 9)
        c.drawCentredString(col_x[2] + widths[2] / 2, y_line,
                            row.unit or "-")
        for i, ln in enumerate(ref_lines):
            c.drawCentredString(col_x[3] + widths[3] / 2,
                                y_line - i * 4.4 * mm, ln)

        c.setStrokeColor(LINE)
        c.setLineWidth(0.6)
        c.line(LEFT, bottom, LEFT + TABLE_W, bottom)
        current_y = bottom

    def draw_closing():
        # signatures
        sig_y = L.SIGNATURE_OFFSET_MM * mm
        for i, (name, qual) in enumerate(doc.signatories[:2]):
            c.setFillColor(INK)
            c.setFont("Helvetica-Bold", 10.5)
            if i == 0:
                c.drawString(LEFT, sig_y, name)
            else:
                c.drawRightString(QR_X - 6 * mm, sig_y, name)
            if qual:
                c.setFont("Helvetica", 8.5)
                c.setFillColor(MUTED)
                if i == 0:
                    c.drawString(LEFT, sig_y - 4 * mm, qual)
                else:
                    c.drawRightString(QR_X - 6 * mm, sig_y - 4 * mm, qual)

        # qr block, bottom-right
        if qr_reader is not None:
            try:
                c.drawImage(qr_reader, QR_X, QR_Y, width=QR_SIZE,
                            height=QR_SIZE, mask="auto")
                c.setFont("Helvetica", 8)
                c.setFillColor(INK)
                c.drawCentredString(QR_X + QR_SIZE / 2,
                                    QR_Y + QR_SIZE + 2 * mm,
                                    "Scan to verify report")
                c.setFont("Helvetica-Bold", 8)
                c.setFillColor(OK_GREEN)
                c.drawRightString(
                    page_w - RIGHT, QR_Y - 4 * mm,
                    f"Verified with {doc.verified_by or settings.REPORT_VERIFIED_BY}"
                )
            except Exception:
                logger.exception("Failed to draw QR block for %s",
                                 doc.report_id)

        # footnotes
        c.setFont("Helvetica", 7)
        c.setFillColor(MUTED)
        ny = L.NOTES_OFFSET_MM * mm
        for note in doc.footnotes:
            c.drawCentredString(page_w / 2, ny, note)
            ny -= 3.2 * mm

    # start
    start_page(first=True)
    for i, row in enumerate(doc.rows):
        draw_row(row, zebra=i % 2 == 1)

    if current_y < CLOSING_TOP:
        new_page(with_table=False)
    draw_closing()

    c.save()
    return buf.getvalue()
