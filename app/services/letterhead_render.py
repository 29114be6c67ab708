# FILE: app/services/letterhead_render.py
from __future__ import annotations

import base64
import binascii
import logging
import re
from io import BytesIO
from pathlib import Path
from typing import Any, List, Optional

from markupsafe import Markup
from reportlab.lib import colors
from reportlab.lib.utils import ImageReader
from reportlab.pdfgen import canvas

from app.core.config import settings
from app.schemas.letterhead import (Element, ElementStyle, FieldElement,
                                    HtmlElement, LetterheadTemplate,
                                    LineElement, LogoElement, TextElement)
from app.services.field_resolver import HospitalProfile, resolve_field
from app.services.report_layout import PX_TO_PT

logger = logging.getLogger(__name__)

DEFAULT_LOGO_W, DEFAULT_LOGO_H = 120, 50
DEFAULT_FONT_PX = 14

# ---------------------------
# HTML sanitizing
# ---------------------------
_BLOCK_RE = re.compile(r"<(script|style)\b[^>]*>.*?</\1\s*>",
                       re.IGNORECASE | re.DOTALL)
_OPEN_BLOCK_RE = re.compile(r"<(script|style)\b[^>]*>",
                            re.IGNORECASE)
_EVENT_ATTR_RE = re.compile(
    r"""\s+on[a-z]+\s*=\s*(?:"[^"]*"|'[^']*'|[^\s>]+)""", re.IGNORECASE)
_JS_URL_RE = re.compile(
    r"""(\s(?:href|src|action|formaction|xlink:href)\s*=\s*)(["']?)\s*javascript:[^"'\s>]*\2""",
    re.IGNORECASE)
_TAG_RE = re.compile(r"<[^>]+>")


def sanitize_html(html: str) -> str:
    """
    Drops script/style blocks, on* handlers and javascript: urls.
    Everything else is passed through.
    """
    s = _BLOCK_RE.sub("", html or "")
    s = _OPEN_BLOCK_RE.sub("", s)
    s = _EVENT_ATTR_RE.sub("", s)
    s = _JS_URL_RE.sub(r'\1"#"', s)
    return s


def html_to_text(html: str) -> str:
    text = _TAG_RE.sub(" ", sanitize_html(html))
    text = (text.replace("&nbsp;", " ").replace("&amp;", "&").replace(
        "&lt;", "<").replace("&gt;", ">"))
    return " ".join(text.split())


# ---------------------------
# Images
# ---------------------------
def _is_data_uri(src: str) -> bool:
    return src.startswith("data:")


def _is_remote(src: str) -> bool:
    return src.startswith("http://") or src.startswith("https://")


def storage_path(rel: Optional[str]) -> Optional[Path]:
    rel = (rel or "").strip().lstrip("/")
    if not rel:
        return None
    root = Path(settings.STORAGE_DIR).resolve()
    p = (root / rel).resolve()
    # keep lookups inside STORAGE_DIR
    if root not in p.parents and p != root:
        return None
    return p if p.is_file() else None


def image_src_for_html(src: Optional[str]) -> Optional[str]:
    s = (src or "").strip()
    if not s:
        return None
    if _is_data_uri(s) or _is_remote(s) or s.startswith("/"):
        return s
    return f"{settings.MEDIA_URL.rstrip('/')}/{s}"


def image_reader(src: Optional[str]) -> Optional[ImageReader]:
    """
    data uri or storage-relative path -> ImageReader.
    Remote urls are not fetched for PDF output.
    """
    s = (src or "").strip()
    if not s:
        return None
    try:
        if _is_data_uri(s):
            _, _, payload = s.partition(",")
            return ImageReader(BytesIO(base64.b64decode(payload)))
        if _is_remote(s):
            return None
        p = storage_path(s)
        return ImageReader(str(p)) if p else None
    except (binascii.Error, OSError, ValueError):
        logger.warning("Unreadable image reference: %.60s", s)
        return None


# ---------------------------
# Style helpers
# ---------------------------
_RGBA_RE = re.compile(
    r"rgba?\(\s*(\d+)\s*,\s*(\d+)\s*,\s*(\d+)\s*(?:,\s*([\d.]+)\s*)?\)",
    re.IGNORECASE)


def pdf_color(value: Optional[str], default: Any = colors.black) -> Any:
    v = (value or "").strip()
    if not v:
        return default
    m = _RGBA_RE.match(v)
    if m:
        r, g, b = (int(m.group(i)) / 255.0 for i in (1, 2, 3))
        a = float(m.group(4)) if m.group(4) else 1.0
        return colors.Color(r, g, b, alpha=a)
    if v.startswith("#"):
        h = v[1:]
        if len(h) == 3:
            h = "".join(ch * 2 for ch in h)
        if len(h) == 6:
            try:
                return colors.HexColor("#" + h)
            except ValueError:
                return default
    return default


def pdf_font(style: Optional[ElementStyle]) -> str:
    bold = False
    italic = False
    if style is not None:
        w = style.font_weight
        bold = str(w).lower() == "bold" or (str(w).isdigit() and int(w) >= 600)
        italic = style.font_style in ("italic", "oblique")
    if bold and italic:
        return "Helvetica-BoldOblique"
    if bold:
        return "Helvetica-Bold"
    if italic:
        return "Helvetica-Oblique"
    return "Helvetica"


def _font_px(style: Optional[ElementStyle]) -> float:
    if style is not None and style.font_size:
        return float(style.font_size)
    return float(DEFAULT_FONT_PX)


def _css(style: Optional[ElementStyle]) -> str:
    if style is None:
        return ""
    parts: List[str] = []
    if style.color:
        parts.append(f"color:{style.color}")
    if style.font_family:
        parts.append(f"font-family:{style.font_family}")
    if style.font_size:
        parts.append(f"font-size:{style.font_size:g}px")
    if style.font_weight is not None:
        parts.append(f"font-weight:{style.font_weight}")
    if style.font_style:
        parts.append(f"font-style:{style.font_style}")
    if style.text_align:
        parts.append(f"text-align:{style.text_align}")
    if style.z_index is not None:
        parts.append(f"z-index:{style.z_index}")
    return ";".join(parts)


def _box_css(el: Element) -> str:
    parts = [
        "position:absolute",
        f"left:{el.position.x:g}px",
        f"top:{el.position.y:g}px",
    ]
    if el.size is not None:
        parts.append(f"width:{el.size.w:g}px")
        parts.append(f"height:{el.size.h:g}px")
    return ";".join(parts)


def _unknown(el: Any) -> None:
    raise TypeError(f"Unsupported letterhead element: {type(el).__name__}")


# ---------------------------
# HTML
# ---------------------------
def render_element_html(el: Element, hospital: HospitalProfile) -> Markup:
    box = _box_css(el)
    if isinstance(el, TextElement):
        style = ";".join(p for p in (box, _css(el.style)) if p)
        return Markup('<div class="lh-el lh-text" style="{}">{}</div>').format(
            style, el.text)
    if isinstance(el, FieldElement):
        style = ";".join(p for p in (box, _css(el.style)) if p)
        value = resolve_field(el.field, hospital)
        text = f"{el.label} {value}" if el.label else value
        return Markup(
            '<div class="lh-el lh-field" data-field="{}" style="{}">{}</div>'
        ).format(el.field_name, style, text)
    if isinstance(el, HtmlElement):
        style = ";".join(p for p in (box, _css(el.style)) if p)
        return Markup('<div class="lh-el lh-html" style="{}">{}</div>').format(
            style, Markup(sanitize_html(el.html)))
    if isinstance(el, LogoElement):
        w = el.size.w if el.size else DEFAULT_LOGO_W
        h = el.size.h if el.size else DEFAULT_LOGO_H
        src = image_src_for_html(el.src or hospital.logo)
        if not src:
            return Markup("")
        return Markup(
            '<img class="lh-el lh-logo" alt="logo" src="{}" '
            'style="position:absolute;left:{}px;top:{}px;width:{}px;'
            'height:{}px;object-fit:contain" />').format(
                src, f"{el.position.x:g}", f"{el.position.y:g}", f"{w:g}",
                f"{h:g}")
    if isinstance(el, LineElement):
        w = el.size.w if el.size else 720
        t = el.thickness or (el.size.h if el.size else 1)
        return Markup(
            '<div class="lh-el lh-line" style="position:absolute;left:{}px;'
            'top:{}px;width:{}px;height:{}px;background:{}"></div>').format(
                f"{el.position.x:g}", f"{el.position.y:g}", f"{w:g}",
                f"{t:g}", el.color or "#333")
    _unknown(el)


def render_letterhead_html(template: LetterheadTemplate,
                           hospital: HospitalProfile,
                           *,
                           height_px: Optional[float] = None) -> Markup:
    """Header band: absolutely-positioned elements in list (paint) order."""
    s = template.settings
    outer = ["position:relative", "width:100%"]
    if height_px:
        outer.append(f"height:{height_px:g}px")
    if s.background_color:
        outer.append(f"background:{s.background_color}")
    if s.font_family:
        outer.append(f"font-family:{s.font_family}")

    inner = Markup("").join(render_element_html(el, hospital)
                            for el in template.elements)

    wm = Markup("")
    if s.watermark is not None and (s.watermark.text or "").strip():
        wm = Markup(
            '<div class="lh-watermark" style="position:absolute;left:50%;'
            'top:50%;transform:translate(-50%,-50%) rotate({}deg);'
            'color:{};opacity:{};font-size:48px;pointer-events:none">{}</div>'
        ).format(
            f"{(s.watermark.angle if s.watermark.angle is not None else -30):g}",
            s.watermark.color or "rgba(0,0,0,0.06)",
            f"{(s.watermark.opacity if s.watermark.opacity is not None else 0.06):g}",
            s.watermark.text,
        )

    return Markup('<div class="letterhead" data-template="{}" style="{}">'
                  '{}{}</div>').format(template.id, ";".join(outer), inner, wm)


# ---------------------------
# PDF
# ---------------------------
def draw_element(c: canvas.Canvas, el: Element, hospital: HospitalProfile, *,
                 top_y: float, left_x: float = 0.0) -> None:
    """
    top_y: pdf y of the band's top edge. Element px are measured from
    the band's top-left corner.
    """
    x = left_x + el.position.x * PX_TO_PT
    y_top = top_y - el.position.y * PX_TO_PT

    if isinstance(el, (TextElement, FieldElement, HtmlElement)):
        if isinstance(el, TextElement):
            text = el.text
        elif isinstance(el, FieldElement):
            value = resolve_field(el.field, hospital)
            text = f"{el.label} {value}" if el.label else value
        else:
            text = html_to_text(el.html)
        if not text:
            return
        size = _font_px(el.style) * PX_TO_PT
        c.setFont(pdf_font(el.style), size)
        c.setFillColor(pdf_color(el.style.color if el.style else None))
        baseline = y_top - size
        align = el.style.text_align if el.style else None
        if align == "center" and el.size is not None:
            c.drawCentredString(x + el.size.w * PX_TO_PT / 2, baseline, text)
        elif align == "right" and el.size is not None:
            c.drawRightString(x + el.size.w * PX_TO_PT, baseline, text)
        else:
            c.drawString(x, baseline, text)
        return

    if isinstance(el, LogoElement):
        reader = image_reader(el.src) or image_reader(hospital.logo)
        if reader is None:
            return
        w = (el.size.w if el.size else DEFAULT_LOGO_W) * PX_TO_PT
        h = (el.size.h if el.size else DEFAULT_LOGO_H) * PX_TO_PT
        try:
            c.drawImage(reader, x, y_top - h, width=w, height=h,
                        preserveAspectRatio=True, mask="auto")
        except Exception:
            logger.exception("Failed to draw letterhead logo %s", el.id)
        return

    if isinstance(el, LineElement):
        w = (el.size.w if el.size else 720) * PX_TO_PT
        t = (el.thickness or (el.size.h if el.size else 1)) * PX_TO_PT
        c.setFillColor(pdf_color(el.color, colors.HexColor("#333333")))
        c.rect(x, y_top - t, w, t, stroke=0, fill=1)
        return

    _unknown(el)


def draw_letterhead(c: canvas.Canvas, template: LetterheadTemplate,
                    hospital: HospitalProfile, *, top_y: float,
                    left_x: float = 0.0) -> None:
    c.saveState()
    try:
        for el in template.elements:
            draw_element(c, el, hospital, top_y=top_y, left_x=left_x)
    finally:
        c.restoreState()


def draw_text_watermark(c: canvas.Canvas, template: LetterheadTemplate, *,
                        page_w: float, page_h: float) -> None:
    wm = template.settings.watermark
    if wm is None or not (wm.text or "").strip():
        return
    c.saveState()
    c.translate(page_w / 2, page_h / 2)
    c.rotate(-(wm.angle if wm.angle is not None else -30))
    c.setFont("Helvetica-Bold", 48)
    c.setFillColor(pdf_color(wm.color, colors.black))
    c.setFillAlpha(wm.opacity if wm.opacity is not None else 0.06)
    c.drawCentredString(0, 0, wm.text)
    c.restoreState()
