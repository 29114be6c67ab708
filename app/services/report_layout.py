# FILE: app/services/report_layout.py
"""
Page geometry and row preparation shared by the HTML and PDF report
renderers. Both paths read the same numbers from here so the print
preview and the PDF line up.
"""
from __future__ import annotations

import re
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, Iterable, List, Optional, Tuple

from reportlab.lib.pagesizes import A4

from app.schemas.letterhead import LetterheadTemplate
from app.services.field_resolver import HospitalProfile

# ---------------------------
# Geometry
# ---------------------------
PAGE_W_MM = 210
PAGE_H_MM = 297
PAGE_W_PT, PAGE_H_PT = A4  # 595.28 x 841.89

HEADER_BAND_MM = 60
FOOTER_BAND_MM = 25
BODY_SIDE_MARGIN_MM = 15
BODY_TOP_GAP_MM = 5
SIGNATURE_OFFSET_MM = 35  # from page bottom
NOTES_OFFSET_MM = 15  # from page bottom

# parameter | result | unit | reference range
COLUMN_WIDTHS_PCT: Tuple[int, int, int, int] = (30, 25, 15, 30)
COLUMN_TITLES: Tuple[str, str, str, str] = ("Parameter", "Result", "Unit",
                                             "Reference Range")

QR_SIZE_MM = 25

# css px -> pt (96 dpi)
PX_TO_PT = 0.75

ARROW_UP = "↑"
ARROW_DOWN = "↓"

NO_RESULTS_TEXT = "No test results entered yet"

FOOTNOTES: Tuple[str, ...] = (
    "• Clinical Correlation is essential for Final Diagnosis "
    "• Not For Medico Legal Purpose",
    "• If test results are unexpected, please contact the laboratory",
)

ABNORMAL_COLOR = "#dc2626"


def column_widths_pt(table_w: float) -> List[float]:
    return [table_w * p / 100.0 for p in COLUMN_WIDTHS_PCT]


# ---------------------------
# Rows
# ---------------------------
# first "min - max" pair anywhere in the text ("12-16 g/dL", "Fasting: 70-100")
_RANGE_RE = re.compile(
    r"([-+]?\d+(?:\.\d+)?)\s*-\s*([-+]?\d+(?:\.\d+)?)")
# leading number of a result ("17 g/dL" -> 17)
_NUM_PREFIX_RE = re.compile(r"\s*([-+]?(?:\d+(?:\.\d*)?|\.\d+))")


def _to_float(v: Any) -> Optional[float]:
    if v is None:
        return None
    m = _NUM_PREFIX_RE.match(str(v))
    return float(m.group(1)) if m else None


def evaluate_range(value: Any, ref_range: Any) -> Optional[str]:
    """
    "high" / "low" when value falls strictly outside the first "min-max"
    found in ref_range, None otherwise. Anything unparseable counts as
    in range.
    """
    num = _to_float(value)
    if num is None or not ref_range:
        return None
    m = _RANGE_RE.search(str(ref_range))
    if not m:
        return None
    lo, hi = float(m.group(1)), float(m.group(2))
    if num > hi:
        return "high"
    if num < lo:
        return "low"
    return None


@dataclass
class ReportRow:
    label: str
    value: str
    unit: str = ""
    ref_range: str = ""
    abnormal: Optional[str] = None  # "high" | "low"
    placeholder: bool = False

    @property
    def arrow(self) -> str:
        if self.abnormal == "high":
            return ARROW_UP
        if self.abnormal == "low":
            return ARROW_DOWN
        return ""


def _get(p: Any, *names: str) -> Any:
    for n in names:
        v = p.get(n) if isinstance(p, dict) else getattr(p, n, None)
        if v is not None:
            return v
    return None


def _text(v: Any) -> str:
    return "" if v is None else str(v).strip()


def prepare_rows(parameters: Iterable[Any]) -> List[ReportRow]:
    """
    Blank values are dropped. An empty result yields one placeholder row.
    Accepts dicts (camelCase or snake_case) or objects.
    """
    rows: List[ReportRow] = []
    for p in parameters or []:
        value = _text(_get(p, "value"))
        if not value:
            continue
        ref = _text(_get(p, "refRange", "ref_range"))
        rows.append(
            ReportRow(
                label=_text(_get(p, "label", "id")),
                value=value,
                unit=_text(_get(p, "unit")),
                ref_range=ref,
                abnormal=evaluate_range(value, ref),
            ))
    if not rows:
        rows.append(ReportRow(label=NO_RESULTS_TEXT, value="",
                              placeholder=True))
    return rows


# ---------------------------
# Renderer input
# ---------------------------
def fmt_datetime(v: Any) -> str:
    if not v:
        return "-"
    if isinstance(v, datetime):
        return v.strftime("%d-%b-%Y %I:%M %p")
    if isinstance(v, date):
        return v.strftime("%d-%b-%Y")
    try:
        return datetime.fromisoformat(str(v).replace(
            "Z", "+00:00")).strftime("%d-%b-%Y %I:%M %p")
    except ValueError:
        return str(v)


@dataclass
class ReportDocument:
    report_id: str
    patient_name: str
    patient_age: str
    patient_gender: str
    referred_by: str
    test_name: str
    collected_at: Any = None
    reported_at: Any = None
    rows: List[ReportRow] = field(default_factory=list)
    verification_url: Optional[str] = None

    # storage-relative paths, absolute urls or data uris
    header_image: Optional[str] = None
    footer_image: Optional[str] = None
    watermark_image: Optional[str] = None

    # composed header band when there is no header image
    letterhead: Optional[LetterheadTemplate] = None
    hospital: Optional[HospitalProfile] = None

    signatories: List[Tuple[str, str]] = field(default_factory=list)
    footnotes: Tuple[str, ...] = FOOTNOTES
    verified_by: str = ""

    @property
    def collected_text(self) -> str:
        return fmt_datetime(self.collected_at)

    @property
    def reported_text(self) -> str:
        return fmt_datetime(self.reported_at)
