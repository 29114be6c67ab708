# FILE: app/services/qr.py
from __future__ import annotations

import base64
import logging
from io import BytesIO
from typing import Optional

import qrcode

logger = logging.getLogger(__name__)


def make_qr_png(data: str, box_size: int = 6, border: int = 2) -> Optional[bytes]:
    """
    PNG bytes for `data`, or None when encoding fails.
    Callers render without the QR image in that case.
    """
    if not data:
        return None
    try:
        qr = qrcode.QRCode(
            error_correction=qrcode.constants.ERROR_CORRECT_M,
            box_size=box_size,
            border=border,
        )
        qr.add_data(data)
        qr.make(fit=True)
        img = qr.make_image(fill_color="black", back_color="white")
        buf = BytesIO()
        img.save(buf, format="PNG")
        return buf.getvalue()
    except Exception:
        logger.warning("QR encoding failed; continuing without QR",
                       exc_info=True)
        return None


def qr_data_uri(data: str) -> Optional[str]:
    png = make_qr_png(data)
    if not png:
        return None
    return "data:image/png;base64," + base64.b64encode(png).decode("ascii")
