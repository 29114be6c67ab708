# FILE: app/api/response.py
from __future__ import annotations

from typing import Any, Dict, Optional

from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse, PlainTextResponse

# generic public text per status; never storage or stack details
PUBLIC_MESSAGES: Dict[int, str] = {
    400: "Bad Request",
    403: "Forbidden",
    404: "Not Found",
    405: "Method Not Allowed",
    409: "Conflict",
    422: "Bad Request",
    500: "Internal Server Error",
    504: "Report generation timed out",
}


def ok(
    data: Any = None,
    *,
    meta: Optional[Dict[str, Any]] = None,
    status_code: int = 200,
) -> JSONResponse:
    """
    JSON API success:
    {"ok": true, "data": ..., "meta": {...}}
    """
    payload: Dict[str, Any] = {"ok": True, "data": data}
    if meta is not None:
        payload["meta"] = meta
    # datetimes from report rows
    return JSONResponse(status_code=status_code,
                        content=jsonable_encoder(payload))


def err(
    msg: str = "Something went wrong",
    *,
    status_code: int = 400,
    code: Optional[str] = None,
    details: Any = None,
) -> JSONResponse:
    """
    JSON API failure:
    {"ok": false, "error": {"msg": ..., "code": ..., "details": ...}}
    """
    payload: Dict[str, Any] = {
        "ok": False,
        "error": {
            "msg": msg,
            "code": code,
            "details": details,
        },
    }
    return JSONResponse(status_code=status_code,
                        content=jsonable_encoder(payload))


def text(status_code: int, msg: Optional[str] = None) -> PlainTextResponse:
    """Plain-text body for /report pages opened straight from a QR scan."""
    return PlainTextResponse(msg or PUBLIC_MESSAGES.get(status_code, "Error"),
                             status_code=status_code)
