# FILE: app/services/report_links.py
from __future__ import annotations

import secrets
import uuid
from dataclasses import dataclass
from typing import Optional
from urllib.parse import parse_qs, quote, unquote, urlsplit

from starlette.requests import Request


def new_report_id() -> str:
    return "RPT" + uuid.uuid4().hex.upper()


def new_token() -> str:
    # 192 bits
    return secrets.token_urlsafe(24)


def new_qr_id() -> str:
    return str(uuid.uuid4())


def _with_token(url: str, token: Optional[str]) -> str:
    if token is None:
        return url
    return f"{url}?token={quote(token, safe='')}"


def build_report_url(base: str, report_id: str,
                     token: Optional[str] = None) -> str:
    """{base}/report/{reportId}?token={token}"""
    return _with_token(
        f"{base.rstrip('/')}/report/{quote(report_id, safe='')}", token)


def build_verify_url(base: str, qr_id: str,
                     token: Optional[str] = None) -> str:
    """{base}/report/verify/{qrId}?token={token}"""
    return _with_token(
        f"{base.rstrip('/')}/report/verify/{quote(qr_id, safe='')}", token)


def base_from_path(path: str) -> str:
    """
    Path prefix before the literal `report` segment.
    "/api/report/R1" -> "/api", "/report/R1" -> ""
    """
    segments = path.split("/")
    for i, seg in enumerate(segments):
        if seg == "report":
            return "/".join(segments[:i])
    return path.rstrip("/")


def report_base_from_request(request: Request) -> str:
    """scheme://host + mount prefix, taken from the inbound request."""
    url = request.url
    return f"{url.scheme}://{url.netloc}{base_from_path(url.path)}"


@dataclass(frozen=True)
class ReportPath:
    kind: str  # "report" | "verify"
    identifier: Optional[str]
    token: Optional[str]


def parse_report_path(path: str, query: str = "") -> Optional[ReportPath]:
    """
    Inverse of build_report_url/build_verify_url.
    Accepts a bare path (+ query) or a full URL in `path`.
    """
    if "://" in path or "?" in path:
        parts = urlsplit(path)
        path, query = parts.path, parts.query or query

    segments = path.split("/")
    if "report" not in segments:
        return None
    rest = segments[segments.index("report") + 1:]

    token_vals = parse_qs(query, keep_blank_values=True).get("token")
    token = token_vals[0] if token_vals else None

    if rest and rest[0] == "verify":
        ident = unquote(rest[1]) if len(rest) > 1 and rest[1] else None
        return ReportPath("verify", ident, token)
    ident = unquote(rest[0]) if rest and rest[0] else None
    return ReportPath("report", ident, token)


def api_base_from_request(request: Request, api_prefix: str) -> str:
    """Public links issued from the internal API point at {root}{api_prefix}."""
    return str(request.base_url).rstrip("/") + api_prefix.rstrip("/")
