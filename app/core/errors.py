# FILE: app/core/errors.py
from __future__ import annotations

from typing import Optional


class ReportError(Exception):
    """
    Base for report/letterhead domain failures.
    `public_msg` is the only text that reaches an HTTP client.
    """
    status_code: int = 500
    public_msg: str = "Internal Server Error"

    def __init__(self, msg: Optional[str] = None):
        super().__init__(msg or self.public_msg)
        if msg:
            self.public_msg = msg


class ReportValidationError(ReportError):
    status_code = 400
    public_msg = "Bad Request"


class ReportNotFound(ReportError):
    status_code = 404
    public_msg = "Not Found"


class ReportForbidden(ReportError):
    status_code = 403
    public_msg = "Invalid or missing token"


class ReportConflict(ReportError):
    status_code = 409
    public_msg = "Conflict"


class ReportStoreError(ReportError):
    status_code = 500
    public_msg = "Internal Server Error"


class ReportRenderTimeout(ReportError):
    status_code = 504
    public_msg = "Report generation timed out"
