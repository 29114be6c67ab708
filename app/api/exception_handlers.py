# FILE: app/api/exception_handlers.py
from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import Response
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.api.response import PUBLIC_MESSAGES, err, text
from app.core.config import settings
from app.core.errors import ReportError

logger = logging.getLogger(__name__)


def is_public_report_path(path: str) -> bool:
    """
    /{API}/report[/...] is consumed by browsers scanning a QR code;
    everything else is the JSON API.
    """
    prefix = settings.API_V1_STR.rstrip("/")
    rest = path[len(prefix):] if prefix and path.startswith(prefix) else path
    return rest == "/report" or rest.startswith("/report/")


def register_exception_handlers(app: FastAPI) -> None:

    @app.exception_handler(ReportError)
    async def report_error_handler(request: Request,
                                   exc: ReportError) -> Response:
        if exc.status_code >= 500:
            logger.error("%s on %s: %s", type(exc).__name__,
                         request.url.path, exc)
        if is_public_report_path(request.url.path):
            return text(exc.status_code, exc.public_msg)
        return err(msg=exc.public_msg,
                   status_code=exc.status_code,
                   code=type(exc).__name__)

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request,
                                     exc: StarletteHTTPException) -> Response:
        # exc.detail can be str/dict/list
        msg = exc.detail if isinstance(exc.detail, str) else "Request failed"
        if is_public_report_path(request.url.path):
            return text(exc.status_code,
                        PUBLIC_MESSAGES.get(exc.status_code, msg))
        return err(msg=msg, status_code=exc.status_code)

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(
            request: Request, exc: RequestValidationError) -> Response:
        if is_public_report_path(request.url.path):
            return text(400)
        return err(msg="Validation error", status_code=422)

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request,
                                          exc: Exception) -> Response:
        logger.exception("Unhandled error on %s", request.url.path)
        if is_public_report_path(request.url.path):
            return text(500)
        return err(msg="Internal server error", status_code=500)
