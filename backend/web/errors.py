"""
Map service and store errors to JSON responses in one place.

Body shape: `{"error": <kind>, "detail": <code>, "message": <text>}` with
`Cache-Control: private, no-store`.
"""
from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from backend.storage.documents import StoreError, StoreUnavailableError
from backend.teaching.errors import (
    AuthorizationError,
    ConflictError,
    EduManageError,
    NotFoundError,
    UpstreamError,
    ValidationError,
)

logger = logging.getLogger("edumanage.web")

STATUS_BY_ERROR = (
    (ValidationError, 400),
    (AuthorizationError, 403),
    (NotFoundError, 404),
    (ConflictError, 400),
    (UpstreamError, 500),
)


def _private_error(error: str, detail: str, message: str, *, status_code: int) -> JSONResponse:
    return JSONResponse(
        {"error": error, "detail": detail, "message": message},
        status_code=status_code,
        headers={"Cache-Control": "private, no-store"},
    )


def status_for(exc: EduManageError) -> int:
    for cls, status in STATUS_BY_ERROR:
        if isinstance(exc, cls):
            return status
    return 500


async def _handle_service_error(request: Request, exc: EduManageError) -> JSONResponse:
    status = status_for(exc)
    if status >= 500:
        logger.error("upstream failure: path=%s detail=%s", request.url.path, exc.detail)
    return _private_error(exc.kind, exc.detail, exc.message, status_code=status)


async def _handle_store_error(request: Request, exc: StoreError) -> JSONResponse:
    logger.error("store failure: path=%s error=%s", request.url.path, type(exc).__name__)
    detail = "store_unavailable" if isinstance(exc, StoreUnavailableError) else "store_error"
    return _private_error("upstream_error", detail, "Internal server error", status_code=500)


async def _handle_request_validation(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = exc.errors()
    field = ""
    if errors:
        loc = [p for p in errors[0].get("loc", ()) if isinstance(p, str) and p not in ("body", "query", "path")]
        field = loc[-1] if loc else ""
    detail = f"invalid_{field}" if field else "invalid_input"
    return _private_error("bad_request", detail, "Invalid request", status_code=400)


async def _handle_unexpected(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("unhandled error: path=%s", request.url.path)
    return _private_error("internal_error", "internal_error", "Internal server error", status_code=500)


def install_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(EduManageError, _handle_service_error)
    app.add_exception_handler(StoreError, _handle_store_error)
    app.add_exception_handler(RequestValidationError, _handle_request_validation)
    app.add_exception_handler(Exception, _handle_unexpected)
