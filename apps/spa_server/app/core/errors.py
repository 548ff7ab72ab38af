"""
core/errors.py

Uniform error envelope and exception handlers.

No matter where an error happens, the client sees the same structure:
{ error: { code, message, details?, requestId } }.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from fastapi import Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = logging.getLogger(__name__)


def _get_request_id(request: Request) -> Optional[str]:
    # Prefer the value set by RequestLogMiddleware, fallback to header.
    rid = getattr(request.state, "request_id", None)
    return rid or request.headers.get("X-Request-ID")


def error_envelope(
    *,
    code: str,
    message: str,
    status: int,
    request_id: Optional[str] = None,
    details: Optional[Dict[str, Any]] = None,
) -> JSONResponse:
    """
    Build a JSON error response with the uniform envelope.
    """
    body = {
        "error": {
            "code": code,
            "message": message,
            "requestId": request_id,
        }
    }
    if details:
        body["error"]["details"] = details
    return JSONResponse(status_code=status, content=body)


# ---------- AppError (preferred for domain-specific errors) ----------

class AppError(Exception):
    """
    Raise this from your code for well-defined errors, e.g.:

        raise AppError("CSRF_FAILED", "Invalid CSRF token.", status=403)
    """
    def __init__(self, code: str, message: str, *, status: int = 400, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.code = code
        self.message = message
        self.status = status
        self.details = details or {}

    def to_response(self, request: Request) -> JSONResponse:
        """Render this error as the envelope (used by middleware, which can't raise)."""
        return error_envelope(
            code=self.code,
            message=self.message,
            status=self.status,
            request_id=_get_request_id(request),
            details=self.details,
        )


# ---------- Exception handlers plugged in main.py ----------

async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """
    Convert Starlette/FastAPI HTTPException into our envelope.
    """
    code_map = {
        400: "BAD_REQUEST",
        401: "UNAUTHENTICATED",
        403: "PERMISSION_DENIED",
        404: "NOT_FOUND",
        405: "METHOD_NOT_ALLOWED",
        415: "UNSUPPORTED_MEDIA_TYPE",
        422: "VALIDATION_ERROR",
        500: "INTERNAL_ERROR",
    }
    code = code_map.get(exc.status_code, "ERROR")
    msg = exc.detail if isinstance(exc.detail, str) else "Request failed."
    return error_envelope(
        code=code,
        message=msg,
        status=exc.status_code,
        request_id=_get_request_id(request),
    )


async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    """
    Convert our AppError into the envelope as-is.
    """
    return exc.to_response(request)


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """
    Convert FastAPI validation errors (pydantic) into a 422 envelope with field errors.
    """
    details = {"fields": jsonable_encoder(exc.errors())}
    return error_envelope(
        code="VALIDATION_ERROR",
        message="Request validation failed.",
        status=422,
        request_id=_get_request_id(request),
        details=details,
    )


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """
    Catch-all for anything else. We do not leak internal errors to clients.
    """
    logger.error("Unhandled error: %s", type(exc).__name__, exc_info=exc)
    return error_envelope(
        code="INTERNAL_ERROR",
        message="Unexpected error occurred.",
        status=500,
        request_id=_get_request_id(request),
    )
