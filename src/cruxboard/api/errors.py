"""Cruxboard API error handling.

Every error response uses one envelope:
- code: machine-readable error code (e.g. "CONFIGURATION_ERROR")
- message: human-readable message
- details: optional additional context
- request_id: correlation id, echoed in the X-Request-Id header

Handlers:
- ConfigurationError: 400, raised before a debate starts (unknown persona id)
- HTTPException: mapped by status code
- RequestValidationError: 422 with field-level messages
- Exception: 500 with a generic message, details only in the log
"""

from __future__ import annotations

import logging
import uuid
from typing import Any

from fastapi import HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from cruxboard.errors import ConfigurationError

logger = logging.getLogger(__name__)

_STATUS_CODES = {
    400: "BAD_REQUEST",
    404: "NOT_FOUND",
    405: "METHOD_NOT_ALLOWED",
    422: "REQUEST_VALIDATION_FAILED",
}


class ErrorResponse(BaseModel):
    code: str
    message: str
    details: dict[str, Any] | None = None
    request_id: str | None = None


def _get_request_id(request: Request) -> str:
    header_id = request.headers.get("X-Request-Id")
    return header_id or str(uuid.uuid4())


def make_error_response(
    request: Request,
    *,
    code: str,
    message: str,
    http_status: int,
    details: dict[str, Any] | None = None,
) -> JSONResponse:
    """Build an error envelope response with an X-Request-Id header."""
    request_id = _get_request_id(request)
    body = ErrorResponse(code=code, message=message, details=details, request_id=request_id)
    response = JSONResponse(status_code=http_status, content=body.model_dump())
    response.headers["X-Request-Id"] = request_id
    return response


async def configuration_error_handler(request: Request, exc: Exception) -> JSONResponse:
    assert isinstance(exc, ConfigurationError)
    return make_error_response(
        request, code="CONFIGURATION_ERROR", message=str(exc), http_status=400
    )


async def http_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    assert isinstance(exc, HTTPException)
    return make_error_response(
        request,
        code=_STATUS_CODES.get(exc.status_code, "HTTP_ERROR"),
        message=str(exc.detail) if exc.detail else f"HTTP {exc.status_code}",
        http_status=exc.status_code,
    )


async def request_validation_error_handler(request: Request, exc: Exception) -> JSONResponse:
    """Map pydantic validation errors to the envelope without raw internals."""
    assert isinstance(exc, RequestValidationError)

    safe_details: list[dict[str, Any]] = []
    for error in exc.errors():
        loc = error.get("loc", ())
        safe_loc = [str(part) for part in loc if part not in ("body", "query", "path")]
        safe_details.append(
            {
                "field": ".".join(safe_loc) if safe_loc else "request",
                "message": error.get("msg", "Validation error"),
            }
        )

    return make_error_response(
        request,
        code="REQUEST_VALIDATION_FAILED",
        message="Request validation failed",
        http_status=422,
        details={"errors": safe_details} if safe_details else None,
    )


async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled exception: %s", type(exc).__name__)
    return make_error_response(
        request,
        code="INTERNAL_ERROR",
        message="An internal error occurred",
        http_status=500,
    )
