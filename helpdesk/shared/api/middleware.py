"""
Shared API Middleware
======================

Common middleware and exception handlers for the FastAPI application.
"""

import re
import time
import uuid
from typing import Callable, Optional
from datetime import datetime, timezone

from fastapi import FastAPI, Request, Response
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from helpdesk.core import (
    ApplicationException,
    ResourceNotFoundException,
    ValidationException,
)
from helpdesk.shared.infrastructure.logging import get_logger

logger = get_logger(__name__)

# Correlation ids are stored as trace ids in String(64) columns
CORRELATION_ID_PATTERN = re.compile(r"[A-Za-z0-9._:-]{1,64}")


def resolve_correlation_id(header_value: Optional[str]) -> str:
    """Return the client's correlation id if usable, else a fresh uuid4."""
    if header_value and CORRELATION_ID_PATTERN.fullmatch(header_value):
        return header_value
    return str(uuid.uuid4())


class CorrelationIDMiddleware(BaseHTTPMiddleware):
    """
    Adds correlation ID to requests for tracing.

    The correlation ID doubles as the trace id of triage runs started by
    the request, linking request logs to the audit trail.
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        correlation_id = resolve_correlation_id(request.headers.get("X-Correlation-ID"))

        # Store in request state for access in endpoints
        request.state.correlation_id = correlation_id

        response = await call_next(request)
        response.headers["X-Correlation-ID"] = correlation_id
        return response


class LoggingMiddleware(BaseHTTPMiddleware):
    """Logs all requests and responses."""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        correlation_id = getattr(request.state, "correlation_id", "unknown")
        start_time = time.perf_counter()

        logger.info(
            "Request started",
            extra={
                "correlation_id": correlation_id,
                "method": request.method,
                "url": str(request.url),
                "client": request.client.host if request.client else None
            }
        )

        try:
            response = await call_next(request)
        except Exception as e:
            logger.error(
                "Request failed",
                extra={
                    "correlation_id": correlation_id,
                    "method": request.method,
                    "url": str(request.url),
                    "error": str(e),
                    "response_time_ms": int((time.perf_counter() - start_time) * 1000)
                }
            )
            raise

        logger.info(
            "Request completed",
            extra={
                "correlation_id": correlation_id,
                "method": request.method,
                "url": str(request.url),
                "status_code": response.status_code,
                "response_time_ms": int((time.perf_counter() - start_time) * 1000)
            }
        )
        return response


def _error_body(request: Request, detail: str, exc: Exception) -> dict:
    details = getattr(exc, "details", {}) or {}
    return {
        "detail": detail,
        "correlation_id": getattr(request.state, "correlation_id", "unknown"),
        "trace_id": details.get("trace_id"),
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }


async def not_found_handler(request: Request, exc: ResourceNotFoundException) -> JSONResponse:
    """Map missing resources to 404."""
    return JSONResponse(status_code=404, content=_error_body(request, exc.message, exc))


async def validation_handler(request: Request, exc: ValidationException) -> JSONResponse:
    """Map domain validation failures to 422."""
    return JSONResponse(status_code=422, content=_error_body(request, exc.message, exc))


async def application_exception_handler(request: Request, exc: ApplicationException) -> JSONResponse:
    """
    Generic failure response for persistence and triage stage errors.

    The trace id is surfaced so the failed run can be found in the audit log.
    """
    logger.error(
        "Application error",
        extra={
            "correlation_id": getattr(request.state, "correlation_id", "unknown"),
            "path": request.url.path,
            "error_type": type(exc).__name__,
            "error_message": exc.message,
            "trace_id": exc.details.get("trace_id"),
        }
    )
    return JSONResponse(status_code=500, content=_error_body(request, "Request failed", exc))


async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """
    Global exception handler for unhandled exceptions.

    Returns consistent error responses for all exceptions.
    """
    correlation_id = getattr(request.state, "correlation_id", "unknown")

    logger.error(
        "Unhandled exception",
        extra={
            "correlation_id": correlation_id,
            "path": request.url.path,
            "method": request.method,
            "error_type": type(exc).__name__,
            "error_message": str(exc)
        }
    )

    return JSONResponse(
        status_code=500,
        content=_error_body(request, "Internal server error", exc)
    )


def register_exception_handlers(app: FastAPI) -> None:
    """Install the handlers, most specific first."""
    app.add_exception_handler(ResourceNotFoundException, not_found_handler)
    app.add_exception_handler(ValidationException, validation_handler)
    app.add_exception_handler(ApplicationException, application_exception_handler)
    app.add_exception_handler(Exception, global_exception_handler)
