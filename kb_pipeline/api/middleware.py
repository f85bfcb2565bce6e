"""HTTP middleware for the knowledge-base API.

``create_app`` registers ErrorHandlingMiddleware before
RequestLoggingMiddleware.  Starlette runs the most recently added one
outermost, so the access log records the status code produced after a
pipeline error has been turned into a JSON body.
"""

from __future__ import annotations

import time
import uuid

import structlog
from fastapi import Request, Response
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint

from kb_pipeline.api.schemas import ErrorResponse
from kb_pipeline.utils.errors import (
    ConfigurationError,
    KnowledgeBaseError,
    NotFoundError,
    ProviderError,
    RenderError,
    ValidationError,
)
from kb_pipeline.utils.logging import get_logger

_logger: structlog.BoundLogger = get_logger(__name__)

# First match wins; RenderError is resolved separately via ``client_error``.
_STATUS_BY_ERROR: tuple[tuple[type[KnowledgeBaseError], int], ...] = (
    (NotFoundError, 404),
    (ValidationError, 400),
    (ConfigurationError, 503),
    (ProviderError, 502),
)


def status_code_for(exc: KnowledgeBaseError) -> int:
    """HTTP status for a pipeline error; unmapped errors are 500."""
    if isinstance(exc, RenderError):
        return 400 if exc.client_error else 500
    for error_type, status in _STATUS_BY_ERROR:
        if isinstance(exc, error_type):
            return status
    return 500


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Emit one ``http_request`` event per request, tagged with a request id."""

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        request_id = uuid.uuid4().hex[:12]
        structlog.contextvars.bind_contextvars(request_id=request_id)
        started = time.perf_counter()
        status = 500
        try:
            response = await call_next(request)
            status = response.status_code
            return response
        finally:
            _logger.info(
                "http_request",
                method=request.method,
                path=request.url.path,
                status=status,
                duration_ms=round((time.perf_counter() - started) * 1000, 2),
            )
            structlog.contextvars.unbind_contextvars("request_id")


class ErrorHandlingMiddleware(BaseHTTPMiddleware):
    """Turn a raised ``KnowledgeBaseError`` into an ``{error, detail}`` response.

    Client errors are logged at warning level, server-side ones at error.
    """

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        try:
            return await call_next(request)
        except KnowledgeBaseError as exc:
            status = status_code_for(exc)
            error_name = type(exc).__name__
            emit = _logger.error if status >= 500 else _logger.warning
            emit(
                "application_error",
                error_type=error_name,
                message=exc.message,
                provider=exc.provider_name,
                path=request.url.path,
                status=status,
            )
            payload = ErrorResponse(error=error_name, detail=exc.message)
            return JSONResponse(status_code=status, content=payload.model_dump())
