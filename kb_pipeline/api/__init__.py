"""API layer -- routes, schemas and middleware."""

from kb_pipeline.api.middleware import (
    ErrorHandlingMiddleware,
    RequestLoggingMiddleware,
    status_code_for,
)
from kb_pipeline.api.routes import router

__all__ = [
    "ErrorHandlingMiddleware",
    "RequestLoggingMiddleware",
    "router",
    "status_code_for",
]
