"""Standardized error handling for the grading service.

This module provides:
1. Exception classes for catalog, build and engine failures
2. Exception handlers for FastAPI
3. The standard error response model

Usage:
    from grader.errors import TaskNotFoundError

    if task_id not in catalog:
        raise TaskNotFoundError(task_id=task_id)

    # Register handlers in main.py:
    from grader.errors import register_exception_handlers
    register_exception_handlers(app)
"""

import logging
from typing import Any

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel

logger = logging.getLogger(__name__)


class ErrorResponse(BaseModel):
    """Standard error response model."""

    error: str
    detail: str | None = None
    error_code: str | None = None
    context: dict[str, Any] | None = None


class APIError(Exception):
    """Base class for errors that map onto an HTTP response."""

    status_code: int = 500
    error: str = "internal_error"
    detail: str = "An unexpected error occurred"

    def __init__(
        self,
        detail: str | None = None,
        error_code: str | None = None,
        **context: Any,
    ) -> None:
        self.detail = detail or self.__class__.detail
        self.error_code = error_code
        self.context = context if context else None
        super().__init__(self.detail)

    def to_response(self) -> ErrorResponse:
        """Convert exception to error response model."""
        return ErrorResponse(
            error=self.error,
            detail=self.detail,
            error_code=self.error_code,
            context=self.context,
        )


class NotFoundError(APIError):
    """Resource not found error (404)."""

    status_code = 404
    error = "not_found"
    detail = "Resource not found"


class TaskNotFoundError(NotFoundError):
    """The catalog has no harness for the requested task."""

    detail = "Task not found"

    def __init__(self, task_id: str, detail: str | None = None) -> None:
        super().__init__(
            detail=detail or f"No harness for task {task_id!r}",
            error_code="TASK_NOT_FOUND",
            task_id=task_id,
        )
        self.task_id = task_id


class BadRequestError(APIError):
    """Bad request error (400)."""

    status_code = 400
    error = "bad_request"
    detail = "Invalid request"


class ServiceUnavailableError(APIError):
    """Service unavailable error (503)."""

    status_code = 503
    error = "service_unavailable"
    detail = "Service temporarily unavailable"


class ExternalServiceError(APIError):
    """External service error (502)."""

    status_code = 502
    error = "external_service_error"
    detail = "External service request failed"


class EngineError(ExternalServiceError):
    """The container engine rejected or failed a call."""

    error = "engine_error"
    detail = "Container engine request failed"


class BuildFailedError(EngineError):
    """The execution environment could not be built from the archive."""

    error = "build_failed"
    detail = "Environment build failed"


class ArtifactNotFoundError(Exception):
    """The expected result artifact is absent from a terminated unit."""


class ArchivePackingError(OSError):
    """An archive could not be produced from a filesystem."""


async def api_error_handler(request: Request, exc: APIError) -> JSONResponse:
    """Handle custom API errors."""
    logger.warning(
        "API error: %s (status=%d, path=%s)",
        exc.detail,
        exc.status_code,
        request.url.path,
    )
    return JSONResponse(
        status_code=exc.status_code,
        content=exc.to_response().model_dump(exclude_none=True),
    )


def register_exception_handlers(app: FastAPI) -> None:
    """Register all exception handlers with the FastAPI app."""
    app.add_exception_handler(APIError, api_error_handler)
