"""Global exception handlers, translating domain errors to HTTP responses.

Every :class:`ProjectReportError` goes through one handler that picks the
status code of the nearest mapped class in the exception's MRO, so a new
subclass inherits its parent's code.  Responses use the
``{"status": "error", "message": "...", "stage": ...}`` envelope.
"""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from project_report.domain.exceptions import (
    FileNotServedError,
    MalformedResponseError,
    PathNotFoundError,
    ProjectReportError,
    RootPermissionError,
    TemplateError,
    UnknownFolderError,
    UpstreamError,
)
from project_report.interface.schemas import ErrorResponse

logger = logging.getLogger(__name__)

STATUS_BY_ERROR: dict[type[ProjectReportError], int] = {
    PathNotFoundError: 404,
    FileNotServedError: 404,
    RootPermissionError: 403,
    MalformedResponseError: 502,
    UnknownFolderError: 502,
    UpstreamError: 502,
    TemplateError: 500,
}


def status_for(exc: ProjectReportError) -> int:
    for cls in type(exc).__mro__:
        if cls in STATUS_BY_ERROR:
            return STATUS_BY_ERROR[cls]
    return 500


def _error_json(status_code: int, message: str, stage: str | None = None) -> JSONResponse:
    body = ErrorResponse(message=message, stage=stage)
    return JSONResponse(status_code=status_code, content=body.model_dump())


def register_error_handlers(app: FastAPI) -> None:
    """Attach exception handlers to the FastAPI application."""

    @app.exception_handler(ProjectReportError)
    async def domain_handler(request: Request, exc: ProjectReportError) -> JSONResponse:
        status_code = status_for(exc)
        logger.warning("%s (HTTP %d): %s", type(exc).__name__, status_code, exc)
        return _error_json(status_code, str(exc), exc.stage)

    @app.exception_handler(RequestValidationError)
    async def validation_handler(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        messages = []
        for err in exc.errors():
            loc = " > ".join(str(p) for p in err.get("loc", []))
            messages.append(f"{loc}: {err.get('msg', 'validation error')}")
        return _error_json(422, "; ".join(messages))

    @app.exception_handler(Exception)
    async def generic_handler(request: Request, exc: Exception) -> JSONResponse:
        logger.exception("Unhandled exception")
        return _error_json(500, "An unexpected error occurred. Please try again later.")
