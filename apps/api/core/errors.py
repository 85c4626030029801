"""RFC 7807 Problem Details error handling.

Provides centralized exception handling and custom exception classes. All
errors return a consistent JSON format:

    {
        "type": "about:blank",
        "title": "Unprocessable Entity",
        "status": 422,
        "detail": "Missing required headers: amount",
        "instance": "/api/v1/ingest/bank-statements/abc",
        "step": "missing_required_headers",
        "retryable": false,
        "extra": {"headers": ["Data", "Opis"], ...}
    }

Import failures keep the pipeline step and diagnostics as extension members.
"""

from typing import Any, Dict, Optional

import structlog
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from packages.statement_ingestion.errors import StatementImportError

logger = structlog.get_logger(__name__)


class AppError(Exception):
    """Base application error."""

    def __init__(
        self,
        detail: str,
        status_code: int = 500,
        error_type: str = "about:blank",
        extensions: Optional[Dict[str, Any]] = None,
    ):
        self.detail = detail
        self.status_code = status_code
        self.error_type = error_type
        self.extensions = extensions or {}
        super().__init__(detail)


class NotFoundError(AppError):
    """Resource not found."""

    def __init__(self, detail: str = "Resource not found"):
        super().__init__(detail=detail, status_code=404)


class ValidationError(AppError):
    """Request validation failed."""

    def __init__(self, detail: str = "Validation failed"):
        super().__init__(detail=detail, status_code=422)


class PayloadTooLargeError(AppError):
    """Uploaded file exceeds the configured limit."""

    def __init__(self, detail: str = "Uploaded file is too large"):
        super().__init__(detail=detail, status_code=413)


# Import pipeline step -> HTTP status
STEP_STATUS = {
    "env": 500,
    "load_document": 404,
    "wrong_doc_type": 422,
    "missing_storage_path": 422,
    "missing_org": 422,
    "parsed_0_rows": 422,
    "missing_required_headers": 422,
    "map_0_valid": 422,
    "fetch_failed": 502,
    "upsert": 502,
}


class IngestionFailedError(AppError):
    """A statement import stopped at one of its steps."""

    @classmethod
    def from_import_error(cls, exc: StatementImportError) -> "IngestionFailedError":
        extensions: Dict[str, Any] = {"step": exc.step, "retryable": exc.retryable}
        if exc.extra:
            extensions["extra"] = exc.extra
        return cls(
            detail=exc.message,
            status_code=STEP_STATUS.get(exc.step, 500),
            extensions=extensions,
        )


def _build_problem_detail(
    status: int,
    title: str,
    detail: str,
    error_type: str = "about:blank",
    instance: str = "",
    request_id: str = "",
    extensions: Optional[Dict[str, Any]] = None,
) -> dict:
    """Build RFC 7807 Problem Details response body."""
    body = {
        "type": error_type,
        "title": title,
        "status": status,
        "detail": detail,
    }
    if instance:
        body["instance"] = instance
    if request_id:
        body["request_id"] = request_id
    if extensions:
        for key, value in extensions.items():
            body.setdefault(key, value)
    return body


# HTTP status code to title mapping
_STATUS_TITLES = {
    400: "Bad Request",
    401: "Unauthorized",
    403: "Forbidden",
    404: "Not Found",
    409: "Conflict",
    413: "Payload Too Large",
    415: "Unsupported Media Type",
    422: "Unprocessable Entity",
    429: "Too Many Requests",
    500: "Internal Server Error",
    502: "Bad Gateway",
    503: "Service Unavailable",
}


def register_error_handlers(app: FastAPI) -> None:
    """Register global exception handlers on the FastAPI app."""

    @app.exception_handler(AppError)
    async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
        title = _STATUS_TITLES.get(exc.status_code, "Error")
        request_id = getattr(request.state, "request_id", "")
        body = _build_problem_detail(
            status=exc.status_code,
            title=title,
            detail=exc.detail,
            error_type=exc.error_type,
            instance=str(request.url.path),
            request_id=request_id,
            extensions=exc.extensions,
        )
        return JSONResponse(status_code=exc.status_code, content=body)

    @app.exception_handler(StatementImportError)
    async def import_error_handler(request: Request, exc: StatementImportError) -> JSONResponse:
        return await app_error_handler(request, IngestionFailedError.from_import_error(exc))

    @app.exception_handler(StarletteHTTPException)
    async def http_error_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        title = _STATUS_TITLES.get(exc.status_code, "Error")
        detail = exc.detail if isinstance(exc.detail, str) else str(exc.detail)
        request_id = getattr(request.state, "request_id", "")
        body = _build_problem_detail(
            status=exc.status_code,
            title=title,
            detail=detail,
            instance=str(request.url.path),
            request_id=request_id,
        )
        return JSONResponse(status_code=exc.status_code, content=body)

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
        logger.exception("unhandled_error", path=str(request.url.path))
        request_id = getattr(request.state, "request_id", "")
        body = _build_problem_detail(
            status=500,
            title="Internal Server Error",
            detail="An unexpected error occurred",
            instance=str(request.url.path),
            request_id=request_id,
        )
        return JSONResponse(status_code=500, content=body)
