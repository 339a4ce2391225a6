"""Error Handlers — global exception handlers for the ArchLens API.

Invariants:
    - ArchLensError → structured JSON with error code, message, severity
    - RequestValidationError → 400 with field-level details, same envelope shape
    - Exception (catch-all) → never leaks internal details
    - Client-side ArchLensErrors (4xx) log at WARNING, upstream failures (5xx) at ERROR
    - retry_after_ms on the error context becomes a Retry-After header (whole seconds)

Design Decisions:
    - Three-layer handler: domain (ArchLensError), validation (Pydantic), catch-all (Exception)
    - Validation field paths drop the "body"/"path" location prefix: clients address
      fields by their JSON name
    - space_id is read from the path so 400s on canvas routes still carry it
    - Extracted from main.py (ADR: ExMA import fan-out < 10)
"""

import logging
import math

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError

from archlens.core.errors import ArchLensError, CanvasValidationError, ErrorSeverity

logger = logging.getLogger(__name__)

_LOCATION_PREFIXES = {"body", "path", "query"}


def register_error_handlers(app: FastAPI) -> None:
    """Register all global error handlers on the FastAPI app."""
    _register_archlens_error_handler(app)
    _register_validation_error_handler(app)
    _register_generic_error_handler(app)


def _register_archlens_error_handler(app: FastAPI) -> None:

    @app.exception_handler(ArchLensError)
    async def archlens_error_handler(request: Request, exc: ArchLensError):
        """Handle all ArchLens domain/infrastructure errors."""
        log = logger.warning if exc.http_status < 500 else logger.error
        log(
            f"{exc.code} on {request.url.path}: {exc.message}",
            extra={
                "error_code": exc.code,
                "path": request.url.path,
                "space_id": exc.context.space_id,
            },
        )
        return JSONResponse(
            status_code=exc.http_status,
            content=build_error_body(exc),
            headers=retry_after_headers(exc),
        )


def _register_validation_error_handler(app: FastAPI) -> None:

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(
        request: Request, exc: RequestValidationError,
    ):
        space_id = request.path_params.get("space_id")
        logger.warning(
            f"Validation error on {request.url.path}: {exc.errors()}",
            extra={"path": request.url.path, "space_id": space_id},
        )
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content=build_validation_error_body(exc.errors(), space_id),
        )


def _register_generic_error_handler(app: FastAPI) -> None:

    @app.exception_handler(Exception)
    async def generic_error_handler(request: Request, exc: Exception):
        """Catch-all — never leaks internal details."""
        logger.error(
            f"Unhandled exception on {request.url.path}: {exc}",
            exc_info=True,
            extra={"path": request.url.path},
        )
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={
                "error": {
                    "code": "INTERNAL_ERROR",
                    "message": "An unexpected error occurred",
                    "category": "internal",
                    "severity": ErrorSeverity.CRITICAL.value,
                },
            },
        )


# --- Body / header builders (pure) --------------------------------------------

def build_error_body(exc: ArchLensError) -> dict:
    """REST envelope; canvas validation errors also name the offending field."""
    body = exc.to_response()
    if isinstance(exc, CanvasValidationError):
        body["error"]["details"] = [
            {"field": exc.field, "message": exc.message, "type": "canvas"},
        ]
    return body


def retry_after_headers(exc: ArchLensError) -> dict[str, str] | None:
    retry_after_ms = exc.context.retry_after_ms
    if not retry_after_ms:
        return None
    return {"Retry-After": str(max(1, math.ceil(retry_after_ms / 1000)))}


def _field_path(loc: tuple | list) -> str:
    parts = [str(p) for p in loc]
    if parts and parts[0] in _LOCATION_PREFIXES:
        parts = parts[1:]
    return ".".join(parts) or "body"


def build_validation_error_body(errors: list[dict], space_id: str | None = None) -> dict:
    return {
        "error": {
            "code": "VALIDATION_ERROR",
            "message": "Invalid request data",
            "category": "validation",
            "severity": ErrorSeverity.ERROR.value,
            "context": {"space_id": space_id},
            "details": [
                {
                    "field": _field_path(e["loc"]),
                    "message": e["msg"],
                    "type": e["type"],
                }
                for e in errors
            ],
        },
    }
