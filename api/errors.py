"""
Mapping from coordinator errors to HTTP responses.

Validation and conflict errors carry field-level detail. Write failures only
expose a generic message and the correlation id found in the logs.
"""

import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from repositories.errors import StoreError
from services.errors import (
    CompensationFailure,
    ConflictError,
    DependencyWriteError,
    NotFoundError,
    ValidationError,
)

logger = logging.getLogger(__name__)


def _error_body(status_code: int, error: str, detail=None, fields=None, correlation_id=None) -> dict:
    return {
        "error": error,
        "detail": detail,
        "status_code": status_code,
        "fields": fields or [],
        "correlation_id": correlation_id,
    }


async def _validation_error(request: Request, exc: ValidationError) -> JSONResponse:
    fields = [{"field": error.field, "message": error.message} for error in exc.errors]
    return JSONResponse(status_code=422, content=_error_body(422, "Invalid request", str(exc), fields))


async def _not_found(request: Request, exc: NotFoundError) -> JSONResponse:
    return JSONResponse(status_code=404, content=_error_body(404, "Not found", str(exc)))


async def _conflict(request: Request, exc: ConflictError) -> JSONResponse:
    fields = [{"field": exc.field, "message": "already in use"}]
    return JSONResponse(status_code=409, content=_error_body(409, "Conflict", str(exc), fields))


async def _dependency_write(request: Request, exc: DependencyWriteError) -> JSONResponse:
    return JSONResponse(
        status_code=502,
        content=_error_body(502, "Write failed", exc.public_message, correlation_id=exc.correlation_id),
    )


async def _compensation_failure(request: Request, exc: CompensationFailure) -> JSONResponse:
    return JSONResponse(
        status_code=500,
        content=_error_body(500, "Rollback failed", exc.public_message, correlation_id=exc.correlation_id),
    )


async def _store_error(request: Request, exc: StoreError) -> JSONResponse:
    # Reads that fail before any write; nothing to undo.
    logger.error("Storage unavailable", extra={"path": request.url.path, "store_error": str(exc)})
    return JSONResponse(
        status_code=503,
        content=_error_body(503, "Storage unavailable", "The data store could not be reached. Try again."),
    )


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(ValidationError, _validation_error)
    app.add_exception_handler(NotFoundError, _not_found)
    app.add_exception_handler(ConflictError, _conflict)
    app.add_exception_handler(DependencyWriteError, _dependency_write)
    app.add_exception_handler(CompensationFailure, _compensation_failure)
    app.add_exception_handler(StoreError, _store_error)
