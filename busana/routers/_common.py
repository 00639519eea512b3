"""Shared helpers for the API routers: config access, uploads and error envelopes."""

import logging
from http import HTTPStatus
from typing import Annotated, Any

from fastapi import Depends, HTTPException, Request, UploadFile, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded
from starlette.exceptions import HTTPException as StarletteHTTPException

from busana.config import BusanaConfig
from busana.schemas.import_schemas import ErrorResponse
from busana.services.import_service import (
    DuplicateImportError,
    FileTooLargeError,
    ImportAbortedError,
    ImportFileError,
    ImportServiceError,
    StorageUnavailableError,
)

logger = logging.getLogger(__name__)

UPLOAD_CHUNK_SIZE = 64 * 1024


class ApiError(HTTPException):
    """HTTPException that renders as the failure envelope.

    ``error`` is a short machine-readable label; ``detail`` is the
    human-readable message.
    """

    def __init__(
        self,
        status_code: int,
        message: str,
        error: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        super().__init__(status_code=status_code, detail=message)
        self.error = error or HTTPStatus(status_code).phrase
        self.details = details


def get_config(request: Request) -> BusanaConfig:
    """Configuration the application was created with."""
    return request.app.state.config


ConfigDep = Annotated[BusanaConfig, Depends(get_config)]


async def read_upload(file: UploadFile, max_bytes: int) -> bytes:
    """Read an upload in chunks, refusing it as soon as it exceeds max_bytes."""
    chunks: list[bytes] = []
    total_size = 0
    while True:
        chunk = await file.read(UPLOAD_CHUNK_SIZE)
        if not chunk:
            break
        total_size += len(chunk)
        if total_size > max_bytes:
            raise ApiError(
                status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
                f"File exceeds maximum size of {max_bytes // (1024 * 1024)} MB",
                error="File too large",
            )
        chunks.append(chunk)
    return b"".join(chunks)


def api_error_from(exc: ImportServiceError) -> ApiError:
    """Translate an import service exception into an ApiError."""
    if isinstance(exc, FileTooLargeError):
        code, label = status.HTTP_413_REQUEST_ENTITY_TOO_LARGE, "File too large"
    elif isinstance(exc, ImportFileError):
        code, label = status.HTTP_400_BAD_REQUEST, "Invalid file"
    elif isinstance(exc, DuplicateImportError):
        code, label = status.HTTP_409_CONFLICT, "Duplicate import"
    elif isinstance(exc, StorageUnavailableError):
        code, label = status.HTTP_503_SERVICE_UNAVAILABLE, "Storage unavailable"
    elif isinstance(exc, ImportAbortedError):
        code, label = status.HTTP_422_UNPROCESSABLE_ENTITY, "Import failed"
    else:
        code, label = status.HTTP_500_INTERNAL_SERVER_ERROR, "Import error"
    return ApiError(code, exc.message, error=label, details=exc.details or None)


def _envelope(status_code: int, error: str, message: str, details: dict[str, Any] | None = None) -> JSONResponse:
    body = ErrorResponse(error=error, message=message, status_code=status_code, details=details)
    return JSONResponse(status_code=status_code, content=body.model_dump(by_alias=True, exclude_none=True))


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Render any HTTPException as the failure envelope."""
    if isinstance(exc, ApiError):
        return _envelope(exc.status_code, exc.error, str(exc.detail), exc.details)
    response = _envelope(exc.status_code, HTTPStatus(exc.status_code).phrase, str(exc.detail))
    if exc.headers:
        response.headers.update(exc.headers)
    return response


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Render request validation failures as the failure envelope."""
    errors = [
        {"field": ".".join(str(part) for part in err["loc"]), "message": err["msg"]}
        for err in exc.errors()
    ]
    return _envelope(
        status.HTTP_422_UNPROCESSABLE_ENTITY,
        "Validation error",
        "Request parameters are invalid",
        {"errors": errors},
    )


async def rate_limit_exceeded_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    """Render slowapi's limit breach as the failure envelope."""
    logger.warning("Rate limit exceeded for %s: %s", request.url.path, exc.detail)
    return _envelope(
        status.HTTP_429_TOO_MANY_REQUESTS,
        "Too many requests",
        f"Rate limit exceeded: {exc.detail}",
    )


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Render anything no other handler claimed as a 500 failure envelope."""
    logger.exception("Unhandled error on %s %s", request.method, request.url.path, exc_info=exc)
    return _envelope(
        status.HTTP_500_INTERNAL_SERVER_ERROR,
        "Internal server error",
        "An unexpected error occurred",
    )
