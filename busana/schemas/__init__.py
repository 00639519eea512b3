"""Pydantic schemas for the Busana API."""

from busana.schemas.import_schemas import (
    ApiResponse,
    DuplicateCheckData,
    ErrorResponse,
    ImportBatchResponse,
    ImportHistoryResponse,
    ImportResultData,
)

__all__ = [
    "ApiResponse",
    "DuplicateCheckData",
    "ErrorResponse",
    "ImportBatchResponse",
    "ImportHistoryResponse",
    "ImportResultData",
]
