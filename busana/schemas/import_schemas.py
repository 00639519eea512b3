"""Pydantic schemas for the import API.

All responses share the envelope ``{success, data, message}`` and use
camelCase keys on the wire.
"""

from datetime import datetime
from typing import Any, Generic, Optional, TypeVar

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

T = TypeVar("T")


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ApiResponse(CamelModel, Generic[T]):
    """Success envelope."""

    success: bool = True
    data: T
    message: str = ""


class ErrorResponse(CamelModel):
    """Failure envelope."""

    success: bool = False
    error: str
    message: str
    status_code: int
    details: Optional[dict[str, Any]] = None


class RowErrorResponse(CamelModel):
    row: int = Field(..., description="1-based data row number, header excluded")
    field: str
    value: Any = None
    message: str


class DateRangeResponse(CamelModel):
    start: str
    end: str


class DuplicateSummary(CamelModel):
    """Duplicate verdict attached to an import result."""

    is_duplicate: bool
    risk_level: str
    exact_duplicates: int = 0
    warnings: list[str] = Field(default_factory=list)


class ImportResultData(CamelModel):
    """Counts and errors for one import."""

    imported: int = Field(..., description="Records created by this import")
    updated: int = Field(..., description="Existing records overwritten by this import")
    errors: int = Field(..., description="Total number of row errors")
    batch_id: str
    total_rows: int
    valid_rows: int
    invalid_rows: int
    success_rate: float
    status: str
    file_name: str
    file_type: str
    error_details: list[RowErrorResponse] = Field(default_factory=list)
    date_range: Optional[DateRangeResponse] = None
    duplicate_check: Optional[DuplicateSummary] = None
    products_adjusted: Optional[int] = None


class PreviousImport(CamelModel):
    history_id: str
    file_name: str
    imported_at: datetime
    total_records: int
    match_type: str
    risk_level: str
    overlap: Optional[float] = None
    date_range: Optional[DateRangeResponse] = None


class CheckSummary(CamelModel):
    exact_duplicates_count: int
    similar_imports_count: int
    total_rows: int
    valid_rows: int
    degraded_reason: Optional[str] = None


class DuplicateCheckData(CamelModel):
    """Result of the duplicate pre-check."""

    is_duplicate: bool
    risk_level: str
    previous_imports: list[PreviousImport] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)
    recommendations: list[str] = Field(default_factory=list)
    file_hash: Optional[str] = None
    date_range: Optional[DateRangeResponse] = None
    check_summary: CheckSummary


class ImportBatchResponse(CamelModel):
    id: str
    batch_name: str
    import_type: str
    file_name: str
    file_type: str
    file_size: int
    total_records: int
    valid_records: int
    invalid_records: int
    imported_records: int
    updated_records: int
    status: str
    error_message: Optional[str] = None
    error_details: list[RowErrorResponse] = Field(default_factory=list)
    created_at: datetime
    completed_at: Optional[datetime] = None


class PageInfo(CamelModel):
    page: int
    limit: int
    total: int
    pages: int


class BatchListData(CamelModel):
    batches: list[ImportBatchResponse]
    pagination: PageInfo


class ColumnInfo(CamelModel):
    """A field an import type accepts, with the headers that map to it."""

    field: str
    required: bool
    aliases: list[str]
    description: Optional[str] = None


class ImportColumnsData(CamelModel):
    import_type: str
    columns: list[ColumnInfo]
    date_formats: list[str]
    allowed_extensions: list[str]
    max_file_size_mb: int
    max_rows: int


class MetadataRecordResponse(CamelModel):
    id: str
    metadata_type: str
    metadata: dict[str, Any]
    created_at: datetime


class ImportHistoryResponse(CamelModel):
    id: str
    import_type: str
    file_name: str
    file_size: int
    file_hash: Optional[str] = None
    batch_id: Optional[str] = None
    total_records: int
    imported_records: int
    failed_records: int
    duplicate_records: int
    success_rate: float
    processing_time_ms: int
    import_status: str
    import_summary: dict[str, Any] = Field(default_factory=dict)
    metadata: Optional[dict[str, Any]] = None
    created_at: datetime


class HistoryPageInfo(CamelModel):
    total: int
    limit: int
    offset: int
    has_more: bool


class HistoryListData(CamelModel):
    history: list[ImportHistoryResponse]
    pagination: HistoryPageInfo


class HistoryDetailData(CamelModel):
    entry: ImportHistoryResponse
    metadata_records: list[MetadataRecordResponse]


class TypeStats(CamelModel):
    import_type: str
    imports: int
    total_records: int
    imported_records: int
    avg_success_rate: float


class DailyStats(CamelModel):
    date: str
    imports: int
    total_records: int
    imported_records: int


class ImportStatsData(CamelModel):
    period_days: int
    total_imports: int
    total_records: int
    total_imported: int
    total_failed: int
    avg_success_rate: float
    avg_processing_time_ms: float
    by_type: list[TypeStats]
    daily: list[DailyStats]
