"""Import endpoints: spreadsheet uploads, duplicate pre-check and batch status."""

import logging
import math

from beanie import PydanticObjectId
from bson.errors import InvalidId
from fastapi import APIRouter, File, Query, Request, UploadFile, status
from pydantic import ValidationError
from slowapi import Limiter
from slowapi.util import get_remote_address

from busana.models import ImportBatch, ImportType
from busana.schemas.import_schemas import (
    ApiResponse,
    BatchListData,
    CheckSummary,
    ColumnInfo,
    DateRangeResponse,
    DuplicateCheckData,
    DuplicateSummary,
    ImportBatchResponse,
    ImportColumnsData,
    ImportResultData,
    PageInfo,
    PreviousImport,
    RowErrorResponse,
)
from busana.services.import_service import (
    ALLOWED_EXTENSIONS,
    FIELD_DESCRIPTIONS,
    HEADER_ALIASES,
    MAX_PREVIOUS_IMPORTS,
    REQUIRED_FIELDS,
    DuplicateReport,
    ImportResult,
    ImportServiceError,
    date_formats_for,
    precheck_file,
    run_import,
)

from ._common import ApiError, ConfigDep, api_error_from, read_upload

logger = logging.getLogger(__name__)

router = APIRouter()

# Parsing and upserting a spreadsheet is expensive; uploads are limited per client
limiter = Limiter(key_func=get_remote_address)


def _batch_response(batch: ImportBatch) -> ImportBatchResponse:
    return ImportBatchResponse(
        id=str(batch.id),
        batch_name=batch.batch_name,
        import_type=batch.import_type.value,
        file_name=batch.file_name,
        file_type=batch.file_type,
        file_size=batch.file_size,
        total_records=batch.total_records,
        valid_records=batch.valid_records,
        invalid_records=batch.invalid_records,
        imported_records=batch.imported_records,
        updated_records=batch.updated_records,
        status=batch.status.value,
        error_message=batch.error_message,
        error_details=[RowErrorResponse(**d.model_dump()) for d in batch.error_details],
        created_at=batch.created_at,
        completed_at=batch.completed_at,
    )


def _duplicate_summary(report: DuplicateReport) -> DuplicateSummary:
    return DuplicateSummary(
        is_duplicate=report.is_duplicate,
        risk_level=report.risk_level.value,
        exact_duplicates=len(report.exact_duplicates),
        warnings=report.warnings,
    )


def _result_data(result: ImportResult, error_limit: int) -> ImportResultData:
    date_range = result.duplicate_report.date_range
    return ImportResultData(
        imported=result.imported,
        updated=result.updated,
        errors=len(result.errors),
        batch_id=str(result.batch.id),
        total_rows=result.total_rows,
        valid_rows=result.valid_rows,
        invalid_rows=result.invalid_rows,
        success_rate=result.success_rate,
        status=result.batch.status.value,
        file_name=result.batch.file_name,
        file_type=result.file_type,
        error_details=[RowErrorResponse(**e.to_detail().model_dump()) for e in result.errors[:error_limit]],
        date_range=DateRangeResponse(**date_range.to_dict()) if date_range else None,
        duplicate_check=_duplicate_summary(result.duplicate_report),
        products_adjusted=result.products_adjusted,
    )


@router.get("/batches", response_model=ApiResponse[BatchListData])
async def list_batches(
    import_type: ImportType | None = None,
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
) -> ApiResponse[BatchListData]:
    """List import batches, newest first."""
    query = ImportBatch.find(ImportBatch.import_type == import_type) if import_type else ImportBatch.find_all()
    total = await query.count()
    batches = await query.sort(-ImportBatch.created_at).skip((page - 1) * limit).limit(limit).to_list()

    return ApiResponse(
        data=BatchListData(
            batches=[_batch_response(b) for b in batches],
            pagination=PageInfo(page=page, limit=limit, total=total, pages=math.ceil(total / limit)),
        ),
        message=f"{len(batches)} import batches",
    )


@router.get("/status/{batch_id}", response_model=ApiResponse[ImportBatchResponse])
async def get_import_status(batch_id: str) -> ApiResponse[ImportBatchResponse]:
    """Get the status and counts of one import batch."""
    batch = await _get_batch(batch_id)
    return ApiResponse(data=_batch_response(batch), message=f"Import batch is {batch.status.value}")


@router.get("/{import_type}/columns", response_model=ApiResponse[ImportColumnsData])
async def get_import_columns(import_type: ImportType, config: ConfigDep) -> ApiResponse[ImportColumnsData]:
    """Describe the columns an import type accepts."""
    required = set(REQUIRED_FIELDS[import_type])
    columns = [
        ColumnInfo(
            field=field.value,
            required=field in required,
            aliases=list(aliases),
            description=FIELD_DESCRIPTIONS.get(field),
        )
        for field, aliases in HEADER_ALIASES[import_type].items()
    ]
    return ApiResponse(
        data=ImportColumnsData(
            import_type=import_type.value,
            columns=columns,
            date_formats=list(date_formats_for(import_type)),
            allowed_extensions=sorted(ALLOWED_EXTENSIONS),
            max_file_size_mb=config.imports.max_upload_mb,
            max_rows=config.imports.max_rows,
        ),
        message=f"Columns for {import_type.value} imports",
    )


@router.post("/{import_type}", response_model=ApiResponse[ImportResultData])
@limiter.limit("30/minute")
async def import_file(
    request: Request,
    import_type: ImportType,
    config: ConfigDep,
    file: UploadFile = File(..., description="CSV, XLSX or XLS spreadsheet"),
) -> ApiResponse[ImportResultData]:
    """Import a spreadsheet of the given type.

    Valid rows are upserted by natural key; invalid rows are reported in
    ``errorDetails`` without stopping the import.
    """
    imports = config.imports
    content = await read_upload(file, imports.max_upload_bytes)

    try:
        result = await run_import(content, file.filename or "upload", import_type, imports)
    except ImportServiceError as e:
        raise api_error_from(e)

    data = _result_data(result, imports.error_detail_limit)
    message = f"Imported {data.imported} new and {data.updated} updated {import_type.value} records"
    if data.errors:
        message += f", {data.errors} rows with errors"
    return ApiResponse(data=data, message=message)


@router.post("/{import_type}/check-duplicates", response_model=ApiResponse[DuplicateCheckData])
@limiter.limit("30/minute")
async def check_file_duplicates(
    request: Request,
    import_type: ImportType,
    config: ConfigDep,
    file: UploadFile = File(..., description="CSV, XLSX or XLS spreadsheet"),
) -> ApiResponse[DuplicateCheckData]:
    """Check whether a file duplicates an earlier import, without importing it."""
    imports = config.imports
    content = await read_upload(file, imports.max_upload_bytes)

    try:
        precheck = await precheck_file(content, file.filename or "upload", import_type, imports)
    except ImportServiceError as e:
        raise api_error_from(e)

    report = precheck.report
    result = report.check_result()
    data = DuplicateCheckData(
        is_duplicate=report.is_duplicate,
        risk_level=report.risk_level.value,
        previous_imports=[
            PreviousImport(
                history_id=f.history_id,
                file_name=f.file_name,
                imported_at=f.imported_at,
                total_records=f.total_records,
                match_type=f.kind,
                risk_level=f.risk_level.value,
                overlap=f.overlap,
                date_range=DateRangeResponse(**f.date_range) if f.date_range else None,
            )
            for f in report.findings[:MAX_PREVIOUS_IMPORTS]
        ],
        warnings=report.warnings,
        recommendations=report.recommendations,
        file_hash=report.file_hash,
        date_range=DateRangeResponse(**report.date_range.to_dict()) if report.date_range else None,
        check_summary=CheckSummary(
            exact_duplicates_count=result.exact_duplicates_count,
            similar_imports_count=result.similar_imports_count,
            total_rows=precheck.total_rows,
            valid_rows=precheck.valid_rows,
            degraded_reason=report.degraded_reason,
        ),
    )
    message = "Possible duplicate import detected" if report.is_duplicate else "No duplicate import detected"
    return ApiResponse(data=data, message=message)


async def _get_batch(batch_id: str) -> ImportBatch:
    """Get an import batch by ID.

    Raises:
        ApiError: If the ID is malformed or no such batch exists.
    """
    try:
        batch = await ImportBatch.get(PydanticObjectId(batch_id))
    except (InvalidId, ValidationError):
        batch = None

    if not batch:
        raise ApiError(
            status.HTTP_404_NOT_FOUND,
            f"Import batch '{batch_id}' not found",
            error="Not found",
        )

    return batch
