"""Import orchestration: parse, validate, upsert in chunks, record history."""

import logging
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Optional

from pymongo import UpdateOne
from pymongo.errors import BulkWriteError, PyMongoError

from busana.config import ImportConfig
from busana.models import (
    ImportBatch,
    ImportHistoryEntry,
    ImportStatus,
    ImportType,
    Product,
)

from .converters import RECORD_MODELS, RowError, ValidRow, validate_row
from .duplicates import DuplicateReport, check_duplicates, compute_file_hash, record_duplicate_check
from .errors import (
    DuplicateImportError,
    FileTooLargeError,
    ImportAbortedError,
    ImportServiceError,
    StorageUnavailableError,
)
from .mapping import missing_required_columns, resolve_headers, resolve_row
from .metadata import build_file_info, record_import_metadata
from .outcome import Ok
from .parsers import ParsedFile, parse_upload

logger = logging.getLogger(__name__)


@dataclass
class WriteSummary:
    """What the chunked upsert managed to store."""

    inserted: int = 0
    updated: int = 0
    chunks: int = 0
    written: list[dict[str, Any]] = field(default_factory=list)
    # Values of rows that created a new record (not an overwrite)
    new_rows: list[dict[str, Any]] = field(default_factory=list)
    errors: list[RowError] = field(default_factory=list)
    fatal_error: Optional[str] = None

    @property
    def stored(self) -> int:
        return self.inserted + self.updated


@dataclass
class ImportResult:
    """Outcome of a completed import, as reported to the caller."""

    batch: ImportBatch
    history: Optional[ImportHistoryEntry]
    file_type: str
    imported: int
    updated: int
    total_rows: int
    valid_rows: int
    errors: list[RowError]
    duplicate_report: DuplicateReport
    products_adjusted: Optional[int] = None

    @property
    def invalid_rows(self) -> int:
        return self.total_rows - self.valid_rows

    @property
    def success_rate(self) -> float:
        stored = self.imported + self.updated
        return round(stored / self.total_rows * 100, 2) if self.total_rows else 0.0


def _chunks(rows: list[ValidRow], size: int):
    for start in range(0, len(rows), size):
        yield rows[start : start + size]


def _upsert_op(values: dict[str, Any], key_fields: tuple[str, ...], batch: ImportBatch, now: datetime) -> UpdateOne:
    return UpdateOne(
        {name: values[name] for name in key_fields},
        {
            "$set": {**values, "import_batch_id": batch.id, "updated_at": now},
            "$setOnInsert": {"created_at": now},
        },
        upsert=True,
    )


async def _write_chunk(collection, chunk: list[ValidRow], key_fields, batch, now, summary: WriteSummary) -> None:
    """Upsert one chunk in order, resuming after any row the server rejects."""
    pending = chunk
    while pending:
        ops = [_upsert_op(row.values, key_fields, batch, now) for row in pending]
        try:
            result = await collection.bulk_write(ops, ordered=True)
        except BulkWriteError as e:
            details = e.details
            if not details.get("writeErrors"):
                # Write concern failures are not tied to a row
                raise
            failed = details["writeErrors"][0]
            index = failed["index"]
            inserted_at = {item["index"] for item in details.get("upserted", [])}
            _tally(pending[:index], inserted_at, summary)

            row = pending[index]
            summary.errors.append(RowError(row.row, "record", None, f"write rejected: {failed.get('errmsg', 'unknown error')}"))
            logger.warning("Import write error on row %d: %s", row.row, failed.get("errmsg"))
            pending = pending[index + 1 :]
            continue

        _tally(pending, set(result.upserted_ids), summary)
        pending = []


def _tally(rows: list[ValidRow], inserted_at: set[int], summary: WriteSummary) -> None:
    for i, row in enumerate(rows):
        summary.written.append(row.values)
        if i in inserted_at:
            summary.inserted += 1
            summary.new_rows.append(row.values)
        else:
            summary.updated += 1


async def upsert_rows(
    rows: list[ValidRow],
    import_type: ImportType,
    batch: ImportBatch,
    chunk_size: int,
    now: datetime,
) -> WriteSummary:
    """Upsert validated rows by natural key, ``chunk_size`` rows per round trip.

    Within a file the later row for a key wins. A connectivity failure stops
    the remaining chunks; chunks already written stay written.
    """
    model = RECORD_MODELS[import_type]
    collection = model.get_pymongo_collection()
    summary = WriteSummary()

    for chunk in _chunks(rows, chunk_size):
        try:
            await _write_chunk(collection, chunk, model.natural_key, batch, now, summary)
        except PyMongoError as e:
            summary.fatal_error = str(e)
            logger.error(
                "Import batch %s aborted after %d chunks, storage unavailable: %s",
                batch.id,
                summary.chunks,
                e,
            )
            break
        summary.chunks += 1
        logger.debug("Batch %s: chunk %d written (%d rows)", batch.id, summary.chunks, len(chunk))

    return summary


async def apply_stock_movements(movements: list[dict[str, Any]], now: datetime) -> int:
    """Apply newly recorded stock movements to product stock levels.

    ``in`` adds, ``out`` subtracts without going below zero and
    ``adjustment`` sets the level. Movements for unknown products are
    ignored. Returns the number of product updates applied.
    """
    if not movements:
        return 0

    current = {"$ifNull": ["$stock_quantity", 0]}
    ops = []
    for movement in movements:
        quantity = movement["quantity"]
        if movement["movement_type"] == "in":
            level: Any = {"$add": [current, quantity]}
        elif movement["movement_type"] == "out":
            level = {"$max": [0, {"$subtract": [current, quantity]}]}
        else:
            level = quantity
        ops.append(
            UpdateOne(
                {"product_code": movement["product_code"]},
                [{"$set": {"stock_quantity": level, "updated_at": now}}],
            )
        )

    result = await Product.get_pymongo_collection().bulk_write(ops, ordered=True)
    return result.modified_count


async def _finish_batch(
    batch: ImportBatch,
    status: ImportStatus,
    valid: int,
    summary: WriteSummary,
    errors: list[RowError],
    error_limit: int,
    message: str | None = None,
) -> None:
    now = datetime.now(timezone.utc)
    batch.valid_records = valid
    batch.invalid_records = batch.total_records - valid
    batch.imported_records = summary.stored
    batch.updated_records = summary.updated
    batch.status = status
    batch.error_message = message
    batch.error_details = [e.to_detail() for e in errors[:error_limit]]
    batch.updated_at = now
    batch.completed_at = now
    await batch.save()


async def _record_history(
    batch: ImportBatch,
    parsed: ParsedFile,
    summary: WriteSummary,
    errors: list[RowError],
    started: float,
    header_map_size: int,
) -> ImportHistoryEntry | None:
    history = ImportHistoryEntry(
        import_type=batch.import_type,
        file_name=batch.file_name,
        file_size=batch.file_size,
        file_hash=batch.file_hash,
        batch_id=batch.id,
        total_records=batch.total_records,
        imported_records=summary.stored,
        failed_records=batch.total_records - summary.stored,
        duplicate_records=summary.updated,
        processing_time_ms=int((time.perf_counter() - started) * 1000),
        import_status=batch.status,
        import_summary={
            "valid_records": batch.valid_records,
            "invalid_records": batch.invalid_records,
            "new_records": summary.inserted,
            "updated_records": summary.updated,
            "error_count": len(errors),
            "chunk_count": summary.chunks,
            "resolved_columns": header_map_size,
            "file_type": parsed.file_type,
        },
    )
    try:
        await history.insert()
    except PyMongoError as e:
        logger.warning("Import history for batch %s not saved: %s", batch.id, e)
        return None
    return history


def _abort_details(batch: ImportBatch, errors: list[RowError], error_limit: int) -> dict[str, Any]:
    return {
        "batchId": str(batch.id),
        "totalRows": batch.total_records,
        "validRows": batch.valid_records,
        "invalidRows": batch.invalid_records,
        "imported": batch.imported_records,
        "errors": len(errors),
        "errorDetails": [e.to_detail().model_dump() for e in errors[:error_limit]],
    }


async def _fail_batch(batch: ImportBatch, message: str) -> None:
    """Mark a batch failed after an unexpected error, if storage allows."""
    now = datetime.now(timezone.utc)
    batch.status = ImportStatus.FAILED
    batch.error_message = message
    batch.updated_at = now
    batch.completed_at = now
    try:
        await batch.save()
    except PyMongoError as e:
        logger.error("Could not mark batch %s as failed: %s", batch.id, e)


async def run_import(
    content: bytes,
    file_name: str,
    import_type: ImportType,
    config: ImportConfig,
    now: datetime | None = None,
) -> ImportResult:
    """Run a full import of one uploaded file.

    Args:
        content: Raw file bytes.
        file_name: Original file name; its extension selects the parser.
        import_type: What the file contains.
        config: Import limits and policies.
        now: Timestamp for record timestamps and the duplicate lookback.

    Returns:
        ImportResult with counts, row errors and the duplicate report.

    Raises:
        ImportFileError: The file cannot be imported; nothing was written.
        DuplicateImportError: Identical file already imported and blocking is on.
        ImportAbortedError: No usable rows, a row failed while full validity
            is required, or processing failed unexpectedly. The batch is
            marked failed.
        StorageUnavailableError: The database went away. Chunks already
            written remain; the batch is marked failed when it exists.
    """
    started = time.perf_counter()
    now = now or datetime.now(timezone.utc)

    if len(content) > config.max_upload_bytes:
        raise FileTooLargeError(f"File exceeds maximum size of {config.max_upload_mb} MB")

    parsed = parse_upload(content, file_name, config.max_rows)
    hash_outcome = compute_file_hash(content)

    batch = ImportBatch(
        batch_name=f"{import_type.value} {now:%Y-%m-%d %H:%M:%S}",
        import_type=import_type,
        file_name=file_name,
        file_type=parsed.file_type,
        file_size=len(content),
        file_hash=hash_outcome.value if isinstance(hash_outcome, Ok) else None,
        total_records=len(parsed.rows),
    )
    try:
        await batch.insert()
    except PyMongoError as e:
        logger.error("Import of %s not started, storage unavailable: %s", file_name, e)
        raise StorageUnavailableError(f"Storage unavailable: {e}") from e
    logger.info("Import batch %s started: %s %s (%d rows)", batch.id, import_type.value, file_name, len(parsed.rows))

    try:
        return await _process_batch(batch, parsed, content, import_type, config, now, started)
    except ImportServiceError:
        raise
    except Exception as e:
        # Every batch must end completed or failed
        logger.exception("Import batch %s failed unexpectedly", batch.id)
        message = f"Import failed unexpectedly: {e}"
        await _fail_batch(batch, message)
        raise ImportAbortedError(message, details={"batchId": str(batch.id), "totalRows": batch.total_records}) from e


async def _process_batch(
    batch: ImportBatch,
    parsed: ParsedFile,
    content: bytes,
    import_type: ImportType,
    config: ImportConfig,
    now: datetime,
    started: float,
) -> ImportResult:
    limit = config.error_detail_limit
    file_name = batch.file_name

    header_map = resolve_headers(parsed.headers, import_type)
    missing = missing_required_columns(header_map, import_type)
    if missing:
        logger.warning(
            "Batch %s: no column found for required fields %s",
            batch.id,
            ", ".join(f.value for f in missing),
        )

    record_time = now.replace(tzinfo=None)
    valid: list[ValidRow] = []
    errors: list[RowError] = []
    for i, row in enumerate(parsed.rows, start=1):
        outcome = validate_row(resolve_row(row, header_map), import_type, i, now=record_time)
        if isinstance(outcome, ValidRow):
            valid.append(outcome)
        else:
            errors.extend(outcome)

    nothing_written = WriteSummary()
    if not valid or (config.require_full_validity and errors):
        message = "No valid rows to import" if not valid else f"{len(parsed.rows) - len(valid)} rows failed validation"
        await _finish_batch(batch, ImportStatus.FAILED, len(valid), nothing_written, errors, limit, message)
        await _record_history(batch, parsed, nothing_written, errors, started, len(header_map))
        logger.warning("Import batch %s failed: %s", batch.id, message)
        raise ImportAbortedError(message, details=_abort_details(batch, errors, limit))

    report = await check_duplicates(
        content,
        file_name,
        import_type,
        [row.values for row in valid],
        lookback_days=config.duplicate_lookback_days,
        now=now,
    )
    if config.block_exact_duplicates and report.exact_duplicates:
        message = f"File already imported as '{report.exact_duplicates[0].file_name}'"
        await _finish_batch(batch, ImportStatus.FAILED, len(valid), nothing_written, errors, limit, message)
        logger.warning("Import batch %s refused: %s", batch.id, message)
        raise DuplicateImportError(message, details={"batchId": str(batch.id), "fileHash": report.file_hash})

    summary = await upsert_rows(valid, import_type, batch, config.chunk_size, now)
    all_errors = errors + summary.errors

    if summary.fatal_error is not None:
        message = f"Storage unavailable: {summary.fatal_error}"
        try:
            await _finish_batch(batch, ImportStatus.FAILED, len(valid), summary, all_errors, limit, message)
        except PyMongoError as e:
            logger.error("Could not mark batch %s as failed: %s", batch.id, e)
        batch.status = ImportStatus.FAILED
        raise StorageUnavailableError(message, details=_abort_details(batch, all_errors, limit))

    products_adjusted = None
    if import_type == ImportType.STOCK:
        try:
            products_adjusted = await apply_stock_movements(summary.new_rows, now)
        except PyMongoError as e:
            logger.warning("Batch %s: product stock levels not updated: %s", batch.id, e)

    status = ImportStatus.COMPLETED if summary.stored else ImportStatus.FAILED
    await _finish_batch(
        batch,
        status,
        len(valid),
        summary,
        all_errors,
        limit,
        None if summary.stored else "No rows could be written",
    )

    history = await _record_history(batch, parsed, summary, all_errors, started, len(header_map))
    if history is not None:
        await record_import_metadata(
            history,
            summary.written,
            import_type,
            build_file_info(file_name, parsed.file_type, len(content), batch.file_hash, import_type),
            valid_records=len(valid),
            invalid_records=batch.invalid_records,
            chunk_count=summary.chunks,
        )

    logger.info(
        "Import batch %s %s: %d new, %d updated, %d errors",
        batch.id,
        status.value,
        summary.inserted,
        summary.updated,
        len(all_errors),
    )

    return ImportResult(
        batch=batch,
        history=history,
        file_type=parsed.file_type,
        imported=summary.inserted,
        updated=summary.updated,
        total_rows=batch.total_records,
        valid_rows=len(valid),
        errors=all_errors,
        duplicate_report=report,
        products_adjusted=products_adjusted,
    )


@dataclass
class PrecheckResult:
    """Duplicate check of a file that was parsed and validated but not imported."""

    file_type: str
    total_rows: int
    valid_rows: int
    report: DuplicateReport


async def precheck_file(
    content: bytes,
    file_name: str,
    import_type: ImportType,
    config: ImportConfig,
    now: datetime | None = None,
) -> PrecheckResult:
    """Run the duplicate check for a file without importing it.

    The check itself is logged to ``duplicate_check_logs``; nothing else
    is written.

    Raises:
        ImportFileError: The file cannot be parsed.
    """
    if len(content) > config.max_upload_bytes:
        raise FileTooLargeError(f"File exceeds maximum size of {config.max_upload_mb} MB")

    parsed = parse_upload(content, file_name, config.max_rows)
    header_map = resolve_headers(parsed.headers, import_type)

    record_time = (now or datetime.now(timezone.utc)).replace(tzinfo=None)
    valid_values = []
    for i, row in enumerate(parsed.rows, start=1):
        outcome = validate_row(resolve_row(row, header_map), import_type, i, now=record_time)
        if isinstance(outcome, ValidRow):
            valid_values.append(outcome.values)

    report = await check_duplicates(
        content,
        file_name,
        import_type,
        valid_values,
        lookback_days=config.duplicate_lookback_days,
        now=now,
    )
    await record_duplicate_check(report, file_name, len(content), import_type)

    return PrecheckResult(
        file_type=parsed.file_type,
        total_rows=len(parsed.rows),
        valid_rows=len(valid_values),
        report=report,
    )
