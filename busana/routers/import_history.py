"""Import history endpoints: audit trail, per-import metadata and statistics."""

import logging
from datetime import datetime, timedelta, timezone

from beanie import PydanticObjectId
from bson.errors import InvalidId
from fastapi import APIRouter, Query, status
from pydantic import ValidationError
from pymongo import ASCENDING

from busana.models import ImportHistoryEntry, ImportMetadata, ImportType
from busana.schemas.import_schemas import (
    ApiResponse,
    DailyStats,
    HistoryDetailData,
    HistoryListData,
    HistoryPageInfo,
    ImportHistoryResponse,
    ImportStatsData,
    MetadataRecordResponse,
    TypeStats,
)

from ._common import ApiError

logger = logging.getLogger(__name__)

router = APIRouter()

DAILY_BREAKDOWN_DAYS = 7


def _history_response(entry: ImportHistoryEntry, include_metadata: bool = False) -> ImportHistoryResponse:
    return ImportHistoryResponse(
        id=str(entry.id),
        import_type=entry.import_type.value,
        file_name=entry.file_name,
        file_size=entry.file_size,
        file_hash=entry.file_hash,
        batch_id=str(entry.batch_id) if entry.batch_id else None,
        total_records=entry.total_records,
        imported_records=entry.imported_records,
        failed_records=entry.failed_records,
        duplicate_records=entry.duplicate_records,
        success_rate=entry.success_rate,
        processing_time_ms=entry.processing_time_ms,
        import_status=entry.import_status.value,
        import_summary=entry.import_summary,
        metadata=entry.metadata if include_metadata else None,
        created_at=entry.created_at,
    )


@router.get("", response_model=ApiResponse[HistoryListData])
async def list_import_history(
    import_type: ImportType | None = None,
    limit: int = Query(20, ge=1, le=100),
    offset: int = Query(0, ge=0),
    include_metadata: bool = False,
) -> ApiResponse[HistoryListData]:
    """List past imports, newest first."""
    query = (
        ImportHistoryEntry.find(ImportHistoryEntry.import_type == import_type)
        if import_type
        else ImportHistoryEntry.find_all()
    )
    total = await query.count()
    entries = await query.sort(-ImportHistoryEntry.created_at).skip(offset).limit(limit).to_list()

    return ApiResponse(
        data=HistoryListData(
            history=[_history_response(e, include_metadata) for e in entries],
            pagination=HistoryPageInfo(total=total, limit=limit, offset=offset, has_more=offset + len(entries) < total),
        ),
        message=f"{len(entries)} of {total} imports",
    )


@router.get("/stats", response_model=ApiResponse[ImportStatsData])
async def get_import_stats(days: int = Query(30, ge=1, le=365)) -> ApiResponse[ImportStatsData]:
    """Totals and averages over the last ``days`` days, by type and by day."""
    now = datetime.now(timezone.utc)
    cutoff = now - timedelta(days=days)
    daily_cutoff = now - timedelta(days=min(days, DAILY_BREAKDOWN_DAYS))

    pipeline = [
        {"$match": {"created_at": {"$gte": cutoff}}},
        {
            "$facet": {
                "totals": [
                    {
                        "$group": {
                            "_id": None,
                            "total_imports": {"$sum": 1},
                            "total_records": {"$sum": "$total_records"},
                            "total_imported": {"$sum": "$imported_records"},
                            "total_failed": {"$sum": "$failed_records"},
                            "avg_success_rate": {"$avg": "$success_rate"},
                            "avg_processing_time_ms": {"$avg": "$processing_time_ms"},
                        }
                    }
                ],
                "by_type": [
                    {
                        "$group": {
                            "_id": "$import_type",
                            "imports": {"$sum": 1},
                            "total_records": {"$sum": "$total_records"},
                            "imported_records": {"$sum": "$imported_records"},
                            "avg_success_rate": {"$avg": "$success_rate"},
                        }
                    },
                    {"$sort": {"imports": -1, "_id": 1}},
                ],
                "daily": [
                    {"$match": {"created_at": {"$gte": daily_cutoff}}},
                    {
                        "$group": {
                            "_id": {"$dateToString": {"format": "%Y-%m-%d", "date": "$created_at"}},
                            "imports": {"$sum": 1},
                            "total_records": {"$sum": "$total_records"},
                            "imported_records": {"$sum": "$imported_records"},
                        }
                    },
                    {"$sort": {"_id": 1}},
                ],
            }
        },
    ]
    cursor = await ImportHistoryEntry.get_pymongo_collection().aggregate(pipeline)
    facets = (await cursor.to_list(length=None))[0]
    totals = facets["totals"][0] if facets["totals"] else {}

    data = ImportStatsData(
        period_days=days,
        total_imports=totals.get("total_imports", 0),
        total_records=totals.get("total_records", 0),
        total_imported=totals.get("total_imported", 0),
        total_failed=totals.get("total_failed", 0),
        avg_success_rate=round(totals.get("avg_success_rate") or 0.0, 2),
        avg_processing_time_ms=round(totals.get("avg_processing_time_ms") or 0.0, 2),
        by_type=[
            TypeStats(
                import_type=row["_id"],
                imports=row["imports"],
                total_records=row["total_records"],
                imported_records=row["imported_records"],
                avg_success_rate=round(row["avg_success_rate"] or 0.0, 2),
            )
            for row in facets["by_type"]
        ],
        daily=[
            DailyStats(
                date=row["_id"],
                imports=row["imports"],
                total_records=row["total_records"],
                imported_records=row["imported_records"],
            )
            for row in facets["daily"]
        ],
    )
    return ApiResponse(data=data, message=f"Import statistics for the last {days} days")


@router.get("/{history_id}", response_model=ApiResponse[HistoryDetailData])
async def get_import_history_entry(history_id: str) -> ApiResponse[HistoryDetailData]:
    """One import with all of its metadata records."""
    try:
        entry = await ImportHistoryEntry.get(PydanticObjectId(history_id))
    except (InvalidId, ValidationError):
        entry = None

    if not entry:
        raise ApiError(status.HTTP_404_NOT_FOUND, f"Import '{history_id}' not found", error="Not found")

    records = await ImportMetadata.find(ImportMetadata.import_history_id == entry.id).sort(
        [("created_at", ASCENDING)]
    ).to_list()

    return ApiResponse(
        data=HistoryDetailData(
            entry=_history_response(entry, include_metadata=True),
            metadata_records=[
                MetadataRecordResponse(
                    id=str(r.id),
                    metadata_type=r.metadata_type.value,
                    metadata=r.metadata,
                    created_at=r.created_at,
                )
                for r in records
            ],
        ),
        message="Import details",
    )
