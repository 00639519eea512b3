"""Post-import metadata: per-type aggregates stored next to the history entry."""

import logging
from collections import Counter, defaultdict
from typing import Any

from pymongo.errors import PyMongoError

from busana.models import ImportHistoryEntry, ImportMetadata, ImportType
from busana.models.import_history import (
    AdvertisingMetadata,
    AffiliateMetadata,
    CommissionMetadata,
    DateRangeMetadata,
    FileInfoMetadata,
    MetadataPayload,
    ProcessingInfoMetadata,
    ProductMetadata,
    ReimbursementMetadata,
    ReturnsMetadata,
    SalesMetadata,
    SettlementMetadata,
    StockMetadata,
)

from .converters import natural_key
from .duplicates import extract_date_range
from .outcome import Degraded, Ok, Outcome

logger = logging.getLogger(__name__)

Records = list[dict[str, Any]]


def _distinct(records: Records, name: str) -> list[str]:
    return sorted({str(r[name]) for r in records if r.get(name) not in (None, "")})


def _sum(records: Records, name: str) -> float:
    return sum(r.get(name) or 0 for r in records)


def analyze_sales(records: Records) -> SalesMetadata:
    unique_orders = len({r["order_id"] for r in records})
    # order_amount when the export has it, total_revenue otherwise
    total_revenue = sum(r.get("order_amount") or r.get("total_revenue") or 0 for r in records)
    return SalesMetadata(
        unique_orders=unique_orders,
        unique_marketplaces=_distinct(records, "marketplace"),
        unique_products=len({r["seller_sku"] for r in records}),
        total_quantity=int(_sum(records, "quantity")),
        total_revenue=round(total_revenue, 2),
        average_order_value=round(total_revenue / unique_orders, 2) if unique_orders else 0.0,
    )


def analyze_products(records: Records) -> ProductMetadata:
    categories = _distinct(records, "category")
    brands = _distinct(records, "brand")
    return ProductMetadata(
        unique_categories=categories,
        unique_brands=brands,
        unique_product_codes=len({r["product_code"] for r in records}),
        total_categories=len(categories),
        total_brands=len(brands),
    )


def analyze_stock(records: Records) -> StockMetadata:
    movements: Counter[str] = Counter()
    quantities: defaultdict[str, int] = defaultdict(int)
    for r in records:
        movements[r["movement_type"]] += 1
        quantities[r["movement_type"]] += r["quantity"]
    return StockMetadata(
        unique_products=len({r["product_code"] for r in records}),
        movements_by_type=dict(movements),
        quantity_by_type=dict(quantities),
    )


def analyze_advertising(records: Records) -> AdvertisingMetadata:
    campaigns = _distinct(records, "campaign_name")
    platforms = _distinct(records, "marketplace")
    total_cost = _sum(records, "cost")
    return AdvertisingMetadata(
        unique_campaigns=campaigns,
        unique_platforms=platforms,
        total_campaigns=len(campaigns),
        total_platforms=len(platforms),
        total_cost=round(total_cost, 2),
        total_impressions=int(_sum(records, "impressions")),
        average_cost_per_campaign=round(total_cost / len(campaigns), 2) if campaigns else 0.0,
    )


def analyze_settlements(records: Records) -> SettlementMetadata:
    order_ids = {r["order_id"] for r in records}
    total = _sum(records, "settlement_amount")
    return SettlementMetadata(
        unique_order_ids=len(order_ids),
        settlement_types=_distinct(records, "type"),
        total_settlement_amount=round(total, 2),
        average_settlement=round(total / len(order_ids), 2) if order_ids else 0.0,
    )


def analyze_returns(records: Records) -> ReturnsMetadata:
    kinds = Counter(r["type"] for r in records)
    refunds = _sum(records, "refund_amount")
    loss = refunds + _sum(records, "shipping_cost_loss") - _sum(records, "restocking_fee")
    return ReturnsMetadata(
        total_returns=kinds["return"],
        total_cancellations=kinds["cancel"],
        unique_marketplaces=_distinct(records, "marketplace"),
        total_quantity_returned=int(_sum(records, "quantity_returned")),
        total_refund_amount=round(refunds, 2),
        total_loss=round(loss, 2),
        resellable_items=sum(1 for r in records if r.get("resellable")),
    )


def analyze_reimbursements(records: Records) -> ReimbursementMetadata:
    return ReimbursementMetadata(
        total_claims=len(records),
        claims_by_type=dict(Counter(r["reimbursement_type"] for r in records)),
        claims_by_status=dict(Counter(r["status"] for r in records)),
        total_claim_amount=round(_sum(records, "claim_amount"), 2),
        total_approved_amount=round(_sum(records, "approved_amount"), 2),
        total_received_amount=round(_sum(records, "received_amount"), 2),
    )


def analyze_commission_adjustments(records: Records) -> CommissionMetadata:
    return CommissionMetadata(
        total_adjustments=len(records),
        adjustments_by_type=dict(Counter(r["adjustment_type"] for r in records)),
        unique_marketplaces=_distinct(records, "marketplace"),
        total_adjustment_amount=round(_sum(records, "adjustment_amount"), 2),
        total_final_commission=round(_sum(records, "final_commission"), 2),
    )


def analyze_affiliate_samples(records: Records) -> AffiliateMetadata:
    affiliates = _distinct(records, "affiliate_name")
    return AffiliateMetadata(
        unique_affiliates=affiliates,
        total_affiliates=len(affiliates),
        total_samples=int(_sum(records, "quantity_given")),
        total_cost=round(_sum(records, "total_cost"), 2),
        content_delivered=sum(1 for r in records if r.get("content_delivered")),
        unique_campaigns=_distinct(records, "campaign_name"),
    )


_ANALYZERS = {
    ImportType.SALES: analyze_sales,
    ImportType.PRODUCTS: analyze_products,
    ImportType.STOCK: analyze_stock,
    ImportType.ADVERTISING: analyze_advertising,
    ImportType.ADVERTISING_SETTLEMENT: analyze_settlements,
    ImportType.RETURNS: analyze_returns,
    ImportType.REIMBURSEMENTS: analyze_reimbursements,
    ImportType.COMMISSION_ADJUSTMENTS: analyze_commission_adjustments,
    ImportType.AFFILIATE_SAMPLES: analyze_affiliate_samples,
}


def analyze_rows(records: Records, import_type: ImportType) -> list[MetadataPayload]:
    """Aggregates describing a set of validated records.

    Returns the date range (when the records carry business dates) followed
    by the type-specific summary. Empty input gives an empty list.
    """
    if not records:
        return []

    payloads: list[MetadataPayload] = []
    date_range = extract_date_range(records, import_type)
    if date_range is not None:
        payloads.append(
            DateRangeMetadata(
                start=date_range.start,
                end=date_range.end,
                total_dates=date_range.total_dates,
                unique_days=date_range.unique_days,
                unique_keys=len({natural_key(r, import_type) for r in records}),
                import_type=import_type.value,
            )
        )
    payloads.append(_ANALYZERS[import_type](records))
    return payloads


def build_file_info(
    file_name: str,
    file_type: str,
    file_size: int,
    file_hash: str | None,
    import_type: ImportType,
) -> FileInfoMetadata:
    return FileInfoMetadata(
        file_name=file_name,
        file_type=file_type,
        file_size=file_size,
        file_hash=file_hash,
        import_type=import_type.value,
    )


def build_processing_info(
    history: ImportHistoryEntry,
    valid_records: int,
    invalid_records: int,
    chunk_count: int,
) -> ProcessingInfoMetadata:
    return ProcessingInfoMetadata(
        total_records=history.total_records,
        valid_records=valid_records,
        invalid_records=invalid_records,
        imported_records=history.imported_records,
        updated_records=history.duplicate_records,
        chunk_count=chunk_count,
        processing_time_ms=history.processing_time_ms,
        status=history.import_status.value,
    )


async def persist_import_metadata(
    history: ImportHistoryEntry,
    payloads: list[MetadataPayload],
) -> Outcome[int]:
    """Store one ImportMetadata per payload and backfill the history entry.

    Returns the number of records written. Storage failures are logged and
    returned as Degraded; the import itself has already succeeded.
    """
    if history.id is None:
        return Degraded("history entry has not been saved")

    documents = [ImportMetadata.from_payload(history.id, payload) for payload in payloads]
    try:
        if documents:
            await ImportMetadata.insert_many(documents)
        history.metadata = {doc.metadata_type.value: doc.metadata for doc in documents}
        await history.save()
    except PyMongoError as e:
        logger.warning("Metadata for import %s not saved: %s", history.id, e)
        return Degraded(str(e))

    logger.info("Saved %d metadata records for import %s", len(documents), history.id)
    return Ok(len(documents))


async def record_import_metadata(
    history: ImportHistoryEntry,
    records: Records,
    import_type: ImportType,
    file_info: FileInfoMetadata,
    valid_records: int,
    invalid_records: int,
    chunk_count: int,
) -> Outcome[int]:
    """Analyze the written records and store the result next to ``history``.

    Analysis and storage are both best effort: the rows are already
    committed, so any failure here is logged and returned as Degraded.
    """
    try:
        payloads = analyze_rows(records, import_type)
        payloads.append(file_info)
        payloads.append(build_processing_info(history, valid_records, invalid_records, chunk_count))
    except (KeyError, TypeError, ValueError, ArithmeticError) as e:
        logger.warning("Metadata for import %s not computed: %s", history.id, e)
        return Degraded(f"metadata analysis failed: {e}")

    return await persist_import_metadata(history, payloads)
