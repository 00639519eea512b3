"""Import history and per-import metadata documents.

Every import produces one ``ImportHistoryEntry``. The metadata analyzer
then attaches any number of ``ImportMetadata`` documents to it, one per
kind of aggregate, and backfills a summary into ``ImportHistoryEntry.metadata``.
"""

from datetime import date, datetime
from enum import Enum
from typing import Annotated, Any, Literal, Optional, Union

from beanie import Document, Indexed, PydanticObjectId
from pydantic import BaseModel, Field, TypeAdapter, model_validator
from pymongo import ASCENDING, DESCENDING, IndexModel

from busana.models.import_batch import ImportStatus, ImportType, utc_now


class ImportHistoryEntry(Document):
    """Outcome of one import, kept for auditing and duplicate detection."""

    import_type: ImportType
    file_name: str
    file_size: int = 0
    file_hash: Optional[str] = None
    batch_id: Optional[PydanticObjectId] = None
    total_records: int = 0
    imported_records: int = 0
    failed_records: int = 0
    # Rows whose natural key already existed and were overwritten
    duplicate_records: int = 0
    success_rate: float = 0.0
    processing_time_ms: int = 0
    import_status: ImportStatus = ImportStatus.COMPLETED
    import_summary: dict[str, Any] = Field(default_factory=dict)
    metadata: dict[str, Any] = Field(default_factory=dict)
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)

    class Settings:
        name = "import_history"
        indexes = [
            IndexModel([("import_type", ASCENDING), ("created_at", DESCENDING)], name="history_type_created"),
            IndexModel([("file_hash", ASCENDING)], name="history_file_hash"),
        ]

    @model_validator(mode="before")
    @classmethod
    def _derive_success_rate(cls, data: Any) -> Any:
        # success_rate is always recomputed from the counts, never taken as input
        if isinstance(data, dict):
            total = data.get("total_records") or 0
            imported = data.get("imported_records") or 0
            rate = round(imported / total * 100, 2) if total else 0.0
            data = {**data, "success_rate": rate}
        return data

    def __repr__(self) -> str:
        return (
            f"<ImportHistoryEntry(id={self.id}, type={self.import_type.value}, "
            f"file={self.file_name}, imported={self.imported_records}/{self.total_records})>"
        )


class MetadataType(str, Enum):
    """Kinds of metadata record attached to an import history entry."""

    DATE_RANGE = "date_range"
    FILE_INFO = "file_info"
    PROCESSING_INFO = "processing_info"
    SALES = "sales"
    PRODUCT = "product"
    STOCK = "stock"
    ADVERTISING = "advertising"
    SETTLEMENT = "settlement"
    RETURNS = "returns"
    REIMBURSEMENT = "reimbursement"
    COMMISSION = "commission"
    AFFILIATE = "affiliate"


class DateRangeMetadata(BaseModel):
    metadata_type: Literal["date_range"] = "date_range"
    start: date
    end: date
    total_dates: int
    unique_days: int
    # Distinct natural keys among the imported rows
    unique_keys: int = 0
    import_type: str


class FileInfoMetadata(BaseModel):
    metadata_type: Literal["file_info"] = "file_info"
    file_name: str
    file_type: str
    file_size: int
    file_hash: Optional[str] = None
    import_type: str


class ProcessingInfoMetadata(BaseModel):
    metadata_type: Literal["processing_info"] = "processing_info"
    total_records: int
    valid_records: int
    invalid_records: int
    imported_records: int
    updated_records: int
    chunk_count: int
    processing_time_ms: int
    status: str


class SalesMetadata(BaseModel):
    metadata_type: Literal["sales"] = "sales"
    unique_orders: int
    unique_marketplaces: list[str]
    unique_products: int
    total_quantity: int
    total_revenue: float
    average_order_value: float


class ProductMetadata(BaseModel):
    metadata_type: Literal["product"] = "product"
    unique_categories: list[str]
    unique_brands: list[str]
    unique_product_codes: int
    total_categories: int
    total_brands: int


class StockMetadata(BaseModel):
    metadata_type: Literal["stock"] = "stock"
    unique_products: int
    movements_by_type: dict[str, int]
    quantity_by_type: dict[str, int]


class AdvertisingMetadata(BaseModel):
    metadata_type: Literal["advertising"] = "advertising"
    unique_campaigns: list[str]
    unique_platforms: list[str]
    total_campaigns: int
    total_platforms: int
    total_cost: float
    total_impressions: int
    average_cost_per_campaign: float


class SettlementMetadata(BaseModel):
    metadata_type: Literal["settlement"] = "settlement"
    unique_order_ids: int
    settlement_types: list[str]
    total_settlement_amount: float
    average_settlement: float


class ReturnsMetadata(BaseModel):
    metadata_type: Literal["returns"] = "returns"
    total_returns: int
    total_cancellations: int
    unique_marketplaces: list[str]
    total_quantity_returned: int
    total_refund_amount: float
    # Refunds plus lost shipping, less restocking fees kept
    total_loss: float
    resellable_items: int


class ReimbursementMetadata(BaseModel):
    metadata_type: Literal["reimbursement"] = "reimbursement"
    total_claims: int
    claims_by_type: dict[str, int]
    claims_by_status: dict[str, int]
    total_claim_amount: float
    total_approved_amount: float
    total_received_amount: float


class CommissionMetadata(BaseModel):
    metadata_type: Literal["commission"] = "commission"
    total_adjustments: int
    adjustments_by_type: dict[str, int]
    unique_marketplaces: list[str]
    total_adjustment_amount: float
    total_final_commission: float


class AffiliateMetadata(BaseModel):
    metadata_type: Literal["affiliate"] = "affiliate"
    unique_affiliates: list[str]
    total_affiliates: int
    total_samples: int
    total_cost: float
    content_delivered: int
    unique_campaigns: list[str]


MetadataPayload = Annotated[
    Union[
        DateRangeMetadata,
        FileInfoMetadata,
        ProcessingInfoMetadata,
        SalesMetadata,
        ProductMetadata,
        StockMetadata,
        AdvertisingMetadata,
        SettlementMetadata,
        ReturnsMetadata,
        ReimbursementMetadata,
        CommissionMetadata,
        AffiliateMetadata,
    ],
    Field(discriminator="metadata_type"),
]

_payload_adapter: TypeAdapter[MetadataPayload] = TypeAdapter(MetadataPayload)


def parse_metadata_payload(raw: dict[str, Any]) -> MetadataPayload:
    """Validate a stored metadata blob into its typed variant."""
    return _payload_adapter.validate_python(raw)


class ImportMetadata(Document):
    """One typed aggregate describing the contents of an import."""

    import_history_id: Indexed(PydanticObjectId)
    metadata_type: MetadataType
    metadata: dict[str, Any]
    created_at: datetime = Field(default_factory=utc_now)

    class Settings:
        name = "import_metadata"
        indexes = [
            IndexModel([("metadata_type", ASCENDING), ("created_at", DESCENDING)], name="metadata_type_created"),
        ]

    @classmethod
    def from_payload(cls, history_id: PydanticObjectId, payload: MetadataPayload) -> "ImportMetadata":
        return cls(
            import_history_id=history_id,
            metadata_type=MetadataType(payload.metadata_type),
            metadata=payload.model_dump(mode="json"),
        )

    def payload(self) -> MetadataPayload:
        return parse_metadata_payload(self.metadata)
