"""ImportBatch document model for tracking spreadsheet imports."""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional

from beanie import Document
from pydantic import BaseModel, Field
from pymongo import ASCENDING, DESCENDING, IndexModel


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class ImportType(str, Enum):
    """Kinds of spreadsheet the import pipeline accepts."""

    SALES = "sales"
    PRODUCTS = "products"
    STOCK = "stock"
    ADVERTISING = "advertising"
    ADVERTISING_SETTLEMENT = "advertising-settlement"
    RETURNS = "returns-and-cancellations"
    REIMBURSEMENTS = "marketplace-reimbursements"
    COMMISSION_ADJUSTMENTS = "commission-adjustments"
    AFFILIATE_SAMPLES = "affiliate-samples"


class ImportStatus(str, Enum):
    """Status of an import batch."""

    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


class RowErrorDetail(BaseModel):
    """A single rejected row, as stored on the batch and returned to clients."""

    row: int
    field: str
    value: Any = None
    message: str


class ImportBatch(Document):
    """One upload attempt, from creation at upload start to a terminal status.

    ``total_records`` is known when the batch is created; the remaining
    counts stay at zero until processing finishes.
    """

    batch_name: str
    import_type: ImportType
    file_name: str
    file_type: str  # "csv" or "excel"
    file_size: int = 0
    file_hash: Optional[str] = None
    total_records: int
    valid_records: int = 0
    invalid_records: int = 0
    imported_records: int = 0
    updated_records: int = 0
    status: ImportStatus = ImportStatus.PROCESSING
    error_message: Optional[str] = None
    error_details: list[RowErrorDetail] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)
    completed_at: Optional[datetime] = None

    class Settings:
        name = "import_batches"
        indexes = [
            IndexModel([("created_at", DESCENDING)], name="import_batches_created_at"),
            IndexModel([("import_type", ASCENDING), ("created_at", DESCENDING)], name="import_batches_type_created_at"),
        ]

    def __repr__(self) -> str:
        return f"<ImportBatch(id={self.id}, type={self.import_type.value}, status={self.status.value})>"

    @property
    def is_terminal(self) -> bool:
        return self.status in (ImportStatus.COMPLETED, ImportStatus.FAILED)
