"""DuplicateCheckLog document model for the advisory duplicate pre-check."""

from datetime import datetime
from enum import Enum
from typing import Optional

from beanie import Document
from pydantic import BaseModel, Field
from pymongo import DESCENDING, IndexModel

from busana.models.import_batch import ImportType, utc_now


class RiskLevel(str, Enum):
    """How likely an upload duplicates data that was already imported."""

    NONE = "none"
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    UNKNOWN = "unknown"

    @property
    def rank(self) -> int:
        return _RISK_RANK[self]


_RISK_RANK = {
    RiskLevel.UNKNOWN: -1,
    RiskLevel.NONE: 0,
    RiskLevel.LOW: 1,
    RiskLevel.MEDIUM: 2,
    RiskLevel.HIGH: 3,
}


class CheckResult(BaseModel):
    """Summary of a duplicate check as recorded in the log."""

    is_duplicate: bool
    risk_level: RiskLevel
    similar_imports_count: int = 0
    exact_duplicates_count: int = 0
    date_range: Optional[dict[str, str]] = None
    degraded_reason: Optional[str] = None


class DuplicateCheckLog(Document):
    """Record of a duplicate pre-check. Informational only."""

    file_name: str
    file_size: int = 0
    file_hash: Optional[str] = None
    import_type: ImportType
    check_result: CheckResult
    created_at: datetime = Field(default_factory=utc_now)

    class Settings:
        name = "duplicate_check_logs"
        indexes = [
            IndexModel([("created_at", DESCENDING)], name="duplicate_checks_created_at"),
        ]

    def __repr__(self) -> str:
        return (
            f"<DuplicateCheckLog(file={self.file_name}, type={self.import_type.value}, "
            f"risk={self.check_result.risk_level.value})>"
        )
