"""MongoDB document models for Busana."""

from busana.models.import_batch import ImportBatch, ImportStatus, ImportType, RowErrorDetail
from busana.models.import_history import (
    ImportHistoryEntry,
    ImportMetadata,
    MetadataPayload,
    MetadataType,
)
from busana.models.duplicate_check import CheckResult, DuplicateCheckLog, RiskLevel
from busana.models.sales import Sale
from busana.models.product import Product
from busana.models.stock import StockMovement
from busana.models.advertising import AdvertisingRecord
from busana.models.settlement import SettlementRecord
from busana.models.returns import ReturnRecord
from busana.models.reimbursement import ReimbursementRecord
from busana.models.commission import CommissionAdjustment
from busana.models.affiliate import AffiliateSample

__all__ = [
    # Import tracking
    "ImportBatch",
    "ImportStatus",
    "ImportType",
    "RowErrorDetail",
    "ImportHistoryEntry",
    "ImportMetadata",
    "MetadataPayload",
    "MetadataType",
    "DuplicateCheckLog",
    "CheckResult",
    "RiskLevel",
    # Domain records
    "Sale",
    "Product",
    "StockMovement",
    "AdvertisingRecord",
    "SettlementRecord",
    "ReturnRecord",
    "ReimbursementRecord",
    "CommissionAdjustment",
    "AffiliateSample",
]
