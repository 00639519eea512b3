"""Marketplace reimbursement claim document model."""

from datetime import datetime
from typing import ClassVar, Optional

from beanie import Document, PydanticObjectId
from pydantic import Field
from pymongo import ASCENDING, IndexModel

from busana.models.import_batch import utc_now


class ReimbursementRecord(Document):
    """A claim against a marketplace for a lost package, fake checkout and the like."""

    natural_key: ClassVar[tuple[str, ...]] = (
        "marketplace",
        "reimbursement_type",
        "claim_id",
        "affected_order_id",
        "incident_date",
    )

    claim_id: str = ""
    reimbursement_type: str = "lost_package"
    marketplace: str
    affected_order_id: str = ""
    product_name: Optional[str] = None
    claim_amount: float = 0.0
    approved_amount: float = 0.0
    received_amount: float = 0.0
    processing_fee: float = 0.0
    incident_date: Optional[datetime] = None
    claim_date: Optional[datetime] = None
    approval_date: Optional[datetime] = None
    received_date: Optional[datetime] = None
    status: str = "pending"
    notes: Optional[str] = None
    evidence_provided: Optional[str] = None
    import_batch_id: Optional[PydanticObjectId] = None
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)

    class Settings:
        name = "marketplace_reimbursements"
        indexes = [
            IndexModel(
                [
                    ("marketplace", ASCENDING),
                    ("reimbursement_type", ASCENDING),
                    ("claim_id", ASCENDING),
                    ("affected_order_id", ASCENDING),
                    ("incident_date", ASCENDING),
                ],
                unique=True,
                name="reimbursements_natural_key",
            ),
        ]

    def __repr__(self) -> str:
        return f"<ReimbursementRecord(claim={self.claim_id}, {self.reimbursement_type}, {self.status})>"
