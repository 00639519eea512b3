"""Affiliate sample document model."""

from datetime import datetime
from typing import ClassVar, Optional

from beanie import Document, PydanticObjectId
from pydantic import Field
from pymongo import ASCENDING, IndexModel

from busana.models.import_batch import utc_now


class AffiliateSample(Document):
    """Free product sent to an affiliate in exchange for content."""

    natural_key: ClassVar[tuple[str, ...]] = ("affiliate_name", "product_name", "product_sku", "given_date")

    affiliate_name: str
    affiliate_platform: Optional[str] = None
    affiliate_contact: Optional[str] = None
    product_name: str
    product_sku: str = ""
    quantity_given: int = 1
    product_cost: float = 0.0
    total_cost: float = 0.0
    shipping_cost: float = 0.0
    packaging_cost: float = 0.0
    campaign_name: Optional[str] = None
    expected_reach: Optional[int] = None
    content_type: Optional[str] = None
    given_date: Optional[datetime] = None
    expected_content_date: Optional[datetime] = None
    actual_content_date: Optional[datetime] = None
    content_delivered: bool = False
    performance_notes: Optional[str] = None
    roi_estimate: Optional[float] = None
    status: str = "sent"
    import_batch_id: Optional[PydanticObjectId] = None
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)

    class Settings:
        name = "affiliate_samples"
        indexes = [
            IndexModel(
                [
                    ("affiliate_name", ASCENDING),
                    ("product_name", ASCENDING),
                    ("product_sku", ASCENDING),
                    ("given_date", ASCENDING),
                ],
                unique=True,
                name="affiliate_samples_natural_key",
            ),
        ]

    def __repr__(self) -> str:
        return f"<AffiliateSample(affiliate={self.affiliate_name}, product={self.product_name})>"
