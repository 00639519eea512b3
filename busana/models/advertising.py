"""Advertising campaign performance document model."""

from datetime import datetime
from typing import ClassVar, Optional

from beanie import Document, PydanticObjectId
from pydantic import Field
from pymongo import ASCENDING, IndexModel

from busana.models.import_batch import utc_now


class AdvertisingRecord(Document):
    """Campaign performance for one account over a reporting window."""

    natural_key: ClassVar[tuple[str, ...]] = ("campaign_name", "account_name", "date_start", "date_end")

    campaign_name: str
    account_name: str = "D'Busana"
    date_start: datetime
    date_end: datetime
    ad_creative_type: Optional[str] = None
    ad_creative: Optional[str] = None
    cost: float = 0.0
    conversions: int = 0
    cpa: Optional[float] = None
    revenue: float = 0.0
    roi: Optional[float] = None
    impressions: int = 0
    clicks: int = 0
    ctr: Optional[float] = None
    conversion_rate: Optional[float] = None
    marketplace: Optional[str] = None
    product_name: Optional[str] = None
    import_batch_id: Optional[PydanticObjectId] = None
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)

    class Settings:
        name = "advertising"
        indexes = [
            IndexModel(
                [
                    ("campaign_name", ASCENDING),
                    ("account_name", ASCENDING),
                    ("date_start", ASCENDING),
                    ("date_end", ASCENDING),
                ],
                unique=True,
                name="advertising_natural_key",
            ),
        ]

    def __repr__(self) -> str:
        return f"<AdvertisingRecord(campaign={self.campaign_name}, account={self.account_name}, cost={self.cost})>"
