"""Commission adjustment document model."""

from datetime import datetime
from typing import ClassVar, Optional

from beanie import Document, PydanticObjectId
from pydantic import Field
from pymongo import ASCENDING, IndexModel

from busana.models.import_batch import utc_now


class CommissionAdjustment(Document):
    """A change to the marketplace commission charged on an order.

    ``final_commission`` is the original commission plus the (usually
    negative) adjustment unless the file states it.
    """

    natural_key: ClassVar[tuple[str, ...]] = (
        "marketplace",
        "adjustment_type",
        "original_order_id",
        "product_name",
        "adjustment_date",
    )

    original_order_id: str = ""
    adjustment_type: str = "return_commission_loss"
    reason: Optional[str] = None
    marketplace: str
    original_commission: float = 0.0
    adjustment_amount: float = 0.0
    final_commission: float = 0.0
    commission_rate: Optional[float] = None
    dynamic_rate_applied: bool = False
    transaction_date: Optional[datetime] = None
    adjustment_date: Optional[datetime] = None
    product_name: str = ""
    quantity: int = 1
    product_price: float = 0.0
    import_batch_id: Optional[PydanticObjectId] = None
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)

    class Settings:
        name = "commission_adjustments"
        indexes = [
            IndexModel(
                [
                    ("marketplace", ASCENDING),
                    ("adjustment_type", ASCENDING),
                    ("original_order_id", ASCENDING),
                    ("product_name", ASCENDING),
                    ("adjustment_date", ASCENDING),
                ],
                unique=True,
                name="commission_adjustments_natural_key",
            ),
        ]

    def __repr__(self) -> str:
        return f"<CommissionAdjustment(order={self.original_order_id}, amount={self.adjustment_amount})>"
