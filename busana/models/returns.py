"""Returns and cancellations document model."""

from datetime import datetime
from typing import ClassVar, Literal, Optional

from beanie import Document, PydanticObjectId
from pydantic import Field
from pymongo import ASCENDING, IndexModel

from busana.models.import_batch import utc_now

ReturnType = Literal["return", "cancel"]


class ReturnRecord(Document):
    """A returned or cancelled order line and the money it cost us.

    Rows without a return date keep ``return_date`` empty so that
    re-importing them updates the same record.
    """

    natural_key: ClassVar[tuple[str, ...]] = (
        "type",
        "marketplace",
        "original_order_id",
        "product_name",
        "return_date",
    )

    type: ReturnType = "return"
    original_order_id: str = ""
    product_name: str
    marketplace: str
    return_date: Optional[datetime] = None
    reason: str = ""
    returned_amount: float = 0.0
    refund_amount: float = 0.0
    restocking_fee: float = 0.0
    shipping_cost_loss: float = 0.0
    quantity_returned: int = 1
    original_price: float = 0.0
    product_condition: str = "used"
    resellable: bool = False
    import_batch_id: Optional[PydanticObjectId] = None
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)

    class Settings:
        name = "returns_and_cancellations"
        indexes = [
            IndexModel(
                [
                    ("type", ASCENDING),
                    ("marketplace", ASCENDING),
                    ("original_order_id", ASCENDING),
                    ("product_name", ASCENDING),
                    ("return_date", ASCENDING),
                ],
                unique=True,
                name="returns_natural_key",
            ),
        ]

    def __repr__(self) -> str:
        return f"<ReturnRecord({self.type}, order={self.original_order_id}, refund={self.refund_amount})>"
