"""Sales order line document model."""

from datetime import datetime
from typing import ClassVar, Optional

from beanie import Document, PydanticObjectId
from pydantic import Field
from pymongo import ASCENDING, DESCENDING, IndexModel

from busana.models.import_batch import utc_now


class Sale(Document):
    """One order line as exported by a marketplace.

    An order may contain several lines; a line is identified by the order,
    the seller SKU and the variant (colour and size).
    """

    natural_key: ClassVar[tuple[str, ...]] = ("order_id", "seller_sku", "color", "size")

    order_id: str
    seller_sku: str
    product_name: str
    color: str = ""
    size: str = ""
    quantity: int = 1
    order_amount: Optional[float] = None
    created_time: datetime
    delivered_time: Optional[datetime] = None
    settlement_amount: Optional[float] = None
    total_revenue: Optional[float] = None
    hpp: Optional[float] = None
    total: Optional[float] = None
    marketplace: str = "TikTok Shop"
    customer: str = "-"
    province: Optional[str] = None
    regency_city: Optional[str] = None
    import_batch_id: Optional[PydanticObjectId] = None
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)

    class Settings:
        name = "sales"
        indexes = [
            IndexModel(
                [("order_id", ASCENDING), ("seller_sku", ASCENDING), ("color", ASCENDING), ("size", ASCENDING)],
                unique=True,
                name="sales_natural_key",
            ),
            IndexModel([("created_time", DESCENDING)], name="sales_created_time"),
        ]

    def __repr__(self) -> str:
        return f"<Sale(order_id={self.order_id}, sku={self.seller_sku}, qty={self.quantity})>"
