"""Advertising settlement document model."""

from datetime import datetime
from typing import ClassVar, Optional

from beanie import Document, Indexed, PydanticObjectId
from pydantic import Field

from busana.models.import_batch import utc_now


class SettlementRecord(Document):
    """Settlement of advertising spend against one marketplace order.

    ``settlement_amount`` may be negative for refunds and reversals.
    """

    natural_key: ClassVar[tuple[str, ...]] = ("order_id",)

    order_id: Indexed(str, unique=True)
    type: Optional[str] = None
    order_created_time: datetime
    order_settled_time: datetime
    settlement_amount: float = 0.0
    account_name: str = "D'Busana"
    marketplace: Optional[str] = None
    currency: str = "IDR"
    import_batch_id: Optional[PydanticObjectId] = None
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)

    class Settings:
        name = "advertising_settlements"

    def __repr__(self) -> str:
        return f"<SettlementRecord(order_id={self.order_id}, amount={self.settlement_amount})>"
