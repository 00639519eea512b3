"""Stock movement document model."""

from datetime import datetime
from typing import ClassVar, Literal, Optional

from beanie import Document, PydanticObjectId
from pydantic import Field
from pymongo import ASCENDING, IndexModel

from busana.models.import_batch import utc_now

MovementType = Literal["in", "out", "adjustment"]


class StockMovement(Document):
    """A stock change for one product.

    ``in`` adds to the product's stock, ``out`` removes from it and
    ``adjustment`` sets it to the given quantity. Movements from files
    without a date column have no ``movement_date``; ``created_at`` records
    when they were first imported.
    """

    natural_key: ClassVar[tuple[str, ...]] = (
        "product_code",
        "movement_type",
        "movement_date",
        "reference_number",
    )

    product_code: str
    movement_type: MovementType = "in"
    quantity: int
    movement_date: Optional[datetime] = None
    reference_number: str = ""
    notes: Optional[str] = None
    import_batch_id: Optional[PydanticObjectId] = None
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)

    class Settings:
        name = "stock_movements"
        indexes = [
            IndexModel(
                [
                    ("product_code", ASCENDING),
                    ("movement_type", ASCENDING),
                    ("movement_date", ASCENDING),
                    ("reference_number", ASCENDING),
                ],
                unique=True,
                name="stock_movements_natural_key",
            ),
        ]

    def __repr__(self) -> str:
        return f"<StockMovement(product={self.product_code}, {self.movement_type} {self.quantity})>"
