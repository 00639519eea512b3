"""Product catalogue document model."""

from datetime import datetime
from typing import ClassVar, Optional

from beanie import Document, Indexed, PydanticObjectId
from pydantic import Field

from busana.models.import_batch import utc_now


class Product(Document):
    """A catalogue product, keyed by its product code."""

    natural_key: ClassVar[tuple[str, ...]] = ("product_code",)

    product_code: Indexed(str, unique=True)
    product_name: str
    category: str = "Uncategorized"
    brand: str = "D'Busana"
    size: Optional[str] = None
    color: Optional[str] = None
    price: Optional[float] = None
    cost: Optional[float] = None
    stock_quantity: int = 0
    min_stock: int = 5
    description: Optional[str] = None
    import_batch_id: Optional[PydanticObjectId] = None
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)

    class Settings:
        name = "products"

    def __repr__(self) -> str:
        return f"<Product(code={self.product_code}, name={self.product_name}, stock={self.stock_quantity})>"
