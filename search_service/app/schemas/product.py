from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel

from ..models.product import ProductRow
from ..utils.money import from_cents


class ProductResponse(BaseModel):
    id: str
    name: str
    price: int
    display_price: str
    stock: int
    tags: List[str]
    category: Optional[str] = None
    description: Optional[str] = None
    user_id: str
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_row(cls, row: ProductRow) -> "ProductResponse":
        return cls(
            id=row.id,
            name=row.name,
            price=row.price,
            display_price=from_cents(row.price),
            stock=row.stock,
            tags=row.tag_list,
            category=row.category,
            description=row.description,
            user_id=row.user_id,
            created_at=row.created_at,
            updated_at=row.updated_at,
        )


class ProductPageResponse(BaseModel):
    products: List[ProductResponse]
    page: int
    size: int
    total: int
    total_pages: int
