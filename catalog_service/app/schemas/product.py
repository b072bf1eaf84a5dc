from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator

from ..models.product import MAX_TAGS, NAME_MAX_LENGTH, NAME_MIN_LENGTH, Product
from ..utils.money import from_cents, to_cents


def _price_to_cents(v):
    if v is None:
        return v
    return to_cents(v)


class ProductCreate(BaseModel):
    name: str = Field(..., min_length=NAME_MIN_LENGTH, max_length=NAME_MAX_LENGTH)
    price: int = Field(
        ..., ge=0, description="Price in major units, e.g. '10.50' or '10,50'"
    )
    stock: int = Field(..., ge=0)
    tags: List[str] = Field(..., min_length=1, max_length=MAX_TAGS)
    category: Optional[str] = None
    description: Optional[str] = None

    @field_validator("price", mode="before")
    @classmethod
    def convert_price(cls, v):
        return _price_to_cents(v)

    @field_validator("name")
    @classmethod
    def validate_name(cls, v):
        if not v.strip():
            raise ValueError("name cannot be empty or whitespace only")
        return v.strip()


class ProductUpdate(BaseModel):
    name: Optional[str] = Field(
        None, min_length=NAME_MIN_LENGTH, max_length=NAME_MAX_LENGTH
    )
    price: Optional[int] = Field(None, ge=0)
    stock: Optional[int] = Field(None, ge=0)
    tags: Optional[List[str]] = Field(None, min_length=1, max_length=MAX_TAGS)
    category: Optional[str] = None
    description: Optional[str] = None

    @field_validator("price", mode="before")
    @classmethod
    def convert_price(cls, v):
        return _price_to_cents(v)


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
    def from_product(cls, product: Product) -> "ProductResponse":
        return cls(display_price=from_cents(product.price), **product.model_dump())


class ProductListResponse(BaseModel):
    products: List[ProductResponse]
    total: int
    page: int
    size: int
    total_pages: int


class DegradedWriteResponse(BaseModel):
    """Write committed, projection event not delivered"""

    product: Optional[ProductResponse] = None
    product_id: str
    projection: str = "stale"
    detail: str
