"""
Catalog Service Event Schemas
=============================

Wire shape of product lifecycle events. Created and Updated carry a full
snapshot of the product; Deleted carries the id and the delete's logical time.
Field names are camelCase on the wire.
"""

import uuid
from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from ...models.product import Product

PRODUCT_CREATED = "product-created"
PRODUCT_UPDATED = "product-updated"
PRODUCT_DELETED = "product-deleted"


class ProductEventData(BaseModel):
    """Base product event data structure"""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    event_id: str = Field(default_factory=lambda: uuid.uuid4().hex)

    def to_dict(self) -> Dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)


class ProductSnapshotEventData(ProductEventData):
    """Full product snapshot, used by both created and updated events"""

    id: str
    name: str
    price: int
    stock: int
    tags: List[str]
    category: Optional[str] = None
    description: Optional[str] = None
    user_id: str
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_product(cls, product: Product) -> "ProductSnapshotEventData":
        return cls(**product.model_dump())


class ProductDeletedEventData(ProductEventData):
    id: str
    deleted_at: datetime
