"""
Catalog Service Event Schemas
"""

from .event_schemas import (
    PRODUCT_CREATED,
    PRODUCT_DELETED,
    PRODUCT_UPDATED,
    ProductDeletedEventData,
    ProductEventData,
    ProductSnapshotEventData,
)

__all__ = [
    "ProductEventData",
    "ProductSnapshotEventData",
    "ProductDeletedEventData",
    "PRODUCT_CREATED",
    "PRODUCT_UPDATED",
    "PRODUCT_DELETED",
]
