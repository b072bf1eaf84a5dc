"""
Catalog Service exception taxonomy.

A failed primary-store write (``PersistenceFailed``) means nothing happened and
the whole request may be retried. A failed publish (``ProjectionPublishFailed``)
means the write is durable but the search projection is stale: retry the publish,
never the write.
"""

from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:
    from ..models.product import Product


class CatalogError(Exception):
    """Base class for catalog service errors"""


class ProductValidationError(CatalogError, ValueError):
    """Product data violates a domain rule"""


class ProductNotFound(CatalogError):
    def __init__(self, product_id: str):
        super().__init__(f"Product not found: {product_id}")
        self.product_id = product_id


class ProductOwnershipError(CatalogError):
    def __init__(self, product_id: str, user_id: str):
        super().__init__(f"User {user_id} does not own product {product_id}")
        self.product_id = product_id
        self.user_id = user_id


class PersistenceFailed(CatalogError):
    """Primary store write failed; the mutation did not happen"""

    def __init__(self, operation: str, product_id: Optional[str], cause: Exception):
        super().__init__(f"Primary store {operation} failed: {cause}")
        self.operation = operation
        self.product_id = product_id
        self.cause = cause


class ProjectionPublishFailed(CatalogError):
    """Mutation is durable but its event could not be published"""

    def __init__(
        self,
        topic: str,
        product_id: str,
        cause: Exception,
        product: Optional["Product"] = None,
    ):
        super().__init__(
            f"Publishing to {topic} failed for product {product_id}: {cause}"
        )
        self.topic = topic
        self.product_id = product_id
        self.cause = cause
        self.product = product
