"""Product service for write-side business logic"""

from typing import Any, Dict, List, Optional, Tuple

from ..core.exceptions import (
    ProductNotFound,
    ProductOwnershipError,
    ProjectionPublishFailed,
)
from ..events.event_producers import ProductEventProducer
from ..models.product import Product, utc_now
from ..repository.product_repository import ProductRepository
from ..schemas.product import ProductCreate, ProductUpdate
from ..utils.logging import setup_catalog_logging as setup_logging
from .cache import ProductCache

logger = setup_logging("catalog_service.products")

# Fields an update may explicitly set to null
NULLABLE_FIELDS = ("category", "description")


class ProductService:
    """
    Write path: mutate the primary store inside a scoped transaction, evict
    the cache entry, then publish exactly one event.

    The publish runs after the transaction has committed. A publish failure
    never rolls the write back; it is re-raised as ProjectionPublishFailed
    carrying the durable product.
    """

    def __init__(
        self,
        repository: ProductRepository,
        cache: ProductCache,
        event_producer: ProductEventProducer,
    ):
        self.repository = repository
        self.cache = cache
        self.event_producer = event_producer

    async def create_product(
        self,
        product_data: ProductCreate,
        user_id: str,
        correlation_id: Optional[str] = None,
    ) -> Product:
        product = Product.create(
            name=product_data.name,
            price=product_data.price,
            stock=product_data.stock,
            tags=product_data.tags,
            category=product_data.category,
            description=product_data.description,
            user_id=user_id,
        )

        async with self.repository.transaction() as session:
            await self.repository.insert(product, session=session)

        logger.info(
            "Product created",
            extra={
                "product_id": product.id,
                "user_id": user_id,
                "correlation_id": correlation_id,
            },
        )

        await self._publish(
            self.event_producer.publish_product_created(product, correlation_id),
            product,
        )
        return product

    async def get_product(
        self, product_id: str, correlation_id: Optional[str] = None
    ) -> Product:
        cached = await self.cache.get(product_id)
        if cached is not None:
            logger.debug(
                "Product cache hit",
                extra={"product_id": product_id, "correlation_id": correlation_id},
            )
            return cached

        product = await self.repository.find_by_id(product_id)
        if product is None:
            raise ProductNotFound(product_id)

        await self.cache.set(product)
        return product

    async def list_products(
        self, page: int, size: int, sort_by: str, sort_dir: str
    ) -> Tuple[List[Product], int]:
        return await self.repository.find_page(
            page=page,
            size=size,
            sort_by=sort_by,
            descending=sort_dir.lower() != "asc",
        )

    async def update_product(
        self,
        product_id: str,
        product_data: ProductUpdate,
        user_id: str,
        correlation_id: Optional[str] = None,
    ) -> Product:
        existing = await self._get_owned_product(product_id, user_id)

        changes: Dict[str, Any] = {
            field: value
            for field, value in product_data.model_dump(exclude_unset=True).items()
            if value is not None or field in NULLABLE_FIELDS
        }
        updated = existing.with_updated_details(changes)

        document = updated.to_document()
        document.pop("_id")
        async with self.repository.transaction() as session:
            matched = await self.repository.update_by_id(
                product_id, document, session=session
            )
        if not matched:
            raise ProductNotFound(product_id)

        await self.cache.evict(product_id)

        logger.info(
            "Product updated",
            extra={
                "product_id": product_id,
                "updated_fields": sorted(changes),
                "user_id": user_id,
                "correlation_id": correlation_id,
            },
        )

        await self._publish(
            self.event_producer.publish_product_updated(updated, correlation_id),
            updated,
        )
        return updated

    async def delete_product(
        self, product_id: str, user_id: str, correlation_id: Optional[str] = None
    ) -> None:
        existing = await self._get_owned_product(product_id, user_id)

        async with self.repository.transaction() as session:
            deleted = await self.repository.delete_by_id(product_id, session=session)
        if not deleted:
            raise ProductNotFound(product_id)

        await self.cache.evict(product_id)

        # The delete must not look older than the last version it removed
        deleted_at = max(utc_now(), existing.updated_at)

        logger.info(
            "Product deleted",
            extra={
                "product_id": product_id,
                "user_id": user_id,
                "correlation_id": correlation_id,
            },
        )

        await self._publish(
            self.event_producer.publish_product_deleted(
                product_id, deleted_at, correlation_id
            ),
            None,
            product_id=product_id,
        )

    async def _get_owned_product(self, product_id: str, user_id: str) -> Product:
        product = await self.repository.find_by_id(product_id)
        if product is None:
            raise ProductNotFound(product_id)
        if product.user_id != user_id:
            logger.warning(
                "Rejected mutation of product owned by another user",
                extra={
                    "product_id": product_id,
                    "user_id": user_id,
                    "owner_id": product.user_id,
                },
            )
            raise ProductOwnershipError(product_id, user_id)
        return product

    async def _publish(
        self,
        publish_call,
        product: Optional[Product],
        product_id: Optional[str] = None,
    ) -> None:
        try:
            await publish_call
        except ProjectionPublishFailed as e:
            e.product = product
            logger.error(
                "Degraded write: mutation committed, projection stale",
                extra={
                    "product_id": product.id if product else product_id,
                    "topic": e.topic,
                    "error": str(e.cause),
                },
            )
            raise
