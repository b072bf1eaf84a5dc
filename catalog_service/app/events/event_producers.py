"""
Catalog Service Event Producers
===============================

Publishes product lifecycle events for the search projection. Called only
after the primary store mutation has committed; a publish that still fails
after its retries surfaces as ProjectionPublishFailed.
"""

import asyncio
from datetime import datetime
from typing import Any, Dict, Optional

from aiokafka.errors import KafkaError  # type: ignore

from ..core.exceptions import ProjectionPublishFailed
from ..core.setting import get_settings
from ..models.product import Product
from ..utils.logging import setup_catalog_logging as setup_logging
from .base import EventPublisher
from .schemas import ProductDeletedEventData, ProductSnapshotEventData

settings = get_settings()
logger = setup_logging("catalog_service.events.producers", log_level=settings.LOG_LEVEL)


class ProductEventProducer:
    """Serializes product mutations into events and hands them to the broker"""

    def __init__(
        self,
        publisher: EventPublisher,
        max_retries: Optional[int] = None,
        retry_delay: Optional[float] = None,
        created_topic: Optional[str] = None,
        updated_topic: Optional[str] = None,
        deleted_topic: Optional[str] = None,
    ):
        self.publisher = publisher
        self.max_retries = (
            max_retries if max_retries is not None else settings.PUBLISH_MAX_RETRIES
        )
        self.retry_delay = (
            retry_delay if retry_delay is not None else settings.PUBLISH_RETRY_DELAY
        )
        self.created_topic = created_topic or settings.KAFKA_TOPIC_PRODUCT_CREATED
        self.updated_topic = updated_topic or settings.KAFKA_TOPIC_PRODUCT_UPDATED
        self.deleted_topic = deleted_topic or settings.KAFKA_TOPIC_PRODUCT_DELETED

    async def publish_product_created(
        self, product: Product, correlation_id: Optional[str] = None
    ) -> None:
        """Publish product created event"""
        event_data = ProductSnapshotEventData.from_product(product)
        await self._publish(
            self.created_topic, product.id, event_data.to_dict(), correlation_id
        )

    async def publish_product_updated(
        self, product: Product, correlation_id: Optional[str] = None
    ) -> None:
        """Publish product updated event with the full new snapshot"""
        event_data = ProductSnapshotEventData.from_product(product)
        await self._publish(
            self.updated_topic, product.id, event_data.to_dict(), correlation_id
        )

    async def publish_product_deleted(
        self,
        product_id: str,
        deleted_at: datetime,
        correlation_id: Optional[str] = None,
    ) -> None:
        """Publish product deleted event"""
        event_data = ProductDeletedEventData(id=product_id, deleted_at=deleted_at)
        await self._publish(
            self.deleted_topic, product_id, event_data.to_dict(), correlation_id
        )

    async def _publish(
        self,
        topic: str,
        product_id: str,
        payload: Dict[str, Any],
        correlation_id: Optional[str],
    ) -> None:
        attempts = self.max_retries + 1
        for attempt in range(attempts):
            try:
                await self.publisher.publish(topic, product_id, payload)
                logger.info(
                    "Published product event",
                    extra={
                        "topic": topic,
                        "product_id": product_id,
                        "event_id": payload.get("eventId"),
                        "attempt": attempt + 1,
                        "correlation_id": correlation_id,
                    },
                )
                return
            except KafkaError as e:
                if attempt < attempts - 1:
                    delay = self.retry_delay * (2**attempt)
                    logger.warning(
                        "Product event publish failed, retrying",
                        extra={
                            "topic": topic,
                            "product_id": product_id,
                            "attempt": attempt + 1,
                            "retry_in_seconds": delay,
                            "error": str(e),
                            "correlation_id": correlation_id,
                        },
                    )
                    await asyncio.sleep(delay)
                    continue

                logger.error(
                    "Product event publish failed, projection is stale",
                    extra={
                        "topic": topic,
                        "product_id": product_id,
                        "attempts": attempts,
                        "error": str(e),
                        "payload": payload,
                        "correlation_id": correlation_id,
                    },
                )
                raise ProjectionPublishFailed(topic, product_id, e) from e
