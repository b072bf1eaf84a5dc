"""
Catalog Service Event Management
Initializes and manages Kafka event publishing for the catalog service.
"""

from typing import Optional

from ..events.base.kafka_client import KafkaEventPublisher
from ..events.event_producers import ProductEventProducer
from ..utils.logging import setup_catalog_logging as setup_logging
from .setting import get_settings

logger = setup_logging("catalog_service.events", log_level=get_settings().LOG_LEVEL)

_kafka_publisher: Optional[KafkaEventPublisher] = None
_product_event_producer: Optional[ProductEventProducer] = None


async def init_events() -> ProductEventProducer:
    """Initialize event publishing infrastructure.

    The producer is always created: if the broker is unreachable, writes
    still commit and each publish reports ProjectionPublishFailed.
    """
    global _kafka_publisher, _product_event_producer

    settings = get_settings()
    logger.info(
        "Initializing event publishing infrastructure",
        extra={
            "operation": "init_events",
            "kafka_servers": settings.KAFKA_BOOTSTRAP_SERVERS,
            "service_name": settings.SERVICE_NAME,
        },
    )

    _kafka_publisher = KafkaEventPublisher(
        bootstrap_servers=settings.KAFKA_BOOTSTRAP_SERVERS,
        client_id=f"{settings.SERVICE_NAME}-producer",
        max_retries=settings.KAFKA_CONNECT_MAX_RETRIES,
        retry_delay=2.0,
    )
    await _kafka_publisher.start(timeout=30.0)

    _product_event_producer = ProductEventProducer(_kafka_publisher)

    logger.info(
        "Event publishing infrastructure initialized",
        extra={
            "operation": "init_events_complete",
            "connected": _kafka_publisher.is_connected,
        },
    )
    return _product_event_producer


async def close_events() -> None:
    """Close event publishing infrastructure"""
    global _kafka_publisher, _product_event_producer

    try:
        if _kafka_publisher:
            await _kafka_publisher.stop()
            logger.info(
                "Event publishing infrastructure closed",
                extra={"operation": "close_events_complete"},
            )
    finally:
        _kafka_publisher = None
        _product_event_producer = None


def get_event_producer() -> Optional[ProductEventProducer]:
    """Get the product event producer instance"""
    return _product_event_producer


async def health_check_events() -> bool:
    """Check if event publishing is healthy"""
    if _kafka_publisher:
        return await _kafka_publisher.health_check()
    return False
