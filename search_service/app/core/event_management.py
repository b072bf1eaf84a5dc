"""
Search Service Event Management
Wires the Kafka subscriber, the reconciler, the dead-letter publisher and the
periodic tombstone purge.
"""

import asyncio
from typing import Any, Dict, Optional

from sqlalchemy.exc import SQLAlchemyError

from ..events.base.kafka_client import KafkaDeadLetterPublisher, KafkaEventSubscriber
from ..events.event_consumers import ProductEventConsumer
from ..services.reconciler import PipelineStats, ReadModelReconciler
from ..utils.logging import setup_search_logging as setup_logging
from .database import get_database_manager
from .setting import get_settings

logger = setup_logging("search_service.events", log_level=get_settings().LOG_LEVEL)

_stats: Optional[PipelineStats] = None
_subscriber: Optional[KafkaEventSubscriber] = None
_dead_letters: Optional[KafkaDeadLetterPublisher] = None
_reconciler: Optional[ReadModelReconciler] = None
_purge_task: Optional[asyncio.Task] = None


def get_pipeline_stats() -> PipelineStats:
    global _stats
    if _stats is None:
        _stats = PipelineStats(get_settings().LIVENESS_FAILURE_THRESHOLD)
    return _stats


async def _purge_tombstones_periodically(
    reconciler: ReadModelReconciler, interval: int, grace: int
) -> None:
    while True:
        await asyncio.sleep(interval)
        try:
            await reconciler.purge_tombstones(grace)
        except SQLAlchemyError as e:
            logger.warning(
                "Tombstone purge failed, will retry next interval",
                extra={"error": str(e), "interval_seconds": interval},
            )


async def init_events() -> None:
    """Start the read-model synchronization pipeline"""
    global _subscriber, _dead_letters, _reconciler, _purge_task

    settings = get_settings()
    logger.info(
        "Initializing event consumption infrastructure",
        extra={
            "operation": "init_events",
            "kafka_servers": settings.KAFKA_BOOTSTRAP_SERVERS,
            "group_id": settings.KAFKA_GROUP_ID,
        },
    )

    stats = get_pipeline_stats()
    _dead_letters = KafkaDeadLetterPublisher(
        bootstrap_servers=settings.KAFKA_BOOTSTRAP_SERVERS,
        client_id=f"{settings.SERVICE_NAME}-dlq",
        topic=settings.KAFKA_TOPIC_DEAD_LETTER,
        max_retries=settings.KAFKA_CONNECT_MAX_RETRIES,
    )
    await _dead_letters.start()

    _reconciler = ReadModelReconciler(
        session_factory=get_database_manager().async_session_maker,
        dead_letters=_dead_letters,
        stats=stats,
        max_retries=settings.STORE_MAX_RETRIES,
        retry_delay=settings.STORE_RETRY_DELAY,
    )
    consumer = ProductEventConsumer(_reconciler, stats)

    _subscriber = KafkaEventSubscriber(
        bootstrap_servers=settings.KAFKA_BOOTSTRAP_SERVERS,
        group_id=settings.KAFKA_GROUP_ID,
        client_id=settings.SERVICE_NAME,
        poll_timeout_ms=settings.CONSUMER_POLL_TIMEOUT_MS,
        max_retries=settings.KAFKA_CONNECT_MAX_RETRIES,
    )
    for topic in consumer.topics:
        await _subscriber.subscribe(topic, consumer)

    _purge_task = asyncio.create_task(
        _purge_tombstones_periodically(
            _reconciler,
            settings.TOMBSTONE_PURGE_INTERVAL_SECONDS,
            settings.TOMBSTONE_GRACE_SECONDS,
        )
    )

    logger.info(
        "Event consumption infrastructure initialized",
        extra={
            "operation": "init_events_complete",
            "topics": sorted(_subscriber.consumers),
        },
    )


async def close_events() -> None:
    """Stop consuming; in-flight events finish before the consumers close"""
    global _subscriber, _dead_letters, _reconciler, _purge_task

    try:
        if _purge_task:
            _purge_task.cancel()
            try:
                await _purge_task
            except asyncio.CancelledError:
                pass
        if _subscriber:
            await _subscriber.stop()
        if _dead_letters:
            await _dead_letters.stop()
        logger.info(
            "Event consumption infrastructure closed",
            extra={"operation": "close_events_complete"},
        )
    finally:
        _subscriber = None
        _dead_letters = None
        _reconciler = None
        _purge_task = None


def pipeline_health() -> Dict[str, Any]:
    """Consumer connectivity plus reconciler liveness and counters"""
    stats = get_pipeline_stats()
    report = stats.snapshot()
    report["consumer_connected"] = bool(_subscriber and _subscriber.is_connected)
    report["dead_letter_connected"] = bool(_dead_letters and _dead_letters.producer)
    report["topics"] = sorted(_subscriber.consumers) if _subscriber else []
    return report
