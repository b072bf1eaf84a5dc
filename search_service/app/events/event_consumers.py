"""
Search Service Event Consumers
==============================

Decodes catalog product events and hands them to the read-model reconciler.
A message that cannot be decoded is logged, counted and dropped: it can never
become valid, so it is acknowledged rather than redelivered.
"""

from typing import Dict, Optional

from ..core.exceptions import DeserializationFailed
from ..core.setting import get_settings
from ..services.reconciler import Decision, PipelineStats, ReadModelReconciler
from ..utils.logging import setup_search_logging as setup_logging
from .base import EventHandler, MessageEnvelope
from .schemas import EventKind, decode_event

settings = get_settings()
logger = setup_logging("search_service.events.consumers", log_level=settings.LOG_LEVEL)


class ProductEventConsumer(EventHandler):
    """Handles messages from the product-created/updated/deleted topics"""

    def __init__(
        self,
        reconciler: ReadModelReconciler,
        stats: PipelineStats,
        topics: Optional[Dict[str, EventKind]] = None,
    ):
        self.reconciler = reconciler
        self.stats = stats
        self.topics = topics or {
            settings.KAFKA_TOPIC_PRODUCT_CREATED: EventKind.CREATED,
            settings.KAFKA_TOPIC_PRODUCT_UPDATED: EventKind.UPDATED,
            settings.KAFKA_TOPIC_PRODUCT_DELETED: EventKind.DELETED,
        }

    async def handle(self, envelope: MessageEnvelope) -> Optional[Decision]:
        kind = self.topics.get(envelope.topic)
        if kind is None:
            logger.warning(
                "Ignoring message from unexpected topic",
                extra={"topic": envelope.topic, "offset": envelope.offset},
            )
            return None

        try:
            event = decode_event(
                kind,
                envelope.topic,
                envelope.key,
                envelope.value,
                envelope.timestamp_ms,
            )
        except DeserializationFailed as e:
            self.stats.increment("deserialization_failed")
            logger.warning(
                "Dropping undecodable product event",
                extra={
                    "topic": envelope.topic,
                    "partition": envelope.partition,
                    "offset": envelope.offset,
                    "key": envelope.key_text,
                    "reason": e.reason,
                },
            )
            return None

        return await self.reconciler.apply(event, envelope)
