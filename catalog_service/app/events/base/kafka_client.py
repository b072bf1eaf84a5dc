import asyncio
import json
from typing import Any, Dict, Optional

from aiokafka import AIOKafkaProducer  # type: ignore
from aiokafka.errors import KafkaConnectionError, KafkaError  # type: ignore

from ...core.setting import get_settings
from ...utils.logging import setup_catalog_logging as setup_logging
from . import EventPublisher

logger = setup_logging(
    "catalog_service.events.kafka", log_level=get_settings().LOG_LEVEL
)


class KafkaEventPublisher(EventPublisher):
    """
    Catalog Service Kafka publisher with connection retry logic.

    Messages are keyed by product id so every event for one product lands on
    the same partition.
    """

    def __init__(
        self,
        bootstrap_servers: str,
        client_id: str,
        max_retries: int = 10,
        retry_delay: float = 2.0,
    ):
        self.bootstrap_servers = bootstrap_servers
        self.client_id = client_id
        self.max_retries = max_retries
        self.retry_delay = retry_delay
        self.producer: Optional[AIOKafkaProducer] = None
        self.is_connected = False
        self._connection_lock = asyncio.Lock()

    def _build_producer(self) -> AIOKafkaProducer:
        return AIOKafkaProducer(
            bootstrap_servers=self.bootstrap_servers,
            client_id=self.client_id,
            value_serializer=lambda x: json.dumps(x, default=str).encode("utf-8")
            if x is not None
            else None,
            key_serializer=lambda x: x.encode("utf-8") if x else None,
            acks="all",
            enable_idempotence=True,
            retry_backoff_ms=1000,
            request_timeout_ms=30000,
        )

    async def start(self, timeout: float = 30.0) -> None:
        """Start Kafka producer with retry logic"""
        async with self._connection_lock:
            if self.producer and self.is_connected:
                return

            # Retry connection with exponential backoff
            for attempt in range(self.max_retries):
                self.producer = self._build_producer()
                try:
                    logger.info(
                        "Attempting Kafka connection",
                        extra={
                            "attempt": attempt + 1,
                            "max_retries": self.max_retries,
                            "operation": "kafka_connect",
                        },
                    )
                    await asyncio.wait_for(self.producer.start(), timeout=timeout)
                    self.is_connected = True
                    logger.info("Successfully connected to Kafka")
                    return

                except (KafkaConnectionError, asyncio.TimeoutError) as e:
                    await self._discard_producer()
                    delay = self.retry_delay * (2**attempt)
                    if attempt < self.max_retries - 1:
                        logger.warning(
                            f"Kafka connection attempt {attempt + 1} failed: {e}. "
                            f"Retrying in {delay} seconds..."
                        )
                        await asyncio.sleep(delay)

            # Writes still succeed; every publish raises until the broker is back
            logger.error(
                f"Failed to connect to Kafka after {self.max_retries} attempts. "
                "Writes will be reported as degraded until the broker is reachable"
            )
            self.is_connected = False

    async def _discard_producer(self) -> None:
        if self.producer is None:
            return
        try:
            await self.producer.stop()
        except KafkaError as e:
            logger.debug(
                "Error discarding Kafka producer",
                extra={"error": str(e), "operation": "discard_producer"},
            )
        self.producer = None

    async def stop(self) -> None:
        """Stop Kafka producer, flushing pending messages"""
        async with self._connection_lock:
            if self.producer:
                try:
                    await self.producer.stop()
                    logger.info("Kafka producer stopped")
                except KafkaError as e:
                    logger.warning(
                        "Error stopping Kafka producer",
                        extra={"error": str(e), "operation": "stop_producer"},
                    )
                finally:
                    self.producer = None
                    self.is_connected = False

    async def publish(
        self, topic: str, key: Optional[str], payload: Optional[Dict[str, Any]]
    ) -> None:
        """Publish one message and wait for the broker acknowledgement.

        Raises KafkaError when disconnected or when the send fails.
        """
        if not self.is_connected or not self.producer:
            raise KafkaConnectionError("Kafka producer not connected")

        metadata = await self.producer.send_and_wait(topic=topic, value=payload, key=key)
        logger.info(
            "Published event to Kafka topic",
            extra={
                "topic": topic,
                "key": key,
                "partition": metadata.partition,
                "offset": metadata.offset,
                "operation": "publish_event",
            },
        )

    async def health_check(self) -> bool:
        """Check if Kafka connection is healthy"""
        if not self.producer or not self.is_connected:
            return False
        try:
            metadata = await self.producer.client.fetch_all_metadata()
            return len(metadata.brokers()) > 0
        except KafkaError as e:
            logger.warning(
                "Kafka health check failed",
                extra={"error": str(e), "operation": "health_check"},
            )
            return False
