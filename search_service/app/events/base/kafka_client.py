import asyncio
import json
from typing import Dict, List, Optional

from aiokafka import AIOKafkaConsumer, AIOKafkaProducer, TopicPartition  # type: ignore
from aiokafka.errors import KafkaConnectionError, KafkaError  # type: ignore

from ...core.setting import get_settings
from ...utils.logging import setup_search_logging as setup_logging
from . import DeadLetter, DeadLetterSink, EventHandler, MessageEnvelope

logger = setup_logging("search_service.events.kafka", log_level=get_settings().LOG_LEVEL)


class KafkaEventSubscriber:
    """
    Search Service Kafka subscriber.

    One consumer per topic, values left as raw bytes so decoding errors stay
    per-message. Partitions of a fetched batch are processed concurrently and
    the messages of one partition strictly in order. An offset is committed
    only once its message has been handled; a handler failure rewinds the
    partition so the message is redelivered.
    """

    def __init__(
        self,
        bootstrap_servers: str,
        group_id: str,
        client_id: str,
        poll_timeout_ms: int = 1000,
        max_retries: int = 5,
        retry_delay: float = 2.0,
    ):
        self.bootstrap_servers = bootstrap_servers
        self.group_id = group_id
        self.client_id = client_id
        self.poll_timeout_ms = poll_timeout_ms
        self.max_retries = max_retries
        self.retry_delay = retry_delay
        self.consumers: Dict[str, AIOKafkaConsumer] = {}
        self.tasks: Dict[str, asyncio.Task] = {}
        self.running = False

    @property
    def is_connected(self) -> bool:
        return bool(self.consumers)

    def _build_consumer(self, topic: str) -> AIOKafkaConsumer:
        return AIOKafkaConsumer(
            topic,
            bootstrap_servers=self.bootstrap_servers,
            group_id=self.group_id,
            client_id=f"{self.client_id}-{topic}",
            enable_auto_commit=False,
            auto_offset_reset="earliest",
        )

    async def subscribe(self, topic: str, handler: EventHandler) -> bool:
        """Start consuming ``topic``. Returns False if the broker stayed unreachable."""
        if topic in self.consumers:
            return True

        for attempt in range(self.max_retries):
            consumer = self._build_consumer(topic)
            try:
                await consumer.start()
            except KafkaConnectionError as e:
                await consumer.stop()
                delay = self.retry_delay * (2**attempt)
                logger.warning(
                    f"Kafka subscriber connection attempt {attempt + 1} failed: {e}. "
                    f"Retrying in {delay} seconds...",
                    extra={"topic": topic, "operation": "subscribe"},
                )
                if attempt < self.max_retries - 1:
                    await asyncio.sleep(delay)
                continue

            self.running = True
            self.consumers[topic] = consumer
            self.tasks[topic] = asyncio.create_task(
                self._consume_messages(topic, consumer, handler)
            )
            logger.info(
                "Subscribed to Kafka topic",
                extra={
                    "topic": topic,
                    "group_id": self.group_id,
                    "operation": "subscribe",
                },
            )
            return True

        logger.error(
            "Failed to subscribe after all retries, topic will not be consumed",
            extra={"topic": topic, "max_retries": self.max_retries},
        )
        return False

    async def _consume_messages(
        self, topic: str, consumer: AIOKafkaConsumer, handler: EventHandler
    ) -> None:
        while self.running:
            try:
                batches = await consumer.getmany(timeout_ms=self.poll_timeout_ms)
            except KafkaError as e:
                logger.error(
                    "Kafka fetch failed",
                    extra={"topic": topic, "error": str(e), "operation": "fetch"},
                )
                await asyncio.sleep(self.retry_delay)
                continue

            if batches:
                await asyncio.gather(
                    *(
                        self._process_partition(consumer, tp, messages, handler)
                        for tp, messages in batches.items()
                    )
                )

    async def _process_partition(
        self,
        consumer: AIOKafkaConsumer,
        tp: TopicPartition,
        messages: List,
        handler: EventHandler,
    ) -> None:
        for message in messages:
            # Unstarted messages stay uncommitted and are redelivered
            if not self.running:
                return

            envelope = MessageEnvelope(
                topic=message.topic,
                partition=message.partition,
                offset=message.offset,
                key=message.key,
                value=message.value,
                timestamp_ms=message.timestamp,
            )
            try:
                await handler.handle(envelope)
            except Exception as e:
                logger.error(
                    "Event handler failed, message will be redelivered",
                    exc_info=True,
                    extra={
                        "topic": tp.topic,
                        "partition": tp.partition,
                        "offset": message.offset,
                        "error": str(e),
                    },
                )
                consumer.seek(tp, message.offset)
                await asyncio.sleep(self.retry_delay)
                return

            try:
                await consumer.commit({tp: message.offset + 1})
            except KafkaError as e:
                # Reprocessing after a rebalance is harmless: handling is idempotent
                logger.warning(
                    "Offset commit failed",
                    extra={
                        "topic": tp.topic,
                        "partition": tp.partition,
                        "offset": message.offset,
                        "error": str(e),
                    },
                )
                return

    async def stop(self, timeout: float = 30.0) -> None:
        """Stop consuming, letting in-flight messages finish first"""
        self.running = False

        if self.tasks:
            done, pending = await asyncio.wait(self.tasks.values(), timeout=timeout)
            for task in pending:
                task.cancel()
            if pending:
                logger.warning(
                    "Consumer tasks did not finish in time and were cancelled",
                    extra={"pending": len(pending), "timeout": timeout},
                )
        self.tasks.clear()

        for topic, consumer in self.consumers.items():
            try:
                await consumer.stop()
                logger.info(
                    "Stopped Kafka consumer for topic",
                    extra={"topic": topic, "operation": "stop_consumer"},
                )
            except KafkaError as e:
                logger.warning(
                    "Error stopping Kafka consumer",
                    extra={
                        "topic": topic,
                        "error": str(e),
                        "operation": "stop_consumer_error",
                    },
                )
        self.consumers.clear()


class KafkaDeadLetterPublisher(DeadLetterSink):
    """Parks unprocessable events on a dead-letter topic, keyed by product id"""

    def __init__(
        self,
        bootstrap_servers: str,
        client_id: str,
        topic: str,
        max_retries: int = 5,
        retry_delay: float = 2.0,
    ):
        self.bootstrap_servers = bootstrap_servers
        self.client_id = client_id
        self.topic = topic
        self.max_retries = max_retries
        self.retry_delay = retry_delay
        self.producer: Optional[AIOKafkaProducer] = None

    async def start(self) -> None:
        for attempt in range(self.max_retries):
            producer = AIOKafkaProducer(
                bootstrap_servers=self.bootstrap_servers,
                client_id=self.client_id,
                value_serializer=lambda x: json.dumps(x, default=str).encode("utf-8"),
                key_serializer=lambda x: x.encode("utf-8") if x else None,
                acks="all",
            )
            try:
                await producer.start()
                self.producer = producer
                logger.info(
                    "Dead-letter producer connected", extra={"topic": self.topic}
                )
                return
            except KafkaConnectionError as e:
                await producer.stop()
                delay = self.retry_delay * (2**attempt)
                logger.warning(
                    f"Dead-letter producer connection attempt {attempt + 1} failed: {e}",
                    extra={"retry_in_seconds": delay},
                )
                if attempt < self.max_retries - 1:
                    await asyncio.sleep(delay)

        logger.error(
            "Dead-letter producer unavailable; failing events will be redelivered",
            extra={"topic": self.topic},
        )

    async def park(self, letter: DeadLetter) -> None:
        if self.producer is None:
            raise KafkaConnectionError("Dead-letter producer not connected")
        await self.producer.send_and_wait(
            self.topic, value=letter.to_dict(), key=letter.product_id
        )

    async def stop(self) -> None:
        if self.producer:
            try:
                await self.producer.stop()
            except KafkaError as e:
                logger.warning(
                    "Error stopping dead-letter producer", extra={"error": str(e)}
                )
            finally:
                self.producer = None
