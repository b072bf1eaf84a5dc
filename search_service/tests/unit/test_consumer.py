from unittest.mock import AsyncMock

import pytest

from search_service.app.events.base import MessageEnvelope
from search_service.app.events.event_consumers import ProductEventConsumer
from search_service.app.events.schemas import (
    EventKind,
    ProductCreated,
    ProductDeleted,
)
from search_service.app.services.reconciler import PipelineStats

from ..fakes import at, envelope, snapshot_payload

TOPICS = {
    "product-created": EventKind.CREATED,
    "product-updated": EventKind.UPDATED,
    "product-deleted": EventKind.DELETED,
}


@pytest.fixture
def reconciler():
    reconciler = AsyncMock()
    reconciler.apply.return_value = "applied"
    return reconciler


@pytest.fixture
def consumer(reconciler):
    return ProductEventConsumer(reconciler, PipelineStats(), topics=TOPICS)


class TestProductEventConsumer:
    @pytest.mark.asyncio
    async def test_valid_message_is_reconciled(self, consumer, reconciler):
        source = envelope("product-created", snapshot_payload("p-1", at(1)))

        result = await consumer.handle(source)

        assert result == "applied"
        event, passed_envelope = reconciler.apply.await_args.args
        assert isinstance(event, ProductCreated)
        assert event.product_id == "p-1"
        assert passed_envelope is source

    @pytest.mark.asyncio
    async def test_delete_uses_key_and_message_timestamp(self, consumer, reconciler):
        source = envelope(
            "product-deleted", key="p-7", timestamp_ms=1_709_294_400_000
        )

        await consumer.handle(source)

        event = reconciler.apply.await_args.args[0]
        assert isinstance(event, ProductDeleted)
        assert event.product_id == "p-7"
        assert event.deleted_at.isoformat() == "2024-03-01T12:00:00+00:00"

    @pytest.mark.asyncio
    async def test_undecodable_message_is_dropped_and_counted(
        self, consumer, reconciler
    ):
        source = envelope("product-updated", b"{not json", offset=3)

        assert await consumer.handle(source) is None

        reconciler.apply.assert_not_awaited()
        assert consumer.stats.counters["deserialization_failed"] == 1

    @pytest.mark.asyncio
    async def test_delete_with_undecodable_key_is_dropped_and_counted(
        self, consumer, reconciler
    ):
        source = MessageEnvelope(
            topic="product-deleted",
            partition=0,
            offset=9,
            key=b"\xff\xfe",
            value=None,
            timestamp_ms=1000,
        )

        assert await consumer.handle(source) is None

        reconciler.apply.assert_not_awaited()
        assert consumer.stats.counters["deserialization_failed"] == 1

    @pytest.mark.asyncio
    async def test_incomplete_created_is_dropped(self, consumer, reconciler):
        source = envelope("product-created", {"id": "p-1", "updatedAt": at(1).isoformat()})

        assert await consumer.handle(source) is None
        reconciler.apply.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_unknown_topic_is_ignored(self, consumer, reconciler):
        assert await consumer.handle(envelope("inventory-updated", {"id": "x"})) is None
        reconciler.apply.assert_not_awaited()
        assert consumer.stats.counters["deserialization_failed"] == 0

    @pytest.mark.asyncio
    async def test_reconciler_failure_propagates(self, consumer, reconciler):
        reconciler.apply.side_effect = RuntimeError("dead-letter topic unavailable")

        with pytest.raises(RuntimeError):
            await consumer.handle(
                envelope("product-created", snapshot_payload("p-1", at(1)))
            )
