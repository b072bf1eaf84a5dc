"""Builders and test doubles for the search pipeline."""

import json
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional

from search_service.app.events.base import DeadLetter, DeadLetterSink, MessageEnvelope
from search_service.app.events.schemas import (
    ProductCreated,
    ProductDeleted,
    ProductSnapshot,
    ProductUpdated,
)

T0 = datetime(2024, 3, 1, 12, 0, tzinfo=timezone.utc)


def at(seconds: float) -> datetime:
    return T0 + timedelta(seconds=seconds)


def snapshot_payload(product_id: str, updated_at: datetime, **fields) -> Dict[str, Any]:
    payload = {
        "id": product_id,
        "name": "Trail Shoe",
        "price": 1000,
        "stock": 5,
        "tags": ["outdoor", "running"],
        "category": "shoes",
        "description": "Lightweight trail runner",
        "userId": "user-1",
        "createdAt": T0.isoformat(),
        "updatedAt": updated_at.isoformat(),
    }
    payload.update(fields)
    return payload


def created(product_id: str, updated_at: datetime, **fields) -> ProductCreated:
    return ProductCreated(
        ProductSnapshot.model_validate(
            snapshot_payload(product_id, updated_at, **fields)
        )
    )


def updated(product_id: str, updated_at: datetime, **fields) -> ProductUpdated:
    return ProductUpdated(
        ProductSnapshot.model_validate(
            snapshot_payload(product_id, updated_at, **fields)
        )
    )


def partial_update(product_id: str, updated_at: datetime, **fields) -> ProductUpdated:
    payload = {"id": product_id, "updatedAt": updated_at.isoformat(), **fields}
    return ProductUpdated(ProductSnapshot.model_validate(payload))


def deleted(product_id: str, deleted_at: datetime) -> ProductDeleted:
    return ProductDeleted(product_id=product_id, deleted_at=deleted_at)


def envelope(
    topic: str = "product-updated",
    value: Optional[Any] = None,
    key: Optional[str] = None,
    offset: int = 0,
    timestamp_ms: Optional[int] = None,
) -> MessageEnvelope:
    if value is not None and not isinstance(value, bytes):
        value = json.dumps(value).encode("utf-8")
    return MessageEnvelope(
        topic=topic,
        partition=0,
        offset=offset,
        key=key.encode("utf-8") if key else None,
        value=value,
        timestamp_ms=timestamp_ms,
    )


class RecordingDeadLetterSink(DeadLetterSink):
    def __init__(self):
        self.letters: List[DeadLetter] = []

    async def park(self, letter: DeadLetter) -> None:
        self.letters.append(letter)
