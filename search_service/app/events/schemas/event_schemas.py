"""
Search Service Event Schemas
============================

Consumer-side view of catalog product events. Decoding is tolerant of the
spellings different producer versions have used (camelCase, snake_case and
the legacy ``createAt``/``updateAt``) and ignores unknown fields, but a
``Created`` event missing a projected field is rejected outright rather than
defaulted.
"""

import enum
import json
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Union

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, ValidationError
from pydantic import field_validator

from ...core.exceptions import DeserializationFailed


class EventKind(str, enum.Enum):
    CREATED = "created"
    UPDATED = "updated"
    DELETED = "deleted"


# Fields a snapshot must carry to become a read-model row on its own
REQUIRED_ROW_FIELDS = (
    "name",
    "price",
    "stock",
    "tags",
    "user_id",
    "created_at",
    "updated_at",
)
PROJECTED_FIELDS = REQUIRED_ROW_FIELDS + ("category", "description")


def _as_utc(value: Optional[datetime]) -> Optional[datetime]:
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class ProductSnapshot(BaseModel):
    """Full or partial product state carried by Created/Updated events"""

    model_config = ConfigDict(extra="ignore", frozen=True)

    id: str = Field(min_length=1)
    name: Optional[str] = None
    price: Optional[int] = Field(None, ge=0)
    stock: Optional[int] = Field(None, ge=0)
    tags: Optional[List[str]] = None
    category: Optional[str] = None
    description: Optional[str] = None
    user_id: Optional[str] = Field(
        None, validation_alias=AliasChoices("userId", "user_id")
    )
    created_at: Optional[datetime] = Field(
        None, validation_alias=AliasChoices("createdAt", "createAt", "created_at")
    )
    updated_at: datetime = Field(
        validation_alias=AliasChoices("updatedAt", "updateAt", "updated_at")
    )

    @field_validator("created_at", "updated_at")
    @classmethod
    def assume_utc(cls, v):
        return _as_utc(v)

    @property
    def provided_fields(self) -> Dict[str, Any]:
        """Projected fields present in the payload, explicit nulls included"""
        return {
            field: getattr(self, field)
            for field in PROJECTED_FIELDS
            if field in self.model_fields_set
        }

    @property
    def missing_fields(self) -> List[str]:
        return [
            field
            for field in REQUIRED_ROW_FIELDS
            if field not in self.model_fields_set or getattr(self, field) is None
        ]

    @property
    def is_complete(self) -> bool:
        return not self.missing_fields


class DeletedPayload(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: Optional[str] = None
    deleted_at: Optional[datetime] = Field(
        None, validation_alias=AliasChoices("deletedAt", "deleted_at")
    )

    @field_validator("deleted_at")
    @classmethod
    def assume_utc(cls, v):
        return _as_utc(v)


@dataclass(frozen=True)
class ProductCreated:
    snapshot: ProductSnapshot

    @property
    def product_id(self) -> str:
        return self.snapshot.id


@dataclass(frozen=True)
class ProductUpdated:
    snapshot: ProductSnapshot

    @property
    def product_id(self) -> str:
        return self.snapshot.id


@dataclass(frozen=True)
class ProductDeleted:
    product_id: str
    deleted_at: datetime


ProductEvent = Union[ProductCreated, ProductUpdated, ProductDeleted]


def _load_json(topic: str, value: bytes) -> Any:
    try:
        return json.loads(value.decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError) as e:
        raise DeserializationFailed(topic, f"invalid JSON: {e}", value) from e


def _decode_snapshot(topic: str, value: Optional[bytes]) -> ProductSnapshot:
    if not value:
        raise DeserializationFailed(topic, "empty payload", value)
    data = _load_json(topic, value)
    if not isinstance(data, dict):
        raise DeserializationFailed(topic, "payload is not an object", value)
    try:
        return ProductSnapshot.model_validate(data)
    except ValidationError as e:
        raise DeserializationFailed(topic, str(e), value) from e


def _decode_deleted(
    topic: str,
    key: Optional[bytes],
    value: Optional[bytes],
    timestamp_ms: Optional[int],
) -> ProductDeleted:
    payload = DeletedPayload()
    if value:
        data = _load_json(topic, value)
        if isinstance(data, str):
            payload = DeletedPayload(id=data)
        elif isinstance(data, dict):
            try:
                payload = DeletedPayload.model_validate(data)
            except ValidationError as e:
                raise DeserializationFailed(topic, str(e), value) from e
        elif data is not None:
            raise DeserializationFailed(topic, "unsupported delete payload", value)

    product_id = payload.id
    if not product_id and key:
        try:
            product_id = key.decode("utf-8")
        except UnicodeDecodeError as e:
            raise DeserializationFailed(topic, f"undecodable key: {e}", value) from e
    if not product_id:
        raise DeserializationFailed(topic, "delete carries no product id", value)

    deleted_at = payload.deleted_at
    if deleted_at is None:
        if timestamp_ms is None or timestamp_ms < 0:
            raise DeserializationFailed(topic, "delete carries no timestamp", value)
        try:
            deleted_at = datetime.fromtimestamp(timestamp_ms / 1000, tz=timezone.utc)
        except (OverflowError, OSError, ValueError) as e:
            raise DeserializationFailed(
                topic, f"invalid message timestamp: {timestamp_ms}", value
            ) from e

    return ProductDeleted(product_id=product_id, deleted_at=deleted_at)


def decode_event(
    kind: EventKind,
    topic: str,
    key: Optional[bytes],
    value: Optional[bytes],
    timestamp_ms: Optional[int] = None,
) -> ProductEvent:
    """Decode one raw broker message. Raises DeserializationFailed."""
    if kind is EventKind.DELETED:
        return _decode_deleted(topic, key, value, timestamp_ms)

    snapshot = _decode_snapshot(topic, value)
    if kind is EventKind.CREATED:
        if not snapshot.is_complete:
            raise DeserializationFailed(
                topic,
                f"created event lacks: {', '.join(snapshot.missing_fields)}",
                value,
            )
        return ProductCreated(snapshot)
    return ProductUpdated(snapshot)
