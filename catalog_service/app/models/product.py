from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional

import uuid6
from pydantic import BaseModel, ConfigDict

from ..core.exceptions import ProductValidationError

NAME_MIN_LENGTH = 2
NAME_MAX_LENGTH = 100
MAX_TAGS = 5
UPDATABLE_FIELDS = ("name", "price", "stock", "tags", "category", "description")


def new_product_id() -> str:
    """Time-ordered UUIDv7 string.

    uuid6 keeps ids strictly increasing within the process, even for ids
    generated in the same millisecond, so creation order is recoverable
    from id comparison alone.
    """
    return str(uuid6.uuid7())


def utc_now() -> datetime:
    """Current UTC time truncated to milliseconds (document store precision)"""
    now = datetime.now(timezone.utc)
    return now.replace(microsecond=(now.microsecond // 1000) * 1000)


def _validate_name(name: str) -> str:
    if name is None or not name.strip():
        raise ProductValidationError("Name cannot be blank")
    if not NAME_MIN_LENGTH <= len(name) <= NAME_MAX_LENGTH:
        raise ProductValidationError(
            f"Name must be between {NAME_MIN_LENGTH} and {NAME_MAX_LENGTH} characters"
        )
    return name


def _validate_tags(tags: List[str]) -> List[str]:
    if not tags:
        raise ProductValidationError("Tags cannot be null or empty")
    if len(tags) > MAX_TAGS:
        raise ProductValidationError(f"Tags cannot be more than {MAX_TAGS}")
    return list(tags)


def _validate_non_negative(field: str, value: int) -> int:
    if value is None or value < 0:
        raise ProductValidationError(f"{field.capitalize()} must be non-negative")
    return value


class Product(BaseModel):
    """Write-side product entity stored in the document store"""

    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    price: int
    stock: int
    tags: List[str]
    category: Optional[str] = None
    description: Optional[str] = None
    user_id: str
    created_at: datetime
    updated_at: datetime

    @classmethod
    def create(
        cls,
        name: str,
        price: int,
        stock: int,
        tags: List[str],
        user_id: str,
        category: Optional[str] = None,
        description: Optional[str] = None,
    ) -> "Product":
        now = utc_now()
        return cls(
            id=new_product_id(),
            name=_validate_name(name),
            price=_validate_non_negative("price", price),
            stock=_validate_non_negative("stock", stock),
            tags=_validate_tags(tags),
            category=category,
            description=description,
            user_id=user_id,
            created_at=now,
            updated_at=now,
        )

    def with_updated_details(self, changes: Dict[str, Any]) -> "Product":
        """Return a new version with ``changes`` applied.

        id, owner and created_at never change. updated_at is strictly greater
        than the previous version's even if the wall clock went backwards.
        """
        unknown = set(changes) - set(UPDATABLE_FIELDS)
        if unknown:
            raise ProductValidationError(
                f"Fields cannot be updated: {', '.join(sorted(unknown))}"
            )

        data = self.model_dump()
        data.update(changes)

        _validate_name(data["name"])
        _validate_tags(data["tags"])
        _validate_non_negative("price", data["price"])
        _validate_non_negative("stock", data["stock"])

        data["updated_at"] = max(
            utc_now(), self.updated_at + timedelta(milliseconds=1)
        )
        return Product(**data)

    def to_document(self) -> Dict[str, Any]:
        document = self.model_dump(exclude={"id"})
        document["_id"] = self.id
        return document

    @classmethod
    def from_document(cls, document: Dict[str, Any]) -> "Product":
        data = dict(document)
        data["id"] = data.pop("_id")
        # BSON datetimes come back naive unless the client is tz_aware
        for field in ("created_at", "updated_at"):
            value = data.get(field)
            if isinstance(value, datetime) and value.tzinfo is None:
                data[field] = value.replace(tzinfo=timezone.utc)
        return cls(**data)
