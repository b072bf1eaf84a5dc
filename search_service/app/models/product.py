import json
from datetime import datetime
from typing import List

from sqlalchemy import TEXT, BigInteger, Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from .base import SearchServiceBase, UTCDateTime

# Rows written before tags were stored as JSON hold comma-separated text
_LEGACY_TAG_DELIMITER = ","


def join_tags(tags: List[str]) -> str:
    return json.dumps(list(tags), ensure_ascii=False)


def split_tags(value: str) -> List[str]:
    if not value:
        return []
    if value.startswith("["):
        return json.loads(value)
    return value.split(_LEGACY_TAG_DELIMITER)


class ProductRow(SearchServiceBase):
    """Denormalized read-model projection of a catalog product"""

    __tablename__ = "products"
    __table_args__ = (
        Index("ix_products_name", "name"),
        Index("ix_products_category", "category"),
        Index("ix_products_price", "price"),
    )

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    price: Mapped[int] = mapped_column(BigInteger, nullable=False)
    stock: Mapped[int] = mapped_column(Integer, nullable=False)
    tags: Mapped[str] = mapped_column(TEXT, nullable=False)
    category: Mapped[str | None] = mapped_column(String(255), nullable=True)
    description: Mapped[str | None] = mapped_column(TEXT, nullable=True)
    user_id: Mapped[str] = mapped_column(String(64), nullable=False)
    created_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False)

    @property
    def tag_list(self) -> List[str]:
        return split_tags(self.tags)


class ProductTombstone(SearchServiceBase):
    """Remembers a delete so late, older writes cannot resurrect the row"""

    __tablename__ = "product_tombstones"
    __table_args__ = (Index("ix_product_tombstones_recorded_at", "recorded_at"),)

    product_id: Mapped[str] = mapped_column(String(64), primary_key=True)
    deleted_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False)
    recorded_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False)
