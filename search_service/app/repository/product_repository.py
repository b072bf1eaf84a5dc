"""Read store adapter for the product projection"""

from datetime import datetime, timezone
from typing import Any, Dict, Optional, Sequence, Tuple

from sqlalchemy import Select, delete, func, select, update
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.ext.asyncio import AsyncSession

from ..models.product import ProductRow, ProductTombstone, join_tags

# Columns an upsert may overwrite on an existing row
_UPSERT_UPDATABLE = (
    "name",
    "price",
    "stock",
    "tags",
    "category",
    "description",
    "user_id",
    "updated_at",
)


def _to_columns(fields: Dict[str, Any]) -> Dict[str, Any]:
    values = dict(fields)
    if "tags" in values:
        values["tags"] = join_tags(values["tags"] or [])
    return values


def _escape_like(value: str) -> str:
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


class ProductReadRepository:
    """Repository over the read-model tables, bound to one session.

    Mutations do not commit: the caller owns the transaction so one event's
    read, decision and write are atomic.
    """

    def __init__(self, db: AsyncSession):
        self.db = db

    def _insert(self, table):
        dialect = self.db.get_bind().dialect.name
        if dialect == "postgresql":
            return postgresql.insert(table)
        if dialect == "sqlite":
            return sqlite.insert(table)
        raise NotImplementedError(f"Upsert is not supported on {dialect}")

    # Reconciliation

    async def lock_product(self, product_id: str) -> None:
        """Serialize reconciliation of one product id until the transaction ends.

        ``FOR UPDATE`` locks nothing while neither the row nor its tombstone
        exists, so a concurrent Created and Deleted for a new id could both
        commit. On PostgreSQL a transaction-scoped advisory lock keyed by the
        id closes that gap. SQLite allows a single writer per database, and a
        conflicting transaction fails with a store error that the caller
        retries.
        """
        if self.db.get_bind().dialect.name != "postgresql":
            return
        await self.db.execute(
            select(func.pg_advisory_xact_lock(func.hashtextextended(product_id, 0)))
        )

    async def get_for_update(self, product_id: str) -> Optional[ProductRow]:
        """Current row, locked for the rest of the transaction where supported"""
        query = (
            select(ProductRow)
            .where(ProductRow.id == product_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        result = await self.db.execute(query)
        return result.scalar_one_or_none()

    async def upsert(self, fields: Dict[str, Any]) -> None:
        """Insert a full row, or overwrite a concurrently inserted older one"""
        values = _to_columns(fields)
        stmt = self._insert(ProductRow).values(**values)
        stmt = stmt.on_conflict_do_update(
            index_elements=[ProductRow.id],
            set_={column: stmt.excluded[column] for column in _UPSERT_UPDATABLE},
            where=ProductRow.updated_at < stmt.excluded.updated_at,
        )
        await self.db.execute(stmt)

    async def merge(self, product_id: str, fields: Dict[str, Any]) -> bool:
        """Overwrite only the given columns; the rest keep their stored values"""
        stmt = (
            update(ProductRow)
            .where(ProductRow.id == product_id)
            .values(**_to_columns(fields))
            .execution_options(synchronize_session=False)
        )
        result = await self.db.execute(stmt)
        return result.rowcount > 0

    async def delete(self, product_id: str) -> bool:
        stmt = (
            delete(ProductRow)
            .where(ProductRow.id == product_id)
            .execution_options(synchronize_session=False)
        )
        result = await self.db.execute(stmt)
        return result.rowcount > 0

    # Tombstones

    async def get_tombstone(self, product_id: str) -> Optional[ProductTombstone]:
        query = (
            select(ProductTombstone)
            .where(ProductTombstone.product_id == product_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        result = await self.db.execute(query)
        return result.scalar_one_or_none()

    async def put_tombstone(self, product_id: str, deleted_at: datetime) -> None:
        stmt = self._insert(ProductTombstone).values(
            product_id=product_id,
            deleted_at=deleted_at,
            recorded_at=datetime.now(timezone.utc),
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=[ProductTombstone.product_id],
            set_={
                "deleted_at": stmt.excluded.deleted_at,
                "recorded_at": stmt.excluded.recorded_at,
            },
        )
        await self.db.execute(stmt)

    async def clear_tombstone(self, product_id: str) -> None:
        await self.db.execute(
            delete(ProductTombstone)
            .where(ProductTombstone.product_id == product_id)
            .execution_options(synchronize_session=False)
        )

    async def purge_tombstones(self, recorded_before: datetime) -> int:
        result = await self.db.execute(
            delete(ProductTombstone)
            .where(ProductTombstone.recorded_at < recorded_before)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount

    # Queries

    async def _page(
        self, query: Select, page: int, size: int
    ) -> Tuple[Sequence[ProductRow], int]:
        total = await self.db.scalar(
            select(func.count()).select_from(query.order_by(None).subquery())
        )
        result = await self.db.execute(
            query.order_by(ProductRow.created_at.desc(), ProductRow.id.desc())
            .offset(page * size)
            .limit(size)
        )
        return result.scalars().all(), total or 0

    async def get_by_id(self, product_id: str) -> Optional[ProductRow]:
        return await self.db.get(ProductRow, product_id)

    async def list_products(
        self, page: int, size: int
    ) -> Tuple[Sequence[ProductRow], int]:
        return await self._page(select(ProductRow), page, size)

    async def search_by_name(
        self, name_prefix: str, page: int, size: int
    ) -> Tuple[Sequence[ProductRow], int]:
        query = select(ProductRow).where(
            ProductRow.name.ilike(f"{_escape_like(name_prefix)}%", escape="\\")
        )
        return await self._page(query, page, size)

    async def find_by_category(
        self, category: str, page: int, size: int
    ) -> Tuple[Sequence[ProductRow], int]:
        query = select(ProductRow).where(ProductRow.category == category)
        return await self._page(query, page, size)

    async def find_by_price_range(
        self, min_price: int, max_price: int, page: int, size: int
    ) -> Tuple[Sequence[ProductRow], int]:
        query = select(ProductRow).where(
            ProductRow.price.between(min_price, max_price)
        )
        return await self._page(query, page, size)

