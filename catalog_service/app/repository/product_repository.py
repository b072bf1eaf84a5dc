"""Product repository for primary (document) store operations"""

from abc import ABC, abstractmethod
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Dict, List, Optional, Tuple

from pymongo import ASCENDING, DESCENDING, AsyncMongoClient
from pymongo.asynchronous.collection import AsyncCollection
from pymongo.errors import PyMongoError

from ..core.exceptions import PersistenceFailed
from ..models.product import Product

SORTABLE_FIELDS = ("created_at", "updated_at", "name", "price")


class ProductRepository(ABC):
    """Primary store port used by the write path"""

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[Any]:
        """Scoped transaction around a mutation. Yields a store session handle."""
        yield None

    @abstractmethod
    async def insert(self, product: Product, session: Any = None) -> None: ...

    @abstractmethod
    async def find_by_id(self, product_id: str) -> Optional[Product]: ...

    @abstractmethod
    async def update_by_id(
        self, product_id: str, fields: Dict[str, Any], session: Any = None
    ) -> bool: ...

    @abstractmethod
    async def delete_by_id(self, product_id: str, session: Any = None) -> bool: ...

    @abstractmethod
    async def find_page(
        self, page: int, size: int, sort_by: str, descending: bool
    ) -> Tuple[List[Product], int]: ...


class MongoProductRepository(ProductRepository):
    """ProductRepository backed by a MongoDB collection keyed by product id"""

    def __init__(
        self,
        client: AsyncMongoClient,
        collection: AsyncCollection,
        use_transactions: bool = False,
    ):
        self.client = client
        self.collection = collection
        self.use_transactions = use_transactions

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[Any]:
        try:
            async with self.client.start_session() as session:
                if self.use_transactions:
                    async with await session.start_transaction():
                        yield session
                else:
                    yield session
        except PyMongoError as e:
            # Commit and abort errors surface here, outside the individual calls
            raise PersistenceFailed("transaction", None, e) from e

    async def insert(self, product: Product, session: Any = None) -> None:
        try:
            await self.collection.insert_one(product.to_document(), session=session)
        except PyMongoError as e:
            raise PersistenceFailed("insert", product.id, e) from e

    async def find_by_id(self, product_id: str) -> Optional[Product]:
        try:
            document = await self.collection.find_one({"_id": product_id})
        except PyMongoError as e:
            raise PersistenceFailed("find", product_id, e) from e
        return Product.from_document(document) if document else None

    async def update_by_id(
        self, product_id: str, fields: Dict[str, Any], session: Any = None
    ) -> bool:
        try:
            result = await self.collection.update_one(
                {"_id": product_id}, {"$set": fields}, session=session
            )
        except PyMongoError as e:
            raise PersistenceFailed("update", product_id, e) from e
        return result.matched_count == 1

    async def delete_by_id(self, product_id: str, session: Any = None) -> bool:
        try:
            result = await self.collection.delete_one(
                {"_id": product_id}, session=session
            )
        except PyMongoError as e:
            raise PersistenceFailed("delete", product_id, e) from e
        return result.deleted_count == 1

    async def find_page(
        self, page: int, size: int, sort_by: str, descending: bool
    ) -> Tuple[List[Product], int]:
        if sort_by not in SORTABLE_FIELDS:
            sort_by = "created_at"
        direction = DESCENDING if descending else ASCENDING
        try:
            cursor = (
                self.collection.find({})
                .sort([(sort_by, direction), ("_id", direction)])
                .skip(page * size)
                .limit(size)
            )
            documents = await cursor.to_list(length=size)
            total = await self.collection.count_documents({})
        except PyMongoError as e:
            raise PersistenceFailed("find_page", None, e) from e
        return [Product.from_document(d) for d in documents], total
