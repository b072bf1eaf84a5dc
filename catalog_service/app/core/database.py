from pymongo import ASCENDING, DESCENDING, AsyncMongoClient
from pymongo.errors import PyMongoError

from ..repository.product_repository import MongoProductRepository
from ..utils.logging import setup_catalog_logging as setup_logging
from .setting import get_settings

logger = setup_logging("catalog_service.database", log_level=get_settings().LOG_LEVEL)

PRODUCTS_COLLECTION = "products"


class CatalogDatabaseManager:
    """Document store manager for the Catalog Service."""

    def __init__(
        self, mongo_url: str, database_name: str, use_transactions: bool = False
    ) -> None:
        logger.info(
            "Initializing Catalog Service database manager",
            extra={
                "operation": "database_manager_init",
                "mongo_url": mongo_url.split("@")[-1],  # Mask credentials
                "database": database_name,
                "use_transactions": use_transactions,
            },
        )
        self.client: AsyncMongoClient = AsyncMongoClient(
            mongo_url,
            tz_aware=True,
            serverSelectionTimeoutMS=5000,
        )
        self.database = self.client[database_name]
        self.use_transactions = use_transactions

    @property
    def products(self):
        return self.database[PRODUCTS_COLLECTION]

    def product_repository(self) -> MongoProductRepository:
        return MongoProductRepository(
            self.client, self.products, use_transactions=self.use_transactions
        )

    async def create_indexes(self) -> None:
        """Create the indexes used by paginated listing."""
        try:
            await self.products.create_index([("created_at", DESCENDING)])
            await self.products.create_index([("updated_at", DESCENDING)])
            await self.products.create_index([("name", ASCENDING)])
            await self.products.create_index([("price", ASCENDING)])
            logger.info(
                "Document store indexes ensured",
                extra={"operation": "create_indexes"},
            )
        except PyMongoError as e:
            # Another instance may be building the same indexes
            logger.warning(
                "Index creation failed",
                extra={"operation": "create_indexes", "error": str(e)},
            )

    async def ping(self) -> bool:
        try:
            await self.client.admin.command("ping")
            return True
        except PyMongoError as e:
            logger.warning(
                "Document store ping failed",
                extra={"operation": "ping", "error": str(e)},
            )
            return False

    async def close(self) -> None:
        logger.info("Closing Catalog Service document store connections")
        await self.client.close()


_database_manager = None


def get_database_manager() -> CatalogDatabaseManager:
    """Get the process-wide database manager, creating it on first use"""
    global _database_manager
    if _database_manager is None:
        settings = get_settings()
        _database_manager = CatalogDatabaseManager(
            mongo_url=settings.CATALOG_MONGO_URL,
            database_name=settings.CATALOG_MONGO_DATABASE,
            use_transactions=settings.MONGO_USE_TRANSACTIONS,
        )
    return _database_manager
