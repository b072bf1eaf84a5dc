from typing import Any, AsyncGenerator, Dict, Optional

from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from ..models.base import SearchServiceBase
from ..utils.logging import setup_search_logging as setup_logging
from .setting import get_settings

logger = setup_logging("search_service.database", log_level=get_settings().LOG_LEVEL)


def _mask(database_url: str) -> str:
    if "@" not in database_url:
        return database_url
    scheme, _, rest = database_url.partition("://")
    return f"{scheme}://***@{rest.split('@', 1)[1]}"


class SearchServiceDatabaseManager:
    """Read store manager for the Search Service."""

    def __init__(self, database_url: str, echo: bool = False) -> None:
        logger.info(
            "Initializing Search Service database manager",
            extra={
                "operation": "database_manager_init",
                "database_url": _mask(database_url),
                "echo": echo,
            },
        )

        engine_kwargs: Dict[str, Any] = {"echo": echo}
        if "sqlite" in database_url:
            engine_kwargs["connect_args"] = {"timeout": 60, "check_same_thread": False}
        else:
            engine_kwargs.update(
                {
                    "pool_size": 10,
                    "max_overflow": 20,
                    "pool_timeout": 30,
                    "pool_recycle": 3600,
                    "pool_pre_ping": True,
                    "connect_args": {
                        "command_timeout": 30,
                        "prepared_statement_cache_size": 0,
                    },
                }
            )

        self.async_engine = create_async_engine(database_url, **engine_kwargs)
        self.async_session_maker = async_sessionmaker(
            bind=self.async_engine,
            class_=AsyncSession,
            expire_on_commit=False,
            autoflush=False,
        )

    async def create_tables(self) -> None:
        """Create the read-model tables if migrations have not."""
        try:
            async with self.async_engine.begin() as conn:
                await conn.run_sync(SearchServiceBase.metadata.create_all, checkfirst=True)
            logger.info(
                "Database tables created successfully",
                extra={"operation": "create_tables"},
            )
        except SQLAlchemyError as e:
            # Another instance may be creating the same tables
            logger.warning(
                "Database table creation failed",
                extra={"operation": "create_tables", "error": str(e)},
            )

    async def ping(self) -> bool:
        try:
            async with self.async_engine.connect() as conn:
                await conn.execute(text("SELECT 1"))
            return True
        except SQLAlchemyError as e:
            logger.warning(
                "Read store ping failed", extra={"operation": "ping", "error": str(e)}
            )
            return False

    async def get_async_session(self) -> AsyncGenerator[AsyncSession, None]:
        async with self.async_session_maker() as session:
            yield session

    async def close(self) -> None:
        logger.info("Closing Search Service database connections")
        await self.async_engine.dispose()


_database_manager: Optional[SearchServiceDatabaseManager] = None


def get_database_manager() -> SearchServiceDatabaseManager:
    """Get the process-wide database manager, creating it on first use"""
    global _database_manager
    if _database_manager is None:
        settings = get_settings()
        _database_manager = SearchServiceDatabaseManager(
            database_url=settings.SEARCH_DATABASE_URL, echo=settings.DEBUG
        )
    return _database_manager


async def get_db_session() -> AsyncGenerator[AsyncSession, None]:
    """Get database session for dependency injection."""
    async for session in get_database_manager().get_async_session():
        yield session
