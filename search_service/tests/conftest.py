"""
Pytest configuration and fixtures for search service tests.
"""

import os

import pytest
import pytest_asyncio

# Set up test environment variables before importing anything else
os.environ.setdefault("APP_NAME", "Search Service Test")
os.environ.setdefault("APP_VERSION", "1.0.0")
os.environ.setdefault("DEBUG", "true")
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("SERVICE_NAME", "search-service")
os.environ.setdefault("SEARCH_DATABASE_URL", "sqlite+aiosqlite:///search_test.db")
os.environ.setdefault("KAFKA_BOOTSTRAP_SERVERS", "localhost:9092")
os.environ.setdefault("KAFKA_GROUP_ID", "search-service-test")
os.environ.setdefault("CONSUMER_ENABLED", "false")
os.environ.setdefault("LIVENESS_FAILURE_THRESHOLD", "3")
os.environ.setdefault("LOG_LEVEL", "INFO")

from search_service.app.core.database import SearchServiceDatabaseManager  # noqa: E402
from search_service.app.services.reconciler import (  # noqa: E402
    PipelineStats,
    ReadModelReconciler,
)

from .fakes import RecordingDeadLetterSink  # noqa: E402


@pytest_asyncio.fixture
async def database_manager(tmp_path):
    manager = SearchServiceDatabaseManager(f"sqlite+aiosqlite:///{tmp_path}/search.db")
    await manager.create_tables()
    yield manager
    await manager.close()


@pytest.fixture
def session_factory(database_manager):
    return database_manager.async_session_maker


@pytest.fixture
def dead_letters():
    return RecordingDeadLetterSink()


@pytest.fixture
def stats():
    return PipelineStats(liveness_failure_threshold=3)


@pytest.fixture
def reconciler(session_factory, dead_letters, stats):
    return ReadModelReconciler(
        session_factory, dead_letters, stats, max_retries=2, retry_delay=0
    )
