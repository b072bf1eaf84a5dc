"""
Pytest configuration and fixtures for catalog service tests.
"""

import os

import pytest

# Set up test environment variables before importing anything else
os.environ.setdefault("APP_NAME", "Catalog Service Test")
os.environ.setdefault("APP_VERSION", "1.0.0")
os.environ.setdefault("DEBUG", "true")
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("SERVICE_NAME", "catalog-service")
os.environ.setdefault("CATALOG_MONGO_URL", "mongodb://localhost:27017")
os.environ.setdefault("CATALOG_MONGO_DATABASE", "catalog_test")
os.environ.setdefault("REDIS_URL", "redis://localhost:6379/1")
os.environ.setdefault("KAFKA_BOOTSTRAP_SERVERS", "localhost:9092")
os.environ.setdefault("PUBLISH_MAX_RETRIES", "2")
os.environ.setdefault("PUBLISH_RETRY_DELAY", "0")
os.environ.setdefault("LOG_LEVEL", "INFO")

from catalog_service.app.models.product import Product  # noqa: E402
from catalog_service.app.services.cache import InMemoryProductCache  # noqa: E402

from .fakes import FakeEventPublisher, FakeProductRepository  # noqa: E402


@pytest.fixture
def repository():
    return FakeProductRepository()


@pytest.fixture
def publisher():
    return FakeEventPublisher()


@pytest.fixture
def cache():
    return InMemoryProductCache(ttl_seconds=60)


@pytest.fixture
def sample_product() -> Product:
    return Product.create(
        name="Mechanical Keyboard",
        price=12999,
        stock=15,
        tags=["keyboard", "peripherals"],
        category="electronics",
        description="Hot-swappable 75% keyboard",
        user_id="user-1",
    )
