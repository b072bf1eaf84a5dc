"""
Catalog Service configuration
"""

from pathlib import Path
from typing import List

from pydantic_settings import BaseSettings, SettingsConfigDict

# Catalog service directory path
CATALOG_SERVICE_DIR = Path(__file__).parent.parent.parent
ENV_FILE = CATALOG_SERVICE_DIR / ".env"


class CatalogSettings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=str(ENV_FILE),
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    APP_NAME: str
    APP_VERSION: str
    DEBUG: bool = False
    ENVIRONMENT: str = "development"
    LOG_LEVEL: str = "INFO"

    # Service specific
    SERVICE_NAME: str

    # Document store
    CATALOG_MONGO_URL: str
    CATALOG_MONGO_DATABASE: str = "catalog"
    MONGO_USE_TRANSACTIONS: bool = False

    # Redis for caching
    REDIS_URL: str
    CACHE_ENABLED: bool = True
    CACHE_TTL_SECONDS: int = 600

    # Kafka for events
    KAFKA_BOOTSTRAP_SERVERS: str
    KAFKA_TOPIC_PRODUCT_CREATED: str = "product-created"
    KAFKA_TOPIC_PRODUCT_UPDATED: str = "product-updated"
    KAFKA_TOPIC_PRODUCT_DELETED: str = "product-deleted"
    KAFKA_CONNECT_MAX_RETRIES: int = 10
    PUBLISH_MAX_RETRIES: int = 3
    PUBLISH_RETRY_DELAY: float = 0.5

    # Pagination
    MAX_PAGE_SIZE: int = 100

    # CORS
    CORS_ORIGINS: List[str] = ["*"]
    CORS_CREDENTIALS: bool = True
    CORS_METHODS: List[str] = ["GET", "POST", "PUT", "DELETE", "OPTIONS"]
    CORS_HEADERS: List[str] = ["*"]


_settings_instance = None


def get_settings() -> CatalogSettings:
    """Get settings singleton instance"""
    global _settings_instance
    if _settings_instance is None:
        _settings_instance = CatalogSettings()
    return _settings_instance
