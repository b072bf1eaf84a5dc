"""
Search Service configuration
"""

from pathlib import Path
from typing import List

from pydantic_settings import BaseSettings, SettingsConfigDict

SEARCH_SERVICE_DIR = Path(__file__).parent.parent.parent
ENV_FILE = SEARCH_SERVICE_DIR / ".env"


class SearchSettings(BaseSettings):
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

    # Read store
    SEARCH_DATABASE_URL: str

    # Kafka for events
    KAFKA_BOOTSTRAP_SERVERS: str
    KAFKA_GROUP_ID: str = "search-service"
    KAFKA_TOPIC_PRODUCT_CREATED: str = "product-created"
    KAFKA_TOPIC_PRODUCT_UPDATED: str = "product-updated"
    KAFKA_TOPIC_PRODUCT_DELETED: str = "product-deleted"
    KAFKA_TOPIC_DEAD_LETTER: str = "product-events-dlq"
    KAFKA_CONNECT_MAX_RETRIES: int = 10
    CONSUMER_POLL_TIMEOUT_MS: int = 1000
    CONSUMER_ENABLED: bool = True

    # Reconciler
    STORE_MAX_RETRIES: int = 5
    STORE_RETRY_DELAY: float = 0.2
    TOMBSTONE_GRACE_SECONDS: int = 7 * 24 * 3600
    TOMBSTONE_PURGE_INTERVAL_SECONDS: int = 3600
    LIVENESS_FAILURE_THRESHOLD: int = 10

    # Pagination
    MAX_PAGE_SIZE: int = 100

    # CORS
    CORS_ORIGINS: List[str] = ["*"]
    CORS_CREDENTIALS: bool = True
    CORS_METHODS: List[str] = ["GET", "OPTIONS"]
    CORS_HEADERS: List[str] = ["*"]


_settings_instance = None


def get_settings() -> SearchSettings:
    """Get settings singleton instance"""
    global _settings_instance
    if _settings_instance is None:
        _settings_instance = SearchSettings()
    return _settings_instance
