"""
Catalog Service Cache Management
Initializes the product cache selected by configuration.
"""

from typing import Optional

from ..services.cache import InMemoryProductCache, ProductCache
from ..services.cache.redis_cache import RedisProductCache
from ..utils.logging import setup_catalog_logging as setup_logging
from .setting import get_settings

logger = setup_logging("catalog_service.cache", log_level=get_settings().LOG_LEVEL)

_product_cache: Optional[ProductCache] = None


async def init_cache() -> ProductCache:
    global _product_cache

    settings = get_settings()
    if settings.CACHE_ENABLED:
        _product_cache = RedisProductCache.from_url(
            settings.REDIS_URL, ttl_seconds=settings.CACHE_TTL_SECONDS
        )
        healthy = await _product_cache.health_check()
        logger.info(
            "Redis product cache configured",
            extra={
                "ttl_seconds": settings.CACHE_TTL_SECONDS,
                "reachable": healthy,
            },
        )
    else:
        _product_cache = InMemoryProductCache(ttl_seconds=settings.CACHE_TTL_SECONDS)
        logger.info(
            "Redis cache disabled, using in-process cache",
            extra={"ttl_seconds": settings.CACHE_TTL_SECONDS},
        )
    return _product_cache


async def close_cache() -> None:
    global _product_cache
    try:
        if _product_cache:
            await _product_cache.close()
    finally:
        _product_cache = None


def get_product_cache() -> Optional[ProductCache]:
    return _product_cache
