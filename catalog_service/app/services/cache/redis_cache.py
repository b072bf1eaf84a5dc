"""
Redis-backed product cache
"""

from typing import Optional

import redis.asyncio as redis
from pydantic import ValidationError
from redis.exceptions import RedisError

from ...core.setting import get_settings
from ...models.product import Product
from ...utils.logging import setup_catalog_logging as setup_logging
from . import ProductCache, product_key

logger = setup_logging("catalog_service.cache", log_level=get_settings().LOG_LEVEL)


class RedisProductCache(ProductCache):
    """Product cache stored as JSON strings with a per-key TTL.

    Redis errors are logged and swallowed: a cache outage degrades to
    direct document store reads, never to failed requests.
    """

    def __init__(self, redis_client: redis.Redis, ttl_seconds: int):
        self.redis_client = redis_client
        self.ttl_seconds = ttl_seconds

    @classmethod
    def from_url(cls, redis_url: str, ttl_seconds: int) -> "RedisProductCache":
        return cls(redis.from_url(redis_url, decode_responses=True), ttl_seconds)

    async def get(self, product_id: str) -> Optional[Product]:
        try:
            raw = await self.redis_client.get(product_key(product_id))
        except RedisError as e:
            logger.warning(
                "Cache read failed",
                extra={"product_id": product_id, "error": str(e), "operation": "get"},
            )
            return None

        if raw is None:
            return None

        try:
            return Product.model_validate_json(raw)
        except ValidationError as e:
            logger.warning(
                "Discarding unreadable cache entry",
                extra={"product_id": product_id, "error": str(e)},
            )
            await self.evict(product_id)
            return None

    async def set(self, product: Product) -> None:
        try:
            await self.redis_client.set(
                product_key(product.id),
                product.model_dump_json(),
                ex=self.ttl_seconds,
            )
        except RedisError as e:
            logger.warning(
                "Cache write failed",
                extra={"product_id": product.id, "error": str(e), "operation": "set"},
            )

    async def evict(self, product_id: str) -> None:
        try:
            await self.redis_client.delete(product_key(product_id))
        except RedisError as e:
            logger.error(
                "Cache eviction failed, entry will expire by TTL",
                extra={
                    "product_id": product_id,
                    "error": str(e),
                    "ttl_seconds": self.ttl_seconds,
                    "operation": "evict",
                },
            )

    async def health_check(self) -> bool:
        try:
            return bool(await self.redis_client.ping())
        except RedisError:
            return False

    async def close(self) -> None:
        await self.redis_client.aclose()
