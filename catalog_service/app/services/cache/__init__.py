"""
Product cache port for the Catalog Service.

The cache is a side channel in front of the document store: reads are
cache-aside, and every committed update or delete evicts the product's key.
"""

import time
from abc import ABC, abstractmethod
from typing import Any, Dict, Optional

from ...models.product import Product

PRODUCT_KEY_PREFIX = "product:"


def product_key(product_id: str) -> str:
    return f"{PRODUCT_KEY_PREFIX}{product_id}"


class ProductCache(ABC):
    """Explicit get/set/evict cache contract keyed by product id"""

    @abstractmethod
    async def get(self, product_id: str) -> Optional[Product]: ...

    @abstractmethod
    async def set(self, product: Product) -> None: ...

    @abstractmethod
    async def evict(self, product_id: str) -> None: ...

    async def health_check(self) -> bool:
        return True

    async def close(self) -> None:
        return None


class InMemoryProductCache(ProductCache):
    """In-process cache with TTL support"""

    def __init__(self, ttl_seconds: int, max_size: int = 1000):
        self.ttl_seconds = ttl_seconds
        self.max_size = max_size
        self.cache: Dict[str, Dict[str, Any]] = {}

    async def get(self, product_id: str) -> Optional[Product]:
        key = product_key(product_id)
        entry = self.cache.get(key)
        if entry is None:
            return None
        if time.monotonic() >= entry["expires_at"]:
            del self.cache[key]
            return None
        return entry["value"]

    async def set(self, product: Product) -> None:
        if len(self.cache) >= self.max_size:
            self._cleanup_expired()
        if len(self.cache) >= self.max_size:
            # Still full: drop the entry closest to expiry
            oldest = min(self.cache, key=lambda k: self.cache[k]["expires_at"])
            del self.cache[oldest]

        self.cache[product_key(product.id)] = {
            "value": product,
            "expires_at": time.monotonic() + self.ttl_seconds,
        }

    async def evict(self, product_id: str) -> None:
        self.cache.pop(product_key(product_id), None)

    def _cleanup_expired(self) -> None:
        now = time.monotonic()
        expired = [k for k, e in self.cache.items() if now >= e["expires_at"]]
        for key in expired:
            del self.cache[key]


__all__ = ["ProductCache", "InMemoryProductCache", "product_key"]
