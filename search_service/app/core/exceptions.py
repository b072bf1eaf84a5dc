"""
Search Service exception taxonomy.

None of these escape the consumer loop: a malformed message is dropped, an
incomplete snapshot and an exhausted store retry are parked on the
dead-letter topic. A stale event is an outcome of reconciliation, not an
error, and has no exception type.
"""

from typing import Optional


class SearchError(Exception):
    """Base class for search service errors"""


class DeserializationFailed(SearchError):
    """Inbound message cannot be decoded into a product event"""

    def __init__(self, topic: str, reason: str, raw: Optional[bytes] = None):
        super().__init__(f"Cannot decode message from {topic}: {reason}")
        self.topic = topic
        self.reason = reason
        self.raw = raw


class IncompleteSnapshot(SearchError):
    """Event cannot produce a complete read-model row"""

    def __init__(self, product_id: str, missing: list):
        super().__init__(
            f"Product {product_id} has no row and the event lacks: "
            f"{', '.join(missing)}"
        )
        self.product_id = product_id
        self.missing = missing


class StoreWriteFailed(SearchError):
    """Read store rejected a reconciliation after all retries"""

    def __init__(self, product_id: str, attempts: int, cause: Exception):
        super().__init__(
            f"Read store write for {product_id} failed after {attempts} attempts: {cause}"
        )
        self.product_id = product_id
        self.attempts = attempts
        self.cause = cause


class InvalidQuery(SearchError, ValueError):
    """Read API query parameters are inconsistent"""


class ProductNotFound(SearchError):
    def __init__(self, product_id: str):
        super().__init__(f"Product not found: {product_id}")
        self.product_id = product_id
