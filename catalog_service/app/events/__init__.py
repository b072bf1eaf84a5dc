"""
Events module for the Catalog Service.

Producers:
    - ProductEventProducer: publishes product-created, product-updated and
      product-deleted events, keyed by product id, after the primary store commit.
"""

from .event_producers import ProductEventProducer

__all__ = ["ProductEventProducer"]
