from .base import SearchServiceBase
from .product import ProductRow, ProductTombstone

__all__ = ["SearchServiceBase", "ProductRow", "ProductTombstone"]
