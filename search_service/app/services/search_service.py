"""Query side of the search read model"""

import math
from typing import Sequence

from sqlalchemy.ext.asyncio import AsyncSession

from ..core.exceptions import InvalidQuery, ProductNotFound
from ..models.product import ProductRow
from ..repository.product_repository import ProductReadRepository
from ..schemas.product import ProductPageResponse, ProductResponse


def _page_response(
    rows: Sequence[ProductRow], total: int, page: int, size: int
) -> ProductPageResponse:
    return ProductPageResponse(
        products=[ProductResponse.from_row(row) for row in rows],
        page=page,
        size=size,
        total=total,
        total_pages=math.ceil(total / size) if total else 0,
    )


class ProductSearchService:
    """Read-only queries over the projection; never touches the catalog store"""

    def __init__(self, db: AsyncSession):
        self.repository = ProductReadRepository(db)

    async def get_product(self, product_id: str) -> ProductResponse:
        row = await self.repository.get_by_id(product_id)
        if row is None:
            raise ProductNotFound(product_id)
        return ProductResponse.from_row(row)

    async def list_products(self, page: int, size: int) -> ProductPageResponse:
        rows, total = await self.repository.list_products(page, size)
        return _page_response(rows, total, page, size)

    async def search_by_name(
        self, name: str, page: int, size: int
    ) -> ProductPageResponse:
        rows, total = await self.repository.search_by_name(name.strip(), page, size)
        return _page_response(rows, total, page, size)

    async def find_by_category(
        self, category: str, page: int, size: int
    ) -> ProductPageResponse:
        rows, total = await self.repository.find_by_category(category, page, size)
        return _page_response(rows, total, page, size)

    async def find_by_price_range(
        self, min_price: int, max_price: int, page: int, size: int
    ) -> ProductPageResponse:
        if min_price > max_price:
            raise InvalidQuery("min_price cannot be greater than max_price")
        rows, total = await self.repository.find_by_price_range(
            min_price, max_price, page, size
        )
        return _page_response(rows, total, page, size)
