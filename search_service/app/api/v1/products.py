"""Product search API endpoints (read model only)"""

from fastapi import APIRouter, Query

from ...core.setting import get_settings
from ...schemas.product import ProductPageResponse, ProductResponse
from ...services.search_service import ProductSearchService
from ...utils.logging import setup_search_logging as setup_logging
from ..dependencies import SearchServiceDep

logger = setup_logging("search_service.api.products")
router = APIRouter(prefix="/search/products")


def _clamp(size: int) -> int:
    max_size = get_settings().MAX_PAGE_SIZE
    if size > max_size:
        logger.warning(
            "Page size too large, clamping",
            extra={"requested_size": size, "max_size": max_size},
        )
        return max_size
    return size


@router.get("", response_model=ProductPageResponse)
async def list_products(
    page: int = Query(0, ge=0),
    size: int = Query(20, ge=1),
    service: ProductSearchService = SearchServiceDep,
):
    """List projected products, newest first"""
    return await service.list_products(page, _clamp(size))


@router.get("/search", response_model=ProductPageResponse)
async def search_products(
    name: str = Query(..., min_length=1),
    page: int = Query(0, ge=0),
    size: int = Query(20, ge=1),
    service: ProductSearchService = SearchServiceDep,
):
    """Case-insensitive name prefix search"""
    return await service.search_by_name(name, page, _clamp(size))


@router.get("/category", response_model=ProductPageResponse)
async def products_by_category(
    category: str = Query(..., min_length=1),
    page: int = Query(0, ge=0),
    size: int = Query(20, ge=1),
    service: ProductSearchService = SearchServiceDep,
):
    return await service.find_by_category(category, page, _clamp(size))


@router.get("/price-range", response_model=ProductPageResponse)
async def products_by_price_range(
    min_price: int = Query(..., ge=0, description="Inclusive, in cents"),
    max_price: int = Query(..., ge=0, description="Inclusive, in cents"),
    page: int = Query(0, ge=0),
    size: int = Query(20, ge=1),
    service: ProductSearchService = SearchServiceDep,
):
    return await service.find_by_price_range(
        min_price, max_price, page, _clamp(size)
    )


@router.get("/{product_id}", response_model=ProductResponse)
async def get_product(
    product_id: str,
    service: ProductSearchService = SearchServiceDep,
):
    return await service.get_product(product_id)
