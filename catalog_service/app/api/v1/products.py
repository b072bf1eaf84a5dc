"""Product write API endpoints"""

import math
from typing import Optional

from fastapi import APIRouter, Query, Response, status

from ...core.setting import get_settings
from ...repository.product_repository import SORTABLE_FIELDS
from ...schemas.product import (
    ProductCreate,
    ProductListResponse,
    ProductResponse,
    ProductUpdate,
)
from ...services.product_service import ProductService
from ...utils.logging import setup_catalog_logging as setup_logging
from ..dependencies import AuthenticatedUserDep, CorrelationIdDep, ProductServiceDep

logger = setup_logging("catalog_service.api.products")
router = APIRouter(prefix="/products")


@router.post("", response_model=ProductResponse, status_code=status.HTTP_201_CREATED)
async def create_product(
    product_data: ProductCreate,
    correlation_id: Optional[str] = CorrelationIdDep,
    user_id: str = AuthenticatedUserDep,
    service: ProductService = ProductServiceDep,
):
    """Create a new product owned by the caller"""
    logger.info(
        "Create product requested",
        extra={"product_name": product_data.name, "correlation_id": correlation_id},
    )
    product = await service.create_product(
        product_data=product_data, user_id=user_id, correlation_id=correlation_id
    )
    return ProductResponse.from_product(product)


@router.get("", response_model=ProductListResponse)
async def list_products(
    page: int = Query(0, ge=0),
    size: int = Query(20, ge=1),
    sort_by: str = Query("created_at"),
    sort_dir: str = Query("desc", pattern="^(asc|desc|ASC|DESC)$"),
    service: ProductService = ProductServiceDep,
):
    """List products, newest first by default"""
    max_size = get_settings().MAX_PAGE_SIZE
    if size > max_size:
        logger.warning(
            "Page size too large, clamping",
            extra={"requested_size": size, "max_size": max_size},
        )
        size = max_size
    if sort_by not in SORTABLE_FIELDS:
        sort_by = "created_at"

    products, total = await service.list_products(page, size, sort_by, sort_dir)
    return ProductListResponse(
        products=[ProductResponse.from_product(p) for p in products],
        total=total,
        page=page,
        size=size,
        total_pages=math.ceil(total / size) if total else 0,
    )


@router.get("/{product_id}", response_model=ProductResponse)
async def get_product(
    product_id: str,
    correlation_id: Optional[str] = CorrelationIdDep,
    service: ProductService = ProductServiceDep,
):
    """Get product details by ID"""
    product = await service.get_product(product_id, correlation_id=correlation_id)
    return ProductResponse.from_product(product)


@router.put("/{product_id}", response_model=ProductResponse)
async def update_product(
    product_id: str,
    product_data: ProductUpdate,
    correlation_id: Optional[str] = CorrelationIdDep,
    user_id: str = AuthenticatedUserDep,
    service: ProductService = ProductServiceDep,
):
    """Update the provided fields of a product (owner only)"""
    product = await service.update_product(
        product_id=product_id,
        product_data=product_data,
        user_id=user_id,
        correlation_id=correlation_id,
    )
    return ProductResponse.from_product(product)


@router.delete("/{product_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_product(
    product_id: str,
    correlation_id: Optional[str] = CorrelationIdDep,
    user_id: str = AuthenticatedUserDep,
    service: ProductService = ProductServiceDep,
):
    """Delete product (owner only)"""
    await service.delete_product(
        product_id=product_id, user_id=user_id, correlation_id=correlation_id
    )
    return Response(status_code=status.HTTP_204_NO_CONTENT)
