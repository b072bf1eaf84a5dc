"""
FastAPI dependency injection for Catalog Service
"""

from typing import Optional

from fastapi import Depends, HTTPException, Request, status

from ..core.cache_management import get_product_cache
from ..core.database import get_database_manager
from ..core.event_management import get_event_producer
from ..services.product_service import ProductService


def get_product_service() -> ProductService:
    """Provide ProductService wired to the document store, cache and publisher"""
    cache = get_product_cache()
    event_producer = get_event_producer()
    if cache is None or event_producer is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Catalog service is still starting",
        )
    return ProductService(
        get_database_manager().product_repository(), cache, event_producer
    )


def get_correlation_id(request: Request) -> Optional[str]:
    """Extract correlation ID from request headers"""
    return (
        request.headers.get("X-Correlation-ID")
        or request.headers.get("correlation-id")
        or request.headers.get("x-request-id")
    )


def get_current_user_id(request: Request) -> str:
    """User id forwarded by the gateway after authentication"""
    user_id = request.headers.get("X-User-ID")
    if not user_id:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authentication required",
        )
    return user_id


CorrelationIdDep = Depends(get_correlation_id)
AuthenticatedUserDep = Depends(get_current_user_id)
ProductServiceDep = Depends(get_product_service)
