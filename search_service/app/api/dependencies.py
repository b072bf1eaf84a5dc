"""
FastAPI dependency injection for Search Service
"""

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.database import get_db_session
from ..services.search_service import ProductSearchService


def get_search_service(
    db: AsyncSession = Depends(get_db_session),
) -> ProductSearchService:
    return ProductSearchService(db)


SearchServiceDep = Depends(get_search_service)
