from typing import Any, Dict

from fastapi import APIRouter
from fastapi.responses import JSONResponse

from ...core.cache_management import get_product_cache
from ...core.database import get_database_manager
from ...core.event_management import health_check_events
from ...core.setting import get_settings
from ...utils.service_health import CatalogServiceHealthChecker, component_status

router = APIRouter()


async def _document_store_check() -> Dict[str, Any]:
    return component_status("document_store", await get_database_manager().ping())


async def _cache_check() -> Dict[str, Any]:
    cache = get_product_cache()
    return component_status("cache", cache is not None and await cache.health_check())


async def _broker_check() -> Dict[str, Any]:
    return component_status("broker", await health_check_events())


@router.get("/health")
async def health_check() -> JSONResponse:
    """Health check endpoint reporting each catalog dependency."""
    settings = get_settings()
    checker = CatalogServiceHealthChecker(settings.SERVICE_NAME)
    checker.add_check("document_store", _document_store_check)
    checker.add_check("cache", _cache_check)
    checker.add_check("broker", _broker_check)
    report = await checker.run_checks()
    report["version"] = settings.APP_VERSION

    # The cache and the broker degrade writes but do not take the service down
    status_code = 200 if report["checks"]["document_store"]["status"] == "healthy" else 503
    return JSONResponse(status_code=status_code, content=report)
