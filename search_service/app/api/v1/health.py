import time
from typing import Any, Dict

from fastapi import APIRouter
from fastapi.responses import JSONResponse

from ...core.database import get_database_manager
from ...core.event_management import pipeline_health
from ...core.setting import get_settings

router = APIRouter()
_started_at = time.time()


@router.get("/health")
async def health_check() -> JSONResponse:
    """Read store reachability plus synchronization pipeline liveness.

    Returns 503 when the read store is unreachable or the reconciler has
    failed too many times in a row, so orchestration can restart the service.
    """
    settings = get_settings()
    check_start = time.time()
    database_ok = await get_database_manager().ping()
    pipeline = pipeline_health()

    checks: Dict[str, Any] = {
        "database": {
            "status": "healthy" if database_ok else "unhealthy",
            "component": "read_store",
        },
        "pipeline": {
            "status": "healthy" if pipeline["live"] else "unhealthy",
            "component": "reconciler",
            **pipeline,
        },
    }
    healthy = database_ok and pipeline["live"]
    report = {
        "service": settings.SERVICE_NAME,
        "version": settings.APP_VERSION,
        "status": "healthy" if healthy else "unhealthy",
        "checks": checks,
        "total_duration_ms": round((time.time() - check_start) * 1000, 2),
        "uptime_seconds": round(time.time() - _started_at, 2),
        "timestamp": time.time(),
    }
    return JSONResponse(status_code=200 if healthy else 503, content=report)
