"""
Catalog Service Health Check Utilities
======================================

Aggregates async dependency checks (document store, cache, broker) into
a single health report.
"""

import time
from typing import Any, Awaitable, Callable, Dict

AsyncCheck = Callable[[], Awaitable[Dict[str, Any]]]


class CatalogServiceHealthChecker:
    """Catalog Service specific health checker"""

    def __init__(self, service_name: str = "catalog_service") -> None:
        self.service_name = service_name
        self.checks: Dict[str, AsyncCheck] = {}
        self.start_time = time.time()

    def add_check(self, name: str, check_func: AsyncCheck) -> None:
        """Add a health check coroutine"""
        self.checks[name] = check_func

    async def run_checks(self) -> Dict[str, Any]:
        results = {}
        check_start_time = time.time()

        for name, check_func in self.checks.items():
            individual_start = time.time()
            try:
                result = await check_func()
            except Exception as e:
                result = {"status": "error", "error": str(e)}
            result["duration_ms"] = round((time.time() - individual_start) * 1000, 2)
            results[name] = result

        total_time = (time.time() - check_start_time) * 1000
        uptime = time.time() - self.start_time

        return {
            "service": self.service_name,
            "status": "healthy"
            if all(r.get("status") == "healthy" for r in results.values())
            else "unhealthy",
            "checks": results,
            "total_duration_ms": round(total_time, 2),
            "uptime_seconds": round(uptime, 2),
            "timestamp": time.time(),
        }


def component_status(component: str, healthy: bool) -> Dict[str, Any]:
    return {
        "status": "healthy" if healthy else "unhealthy",
        "component": component,
    }
