"""
Catalog Service FastAPI Application
===================================

Main application entry point for the Catalog Service microservice.
Owns the product write model: products are stored in the document store,
read through the cache and announced to the search side as Kafka events.
"""

import time
from contextlib import asynccontextmanager
from typing import Any

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .api.v1.health import router as health_router
from .api.v1.products import router as products_router
from .core.cache_management import close_cache, init_cache
from .core.database import get_database_manager
from .core.event_management import close_events, init_events
from .core.setting import get_settings
from .middleware.error.error_handler import setup_catalog_error_handling
from .utils.logging import setup_catalog_logging as setup_logging

settings = get_settings()
enable_file_logging = settings.ENVIRONMENT.lower() in ["production", "staging"]

logger = setup_logging(
    "catalog_service",
    log_level=settings.LOG_LEVEL,
    enable_file_logging=enable_file_logging,
)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan context manager for startup and shutdown."""
    startup_start = time.time()

    try:
        await _initialize_services(startup_start)
    except Exception as e:
        logger.error(
            "Failed to start catalog service",
            exc_info=True,
            extra={
                "startup_duration_ms": int((time.time() - startup_start) * 1000),
                "error_type": type(e).__name__,
            },
        )
        raise

    yield

    await _shutdown_services()


async def _initialize_services(startup_start: float) -> None:
    logger.info(
        "Starting catalog service initialization",
        extra={
            "environment": settings.ENVIRONMENT,
            "debug_mode": settings.DEBUG,
            "file_logging_enabled": enable_file_logging,
            "service_version": settings.APP_VERSION,
        },
    )

    db_start = time.time()
    await get_database_manager().create_indexes()
    db_duration = int((time.time() - db_start) * 1000)

    await init_cache()

    event_start = time.time()
    await init_events()
    event_duration = int((time.time() - event_start) * 1000)

    logger.info(
        "Catalog service started successfully",
        extra={
            "total_startup_duration_ms": int((time.time() - startup_start) * 1000),
            "database_init_ms": db_duration,
            "event_publisher_init_ms": event_duration,
        },
    )


async def _shutdown_services() -> None:
    shutdown_start = time.time()
    logger.info("Starting catalog service shutdown")
    try:
        await close_events()
        await close_cache()
        await get_database_manager().close()
    except Exception as e:
        logger.error(
            "Error during catalog service shutdown",
            exc_info=True,
            extra={
                "shutdown_duration_ms": int((time.time() - shutdown_start) * 1000),
                "error_type": type(e).__name__,
            },
        )
        raise

    logger.info(
        "Catalog service shutdown completed",
        extra={"shutdown_duration_ms": int((time.time() - shutdown_start) * 1000)},
    )


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    app = FastAPI(
        title=settings.APP_NAME,
        version=settings.APP_VERSION,
        debug=settings.DEBUG,
        lifespan=lifespan,
        openapi_url="/openapi.json" if settings.DEBUG else None,
        docs_url="/docs" if settings.DEBUG else None,
        redoc_url="/redoc" if settings.DEBUG else None,
    )

    setup_catalog_error_handling(app)
    _setup_cors(app)
    _setup_routers(app)

    return app


def _setup_cors(app: FastAPI) -> None:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=settings.CORS_CREDENTIALS,
        allow_methods=settings.CORS_METHODS,
        allow_headers=settings.CORS_HEADERS,
    )
    logger.info(
        "CORS middleware configured",
        extra={
            "allowed_origins": len(settings.CORS_ORIGINS),
            "credentials_allowed": settings.CORS_CREDENTIALS,
        },
    )


def _setup_routers(app: FastAPI) -> None:
    routers_info: list[dict[str, Any]] = []

    app.include_router(health_router, tags=["Health"])
    routers_info.append({"router": "health", "prefix": "", "tags": ["Health"]})

    app.include_router(products_router, prefix="/api/v1", tags=["Product Management"])
    routers_info.append(
        {"router": "products", "prefix": "/api/v1", "tags": ["Product Management"]}
    )

    logger.info(
        "API routes configured",
        extra={"total_routers": len(routers_info), "routers": routers_info},
    )


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(  # type: ignore
        "catalog_service.app.main:app",
        host="0.0.0.0",
        port=8001,
        log_level=settings.LOG_LEVEL.lower(),
        access_log=True,
    )
