"""
Search Service FastAPI Application
==================================

Read side of the product catalog. Serves queries from the relational read
model and keeps that model in sync by consuming catalog product events.
"""

import time
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .api.v1.health import router as health_router
from .api.v1.products import router as products_router
from .core.database import get_database_manager
from .core.event_management import close_events, init_events
from .core.setting import get_settings
from .middleware.error.error_handler import setup_search_error_handling
from .utils.logging import setup_search_logging as setup_logging

settings = get_settings()
enable_file_logging = settings.ENVIRONMENT.lower() in ["production", "staging"]

logger = setup_logging(
    "search_service",
    log_level=settings.LOG_LEVEL,
    enable_file_logging=enable_file_logging,
)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan context manager for startup and shutdown."""
    startup_start = time.time()
    logger.info(
        "Starting search service initialization",
        extra={
            "environment": settings.ENVIRONMENT,
            "consumer_enabled": settings.CONSUMER_ENABLED,
            "service_version": settings.APP_VERSION,
        },
    )

    try:
        await get_database_manager().create_tables()
        if settings.CONSUMER_ENABLED:
            await init_events()
    except Exception as e:
        logger.error(
            "Failed to start search service",
            exc_info=True,
            extra={
                "startup_duration_ms": int((time.time() - startup_start) * 1000),
                "error_type": type(e).__name__,
            },
        )
        raise

    logger.info(
        "Search service started successfully",
        extra={"total_startup_duration_ms": int((time.time() - startup_start) * 1000)},
    )

    yield

    shutdown_start = time.time()
    logger.info("Starting search service shutdown")
    await close_events()
    await get_database_manager().close()
    logger.info(
        "Search service shutdown completed",
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

    setup_search_error_handling(app)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=settings.CORS_CREDENTIALS,
        allow_methods=settings.CORS_METHODS,
        allow_headers=settings.CORS_HEADERS,
    )

    app.include_router(health_router, tags=["Health"])
    app.include_router(products_router, prefix="/api/v1", tags=["Product Search"])
    logger.info(
        "API routes configured",
        extra={"routers": ["health", "products"], "prefix": "/api/v1"},
    )
    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(  # type: ignore
        "search_service.app.main:app",
        host="0.0.0.0",
        port=8002,
        log_level=settings.LOG_LEVEL.lower(),
        access_log=True,
    )
