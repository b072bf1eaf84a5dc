"""
Error handling for Catalog Service.
Maps catalog exceptions to standardized JSON error responses.
"""

import traceback
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from ...core.exceptions import (
    PersistenceFailed,
    ProductNotFound,
    ProductOwnershipError,
    ProductValidationError,
    ProjectionPublishFailed,
)
from ...schemas.product import DegradedWriteResponse, ProductResponse
from ...utils.logging import setup_catalog_logging

logger = setup_catalog_logging("catalog_service.error_handler")


class CatalogServiceErrorHandler:
    """Centralized error handling for Catalog Service."""

    @staticmethod
    def setup_error_handlers(app: FastAPI) -> None:
        @app.exception_handler(StarletteHTTPException)
        async def http_exception_handler(
            request: Request, exc: StarletteHTTPException
        ) -> JSONResponse:
            return CatalogServiceErrorHandler._create_error_response(
                request=request,
                status_code=exc.status_code,
                error_type="http_error",
                message=str(exc.detail),
            )

        @app.exception_handler(RequestValidationError)
        async def validation_exception_handler(
            request: Request, exc: RequestValidationError
        ) -> JSONResponse:
            error_details = [
                {
                    "field": ".".join(str(loc) for loc in error["loc"]),
                    "message": error["msg"],
                    "type": error["type"],
                }
                for error in exc.errors()
            ]
            return CatalogServiceErrorHandler._create_error_response(
                request=request,
                status_code=422,
                error_type="validation_error",
                message="Request validation failed",
                details={"validation_errors": error_details},
            )

        @app.exception_handler(ProductValidationError)
        async def product_validation_handler(
            request: Request, exc: ProductValidationError
        ) -> JSONResponse:
            return CatalogServiceErrorHandler._create_error_response(
                request=request,
                status_code=400,
                error_type="product_validation_error",
                message=str(exc),
            )

        @app.exception_handler(ProductNotFound)
        async def not_found_handler(
            request: Request, exc: ProductNotFound
        ) -> JSONResponse:
            return CatalogServiceErrorHandler._create_error_response(
                request=request,
                status_code=404,
                error_type="not_found",
                message="Product not found",
                details={"product_id": exc.product_id},
            )

        @app.exception_handler(ProductOwnershipError)
        async def ownership_handler(
            request: Request, exc: ProductOwnershipError
        ) -> JSONResponse:
            return CatalogServiceErrorHandler._create_error_response(
                request=request,
                status_code=403,
                error_type="access_denied",
                message="You can only modify your own products",
                details={"product_id": exc.product_id},
            )

        @app.exception_handler(PersistenceFailed)
        async def persistence_handler(
            request: Request, exc: PersistenceFailed
        ) -> JSONResponse:
            logger.error(
                "Primary store write failed",
                extra={
                    "operation": exc.operation,
                    "product_id": exc.product_id,
                    "error": str(exc.cause),
                    "path": request.url.path,
                },
            )
            return CatalogServiceErrorHandler._create_error_response(
                request=request,
                status_code=503,
                error_type="persistence_failed",
                message="The product store is unavailable, retry the request",
            )

        @app.exception_handler(ProjectionPublishFailed)
        async def degraded_write_handler(
            request: Request, exc: ProjectionPublishFailed
        ) -> JSONResponse:
            # The write is durable; only the search projection lags behind
            body = DegradedWriteResponse(
                product=ProductResponse.from_product(exc.product)
                if exc.product
                else None,
                product_id=exc.product_id,
                detail="Change saved; search results may be stale until the event is republished",
            )
            return JSONResponse(
                status_code=202,
                content=body.model_dump(mode="json"),
                headers={"X-Projection-Status": "stale"},
            )

        @app.exception_handler(Exception)
        async def unhandled_exception_handler(
            request: Request, exc: Exception
        ) -> JSONResponse:
            logger.error(
                "Unhandled exception occurred",
                extra={
                    "correlation_id": request.headers.get("X-Correlation-ID"),
                    "path": request.url.path,
                    "method": request.method,
                    "exception_type": type(exc).__name__,
                    "exception_message": str(exc),
                    "traceback": traceback.format_exc(),
                },
            )
            return CatalogServiceErrorHandler._create_error_response(
                request=request,
                status_code=500,
                error_type="internal_server_error",
                message="An internal server error occurred",
                details={"exception_type": type(exc).__name__},
            )

    @staticmethod
    def _create_error_response(
        request: Request,
        status_code: int,
        error_type: str,
        message: str,
        details: Optional[Dict[str, Any]] = None,
    ) -> JSONResponse:
        correlation_id = request.headers.get("X-Correlation-ID", "unknown")

        error_response: Dict[str, Any] = {
            "error": {
                "type": error_type,
                "message": message,
                "correlation_id": correlation_id,
                "timestamp": datetime.now(timezone.utc).isoformat(),
                "path": request.url.path,
                "method": request.method,
            }
        }
        if details:
            error_response["error"]["details"] = details

        if status_code < 500:
            logger.warning(
                f"Client error: {error_type}",
                extra={
                    "correlation_id": correlation_id,
                    "status_code": status_code,
                    "error_type": error_type,
                    "path": request.url.path,
                    "method": request.method,
                },
            )

        return JSONResponse(status_code=status_code, content=error_response)


def setup_catalog_error_handling(app: FastAPI) -> None:
    """Setup error handling for Catalog Service."""
    CatalogServiceErrorHandler.setup_error_handlers(app)
    logger.info("Catalog Service error handling configured")
