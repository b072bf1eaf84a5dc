"""
Error handling for Search Service.
"""

import traceback
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from ...core.exceptions import InvalidQuery, ProductNotFound
from ...utils.logging import setup_search_logging

logger = setup_search_logging("search_service.error_handler")


def _error_response(
    request: Request,
    status_code: int,
    error_type: str,
    message: str,
    details: Optional[Dict[str, Any]] = None,
) -> JSONResponse:
    correlation_id = request.headers.get("X-Correlation-ID", "unknown")
    error: Dict[str, Any] = {
        "type": error_type,
        "message": message,
        "correlation_id": correlation_id,
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "path": request.url.path,
        "method": request.method,
    }
    if details:
        error["details"] = details

    if status_code < 500:
        logger.warning(
            f"Client error: {error_type}",
            extra={
                "correlation_id": correlation_id,
                "status_code": status_code,
                "path": request.url.path,
            },
        )
    return JSONResponse(status_code=status_code, content={"error": error})


def setup_search_error_handling(app: FastAPI) -> None:
    """Setup error handling for Search Service."""

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        return _error_response(request, exc.status_code, "http_error", str(exc.detail))

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(
        request: Request, exc: RequestValidationError
    ):
        errors = [
            {
                "field": ".".join(str(loc) for loc in error["loc"]),
                "message": error["msg"],
                "type": error["type"],
            }
            for error in exc.errors()
        ]
        return _error_response(
            request,
            422,
            "validation_error",
            "Request validation failed",
            {"validation_errors": errors},
        )

    @app.exception_handler(InvalidQuery)
    async def invalid_query_handler(request: Request, exc: InvalidQuery):
        return _error_response(request, 400, "invalid_query", str(exc))

    @app.exception_handler(ProductNotFound)
    async def not_found_handler(request: Request, exc: ProductNotFound):
        return _error_response(
            request,
            404,
            "not_found",
            "Product not found",
            {"product_id": exc.product_id},
        )

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception):
        logger.error(
            "Unhandled exception occurred",
            extra={
                "path": request.url.path,
                "method": request.method,
                "exception_type": type(exc).__name__,
                "exception_message": str(exc),
                "traceback": traceback.format_exc(),
            },
        )
        return _error_response(
            request,
            500,
            "internal_server_error",
            "An internal server error occurred",
        )

    logger.info("Search Service error handling configured")
