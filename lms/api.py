"""
Central API router and utilities for the LMS backend.

This module provides:
- A central router that every resource module registers with
- Exception handlers rendering the shared error response shape
- The error body helper for framework errors
"""

import logging
from typing import Any, Dict, Optional

from fastapi import APIRouter, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from lms.common.error_handling import ErrorCode, LMSError, error_response, log_error

logger = logging.getLogger(__name__)

# Create main API router
main_router = APIRouter()

# Version prefix for all API routes
API_VERSION = "v1"

# Dictionary to track registered modules
registered_modules: Dict[str, APIRouter] = {}


def register_module(name: str, router: APIRouter) -> None:
    """
    Register a resource module router with the main API router.

    Args:
        name: URL segment of the module, e.g. ``courses``
        router: FastAPI router for the module
    """
    if name in registered_modules:
        logger.warning(f"Module '{name}' already registered, overwriting")

    main_router.include_router(
        router,
        prefix=f"/{API_VERSION}/{name}",
        tags=[name]
    )

    registered_modules[name] = router
    logger.debug(f"Registered module: {name} with {len(router.routes)} routes")


async def lms_error_handler(request: Request, exc: LMSError) -> JSONResponse:
    """Render service errors with their own HTTP status."""
    if exc.status_code >= 500:
        log_error(exc, context={"path": request.url.path})

    headers = None
    retry_after = exc.details.get("retry_after_seconds")
    if retry_after is not None:
        headers = {"Retry-After": str(retry_after)}

    return JSONResponse(
        status_code=exc.status_code,
        content=error_response(exc),
        headers=headers
    )


_HTTP_ERROR_CODES = {
    status.HTTP_401_UNAUTHORIZED: ErrorCode.AUTHENTICATION_ERROR,
    status.HTTP_403_FORBIDDEN: ErrorCode.AUTHORIZATION_ERROR,
    status.HTTP_404_NOT_FOUND: ErrorCode.NOT_FOUND_ERROR,
}


def _http_error_code(status_code: int) -> str:
    return _HTTP_ERROR_CODES.get(status_code, ErrorCode.UNKNOWN_ERROR).value


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Render framework HTTP errors, turning unknown routes into 'Route not found'."""
    message = exc.detail
    if exc.status_code == status.HTTP_404_NOT_FOUND and exc.detail == "Not Found":
        message = "Route not found"

    return JSONResponse(
        status_code=exc.status_code,
        content=APIResponse.error(str(message), code=_http_error_code(exc.status_code)),
        headers=getattr(exc, "headers", None)
    )


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """
    Handle validation errors and return a standardized response.

    Args:
        request: The incoming request
        exc: The validation exception

    Returns:
        A JSON response with error details
    """
    error_details = []
    for error in exc.errors():
        error_details.append({
            "location": list(error.get("loc", [])),
            "message": error.get("msg", "Unknown validation error"),
            "type": error.get("type", "")
        })

    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content=APIResponse.error(
            "Validation error", details=error_details, code=ErrorCode.VALIDATION_ERROR.value
        )
    )


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    log_error(exc, context={"path": request.url.path})
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=APIResponse.error("Internal server error", code=ErrorCode.UNKNOWN_ERROR.value)
    )


class APIResponse:
    """Standard API response structure"""

    @staticmethod
    def error(message: str, details: Optional[Any] = None,
              code: Optional[str] = None) -> Dict[str, Any]:
        """
        Create an error response.

        Args:
            message: Error message
            details: Optional error details
            code: Optional error code

        Returns:
            Response dictionary
        """
        response = {
            "status": "error",
            "message": message,
            "error": message
        }

        if details:
            response["details"] = details

        if code:
            response["code"] = code

        return response
