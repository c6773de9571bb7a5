"""
FastAPI exception handlers.

Every error response has the same envelope as a successful sync response:
`success: false` plus a machine-readable `error` code, so the dashboard can
branch on one field.
"""

from typing import Any, Dict, Optional
import logging

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from portfolio_sync.core.exceptions import ConfigurationError, PortfolioSyncError, create_http_exception

logger = logging.getLogger(__name__)


def error_response(
    request: Request,
    status_code: int,
    error: str,
    message: Any,
    details: Optional[Any] = None,
) -> JSONResponse:
    body: Dict[str, Any] = {
        "success": False,
        "error": error,
        "message": message,
        "path": request.url.path,
    }
    if details:
        body["details"] = details
    return JSONResponse(status_code=status_code, content=body)


async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    logger.error(f"HTTP {exc.status_code} on {request.url.path}: {exc.detail}")
    if isinstance(exc.detail, dict):
        return error_response(
            request, exc.status_code,
            exc.detail.get("code", "HTTP_ERROR"),
            exc.detail.get("message", ""),
            exc.detail.get("details"),
        )
    return error_response(request, exc.status_code, "HTTP_ERROR", exc.detail)


async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Malformed query parameters or request bodies"""
    logger.warning(f"Request validation failed on {request.url.path}: {exc.errors()}")
    return error_response(
        request,
        status.HTTP_422_UNPROCESSABLE_ENTITY,
        "VALIDATION_ERROR",
        "Request validation failed",
        exc.errors(),
    )


async def portfolio_sync_error_handler(request: Request, exc: PortfolioSyncError):
    """
    Pipeline errors that escaped per-item isolation: configuration problems,
    a failed root listing, or every summarizer provider down.
    """
    status_code = create_http_exception(exc).status_code
    log = logger.error if status_code >= 500 else logger.warning
    log(f"{exc.code} on {request.url.path}: {exc.message}")

    details = dict(exc.details)
    if isinstance(exc, ConfigurationError) and exc.setting:
        details["setting"] = exc.setting
    return error_response(request, status_code, exc.code, exc.message, details)


async def general_exception_handler(request: Request, exc: Exception):
    logger.error(f"Unhandled exception on {request.url.path}: {exc}", exc_info=True)
    settings = getattr(request.app.state, "settings", None)
    # Internal details stay out of production responses
    if settings is not None and settings.ENVIRONMENT == "production":
        message = "An internal error occurred"
    else:
        message = str(exc)
    return error_response(request, status.HTTP_500_INTERNAL_SERVER_ERROR, "INTERNAL_SERVER_ERROR", message)


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(PortfolioSyncError, portfolio_sync_error_handler)
    app.add_exception_handler(Exception, general_exception_handler)
