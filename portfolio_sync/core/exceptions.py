"""
Custom exception classes for the ingestion pipeline and HTTP surface
"""

from typing import Optional, Dict, Any
from fastapi import HTTPException


class PortfolioSyncError(Exception):
    """Base exception for all portfolio sync exceptions"""
    def __init__(self, message: str, code: str = "PORTFOLIO_SYNC_ERROR", details: Optional[Dict[str, Any]] = None):
        self.message = message
        self.code = code
        self.details = details or {}
        super().__init__(self.message)


class ConfigurationError(PortfolioSyncError):
    """Raised when credentials or identifiers are missing; no work is attempted"""
    def __init__(self, message: str, setting: Optional[str] = None, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, "CONFIGURATION_ERROR", details)
        self.setting = setting


class ValidationError(PortfolioSyncError):
    """Raised when request input validation fails"""
    def __init__(self, message: str, field: Optional[str] = None, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, "VALIDATION_ERROR", details)
        self.field = field


class ExternalAPIError(PortfolioSyncError):
    """Raised when an external API call fails"""
    def __init__(self, service: str, message: str, status_code: Optional[int] = None, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, f"{service.upper()}_API_ERROR", details)
        self.service = service
        self.status_code = status_code


class ContentSourceError(ExternalAPIError):
    """Raised when listing or fetching from the content source fails"""
    def __init__(self, message: str, item_id: Optional[str] = None, details: Optional[Dict[str, Any]] = None):
        super().__init__("content_source", message, details=details)
        self.item_id = item_id


class SummarizerError(ExternalAPIError):
    """Raised when every configured summarizer provider failed"""
    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__("summarizer", message, details=details)


class StoreError(PortfolioSyncError):
    """Raised when record store operations fail"""
    def __init__(self, message: str, operation: Optional[str] = None, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, "STORE_ERROR", details)
        self.operation = operation


class DeadlineExceededError(PortfolioSyncError):
    """Raised when the invocation deadline passed before any work completed"""
    def __init__(self, operation: str, timeout_seconds: float, details: Optional[Dict[str, Any]] = None):
        message = f"Operation '{operation}' exceeded its {timeout_seconds:g}s deadline"
        super().__init__(message, "DEADLINE_EXCEEDED", details)
        self.operation = operation
        self.timeout_seconds = timeout_seconds


def create_http_exception(error: PortfolioSyncError) -> HTTPException:
    """Convert a PortfolioSyncError to an HTTPException"""
    status_code = 500

    if isinstance(error, (ConfigurationError, ValidationError)):
        status_code = 400
    elif isinstance(error, DeadlineExceededError):
        status_code = 408
    elif isinstance(error, StoreError):
        status_code = 503
    elif isinstance(error, ExternalAPIError):
        status_code = error.status_code or 502

    return HTTPException(
        status_code=status_code,
        detail={
            "code": error.code,
            "message": error.message,
            "details": error.details
        }
    )
