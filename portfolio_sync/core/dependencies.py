"""
Dependency injection for request-scoped services.
Every client is built per request and dropped afterwards; nothing is cached
at module level.
"""

from typing import Optional
from fastapi import Request, Depends
import logging
import uuid

from portfolio_sync.abstractions import (
    CalendarSource,
    ContentSource,
    GoogleCalendarSource,
    GoogleDriveContentSource,
    GoogleSheetsSource,
    RecordStore,
    SheetSource,
    SupabaseRecordStore,
)
from portfolio_sync.core.config import Settings, get_settings
from portfolio_sync.core.database import create_supabase_client
from portfolio_sync.core.exceptions import ConfigurationError
from portfolio_sync.core.google_auth import (
    CALENDAR_SCOPES,
    DRIVE_SCOPES,
    SHEETS_SCOPES,
    get_credentials,
)
from portfolio_sync.services.portfolio_sync_service import PortfolioSyncService
from portfolio_sync.services.summarizer import ModelRouterSummarizer, Summarizer
from portfolio_sync.utils.timeout_handler import Deadline

logger = logging.getLogger(__name__)


class ServiceFactory:
    """Factory for creating request-scoped collaborators"""

    @staticmethod
    def create_content_source(settings: Settings) -> ContentSource:
        credentials = get_credentials(settings.GOOGLE_SERVICE_ACCOUNT, DRIVE_SCOPES)
        return GoogleDriveContentSource.from_credentials(credentials)

    @staticmethod
    def create_sheet_source(settings: Settings) -> SheetSource:
        credentials = get_credentials(settings.GOOGLE_SERVICE_ACCOUNT, SHEETS_SCOPES)
        return GoogleSheetsSource.from_credentials(credentials)

    @staticmethod
    def create_calendar_source(settings: Settings) -> CalendarSource:
        from googleapiclient.discovery import build

        raw = settings.GOOGLE_SERVICE_ACCOUNT
        subject = settings.CALENDAR_ID
        # Validate before any remote call
        get_credentials(raw, CALENDAR_SCOPES)

        def delegated():
            return build("calendar", "v3", credentials=get_credentials(raw, CALENDAR_SCOPES, subject), cache_discovery=False)

        def shared():
            return build("calendar", "v3", credentials=get_credentials(raw, CALENDAR_SCOPES), cache_discovery=False)

        return GoogleCalendarSource(delegated, shared)

    @staticmethod
    def create_record_store(settings: Settings) -> RecordStore:
        return SupabaseRecordStore(create_supabase_client(settings), table=settings.COMPANIES_TABLE)

    @staticmethod
    def create_summarizer(settings: Settings) -> Summarizer:
        return ModelRouterSummarizer(
            openai_key=settings.OPENAI_API_KEY,
            anthropic_key=settings.ANTHROPIC_API_KEY,
            model=settings.SUMMARIZER_MODEL,
            fallback_model=settings.FALLBACK_SUMMARIZER_MODEL,
            temperature=settings.SUMMARIZER_TEMPERATURE,
        )


# Dependency injection functions for FastAPI
def get_request_id(request: Request) -> str:
    """Extract or generate request ID"""
    request_id = request.headers.get("X-Request-ID")
    if not request_id:
        request_id = str(uuid.uuid4())
        logger.debug(f"Generated request ID: {request_id}")
    return request_id


def get_content_source(settings: Settings = Depends(get_settings)) -> ContentSource:
    return ServiceFactory.create_content_source(settings)


def get_sheet_source(settings: Settings = Depends(get_settings)) -> SheetSource:
    return ServiceFactory.create_sheet_source(settings)


def get_calendar_source(settings: Settings = Depends(get_settings)) -> CalendarSource:
    return ServiceFactory.create_calendar_source(settings)


def get_record_store(settings: Settings = Depends(get_settings)) -> Optional[RecordStore]:
    """Store, or None when Supabase is not configured (read-only runs)."""
    try:
        return ServiceFactory.create_record_store(settings)
    except ConfigurationError as e:
        logger.warning(f"Record store unavailable: {e.message}")
        return None


def get_summarizer(settings: Settings = Depends(get_settings)) -> Optional[Summarizer]:
    """Summarizer, or None when no LLM key is configured."""
    try:
        return ServiceFactory.create_summarizer(settings)
    except ConfigurationError as e:
        logger.warning(f"Summarizer unavailable: {e.message}")
        return None


def get_deadline(settings: Settings = Depends(get_settings)) -> Deadline:
    return Deadline(settings.SCAN_DEADLINE_SECONDS)


def get_sync_service(
    request_id: str = Depends(get_request_id),
    content_source: ContentSource = Depends(get_content_source),
    store: Optional[RecordStore] = Depends(get_record_store),
    summarizer: Optional[Summarizer] = Depends(get_summarizer),
    settings: Settings = Depends(get_settings),
) -> PortfolioSyncService:
    """Get request-scoped drive pipeline"""
    logger.info(f"Creating sync service for request {request_id}")
    return PortfolioSyncService(content_source=content_source, store=store, summarizer=summarizer, settings=settings)


def get_sheet_sync_service(
    sheet_source: SheetSource = Depends(get_sheet_source),
    store: Optional[RecordStore] = Depends(get_record_store),
    settings: Settings = Depends(get_settings),
) -> PortfolioSyncService:
    """Get request-scoped sheet pipeline"""
    return PortfolioSyncService(sheet_source=sheet_source, store=store, settings=settings)
