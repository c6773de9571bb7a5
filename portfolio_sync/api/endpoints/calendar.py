import asyncio
from datetime import datetime, timezone
from fastapi import APIRouter, Depends
from typing import Any, Dict
import logging

from portfolio_sync.abstractions import CalendarSource
from portfolio_sync.core.config import Settings, get_settings
from portfolio_sync.core.dependencies import get_calendar_source
from portfolio_sync.core.exceptions import ConfigurationError
from portfolio_sync.services.calendar_service import list_upcoming_events

router = APIRouter()
logger = logging.getLogger(__name__)


@router.get("/calendar/events")
async def calendar_events(
    settings: Settings = Depends(get_settings),
    calendar_source: CalendarSource = Depends(get_calendar_source),
) -> Dict[str, Any]:
    if not settings.CALENDAR_ID:
        raise ConfigurationError("CALENDAR_ID not configured", setting="CALENDAR_ID")

    events = await asyncio.to_thread(
        list_upcoming_events,
        calendar_source,
        settings.CALENDAR_ID,
        settings.CALENDAR_LOOKAHEAD_DAYS,
        settings.CALENDAR_MAX_RESULTS,
        settings.CALENDAR_TIMEZONE,
    )
    return {
        "success": True,
        "calendarId": settings.CALENDAR_ID,
        "method": getattr(calendar_source, "method", None),
        "eventsCount": len(events),
        "events": events,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }
