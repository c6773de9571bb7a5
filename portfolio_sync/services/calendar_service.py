"""
Upcoming fund events from the shared calendar.
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional
from zoneinfo import ZoneInfo

from portfolio_sync.abstractions.calendar_source import CalendarSource

logger = logging.getLogger(__name__)


def normalize_event(event: Dict[str, Any], tz: str = "Asia/Ho_Chi_Minh") -> Dict[str, Any]:
    """Google event resource -> {title, date, time, location, type, description, attendees}."""
    start = event.get("start") or {}
    if start.get("dateTime"):
        when = datetime.fromisoformat(start["dateTime"].replace("Z", "+00:00")).astimezone(ZoneInfo(tz))
        date_str = when.date().isoformat()
        time_str = when.strftime("%I:%M %p")
    else:
        date_str = start.get("date", "")
        time_str = "All Day"

    return {
        "title": event.get("summary") or "(No title)",
        "date": date_str,
        "time": time_str,
        "location": event.get("location") or "",
        "type": "Calendar",
        "description": event.get("description") or "",
        "attendees": [a.get("email") for a in event.get("attendees") or [] if a.get("email")],
    }


def list_upcoming_events(
    calendar_source: CalendarSource,
    calendar_id: str,
    days_ahead: int = 90,
    max_results: int = 20,
    tz: str = "Asia/Ho_Chi_Minh",
    now: Optional[datetime] = None,
) -> List[Dict[str, Any]]:
    start = now or datetime.now(timezone.utc)
    raw = calendar_source.list_events(calendar_id, start, start + timedelta(days=days_ahead), max_results)
    events = [normalize_event(e, tz) for e in raw]
    logger.info(f"[CALENDAR] {len(events)} events in the next {days_ahead} days")
    return events
