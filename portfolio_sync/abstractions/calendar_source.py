"""
Calendar abstraction for upcoming fund events.
Implementations: Google Calendar (domain-wide delegation with shared-calendar fallback).
"""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any, Callable, Dict, List

import logging

from portfolio_sync.core.exceptions import ContentSourceError

logger = logging.getLogger(__name__)


class CalendarSource(ABC):
    """Interface for listing raw calendar events in a time window."""

    @abstractmethod
    def list_events(
        self,
        calendar_id: str,
        time_min: datetime,
        time_max: datetime,
        max_results: int = 20,
    ) -> List[Dict[str, Any]]:
        """Raw events (Google Calendar event resource shape), ordered by start time."""
        pass


class GoogleCalendarSource(CalendarSource):
    """
    Google Calendar v3.

    `delegated` impersonates the calendar owner; when Workspace rejects the
    delegation the `shared` service (calendar shared with the service account)
    is tried instead.
    """

    def __init__(self, delegated_factory: Callable[[], Any], shared_factory: Callable[[], Any]):
        self._delegated_factory = delegated_factory
        self._shared_factory = shared_factory
        self.method = "delegation"

    @staticmethod
    def _list(service, calendar_id: str, time_min: datetime, time_max: datetime, max_results: int):
        response = service.events().list(
            calendarId=calendar_id,
            timeMin=time_min.isoformat(),
            timeMax=time_max.isoformat(),
            singleEvents=True,
            orderBy="startTime",
            maxResults=max_results,
        ).execute()
        return response.get("items", []) or []

    def list_events(
        self,
        calendar_id: str,
        time_min: datetime,
        time_max: datetime,
        max_results: int = 20,
    ) -> List[Dict[str, Any]]:
        try:
            self.method = "delegation"
            return self._list(self._delegated_factory(), calendar_id, time_min, time_max, max_results)
        except Exception as e:
            if "delegation" not in str(e).lower() and "unauthorized_client" not in str(e).lower():
                raise ContentSourceError(f"Calendar listing failed: {e}", item_id=calendar_id) from e
            logger.warning(f"Calendar delegation failed, trying shared calendar access: {e}")

        try:
            self.method = "shared_calendar"
            return self._list(self._shared_factory(), calendar_id, time_min, time_max, max_results)
        except Exception as e:
            raise ContentSourceError(
                f"Calendar listing failed: {e}",
                item_id=calendar_id,
                details={"hint": "Share the calendar with the service account email, "
                                 "or enable domain-wide delegation in Google Workspace admin."},
            ) from e
