"""
Backend-agnostic abstractions for the external collaborators of the pipeline:
content source (folders of documents), spreadsheet rows, calendar, record store.
"""

from portfolio_sync.abstractions.content_source import (
    ContentSource,
    GoogleDriveContentSource,
    SourceEntry,
)
from portfolio_sync.abstractions.sheet_source import (
    SheetSource,
    GoogleSheetsSource,
    SheetData,
)
from portfolio_sync.abstractions.calendar_source import (
    CalendarSource,
    GoogleCalendarSource,
)
from portfolio_sync.abstractions.record_store import (
    RecordStore,
    SupabaseRecordStore,
)

__all__ = [
    "ContentSource",
    "GoogleDriveContentSource",
    "SourceEntry",
    "SheetSource",
    "GoogleSheetsSource",
    "SheetData",
    "CalendarSource",
    "GoogleCalendarSource",
    "RecordStore",
    "SupabaseRecordStore",
]
