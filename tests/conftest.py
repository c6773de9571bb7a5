"""
Pytest fixtures: in-memory stand-ins for the content source, record store,
summarizer, sheet source and calendar.
"""

import copy
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional

import pytest

from portfolio_sync.abstractions import (
    CalendarSource,
    ContentSource,
    RecordStore,
    SheetData,
    SheetSource,
    SourceEntry,
)
from portfolio_sync.abstractions.content_source import FOLDER_MIME_TYPE
from portfolio_sync.core.config import Settings
from portfolio_sync.services.summarizer import Summarizer

GOOGLE_DOC = "application/vnd.google-apps.document"
PDF = "application/pdf"

BASE_TIME = datetime(2025, 6, 30, tzinfo=timezone.utc)


class FakeContentSource(ContentSource):
    """Folder tree in memory. Ids listed in `fail_ids` raise on list/fetch."""

    def __init__(self):
        self.children: Dict[str, List[SourceEntry]] = {}
        self.texts: Dict[str, str] = {}
        self.blobs: Dict[str, bytes] = {}
        self.fail_ids: set = set()
        self.listed: List[str] = []
        self.fetched: List[str] = []

    def add_folder(self, parent_id: str, folder_id: str, name: str) -> SourceEntry:
        entry = SourceEntry(id=folder_id, name=name, mime_type=FOLDER_MIME_TYPE)
        self.children.setdefault(parent_id, []).append(entry)
        self.children.setdefault(folder_id, [])
        return entry

    def add_file(
        self,
        parent_id: str,
        file_id: str,
        name: str,
        mime_type: str = GOOGLE_DOC,
        text: Optional[str] = None,
        modified_at: Optional[datetime] = None,
    ) -> SourceEntry:
        entry = SourceEntry(id=file_id, name=name, mime_type=mime_type, modified_at=modified_at)
        self.children.setdefault(parent_id, []).append(entry)
        if text is not None:
            if mime_type.startswith("text/"):
                self.blobs[file_id] = text.encode("utf-8")
            else:
                self.texts[file_id] = text
        return entry

    def list_children(self, folder_id: str, folders_only: bool = False, page_size: int = 100) -> List[SourceEntry]:
        self.listed.append(folder_id)
        if folder_id in self.fail_ids:
            raise RuntimeError(f"listing {folder_id} failed")
        entries = self.children.get(folder_id, [])
        if folders_only:
            entries = [e for e in entries if e.is_folder]
        return list(entries[:page_size])

    def fetch_text(self, item_id: str, export_mime_type: str) -> str:
        self.fetched.append(item_id)
        if item_id in self.fail_ids:
            raise RuntimeError(f"export of {item_id} failed")
        return self.texts.get(item_id, "")

    def fetch_bytes(self, item_id: str) -> bytes:
        self.fetched.append(item_id)
        if item_id in self.fail_ids:
            raise RuntimeError(f"download of {item_id} failed")
        return self.blobs.get(item_id, b"")


class InMemoryRecordStore(RecordStore):
    """Dict-backed store that records every upsert call."""

    def __init__(self):
        self.rows: Dict[str, Dict[str, Any]] = {}
        self.upserts: List[tuple] = []
        self._next_id = 1

    def find(self, field: str, equals: Any) -> List[Dict[str, Any]]:
        return [copy.deepcopy(r) for r in self.rows.values() if r.get(field) == equals]

    def upsert(self, id: Optional[str], patch: Dict[str, Any]) -> Dict[str, Any]:
        self.upserts.append((id, copy.deepcopy(patch)))
        if id is None:
            id = f"rec-{self._next_id}"
            self._next_id += 1
            self.rows[id] = {"id": id, **copy.deepcopy(patch)}
        else:
            self.rows[id].update(copy.deepcopy(patch))
        return {"id": id}

    def query(self, order_by: str = "name", limit: Optional[int] = None) -> List[Dict[str, Any]]:
        rows = sorted(self.rows.values(), key=lambda r: str(r.get(order_by) or ""))
        if limit:
            rows = rows[:limit]
        return [copy.deepcopy(r) for r in rows]


class FakeSummarizer(Summarizer):
    """Returns canned responses in order (the last one repeats)."""

    def __init__(self, *responses: str, error: Optional[Exception] = None):
        self.responses = list(responses) or ["{}"]
        self.error = error
        self.prompts: List[str] = []
        self.system_prompts: List[Optional[str]] = []

    async def complete(self, prompt: str, max_tokens: int, system_prompt: Optional[str] = None) -> str:
        self.prompts.append(prompt)
        self.system_prompts.append(system_prompt)
        if self.error is not None:
            raise self.error
        if len(self.responses) > 1:
            return self.responses.pop(0)
        return self.responses[0]


class FakeSheetSource(SheetSource):
    def __init__(self, rows: List[List[Any]], sheet_name: str = "Portfolio"):
        self.rows = rows
        self.sheet_name = sheet_name
        self.calls: List[tuple] = []

    def read_rows(self, spreadsheet_id: str, gid: Optional[int] = None, cell_range: str = "A1:Z200") -> SheetData:
        self.calls.append((spreadsheet_id, gid, cell_range))
        return SheetData(sheet_name=self.sheet_name, rows=self.rows)


class FakeCalendarSource(CalendarSource):
    def __init__(self, events: List[Dict[str, Any]]):
        self.events = events
        self.method = "delegation"
        self.calls: List[tuple] = []

    def list_events(self, calendar_id, time_min, time_max, max_results=20):
        self.calls.append((calendar_id, time_min, time_max, max_results))
        return self.events[:max_results]


@pytest.fixture
def settings():
    return Settings(
        _env_file=None,
        GOOGLE_SERVICE_ACCOUNT='{"client_email": "sync@example.iam.gserviceaccount.com"}',
        GOOGLE_DRIVE_FOLDER_ID="fund-root",
        SPREADSHEET_ID="sheet-1",
        CALENDAR_ID="deal@example.com",
        SCAN_DEADLINE_SECONDS=30.0,
    )


@pytest.fixture
def content_source():
    return FakeContentSource()


@pytest.fixture
def store():
    return InMemoryRecordStore()


@pytest.fixture
def company_folder(content_source):
    """
    One company folder: a priority update folder with 10 dated docs, two root
    docs and six other subfolders with 10 docs each.
    """
    source = content_source
    source.add_folder("fund-root", "acme", "5.6. Acme Corp (FKA Old Name)")
    source.add_folder("acme", "updates", "Quarterly Update")
    for i in range(10):
        source.add_file(
            "updates", f"upd-{i}", f"Q update {i}",
            text=f"Update number {i}: revenue grew and the team shipped a new release.",
            modified_at=BASE_TIME + timedelta(days=i),
        )
    source.add_file("acme", "deck", "Pitch Deck.pdf", mime_type=PDF)
    source.add_file("acme", "memo", "Investment Memo", text="Acme builds payments infrastructure for SMEs in Vietnam.")
    for f in range(6):
        folder_id = f"other-{f}"
        source.add_folder("acme", folder_id, f"Legal {f}")
        for i in range(10):
            source.add_file(folder_id, f"{folder_id}-doc-{i}", f"Legal doc {f}.{i}", text=f"Legal document {f}.{i} body text for contracts.")
    return source
