"""
Tabular source abstraction (portfolio tracker spreadsheet).
Implementations: Google Sheets.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, List, Optional

import logging

from portfolio_sync.core.exceptions import ContentSourceError

logger = logging.getLogger(__name__)


@dataclass
class SheetData:
    sheet_name: str
    rows: List[List[Any]] = field(default_factory=list)


class SheetSource(ABC):
    """Interface for reading raw rows from one tab of a spreadsheet."""

    @abstractmethod
    def read_rows(
        self,
        spreadsheet_id: str,
        gid: Optional[int] = None,
        cell_range: str = "A1:Z200",
    ) -> SheetData:
        """Read the tab identified by gid (first tab when not found)."""
        pass


class GoogleSheetsSource(SheetSource):
    """Google Sheets v4 implementation. `service` is a googleapiclient Resource."""

    def __init__(self, service):
        self._service = service

    @classmethod
    def from_credentials(cls, credentials) -> "GoogleSheetsSource":
        from googleapiclient.discovery import build
        service = build("sheets", "v4", credentials=credentials, cache_discovery=False)
        return cls(service)

    def _sheet_name(self, spreadsheet_id: str, gid: Optional[int]) -> str:
        metadata = self._service.spreadsheets().get(
            spreadsheetId=spreadsheet_id,
            fields="sheets.properties",
        ).execute()
        sheets = metadata.get("sheets", []) or []
        for sheet in sheets:
            props = sheet.get("properties", {})
            if gid is not None and props.get("sheetId") == gid:
                return props.get("title", "Sheet1")
        if gid is not None:
            logger.warning(f"Sheet gid {gid} not found in {spreadsheet_id}; using first tab")
        if sheets:
            return sheets[0].get("properties", {}).get("title", "Sheet1")
        return "Sheet1"

    def read_rows(
        self,
        spreadsheet_id: str,
        gid: Optional[int] = None,
        cell_range: str = "A1:Z200",
    ) -> SheetData:
        try:
            sheet_name = self._sheet_name(spreadsheet_id, gid)
            response = self._service.spreadsheets().values().get(
                spreadsheetId=spreadsheet_id,
                range=f"'{sheet_name}'!{cell_range}",
            ).execute()
        except Exception as e:
            logger.error(f"Sheets read failed for {spreadsheet_id}: {e}")
            raise ContentSourceError(f"Reading spreadsheet {spreadsheet_id} failed: {e}", item_id=spreadsheet_id) from e
        return SheetData(sheet_name=sheet_name, rows=response.get("values", []) or [])
