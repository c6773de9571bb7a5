"""
Hierarchical content source abstraction (folders of documents).
Implementations: Google Drive; tests use an in-memory tree.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, List, Optional

import logging

from portfolio_sync.core.exceptions import ContentSourceError

logger = logging.getLogger(__name__)

FOLDER_MIME_TYPE = "application/vnd.google-apps.folder"


@dataclass(frozen=True)
class SourceEntry:
    """One child of a folder, as listed by the source."""
    id: str
    name: str
    mime_type: str
    modified_at: Optional[datetime] = None
    size: Optional[int] = None

    @property
    def is_folder(self) -> bool:
        return self.mime_type == FOLDER_MIME_TYPE


def parse_timestamp(value: Any) -> Optional[datetime]:
    """RFC 3339 string (Drive's modifiedTime) or datetime -> datetime; else None."""
    if value is None or isinstance(value, datetime):
        return value
    try:
        return datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    except ValueError:
        logger.debug("unparseable timestamp %r", value)
        return None


class ContentSource(ABC):
    """Interface for a folder tree of documents (list/fetch)."""

    @abstractmethod
    def list_children(
        self,
        folder_id: str,
        folders_only: bool = False,
        page_size: int = 100,
    ) -> List[SourceEntry]:
        """List direct children of a folder. Raises ContentSourceError on failure."""
        pass

    @abstractmethod
    def fetch_text(self, item_id: str, export_mime_type: str) -> str:
        """Export a structured document (Doc/Sheet/Slides) to text in the given format."""
        pass

    @abstractmethod
    def fetch_bytes(self, item_id: str) -> bytes:
        """Download raw file content."""
        pass


class GoogleDriveContentSource(ContentSource):
    """Google Drive v3 implementation. `service` is a googleapiclient Resource."""

    LIST_FIELDS = "nextPageToken, files(id, name, mimeType, size, modifiedTime)"

    def __init__(self, service):
        self._service = service

    @classmethod
    def from_credentials(cls, credentials) -> "GoogleDriveContentSource":
        from googleapiclient.discovery import build
        service = build("drive", "v3", credentials=credentials, cache_discovery=False)
        return cls(service)

    def list_children(
        self,
        folder_id: str,
        folders_only: bool = False,
        page_size: int = 100,
    ) -> List[SourceEntry]:
        query = f"'{folder_id}' in parents and trashed=false"
        if folders_only:
            query += f" and mimeType='{FOLDER_MIME_TYPE}'"
        try:
            response = self._service.files().list(
                q=query,
                fields=self.LIST_FIELDS,
                pageSize=page_size,
                orderBy="folder,name",
            ).execute()
        except Exception as e:
            logger.error(f"Drive list failed for folder {folder_id}: {e}")
            raise ContentSourceError(f"Listing folder {folder_id} failed: {e}", item_id=folder_id) from e
        return [self._to_entry(f) for f in response.get("files", []) or []]

    def fetch_text(self, item_id: str, export_mime_type: str) -> str:
        data = self._service.files().export(fileId=item_id, mimeType=export_mime_type).execute()
        if isinstance(data, (bytes, bytearray)):
            return bytes(data).decode("utf-8", errors="replace")
        return data or ""

    def fetch_bytes(self, item_id: str) -> bytes:
        data = self._service.files().get_media(fileId=item_id).execute()
        if isinstance(data, str):
            return data.encode("utf-8")
        return bytes(data or b"")

    @staticmethod
    def _to_entry(raw: Dict[str, Any]) -> SourceEntry:
        size = raw.get("size")
        return SourceEntry(
            id=raw["id"],
            name=raw.get("name") or raw["id"],
            mime_type=raw.get("mimeType") or "",
            modified_at=parse_timestamp(raw.get("modifiedTime")),
            size=int(size) if size is not None and str(size).isdigit() else None,
        )
