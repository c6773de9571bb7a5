from datetime import datetime, timezone
from fastapi import APIRouter, Depends, Query
from typing import Any, Dict, Optional
import logging

from portfolio_sync.core.config import Settings, get_settings
from portfolio_sync.core.dependencies import get_deadline, get_sync_service
from portfolio_sync.core.exceptions import ConfigurationError, ValidationError
from portfolio_sync.services.portfolio_sync_service import PortfolioSyncService
from portfolio_sync.utils.timeout_handler import Deadline

router = APIRouter()
logger = logging.getLogger(__name__)


def _root_folder(settings: Settings) -> str:
    if not settings.GOOGLE_DRIVE_FOLDER_ID:
        raise ConfigurationError("GOOGLE_DRIVE_FOLDER_ID not configured", setting="GOOGLE_DRIVE_FOLDER_ID")
    return settings.GOOGLE_DRIVE_FOLDER_ID


@router.api_route("/drive/sync", methods=["GET", "POST"])
async def sync_drive(
    offset: int = Query(0, ge=0),
    limit: Optional[int] = Query(None, ge=1, le=100),
    persist: bool = Query(True),
    settings: Settings = Depends(get_settings),
    service: PortfolioSyncService = Depends(get_sync_service),
    deadline: Deadline = Depends(get_deadline),
) -> Dict[str, Any]:
    """Sync one page of company folders (names, item counts) into the store."""
    root_id = _root_folder(settings)
    page = await service.sync_folders(root_id, offset=offset, limit=limit, deadline=deadline, persist=persist)
    return {
        "success": True,
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "totalFolders": page.total_folders,
        "foldersProcessed": page.folders_processed,
        "offset": page.offset,
        "limit": page.limit,
        "hasMore": page.has_more,
        "nextOffset": page.next_offset,
        "deadlineExceeded": page.result.deadline_exceeded,
        "companies": [r.model_dump(exclude_none=True) for r in page.result.records],
        "errors": [e.model_dump() for e in page.result.errors],
    }


@router.api_route("/ai-sync", methods=["GET", "POST"])
async def ai_sync(
    action: str = Query("list"),
    folder_id: Optional[str] = Query(None, alias="folderId"),
    folder_name: Optional[str] = Query(None, alias="folderName"),
    offset: int = Query(0, ge=0),
    limit: Optional[int] = Query(None, ge=1, le=100),
    persist: bool = Query(True),
    settings: Settings = Depends(get_settings),
    service: PortfolioSyncService = Depends(get_sync_service),
    deadline: Deadline = Depends(get_deadline),
) -> Dict[str, Any]:
    """
    action=list     company folders under the fund root
    action=analyze  one folder (folderId) or a page of all folders
    """
    if action == "list":
        folders = await service.list_folders(_root_folder(settings))
        return {
            "success": True,
            "folders": [f.model_dump() for f in folders],
            "totalFolders": len(folders),
        }

    if action == "analyze":
        if folder_id:
            analysis = await service.analyze_folder(folder_id, folder_name or "Unknown", deadline=deadline, persist=persist)
            return {
                "success": True,
                "companyName": analysis.company_name,
                "data": analysis.data.model_dump(by_alias=False),
                "filesFound": analysis.files_found,
                "filesRead": analysis.files_read,
                "hasReadableContent": analysis.has_readable_content,
                "structured": analysis.structured,
                "fileTypes": [f.model_dump() for f in analysis.file_types],
                "recordId": analysis.record_id,
                "created": analysis.created,
                "errors": [e.model_dump() for e in analysis.errors],
            }

        page = await service.analyze_folders(
            _root_folder(settings), offset=offset, limit=limit, deadline=deadline, persist=persist,
        )
        return {
            "success": True,
            "totalFolders": page.total_folders,
            "foldersProcessed": page.folders_processed,
            "offset": page.offset,
            "limit": page.limit,
            "hasMore": page.has_more,
            "nextOffset": page.next_offset,
            "deadlineExceeded": page.result.deadline_exceeded,
            "results": [r.model_dump(exclude_none=True) for r in page.result.records],
            "errors": [e.model_dump() for e in page.result.errors],
        }

    raise ValidationError('Invalid action. Use "list" or "analyze"', field="action")
