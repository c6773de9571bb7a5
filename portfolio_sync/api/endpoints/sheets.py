from datetime import datetime, timezone
from fastapi import APIRouter, Depends, Query
from typing import Any, Dict, Optional
import logging

from portfolio_sync.core.config import Settings, get_settings
from portfolio_sync.core.dependencies import get_deadline, get_sheet_sync_service
from portfolio_sync.core.exceptions import ConfigurationError
from portfolio_sync.services.portfolio_sync_service import PortfolioSyncService
from portfolio_sync.utils.timeout_handler import Deadline

router = APIRouter()
logger = logging.getLogger(__name__)


@router.api_route("/sheets/sync", methods=["GET", "POST"])
async def sync_sheets(
    spreadsheet_id: Optional[str] = Query(None, alias="spreadsheetId"),
    gid: Optional[int] = Query(None),
    persist: bool = Query(True),
    settings: Settings = Depends(get_settings),
    service: PortfolioSyncService = Depends(get_sheet_sync_service),
    deadline: Deadline = Depends(get_deadline),
) -> Dict[str, Any]:
    """Ingest the portfolio tracker sheet."""
    spreadsheet_id = spreadsheet_id or settings.SPREADSHEET_ID
    if not spreadsheet_id:
        raise ConfigurationError("SPREADSHEET_ID not configured", setting="SPREADSHEET_ID")
    gid = gid if gid is not None else settings.SHEET_GID

    sync = await service.sync_sheet(spreadsheet_id, gid=gid, deadline=deadline, persist=persist)
    if not sync.total_rows:
        return {"success": True, "companies": [], "message": "No data found in sheet"}

    return {
        "success": True,
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "sheetName": sync.sheet_name,
        "totalRows": sync.total_rows,
        "companiesFound": len(sync.result.records),
        "skippedRows": sync.skipped_rows,
        "columnMapping": sync.columns,
        "unresolvedColumns": sync.unresolved,
        "deadlineExceeded": sync.result.deadline_exceeded,
        "companies": [r.model_dump(exclude_none=True) for r in sync.result.records],
        "errors": [e.model_dump() for e in sync.result.errors],
    }
