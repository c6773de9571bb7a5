"""
Google service-account credentials from the GOOGLE_SERVICE_ACCOUNT JSON blob.
"""

import json
import logging
from typing import Any, Dict, Optional, Sequence

from google.oauth2 import service_account

from portfolio_sync.core.exceptions import ConfigurationError

logger = logging.getLogger(__name__)

DRIVE_SCOPES = ["https://www.googleapis.com/auth/drive.readonly"]
SHEETS_SCOPES = ["https://www.googleapis.com/auth/spreadsheets.readonly"]
CALENDAR_SCOPES = ["https://www.googleapis.com/auth/calendar.readonly"]


def load_service_account_info(raw: Optional[str]) -> Dict[str, Any]:
    if not raw:
        raise ConfigurationError("GOOGLE_SERVICE_ACCOUNT not configured", setting="GOOGLE_SERVICE_ACCOUNT")
    try:
        info = json.loads(raw)
    except json.JSONDecodeError as e:
        raise ConfigurationError(f"GOOGLE_SERVICE_ACCOUNT is not valid JSON: {e}", setting="GOOGLE_SERVICE_ACCOUNT") from e
    if not isinstance(info, dict) or "client_email" not in info:
        raise ConfigurationError("GOOGLE_SERVICE_ACCOUNT is missing client_email", setting="GOOGLE_SERVICE_ACCOUNT")
    return info


def get_credentials(raw: Optional[str], scopes: Sequence[str], subject: Optional[str] = None):
    """Service-account credentials; `subject` impersonates a Workspace user (domain-wide delegation)."""
    info = load_service_account_info(raw)
    credentials = service_account.Credentials.from_service_account_info(info, scopes=list(scopes))
    if subject:
        credentials = credentials.with_subject(subject)
    logger.debug(f"Google credentials for {info['client_email']} (subject={subject})")
    return credentials
