"""
Content reader: one ContentItem -> bounded text, by declared media kind.

Structured Google documents are exported to text, textual files are fetched
as-is, anything else is recorded by kind only; binary payloads are never
decoded here.
"""

import logging
from dataclasses import dataclass, replace
from typing import List, Optional, Tuple

from portfolio_sync.abstractions.content_source import ContentSource
from portfolio_sync.schemas.company import ScanError
from portfolio_sync.services.source_traversal import ContentItem
from portfolio_sync.utils.timeout_handler import Deadline

logger = logging.getLogger(__name__)

DEFAULT_MAX_CHARS = 4000

GOOGLE_DOC = "application/vnd.google-apps.document"
GOOGLE_SHEET = "application/vnd.google-apps.spreadsheet"
GOOGLE_SLIDES = "application/vnd.google-apps.presentation"

# mime type -> (export format, kind label)
EXPORT_FORMATS = {
    GOOGLE_DOC: ("text/plain", "Google Doc"),
    GOOGLE_SHEET: ("text/csv", "Google Sheet"),
    GOOGLE_SLIDES: ("text/plain", "Google Slides"),
}

TEXTUAL_TYPES = (
    "application/json",
    "application/csv",
    "application/xml",
)

BINARY_KIND_NAMES = {
    "application/pdf": "PDF",
    "application/vnd.openxmlformats-officedocument.wordprocessingml.document": "Word",
    "application/msword": "Word",
    "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet": "Excel",
    "application/vnd.ms-excel": "Excel",
    "application/vnd.openxmlformats-officedocument.presentationml.presentation": "PowerPoint",
    "application/vnd.ms-powerpoint": "PowerPoint",
    "image/jpeg": "Image",
    "image/png": "Image",
}


@dataclass
class ReadResult:
    text: Optional[str]
    kind: str
    error_reason: Optional[str] = None


def is_textual(mime_type: str) -> bool:
    return (mime_type or "").startswith("text/") or mime_type in TEXTUAL_TYPES


def kind_for(mime_type: str) -> str:
    if mime_type in EXPORT_FORMATS:
        return EXPORT_FORMATS[mime_type][1]
    if is_textual(mime_type):
        return "Text"
    return BINARY_KIND_NAMES.get(mime_type, mime_type or "unknown")


def read_content(
    source: ContentSource,
    item: ContentItem,
    max_chars: int = DEFAULT_MAX_CHARS,
) -> ReadResult:
    """Read one item. Never raises; failures come back as error_reason."""
    mime_type = item.mime_type or ""
    kind = kind_for(mime_type)
    try:
        if mime_type in EXPORT_FORMATS:
            export_format, _ = EXPORT_FORMATS[mime_type]
            text = source.fetch_text(item.id, export_format) or ""
        elif is_textual(mime_type):
            raw = source.fetch_bytes(item.id) or b""
            text = raw.decode("utf-8", errors="replace")
        else:
            return ReadResult(text=None, kind=kind)
    except Exception as e:
        logger.warning(f"[READER] Failed to read {item.name} ({kind}): {e}")
        return ReadResult(text=None, kind=kind, error_reason=str(e) or type(e).__name__)

    return ReadResult(text=text[:max_chars], kind=kind)


def read_items(
    source: ContentSource,
    items: List[ContentItem],
    max_chars: int = DEFAULT_MAX_CHARS,
    deadline: Optional[Deadline] = None,
) -> Tuple[List[ContentItem], List[ScanError]]:
    """
    Read items in order. A failing item is recorded and reading continues;
    an expired deadline stops reading and records the unread remainder.
    """
    read: List[ContentItem] = []
    errors: List[ScanError] = []

    for position, item in enumerate(items):
        if deadline is not None and deadline.expired:
            remaining = len(items) - position
            logger.warning(f"[READER] Deadline reached, {remaining} items left unread")
            errors.append(ScanError(
                item=", ".join(i.name for i in items[position:]),
                stage="deadline",
                reason=f"deadline exceeded before reading {remaining} item(s)",
            ))
            break

        result = read_content(source, item, max_chars=max_chars)
        read.append(replace(item, text=result.text, kind=result.kind, error_reason=result.error_reason))
        if result.error_reason:
            errors.append(ScanError(item=item.name, stage="read", reason=result.error_reason))

    return read, errors
