"""
Source traversal & prioritization for one company folder.

A company folder holds loose documents plus subfolders. One subfolder whose
name reads like "Performance Update" / "Quarterly Update" carries the newest
and most relevant material; its items go first, newest first. Root items
follow, then a sample of the remaining subfolders. Every group has its own
cap and the total is capped again, so downstream reading and prompting stay
within budget however large the folder is.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import List, Optional, Sequence, Tuple

from portfolio_sync.abstractions.content_source import ContentSource, SourceEntry
from portfolio_sync.schemas.company import ScanError
from portfolio_sync.services.value_normalizer import clean_company_name

logger = logging.getLogger(__name__)

PRIORITY_FOLDER_PATTERNS: Tuple[str, ...] = (
    "performance update",
    "quarterly update",
    "investor update",
    "monthly update",
    "board update",
)


class Provenance(Enum):
    """Where in the company folder an item was found"""
    PRIORITY = "priority-subfolder"
    ROOT = "root"
    OTHER = "other-subfolder"


@dataclass
class ContentItem:
    """One document selected for reading; discarded after the scan."""
    id: str
    name: str
    mime_type: str
    provenance: Provenance
    folder_name: Optional[str] = None
    modified_at: Optional[datetime] = None
    # Filled by the content reader
    text: Optional[str] = None
    kind: Optional[str] = None
    error_reason: Optional[str] = None

    @property
    def provenance_tag(self) -> str:
        if self.provenance is Provenance.OTHER:
            return f"{Provenance.OTHER.value}:{self.folder_name or ''}"
        return self.provenance.value

    @property
    def is_priority(self) -> bool:
        return self.provenance is Provenance.PRIORITY


@dataclass(frozen=True)
class TraversalLimits:
    priority_cap: int = 5
    root_cap: int = 5
    other_cap: int = 3
    total_cap: int = 12
    page_size: int = 50
    subfolder_page_size: int = 20


@dataclass
class TraversalResult:
    items: List[ContentItem] = field(default_factory=list)
    errors: List[ScanError] = field(default_factory=list)
    total_found: int = 0
    priority_folder: Optional[str] = None


def is_priority_folder(name: str, patterns: Sequence[str] = PRIORITY_FOLDER_PATTERNS) -> bool:
    lowered = (name or "").lower()
    return any(p in lowered for p in patterns)


def _to_item(entry: SourceEntry, provenance: Provenance, folder_name: Optional[str]) -> ContentItem:
    return ContentItem(
        id=entry.id,
        name=entry.name,
        mime_type=entry.mime_type,
        provenance=provenance,
        folder_name=folder_name,
        modified_at=entry.modified_at,
    )


_EPOCH = datetime.min.replace(tzinfo=timezone.utc)


def _recency_key(item: ContentItem) -> datetime:
    ts = item.modified_at
    if ts is None:
        return _EPOCH
    if ts.tzinfo is None:
        return ts.replace(tzinfo=timezone.utc)
    return ts


def _collect_leaves(
    source: ContentSource,
    folder: SourceEntry,
    provenance: Provenance,
    depth: int,
    max_depth: int,
    max_breadth: int,
    limits: TraversalLimits,
    errors: List[ScanError],
    budget: Optional[int] = None,
) -> List[ContentItem]:
    """
    Leaf items under `folder`, descending while depth < max_depth.

    A listing failure is recorded and yields no items; it never propagates
    to sibling folders.
    """
    try:
        children = source.list_children(folder.id, page_size=limits.subfolder_page_size)
    except Exception as e:
        logger.error(f"[TRAVERSAL] Error listing subfolder {folder.name}: {e}")
        errors.append(ScanError(item=folder.name, stage="list", reason=str(e)))
        return []

    leaves = [_to_item(c, provenance, folder.name) for c in children if not c.is_folder]
    if depth < max_depth:
        for sub in [c for c in children if c.is_folder][:max_breadth]:
            if budget is not None and len(leaves) >= budget:
                break
            leaves.extend(_collect_leaves(
                source, sub, provenance, depth + 1, max_depth, max_breadth, limits, errors,
                budget=None if budget is None else budget - len(leaves),
            ))
    if budget is not None:
        leaves = leaves[:budget]
    return leaves


def traverse(
    source: ContentSource,
    root_id: str,
    max_depth: int = 2,
    max_breadth_per_level: int = 4,
    limits: TraversalLimits = TraversalLimits(),
) -> TraversalResult:
    """
    Select the items of one company folder to read, in priority order.

    Depth 1 is the root listing, depth 2 the subfolders' children. A failure
    listing the root itself propagates (nothing can be selected); failures
    below it are recorded in `errors`.
    """
    result = TraversalResult()
    if max_depth < 1:
        return result

    children = source.list_children(root_id, page_size=limits.page_size)
    folders = [c for c in children if c.is_folder]
    root_items = [_to_item(c, Provenance.ROOT, None) for c in children if not c.is_folder]

    priority_folder = next((f for f in folders if is_priority_folder(f.name)), None)
    other_folders = [f for f in folders if f is not priority_folder]

    priority_items: List[ContentItem] = []
    other_items: List[ContentItem] = []

    if max_depth >= 2:
        if priority_folder is not None:
            result.priority_folder = priority_folder.name
            # Full listing: recency ordering must see every item before capping
            priority_items = _collect_leaves(
                source, priority_folder, Provenance.PRIORITY, 2, max_depth,
                max_breadth_per_level, limits, result.errors,
            )
            priority_items.sort(key=_recency_key, reverse=True)
            logger.info(f"[TRAVERSAL] Priority folder '{priority_folder.name}': {len(priority_items)} items")

        for folder in other_folders[:max_breadth_per_level]:
            other_items.extend(_collect_leaves(
                source, folder, Provenance.OTHER, 2, max_depth,
                max_breadth_per_level, limits, result.errors,
                budget=limits.other_cap,
            ))
        skipped = len(other_folders) - max_breadth_per_level
        if skipped > 0:
            logger.info(f"[TRAVERSAL] Skipping {skipped} subfolders beyond breadth limit")

    result.total_found = len(priority_items) + len(root_items) + len(other_items)
    selected = (
        priority_items[:limits.priority_cap]
        + root_items[:limits.root_cap]
        + other_items[:limits.other_cap]
    )
    result.items = selected[:limits.total_cap]
    logger.info(
        f"[TRAVERSAL] {root_id}: found {result.total_found}, selected {len(result.items)} "
        f"({len(priority_items)} priority, {len(root_items)} root, {len(other_items)} other)"
    )
    return result


def list_company_folders(source: ContentSource, root_id: str) -> List[Tuple[SourceEntry, str, str]]:
    """Company folders under the fund root with (entry, cleaned name, display name)."""
    folders = source.list_children(root_id, folders_only=True, page_size=100)
    out = []
    for folder in folders:
        if not folder.is_folder:
            continue
        name, display_name = clean_company_name(folder.name)
        out.append((folder, name, display_name))
    return out


def count_items(source: ContentSource, folder_id: str) -> int:
    """Direct children of a folder (files and subfolders)."""
    return len(source.list_children(folder_id, page_size=100))
