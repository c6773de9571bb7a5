"""
Context assembler: many read ContentItems -> one bounded summarizer payload.

The priority group is rendered first, between markers that tell the
summarizer it holds the most recent and most important information. Generic
documents follow in their own section. When a character budget is given,
the tail of the generic section is dropped first.
"""

import logging
from typing import List, Optional, Sequence, Tuple

from portfolio_sync.services.source_traversal import ContentItem

logger = logging.getLogger(__name__)

PRIORITY_START = "=== PRIORITY: MOST RECENT AND MOST IMPORTANT INFORMATION (weight this above everything else) ==="
PRIORITY_END = "=== END PRIORITY ==="
OTHER_START = "=== OTHER DOCUMENTS (background; older or less specific) ==="
OTHER_END = "=== END OTHER DOCUMENTS ==="

BINARY_PLACEHOLDER = "[binary — filename only]"

# Readable text shorter than this is treated as no content
MIN_CONTENT_CHARS = 20


def has_readable_content(items: Sequence[ContentItem]) -> bool:
    return any(item.text and len(item.text) > MIN_CONTENT_CHARS for item in items)


def render_item(item: ContentItem) -> str:
    """One named subsection: header line then text or placeholder."""
    header = f"--- {item.name} ({item.kind or item.mime_type}) [{item.provenance_tag}] ---"
    if item.error_reason:
        body = f"[unreadable: {item.error_reason}]"
    elif item.text:
        body = item.text
    else:
        body = BINARY_PLACEHOLDER
    return f"{header}\n{body}\n"


def partition(items: Sequence[ContentItem]) -> Tuple[List[ContentItem], List[ContentItem]]:
    priority = [i for i in items if i.is_priority]
    other = [i for i in items if not i.is_priority]
    return priority, other


def _render(company_label: str, priority: List[ContentItem], other: List[ContentItem], omitted: int) -> str:
    parts = [f'Company folder name: "{company_label}"\n']
    if priority:
        parts.append(PRIORITY_START)
        parts.extend(render_item(i) for i in priority)
        parts.append(PRIORITY_END + "\n")
    if other:
        parts.append(OTHER_START)
        parts.extend(render_item(i) for i in other)
        parts.append(OTHER_END + "\n")
    if not priority and not other:
        parts.append("No documents found.\n")
    if omitted:
        parts.append(f"[{omitted} document(s) omitted to stay within the context budget]\n")
    return "\n".join(parts)


def assemble(company_label: str, items: Sequence[ContentItem], max_chars: Optional[int] = None) -> str:
    """
    Render items grouped by provenance, priority group first.

    Item order inside each group is preserved. With `max_chars`, items are
    removed from the end of the other group, then from the end of the
    priority group, until the payload fits; an omission note records how
    many were dropped.
    """
    priority, other = partition(items)
    omitted = 0
    text = _render(company_label, priority, other, omitted)

    if max_chars is None:
        return text

    while len(text) > max_chars and (other or priority):
        if other:
            other = other[:-1]
        else:
            priority = priority[:-1]
        omitted += 1
        text = _render(company_label, priority, other, omitted)

    if omitted:
        logger.info(f"[CONTEXT] {company_label}: omitted {omitted} items to fit {max_chars} chars")
    return text
