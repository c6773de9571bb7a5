"""
Portfolio Q&A over the stored company records.
"""

import asyncio
import logging
from typing import Any, Dict, List, Optional, Sequence

from portfolio_sync.abstractions.record_store import RecordStore
from portfolio_sync.core.exceptions import ValidationError
from portfolio_sync.services.summarizer import Summarizer

logger = logging.getLogger(__name__)

FUND_NAME = "IDGX Capital Fund I"
NO_ANSWER = "Sorry, I could not generate a response."
DATAROOM_URL = "https://drive.google.com/drive/folders/{}"

CHAT_SYSTEM_PROMPT = """You are an investment analyst assistant for {fund}, a venture capital fund. You have access to the fund's full portfolio data provided below.

Answer questions accurately based on the data. Be concise and direct. Use specific numbers when available. Format currency amounts clearly. If the data doesn't contain the answer, say so honestly.

When listing companies or comparing metrics, use clean formatting. For financial figures, use appropriate units ($K, $M, $B). Round MOICs to 2 decimal places.

PORTFOLIO DATA:
{context}

Remember: Only answer based on the data provided above. Do not make up information."""


def format_money(value: Optional[float]) -> str:
    if value is None:
        return "n/a"
    if value >= 1_000_000_000:
        return f"${value / 1_000_000_000:.2f}B"
    if value >= 1_000_000:
        return f"${value / 1_000_000:.2f}M"
    if value >= 1_000:
        return f"${value / 1_000:.0f}K"
    return f"${value:,.0f}"


def _company_block(record: Dict[str, Any]) -> str:
    name = record.get("display_name") or record.get("name") or "Unknown"
    lines = [f"## {name}"]
    for label, field in (("Sector", "sector"), ("Stage", "stage"), ("Status", "status"), ("Location", "location")):
        if record.get(field):
            lines.append(f"{label}: {record[field]}")

    lines.append(
        f"Invested: {format_money(record.get('investment_amount'))} | "
        f"Entry valuation: {format_money(record.get('entry_valuation'))} | "
        f"Current valuation: {format_money(record.get('current_valuation'))} | "
        f"Net value: {format_money(record.get('net_value'))}"
    )
    if record.get("ownership_percent") is not None:
        lines.append(f"Ownership: {record['ownership_percent']:.2f}%")
    if record.get("moic") is not None:
        lines.append(f"MOIC: {record['moic']:.2f}x")

    description = record.get("description") or record.get("ai_description")
    if description:
        lines.append(f"Description: {description}")
    for label, field in (("Latest updates", "ai_latest_updates"), ("Highlights", "ai_highlights")):
        values = record.get(field) or []
        if values:
            lines.append(f"{label}: " + "; ".join(values))
    metrics = record.get("ai_key_metrics") or {}
    if metrics:
        lines.append("Key metrics: " + ", ".join(f"{k}: {v}" for k, v in metrics.items()))
    if record.get("source_id"):
        lines.append(f"Dataroom: {DATAROOM_URL.format(record['source_id'])}")
    return "\n".join(lines)


def build_portfolio_context(records: Sequence[Dict[str, Any]]) -> str:
    """Stored records -> plain-text portfolio summary for the assistant."""
    if not records:
        return "No portfolio companies recorded."
    total_invested = sum(r.get("investment_amount") or 0 for r in records)
    total_value = sum(r.get("current_valuation") or 0 for r in records)
    header = (
        f"{len(records)} portfolio companies. "
        f"Total invested: {format_money(total_invested)}. "
        f"Total current valuation: {format_money(total_value)}."
    )
    return header + "\n\n" + "\n\n".join(_company_block(r) for r in records)


def render_conversation(messages: Sequence[Dict[str, str]]) -> str:
    lines = []
    for m in messages:
        role = "Assistant" if m.get("role") == "assistant" else "User"
        lines.append(f"{role}: {m.get('content', '')}")
    lines.append("Assistant:")
    return "\n\n".join(lines)


async def answer_question(
    messages: List[Dict[str, str]],
    store: Optional[RecordStore],
    summarizer: Summarizer,
    context: Optional[str] = None,
    max_tokens: int = 800,
) -> str:
    """
    Answer the last user message from portfolio data only.

    Context comes from the caller when given, otherwise from the store.
    """
    if not messages:
        raise ValidationError("messages required", field="messages")

    if context is None:
        records = await asyncio.to_thread(store.query, "name") if store is not None else []
        context = build_portfolio_context(records)

    system_prompt = CHAT_SYSTEM_PROMPT.format(fund=FUND_NAME, context=context)
    logger.info(f"[CHAT] {len(messages)} messages, context {len(context):,} chars")
    answer = await summarizer.complete(render_conversation(messages), max_tokens, system_prompt=system_prompt)
    return answer.strip() or NO_ANSWER
