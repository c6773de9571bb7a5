"""
Portfolio sync orchestration.

Three pipelines over injected collaborators:
- folder sync: company folders -> cleaned names + item counts -> reconcile
- folder analysis: traverse -> read -> assemble -> summarize -> decode -> reconcile
- sheet sync: rows -> discover columns -> extract -> reconcile

Blocking clients run in worker threads. One failing item, folder or row is
recorded as a ScanError and never aborts the batch; an expired Deadline
returns what was completed so far.
"""

import asyncio
import logging
from typing import Any, Dict, List, Optional, Sequence

from portfolio_sync.abstractions.content_source import ContentSource
from portfolio_sync.abstractions.record_store import RecordStore
from portfolio_sync.abstractions.sheet_source import SheetSource
from portfolio_sync.core.config import Settings, get_settings
from portfolio_sync.core.exceptions import ConfigurationError, DeadlineExceededError
from portfolio_sync.schemas.company import (
    CompanyInsights,
    CompanyRecord,
    FileSummary,
    FolderAnalysis,
    FolderSummary,
    ScanError,
    ScanResult,
    SheetSync,
    SyncPage,
)
from portfolio_sync.services.content_reader import read_items
from portfolio_sync.services.context_assembler import assemble, has_readable_content
from portfolio_sync.services.insight_parser import fallback_insights, parse_insights
from portfolio_sync.services.reconciler import ReconcileKey, ReconcileOutcome, reconcile
from portfolio_sync.services.record_extractor import extract_sheet
from portfolio_sync.services.source_traversal import (
    ContentItem,
    TraversalLimits,
    count_items,
    list_company_folders,
    traverse,
)
from portfolio_sync.services.summarizer import Summarizer
from portfolio_sync.services.value_normalizer import clean_company_name
from portfolio_sync.utils.timeout_handler import Deadline, KeyedLocks

logger = logging.getLogger(__name__)

# Human-editable fields: folder syncs fill them only while empty
PRESERVED_FIELDS = ("description", "sector", "stage", "location", "founders", "status")
# A filename-only fallback never replaces a stored model summary
FALLBACK_PRESERVED_FIELDS = PRESERVED_FIELDS + ("ai_description",)

ANALYSIS_INSTRUCTIONS = """You are analyzing a venture capital portfolio company's data room documents.

Documents inside the PRIORITY section come from the company's update folder and are the most recent and most important. Prefer them over the other documents whenever they disagree.

Based on the documents below, extract all relevant information about this company. Return a JSON object with these fields:
- "description": What does this company do? (2-3 clear sentences. Be specific about their product/service.)
- "latestUpdates": Array of strings - latest news, updates, milestones, or developments mentioned (up to 5 items, most recent first)
- "sector": Industry sector (e.g. "FinTech", "Healthcare", "AI/ML", "Blockchain", "E-commerce", "SaaS", "DeepTech", "Consumer")
- "stage": Investment stage if mentioned (e.g. "Seed", "Series A", "Series B", "Growth")
- "highlights": Array of strings - key achievements, traction metrics, partnerships, or notable facts (up to 5 items)
- "founders": Array of founder/CEO names if mentioned
- "location": Company headquarters location if mentioned
- "keyMetrics": Object with any business metrics found (e.g. {"revenue": "$1M ARR", "users": "50K", "growth": "20% MoM"})

If information is not available for a field, use null for strings/objects and empty array [] for arrays.
Return ONLY valid JSON, no markdown formatting, no code blocks."""


def build_analysis_prompt(company_label: str, items: Sequence[ContentItem], max_chars: Optional[int] = None) -> str:
    """Instructions followed by the assembled, provenance-ordered documents."""
    budget = None if max_chars is None else max(0, max_chars - len(ANALYSIS_INSTRUCTIONS) - 2)
    return f"{ANALYSIS_INSTRUCTIONS}\n\n{assemble(company_label, items, max_chars=budget)}"


def _page(total: int, offset: int, limit: int) -> Dict[str, Any]:
    has_more = offset + limit < total
    return {
        "total_folders": total,
        "offset": offset,
        "limit": limit,
        "has_more": has_more,
        "next_offset": offset + limit if has_more else None,
    }


class PortfolioSyncService:
    """Ingestion pipelines for one invocation; construct per request, then discard."""

    def __init__(
        self,
        content_source: Optional[ContentSource] = None,
        store: Optional[RecordStore] = None,
        summarizer: Optional[Summarizer] = None,
        sheet_source: Optional[SheetSource] = None,
        settings: Optional[Settings] = None,
    ):
        self.content_source = content_source
        self.store = store
        self.summarizer = summarizer
        self.sheet_source = sheet_source
        self.settings = settings or get_settings()
        self._locks = KeyedLocks()

    @property
    def limits(self) -> TraversalLimits:
        s = self.settings
        return TraversalLimits(
            priority_cap=s.PRIORITY_ITEM_CAP,
            root_cap=s.ROOT_ITEM_CAP,
            other_cap=s.OTHER_ITEM_CAP,
            total_cap=s.TOTAL_ITEM_CAP,
        )

    def _require(self, value: Any, setting: str):
        if value is None:
            raise ConfigurationError(f"{setting} not configured", setting=setting)
        return value

    async def _reconcile(
        self,
        key: ReconcileKey,
        patch: Dict[str, Any],
        preserve_existing: Sequence[str] = (),
    ) -> ReconcileOutcome:
        store = self._require(self.store, "SUPABASE_URL")
        async with self._locks.hold(key.lock_key):
            return await asyncio.to_thread(reconcile, store, key, patch, preserve_existing)

    # ------------------------------------------------------------------
    # Folder listing / sync
    # ------------------------------------------------------------------

    async def list_folders(self, root_id: str) -> List[FolderSummary]:
        source = self._require(self.content_source, "GOOGLE_SERVICE_ACCOUNT")
        folders = await asyncio.to_thread(list_company_folders, source, root_id)
        return [FolderSummary(id=f.id, name=f.name, display_name=display) for f, _, display in folders]

    async def sync_folders(
        self,
        root_id: str,
        offset: int = 0,
        limit: Optional[int] = None,
        deadline: Optional[Deadline] = None,
        persist: bool = True,
    ) -> SyncPage:
        """One page of company folders: item counts, cleaned names, reconciled records."""
        source = self._require(self.content_source, "GOOGLE_SERVICE_ACCOUNT")
        deadline = deadline or Deadline.unbounded()
        if persist:
            self._require(self.store, "SUPABASE_URL")
        limit = limit or self.settings.SYNC_PAGE_SIZE

        folders = await asyncio.to_thread(list_company_folders, source, root_id)
        page = folders[offset:offset + limit]
        result = ScanResult()
        logger.info(f"[SYNC] {len(folders)} company folders, processing {offset}..{offset + len(page)}")

        for position, (folder, name, display_name) in enumerate(page):
            if deadline.expired:
                self._record_deadline(result, [f.name for f, _, _ in page[position:]])
                break
            try:
                item_count = await asyncio.to_thread(count_items, source, folder.id)
            except Exception as e:
                logger.error(f"[SYNC] Counting {folder.name} failed: {e}")
                result.add_error(folder.name, "list", e)
                continue

            record = CompanyRecord(
                source_id=folder.id,
                name=name,
                display_name=display_name,
                source_item_count=item_count,
                status="Active",
            )
            if persist:
                try:
                    outcome = await self._reconcile(
                        ReconcileKey(source_id=folder.id, name=name),
                        record.to_patch(),
                        preserve_existing=("status",),
                    )
                    record.id = outcome.id
                except Exception as e:
                    logger.error(f"[SYNC] Reconciling {name} failed: {e}")
                    result.add_error(folder.name, "reconcile", e)
                    continue
            result.records.append(record)

        return SyncPage(folders_processed=len(page), result=result, **_page(len(folders), offset, limit))

    # ------------------------------------------------------------------
    # Folder analysis
    # ------------------------------------------------------------------

    async def analyze_folder(
        self,
        folder_id: str,
        folder_name: Optional[str] = None,
        deadline: Optional[Deadline] = None,
        persist: bool = True,
    ) -> FolderAnalysis:
        """
        Run the document pipeline for one company folder.

        Only a failure listing the folder itself propagates. Read, summarize,
        decode and store failures are recorded on the returned analysis.
        """
        source = self._require(self.content_source, "GOOGLE_SERVICE_ACCOUNT")
        deadline = deadline or Deadline.unbounded()
        if persist:
            self._require(self.store, "SUPABASE_URL")
        s = self.settings
        name, display_name = clean_company_name(folder_name or "Unknown")
        errors: List[ScanError] = []

        traversal = await asyncio.to_thread(
            traverse, source, folder_id, s.TRAVERSAL_MAX_DEPTH, s.TRAVERSAL_MAX_SUBFOLDERS, self.limits,
        )
        errors.extend(traversal.errors)

        if not traversal.items:
            analysis = FolderAnalysis(
                folder_id=folder_id,
                company_name=name,
                data=CompanyInsights(),
                files_found=traversal.total_found,
                errors=errors,
            )
            return await self._persist_analysis(analysis, display_name, persist)

        items, read_errors = await asyncio.to_thread(
            read_items, source, traversal.items, s.READ_MAX_CHARS, deadline,
        )
        errors.extend(read_errors)
        readable = has_readable_content(items)

        insights: Optional[CompanyInsights] = None
        if readable:
            insights = await self._summarize(name, items, deadline, errors)
        structured = insights is not None
        if insights is None:
            insights = fallback_insights(traversal.total_found, [i.name for i in items])

        analysis = FolderAnalysis(
            folder_id=folder_id,
            company_name=name,
            data=insights,
            files_found=traversal.total_found,
            files_read=len(items),
            has_readable_content=readable,
            structured=structured,
            file_types=[
                FileSummary(
                    name=i.name,
                    type=i.kind or i.mime_type,
                    provenance=i.provenance_tag,
                    has_content=bool(i.text),
                    error=i.error_reason,
                )
                for i in items
            ],
            errors=errors,
        )
        return await self._persist_analysis(analysis, display_name, persist)

    async def _summarize(
        self,
        company_label: str,
        items: List[ContentItem],
        deadline: Deadline,
        errors: List[ScanError],
    ) -> Optional[CompanyInsights]:
        if self.summarizer is None:
            errors.append(ScanError(item=company_label, stage="summarize", reason="no summarizer configured"))
            return None
        if deadline.expired:
            errors.append(ScanError(item=company_label, stage="deadline", reason="deadline exceeded before summarizing"))
            return None

        prompt = build_analysis_prompt(company_label, items, self.settings.CONTEXT_MAX_CHARS)
        try:
            text = await asyncio.wait_for(
                self.summarizer.complete(prompt, self.settings.SUMMARIZER_MAX_TOKENS),
                timeout=deadline.remaining(),
            )
        except asyncio.TimeoutError:
            logger.warning(f"[ANALYZE] Summarizer timed out for {company_label}")
            errors.append(ScanError(item=company_label, stage="deadline", reason="summarizer did not finish before the deadline"))
            return None
        except Exception as e:
            logger.error(f"[ANALYZE] Summarizer failed for {company_label}: {e}")
            errors.append(ScanError(item=company_label, stage="summarize", reason=str(e)))
            return None

        insights, decoded = parse_insights(text)
        if insights is None:
            errors.append(ScanError(item=company_label, stage="decode", reason=decoded.failure.value))
        return insights

    async def _persist_analysis(self, analysis: FolderAnalysis, display_name: str, persist: bool) -> FolderAnalysis:
        values = {
            "source_id": analysis.folder_id,
            "name": analysis.company_name,
            "display_name": display_name,
            "source_item_count": analysis.files_found,
            "status": "Active",
            **analysis.data.to_patch(),
        }
        record = CompanyRecord(**values)
        analysis.record = record
        if not persist:
            return analysis
        try:
            outcome = await self._reconcile(
                ReconcileKey(source_id=analysis.folder_id, name=analysis.company_name),
                record.to_patch(),
                preserve_existing=PRESERVED_FIELDS if analysis.structured else FALLBACK_PRESERVED_FIELDS,
            )
        except Exception as e:
            logger.error(f"[ANALYZE] Reconciling {analysis.company_name} failed: {e}")
            analysis.errors.append(ScanError(item=analysis.company_name, stage="reconcile", reason=str(e)))
            return analysis
        record.id = outcome.id
        analysis.record_id = outcome.id
        analysis.created = outcome.created
        return analysis

    async def analyze_folders(
        self,
        root_id: str,
        offset: int = 0,
        limit: Optional[int] = None,
        deadline: Optional[Deadline] = None,
        persist: bool = True,
    ) -> SyncPage:
        """
        Analyze a page of company folders concurrently.

        Each folder runs in its own branch under a semaphore; a failing branch
        becomes an error entry and siblings continue. Results keep folder order.
        """
        source = self._require(self.content_source, "GOOGLE_SERVICE_ACCOUNT")
        deadline = deadline or Deadline.unbounded()
        if persist:
            self._require(self.store, "SUPABASE_URL")
        limit = limit or self.settings.SYNC_PAGE_SIZE
        semaphore = asyncio.Semaphore(max(1, self.settings.MAX_CONCURRENT_FOLDERS))

        folders = await asyncio.to_thread(list_company_folders, source, root_id)
        page = folders[offset:offset + limit]

        async def run(folder):
            async with semaphore:
                if deadline.expired:
                    raise DeadlineExceededError("analyze_folder", deadline.seconds or 0)
                return await self.analyze_folder(folder.id, folder.name, deadline, persist)

        outcomes = await asyncio.gather(
            *(run(folder) for folder, _, _ in page),
            return_exceptions=True,
        )

        result = ScanResult()
        skipped: List[str] = []
        for (folder, _, _), outcome in zip(page, outcomes):
            if isinstance(outcome, DeadlineExceededError):
                skipped.append(folder.name)
            elif isinstance(outcome, Exception):
                logger.error(f"[ANALYZE] {folder.name} failed: {outcome}")
                result.add_error(folder.name, "list", outcome)
            else:
                result.errors.extend(outcome.errors)
                if any(e.stage == "deadline" for e in outcome.errors):
                    result.deadline_exceeded = True
                if outcome.record is not None:
                    result.records.append(outcome.record)
        if skipped:
            self._record_deadline(result, skipped)

        return SyncPage(folders_processed=len(page), result=result, **_page(len(folders), offset, limit))

    # ------------------------------------------------------------------
    # Sheet sync
    # ------------------------------------------------------------------

    async def sync_sheet(
        self,
        spreadsheet_id: str,
        gid: Optional[int] = None,
        deadline: Optional[Deadline] = None,
        persist: bool = True,
    ) -> SheetSync:
        """Tracker rows -> records, reconciled by company name."""
        sheet_source = self._require(self.sheet_source, "GOOGLE_SERVICE_ACCOUNT")
        deadline = deadline or Deadline.unbounded()
        if persist:
            self._require(self.store, "SUPABASE_URL")

        sheet = await asyncio.to_thread(sheet_source.read_rows, spreadsheet_id, gid, self.settings.SHEET_RANGE)
        extraction = extract_sheet(sheet.rows)
        unresolved = extraction.column_map.unresolved()
        if unresolved:
            logger.info(f"[SHEETS] Unresolved columns in '{sheet.sheet_name}': {', '.join(unresolved)}")

        result = ScanResult()
        for position, record in enumerate(extraction.records):
            if deadline.expired:
                self._record_deadline(result, [r.name for r in extraction.records[position:]])
                break
            if persist:
                try:
                    outcome = await self._reconcile(ReconcileKey(name=record.name), record.to_patch())
                    record.id = outcome.id
                except Exception as e:
                    logger.error(f"[SHEETS] Reconciling {record.name} failed: {e}")
                    result.add_error(record.name, "reconcile", e)
                    continue
            result.records.append(record)

        return SheetSync(
            sheet_name=sheet.sheet_name,
            total_rows=extraction.total_rows,
            skipped_rows=extraction.skipped_rows,
            columns=extraction.column_map.to_dict(),
            unresolved=unresolved,
            result=result,
        )

    @staticmethod
    def _record_deadline(result: ScanResult, remaining: List[str]):
        logger.warning(f"[SYNC] Deadline reached with {len(remaining)} items left")
        result.deadline_exceeded = True
        result.add_error(", ".join(remaining), "deadline", f"deadline exceeded before processing {len(remaining)} item(s)")
