from pydantic import AliasChoices, BaseModel, Field, field_validator
from typing import Optional, Dict, Any, List
import math


FINANCIAL_FIELDS = (
    "investment_amount",
    "entry_valuation",
    "current_valuation",
    "ownership_percent",
    "net_value",
    "moic",
)


class CompanyRecord(BaseModel):
    """Canonical, store-ready representation of one portfolio company."""

    # Identity
    id: Optional[str] = None
    source_id: Optional[str] = None
    name: str
    display_name: Optional[str] = None
    name_key: Optional[str] = None

    # Classification
    sector: Optional[str] = None
    stage: Optional[str] = None
    status: Optional[str] = None

    # Financials, single currency unit
    investment_amount: Optional[float] = None
    entry_valuation: Optional[float] = None
    current_valuation: Optional[float] = None
    ownership_percent: Optional[float] = None
    net_value: Optional[float] = None
    moic: Optional[float] = None
    extra_valuations: Optional[Dict[str, float]] = None

    # Narrative
    investors: Optional[str] = None
    investment_date: Optional[str] = None
    description: Optional[str] = None
    founders: Optional[List[str]] = None
    location: Optional[str] = None

    # AI-derived
    ai_description: Optional[str] = None
    ai_latest_updates: Optional[List[str]] = None
    ai_highlights: Optional[List[str]] = None
    ai_key_metrics: Optional[Dict[str, str]] = None

    # Provenance
    source_item_count: Optional[int] = None

    # Timestamps (ISO-8601, owned by the reconciler)
    created_at: Optional[str] = None
    synced_at: Optional[str] = None

    class Config:
        from_attributes = True

    @field_validator(*FINANCIAL_FIELDS, mode="before")
    @classmethod
    def financial_must_be_numeric(cls, v):
        if v is None:
            return None
        if isinstance(v, bool) or not isinstance(v, (int, float)):
            raise ValueError("financial fields must be normalized numbers, not raw cell text")
        if not math.isfinite(v) or v < 0:
            return None
        return float(v)

    @field_validator("extra_valuations", mode="before")
    @classmethod
    def drop_unusable_valuations(cls, v):
        if v is None:
            return None
        return {
            key: float(value)
            for key, value in dict(v).items()
            if isinstance(value, (int, float)) and not isinstance(value, bool)
            and math.isfinite(value) and value >= 0
        }

    def to_patch(self) -> Dict[str, Any]:
        """Fields explicitly set and non-null; id and timestamps are the reconciler's."""
        return self.model_dump(
            exclude_unset=True,
            exclude_none=True,
            exclude={"id", "created_at", "synced_at"},
        )


class CompanyInsights(BaseModel):
    """Sanitized structured output of the document summarizer."""

    description: Optional[str] = None
    latest_updates: List[str] = Field(
        default_factory=list,
        validation_alias=AliasChoices("latest_updates", "latestUpdates"),
    )
    sector: Optional[str] = None
    stage: Optional[str] = None
    highlights: List[str] = Field(default_factory=list)
    founders: List[str] = Field(default_factory=list)
    location: Optional[str] = None
    key_metrics: Dict[str, str] = Field(
        default_factory=dict,
        validation_alias=AliasChoices("key_metrics", "keyMetrics"),
    )

    def to_patch(self) -> Dict[str, Any]:
        """Map insights onto CompanyRecord fields (AI fields plus classification)."""
        patch: Dict[str, Any] = {}
        if self.description:
            patch["ai_description"] = self.description
            patch["description"] = self.description
        if self.latest_updates:
            patch["ai_latest_updates"] = self.latest_updates
        if self.highlights:
            patch["ai_highlights"] = self.highlights
        if self.key_metrics:
            patch["ai_key_metrics"] = self.key_metrics
        for field in ("sector", "stage", "location"):
            value = getattr(self, field)
            if value:
                patch[field] = value
        if self.founders:
            patch["founders"] = self.founders
        return patch


class ScanError(BaseModel):
    """One per-item failure; never aborts the batch."""
    item: str
    stage: str
    reason: str


class ScanResult(BaseModel):
    """Ordered records plus every per-item error encountered."""
    records: List[CompanyRecord] = Field(default_factory=list)
    errors: List[ScanError] = Field(default_factory=list)
    deadline_exceeded: bool = False

    def add_error(self, item: str, stage: str, reason: Any) -> ScanError:
        error = ScanError(item=item, stage=stage, reason=str(reason))
        self.errors.append(error)
        return error


class FolderSummary(BaseModel):
    id: str
    name: str
    display_name: Optional[str] = None


class FileSummary(BaseModel):
    name: str
    type: str
    provenance: str
    has_content: bool
    error: Optional[str] = None


class FolderAnalysis(BaseModel):
    """Result of analyzing one company folder."""
    folder_id: str
    company_name: str
    data: CompanyInsights
    files_found: int = 0
    files_read: int = 0
    has_readable_content: bool = False
    structured: bool = False
    file_types: List[FileSummary] = Field(default_factory=list)
    record_id: Optional[str] = None
    created: Optional[bool] = None
    record: Optional[CompanyRecord] = None
    errors: List[ScanError] = Field(default_factory=list)


class SyncPage(BaseModel):
    """One page of the folder sync."""
    total_folders: int
    folders_processed: int
    offset: int
    limit: int
    has_more: bool
    next_offset: Optional[int] = None
    result: ScanResult = Field(default_factory=ScanResult)


class SheetSync(BaseModel):
    """Result of ingesting the portfolio tracker sheet."""
    sheet_name: str
    total_rows: int
    skipped_rows: List[int] = Field(default_factory=list)
    columns: Dict[str, Any] = Field(default_factory=dict)
    unresolved: List[str] = Field(default_factory=list)
    result: ScanResult = Field(default_factory=ScanResult)
