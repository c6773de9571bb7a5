"""
Record extraction: sheet rows + ColumnMap -> CompanyRecord list.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Sequence

from portfolio_sync.schemas.company import CompanyRecord
from portfolio_sync.services.schema_discovery import ColumnMap, resolve_columns
from portfolio_sync.services.value_normalizer import (
    apply_scale,
    clean_company_name,
    normalize_name_key,
    normalize_status,
    to_multiplier,
    to_number,
    to_percentage,
)

logger = logging.getLogger(__name__)

# field -> (parser, scale applies)
NUMERIC_FIELDS: Dict[str, tuple] = {
    "investment_amount": (to_number, True),
    "entry_valuation": (to_number, True),
    "current_valuation": (to_number, True),
    "net_value": (to_number, True),
    "ownership_percent": (to_percentage, False),
    "moic": (to_multiplier, False),
}

TEXT_FIELDS = ("investors", "investment_date", "sector", "stage", "description", "location")


@dataclass
class SheetExtraction:
    records: List[CompanyRecord]
    column_map: ColumnMap
    total_rows: int
    skipped_rows: List[int] = field(default_factory=list)


def _cell(row: Sequence[Any], idx: int) -> Any:
    if idx < 0 or idx >= len(row):
        return None
    return row[idx]


def _text(row: Sequence[Any], idx: int) -> Optional[str]:
    value = _cell(row, idx)
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _non_empty_cells(row: Sequence[Any]) -> int:
    return sum(1 for cell in row if cell is not None and str(cell).strip())


def _split_people(raw: Optional[str]) -> Optional[List[str]]:
    if not raw:
        return None
    parts = [p.strip() for p in raw.replace(";", ",").replace("\n", ",").split(",")]
    return [p for p in parts if p] or None


def _numeric(
    row: Sequence[Any],
    column_map: ColumnMap,
    field_name: str,
    parser: Callable[[Any], float],
    scaled: bool,
    scale_hints: Dict[str, bool],
) -> Optional[float]:
    if not column_map.is_resolved(field_name):
        return None
    value = parser(_cell(row, column_map.index(field_name)))
    if scaled:
        value = apply_scale(value, scale_hints.get(field_name, False))
    return value


def extract_row(
    row: Sequence[Any],
    column_map: ColumnMap,
    scale_hints: Optional[Dict[str, bool]] = None,
) -> Optional[CompanyRecord]:
    """Build one record, or None when the row is structurally invalid."""
    if not row or _non_empty_cells(row) < 2:
        return None

    raw_name = _text(row, column_map.index("name"))
    if not raw_name or raw_name == "0":
        return None

    hints = column_map.scale_hints if scale_hints is None else scale_hints
    name, display_name = clean_company_name(raw_name)

    values: Dict[str, Any] = {
        "name": name,
        "display_name": display_name,
        "name_key": normalize_name_key(name),
    }

    for field_name, (parser, scaled) in NUMERIC_FIELDS.items():
        value = _numeric(row, column_map, field_name, parser, scaled, hints)
        if value is not None:
            values[field_name] = value

    for field_name in TEXT_FIELDS:
        text = _text(row, column_map.index(field_name)) if column_map.is_resolved(field_name) else None
        if text:
            values[field_name] = text

    if column_map.is_resolved("status"):
        status = normalize_status(_cell(row, column_map.index("status")))
        if status:
            values["status"] = status

    if column_map.is_resolved("founders"):
        founders = _split_people(_text(row, column_map.index("founders")))
        if founders:
            values["founders"] = founders

    if column_map.dated_valuations:
        extra: Dict[str, float] = {}
        for column in column_map.dated_valuations:
            extra[column.key] = apply_scale(to_number(_cell(row, column.index)), column.in_millions)
        values["extra_valuations"] = extra

    return CompanyRecord(**values)


def extract_rows(
    rows: Sequence[Sequence[Any]],
    column_map: ColumnMap,
    scale_hints: Optional[Dict[str, bool]] = None,
) -> List[CompanyRecord]:
    """Data rows (no header) -> records, in source order. Invalid rows are skipped silently."""
    records = []
    for row in rows:
        record = extract_row(row or [], column_map, scale_hints)
        if record is not None:
            records.append(record)
    return records


def extract_sheet(rows: Sequence[Sequence[Any]]) -> SheetExtraction:
    """Header row + data rows -> records, with the discovered ColumnMap."""
    if not rows:
        return SheetExtraction(records=[], column_map=resolve_columns([]), total_rows=0)

    column_map = resolve_columns(rows[0])
    records: List[CompanyRecord] = []
    skipped: List[int] = []

    for offset, row in enumerate(rows[1:], start=2):
        record = extract_row(row or [], column_map)
        if record is None:
            skipped.append(offset)
            continue
        records.append(record)

    if skipped:
        logger.info(f"[EXTRACT] Skipped {len(skipped)} structurally empty rows")
    scaled = [name for name, hint in column_map.scale_hints.items() if hint]
    if scaled:
        logger.info(f"[EXTRACT] Millions scale applied to: {', '.join(scaled)}")

    return SheetExtraction(
        records=records,
        column_map=column_map,
        total_rows=len(rows) - 1,
        skipped_rows=skipped,
    )
