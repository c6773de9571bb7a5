"""
Schema discovery for portfolio tracker sheets.

Header rows are free text ("Total invested (USD)", "Valuation at investment
($M)", "Valuation (30.6.2025)"). Each logical field is described by an
ordered list of keyword sets; the first header containing every keyword of
the first matching set wins. The rule table is data so it can be tested and
extended without touching the matcher.
"""

import logging
import re
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, Dict, List, Optional, Sequence, Set, Tuple

from portfolio_sync.services.value_normalizer import is_millions_header

logger = logging.getLogger(__name__)

UNRESOLVED = -1

DATED_HEADER = re.compile(r"(\d{1,2}\.\d{1,2}\.\d{4})")


@dataclass(frozen=True)
class FieldRule:
    """How to find one logical field among free-text headers."""
    field: str
    candidates: Tuple[Tuple[str, ...], ...]
    fallback_index: Optional[int] = None
    exclude_dated: bool = False


# Most specific keyword set first. Resolution runs top to bottom and a column
# claimed by an earlier field is not offered to later ones.
FIELD_RULES: Tuple[FieldRule, ...] = (
    FieldRule("name", (("portfolio",), ("company", "name"), ("startup",)), fallback_index=1),
    FieldRule("investors", (("investors",), ("co", "investor"))),
    FieldRule("investment_date", (("investment", "date"), ("investment", "made"), ("date", "invested"))),
    FieldRule("investment_amount", (("total", "invested"), ("amount", "invested"), ("investment", "amount"), ("invested",))),
    FieldRule("entry_valuation", (("valuation", "investment"), ("entry", "valuation"), ("valuation", "entry")), exclude_dated=True),
    FieldRule("current_valuation", (("latest", "valuation"), ("current", "valuation"), ("valuation",)), exclude_dated=True),
    FieldRule("ownership_percent", (("ownership",), ("stake",), ("equity", "%"))),
    FieldRule("net_value", (("net", "value"), ("fair", "value"))),
    FieldRule("moic", (("net", "roi"), ("moic",), ("multiple",))),
    FieldRule("sector", (("sector",), ("industry",))),
    FieldRule("stage", (("stage",), ("round",))),
    FieldRule("status", (("status",),)),
    FieldRule("description", (("description",), ("business",))),
    FieldRule("founders", (("founder",),)),
    FieldRule("location", (("location",), ("headquarter",), ("country",))),
)


@dataclass(frozen=True)
class DatedColumn:
    """A point-in-time valuation column such as "Valuation (30.6.2025)"."""
    index: int
    header: str
    key: str
    as_of: Optional[date] = None
    in_millions: bool = False


@dataclass
class ColumnMap:
    """Logical field -> column index for one sheet scan. Unresolved is UNRESOLVED."""
    columns: Dict[str, int]
    headers: List[str]
    scale_hints: Dict[str, bool] = field(default_factory=dict)
    dated_valuations: List[DatedColumn] = field(default_factory=list)

    def index(self, field_name: str) -> int:
        return self.columns.get(field_name, UNRESOLVED)

    def is_resolved(self, field_name: str) -> bool:
        return self.index(field_name) != UNRESOLVED

    def unresolved(self) -> List[str]:
        return [name for name, idx in self.columns.items() if idx == UNRESOLVED]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "columns": dict(self.columns),
            "scale_hints": dict(self.scale_hints),
            "dated_valuations": [
                {"index": c.index, "header": c.header, "key": c.key,
                 "as_of": c.as_of.isoformat() if c.as_of else None}
                for c in self.dated_valuations
            ],
        }


def _header_text(cell: Any) -> str:
    return "" if cell is None else str(cell).strip()


def _dated_key(index: int, header: str) -> Tuple[str, Optional[date]]:
    match = DATED_HEADER.search(header)
    if not match:
        return f"valuation_col_{index}", None
    raw = match.group(1)
    try:
        as_of = datetime.strptime(raw, "%d.%m.%Y").date()
    except ValueError:
        as_of = None
    return "valuation_" + raw.replace(".", "_"), as_of


def is_dated_header(header: str) -> bool:
    return bool(DATED_HEADER.search(header or ""))


def find_column(
    headers_lower: Sequence[str],
    keywords: Sequence[str],
    excluded: Set[int] = frozenset(),
) -> int:
    """First column whose lower-cased header contains every keyword, else UNRESOLVED."""
    wanted = [k.lower() for k in keywords]
    for idx, header in enumerate(headers_lower):
        if idx in excluded or not header:
            continue
        if all(k in header for k in wanted):
            return idx
    return UNRESOLVED


def resolve_columns(
    header_row: Optional[Sequence[Any]],
    rules: Sequence[FieldRule] = FIELD_RULES,
) -> ColumnMap:
    """
    Map every logical field in `rules` to a column of `header_row`.

    Never raises: missing fields resolve to UNRESOLVED and the caller treats
    them as unavailable, not as zero.
    """
    headers = [_header_text(h) for h in (header_row or [])]
    headers_lower = [h.lower() for h in headers]
    dated = {i for i, h in enumerate(headers_lower) if is_dated_header(h)}

    columns: Dict[str, int] = {}
    claimed: Set[int] = set()

    for rule in rules:
        excluded = claimed | dated if rule.exclude_dated else set(claimed)
        idx = UNRESOLVED
        for keywords in rule.candidates:
            idx = find_column(headers_lower, keywords, excluded)
            if idx != UNRESOLVED:
                break
        if idx == UNRESOLVED and rule.fallback_index is not None:
            idx = rule.fallback_index
            logger.info(f"[SCHEMA] No header match for '{rule.field}', falling back to column {idx}")
        if idx != UNRESOLVED:
            claimed.add(idx)
        columns[rule.field] = idx

    scale_hints = {
        name: is_millions_header(headers[idx])
        for name, idx in columns.items()
        if 0 <= idx < len(headers)
    }

    dated_valuations = []
    for idx in sorted(dated):
        if idx in claimed or "valuation" not in headers_lower[idx]:
            continue
        key, as_of = _dated_key(idx, headers[idx])
        dated_valuations.append(DatedColumn(
            index=idx,
            header=headers[idx],
            key=key,
            as_of=as_of,
            in_millions=is_millions_header(headers[idx]),
        ))

    column_map = ColumnMap(
        columns=columns,
        headers=headers,
        scale_hints=scale_hints,
        dated_valuations=dated_valuations,
    )
    missing = column_map.unresolved()
    if missing:
        logger.info(f"[SCHEMA] Unresolved fields: {', '.join(missing)}")
    logger.debug(f"[SCHEMA] Column map: {column_map.to_dict()}")
    return column_map
