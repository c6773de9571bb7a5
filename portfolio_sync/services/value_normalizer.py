"""
Value normalization for loosely formatted spreadsheet cells and folder names.

Every function here is total: unparsable input falls back to a documented
default (0, the input unchanged, or None) instead of raising.
"""

import math
import re
from typing import Any, Optional, Tuple

# Values below this are read as "stated in millions" when the header says so
MILLIONS_CEILING = 100_000
MILLION = 1_000_000

_STRIP_CHARS = re.compile(r"[$€£¥₫,%\s]")
_LEADING_NUMBER = re.compile(r"[-+]?(?:\d+(?:\.\d*)?|\.\d+)(?:[eE][-+]?\d+)?")
_MULTIPLIER = re.compile(r"([\d.]+)\s*x", re.IGNORECASE)

_MILLIONS_HINTS = (
    re.compile(r"\bmillions?\b"),
    re.compile(r"\(\s*(?:usd|us\$|\$|€|£)?\s*m\s*\)"),
    re.compile(r"\$\s*m\b"),
    re.compile(r"\busd\s*m\b"),
    re.compile(r"\bmn\b"),
    re.compile(r"\bmm\b"),
)

_ENUMERATION_PREFIX = re.compile(r"^\d+(\.\d+)*\.?\s*")
_WHITESPACE = re.compile(r"\s+")


def _parse_leading_float(text: str) -> float:
    match = _LEADING_NUMBER.match(text)
    if not match:
        return 0.0
    try:
        value = float(match.group(0))
    except ValueError:
        return 0.0
    return value if math.isfinite(value) else 0.0


def to_number(raw: Any) -> float:
    """
    Parse a currency/percentage/plain cell into a float.

    "$1,234.50" -> 1234.5, "15%" -> 15.0, "" -> 0.0, "garbage" -> 0.0
    """
    if raw is None or isinstance(raw, bool):
        return 0.0
    if isinstance(raw, (int, float)):
        return float(raw) if math.isfinite(raw) else 0.0
    text = _STRIP_CHARS.sub("", str(raw))
    if not text:
        return 0.0
    return _parse_leading_float(text)


def to_multiplier(raw: Any) -> float:
    """Parse a MOIC-style multiple: "1.25x" -> 1.25, "2" -> 2.0."""
    if raw is None or isinstance(raw, bool):
        return 0.0
    if isinstance(raw, (int, float)):
        return float(raw) if math.isfinite(raw) else 0.0
    text = re.sub(r"[,\s]", "", str(raw))
    match = _MULTIPLIER.search(text)
    if match:
        return _parse_leading_float(match.group(1))
    return to_number(text)


def to_percentage(raw: Any) -> float:
    """
    Parse an ownership cell into a percentage.

    A positive value strictly below 1 is taken as a decimal fraction
    ("0.15" -> 15.0); anything else is already a percentage ("42" -> 42.0).
    A genuine "0.5%" typed as "0.5" therefore reads as 50.0.
    """
    value = to_number(raw)
    if 0 < value < 1:
        return round(value * 100, 6)
    return value


def is_millions_header(header: Optional[str]) -> bool:
    """True when header text declares its values in millions ("Valuation ($M)")."""
    if not header:
        return False
    lowered = str(header).lower()
    return any(pattern.search(lowered) for pattern in _MILLIONS_HINTS)


def apply_scale(value: float, in_millions: bool) -> float:
    """
    Scale a value stated in millions to full units.

    Only positive values below MILLIONS_CEILING are scaled, so a cell that
    already holds "15,000,000" under a "($M)" header is left alone.
    """
    if in_millions and 0 < value < MILLIONS_CEILING:
        return float(round(value * MILLION))
    return value


def clean_company_name(raw: Any) -> Tuple[str, str]:
    """
    Strip leading enumeration from a folder/row name.

    "5.6. Acme Corp (FKA Old Name)" -> ("Acme Corp (FKA Old Name)", "Acme Corp")
    """
    text = str(raw or "").strip()
    name = _ENUMERATION_PREFIX.sub("", text).strip()
    if not name:
        name = text
    display_name = name.split("(")[0].strip() or name
    return name, display_name


def normalize_name_key(name: Any) -> str:
    """Case- and whitespace-insensitive key used as the fallback match on name."""
    return _WHITESPACE.sub(" ", str(name or "")).strip().lower()


def normalize_status(raw: Any) -> Optional[str]:
    """Map free-text status cells onto the dashboard's status vocabulary."""
    text = str(raw or "").strip()
    if not text:
        return None
    lowered = text.lower()
    if "partial" in lowered:
        return "Partially Exited"
    if "written off" in lowered or "write-off" in lowered or "write off" in lowered:
        return "Written Off"
    if "exit" in lowered or lowered in ("sold", "acquired", "realized", "realised"):
        return "Exited"
    if lowered in ("active", "current", "holding", "unrealized", "unrealised"):
        return "Active"
    return text
