"""
Structured decode of summarizer output.

The summarizer may answer with clean JSON, JSON inside markdown fences, or
prose wrapped around a JSON object. Decoding never raises: the absence of a
usable object is a normal outcome carried with a typed reason.
"""

import json
import logging
import re
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List, Optional, Sequence, Tuple

from pydantic import ValidationError as PydanticValidationError

from portfolio_sync.schemas.company import CompanyInsights

logger = logging.getLogger(__name__)

MAX_LIST_ITEMS = 5

_FENCE = re.compile(r"```(?:json)?\s*\n?", re.IGNORECASE)
_BRACED = re.compile(r"\{.*\}", re.DOTALL)


class DecodeFailure(Enum):
    EMPTY = "empty"
    MALFORMED = "malformed"
    NOT_AN_OBJECT = "not_an_object"


@dataclass
class DecodeResult:
    value: Optional[Dict[str, Any]] = None
    failure: Optional[DecodeFailure] = None

    @property
    def ok(self) -> bool:
        return self.value is not None


def strip_code_fences(text: str) -> str:
    return _FENCE.sub("", text or "").strip()


def decode_structured(text: Optional[str]) -> DecodeResult:
    """JSON object from semi-structured text, or a failure reason."""
    cleaned = strip_code_fences(text or "")
    if not cleaned:
        return DecodeResult(failure=DecodeFailure.EMPTY)

    try:
        value = json.loads(cleaned)
    except json.JSONDecodeError:
        match = _BRACED.search(cleaned)
        if not match:
            logger.warning(f"[DECODE] No JSON object in summarizer output: {cleaned[:200]}")
            return DecodeResult(failure=DecodeFailure.MALFORMED)
        try:
            value = json.loads(match.group())
        except json.JSONDecodeError as e:
            logger.warning(f"[DECODE] Malformed JSON in summarizer output: {e}")
            return DecodeResult(failure=DecodeFailure.MALFORMED)

    if not isinstance(value, dict):
        return DecodeResult(failure=DecodeFailure.NOT_AN_OBJECT)
    return DecodeResult(value=value)


def _clean_str(value: Any) -> Optional[str]:
    if value is None or isinstance(value, (dict, list)):
        return None
    text = str(value).strip()
    return text or None


def _clean_list(value: Any) -> List[str]:
    if isinstance(value, str):
        value = [value]
    if not isinstance(value, list):
        return []
    out = [s for s in (_clean_str(v) for v in value) if s]
    return out[:MAX_LIST_ITEMS]


def _clean_metrics(value: Any) -> Dict[str, str]:
    if not isinstance(value, dict):
        return {}
    return {str(k): s for k, s in ((k, _clean_str(v)) for k, v in value.items()) if s}


def sanitize(raw: Dict[str, Any]) -> Dict[str, Any]:
    """Coerce a decoded object into the shapes CompanyInsights expects."""
    return {
        "description": _clean_str(raw.get("description")),
        "latest_updates": _clean_list(raw.get("latestUpdates", raw.get("latest_updates"))),
        "sector": _clean_str(raw.get("sector")),
        "stage": _clean_str(raw.get("stage")),
        "highlights": _clean_list(raw.get("highlights")),
        "founders": _clean_list(raw.get("founders")),
        "location": _clean_str(raw.get("location")),
        "key_metrics": _clean_metrics(raw.get("keyMetrics", raw.get("key_metrics"))),
    }


def parse_insights(text: Optional[str]) -> Tuple[Optional[CompanyInsights], DecodeResult]:
    decoded = decode_structured(text)
    if not decoded.ok:
        return None, decoded
    try:
        return CompanyInsights.model_validate(sanitize(decoded.value)), decoded
    except PydanticValidationError as e:
        logger.warning(f"[DECODE] Summarizer object did not validate: {e}")
        return None, DecodeResult(failure=DecodeFailure.MALFORMED)


def fallback_insights(files_found: int, names: Sequence[str]) -> CompanyInsights:
    """Description built from file names when nothing readable was found."""
    listed = ", ".join(list(names)[:5])
    return CompanyInsights(
        description=f"Portfolio company with {files_found} files in data room. Documents include: {listed}."
    )
