"""
Reconciler: idempotent create-or-update of company records.

Lookup goes by the stable source identifier first, then by normalized name,
then by exact name. A match receives a partial update of only the fields in
the patch; no match creates a record. Running the same sync twice yields
the same records with only `synced_at` moving.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, Optional, Tuple

from portfolio_sync.abstractions.record_store import RecordStore
from portfolio_sync.core.exceptions import ValidationError
from portfolio_sync.services.value_normalizer import normalize_name_key

logger = logging.getLogger(__name__)

PROTECTED_FIELDS = frozenset({"id", "created_at"})


@dataclass(frozen=True)
class ReconcileKey:
    source_id: Optional[str] = None
    name: Optional[str] = None

    @property
    def name_key(self) -> Optional[str]:
        return normalize_name_key(self.name) if self.name else None

    @property
    def lock_key(self) -> Optional[str]:
        return self.source_id or self.name_key


@dataclass
class ReconcileOutcome:
    id: str
    created: bool
    matched_by: Optional[str]  # "source_id" | "name_key" | "name" | None on create
    action: str  # "created" | "updated"


def _iso_now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _is_empty(value: Any) -> bool:
    return value is None or value == "" or value == [] or value == {}


def find_existing(store: RecordStore, key: ReconcileKey) -> Tuple[Optional[Dict[str, Any]], Optional[str]]:
    """Existing record for the key and which lookup matched it."""
    lookups = (
        ("source_id", key.source_id),
        ("name_key", key.name_key),
        ("name", key.name),
    )
    for field, value in lookups:
        if not value:
            continue
        rows = store.find(field, value)
        if rows:
            if len(rows) > 1:
                logger.warning(f"[RECONCILE] {len(rows)} records match {field}={value!r}; using the first")
            return rows[0], field
    return None, None


def reconcile(
    store: RecordStore,
    key: ReconcileKey,
    patch: Dict[str, Any],
    preserve_existing: Iterable[str] = (),
    now: Optional[str] = None,
) -> ReconcileOutcome:
    """
    Apply `patch` to the record for `key`, creating it when absent.

    Fields in `preserve_existing` are only written when the stored value is
    empty, so human edits survive later syncs. `created_at` is stamped once,
    `synced_at` on every call. Store failures propagate as StoreError.
    """
    if not key.source_id and not key.name:
        raise ValidationError("reconcile needs a source_id or a name", field="key")

    stamp = now or _iso_now()
    preserve = set(preserve_existing)
    body = {k: v for k, v in patch.items() if k not in PROTECTED_FIELDS}
    if key.name and "name_key" not in body:
        body["name_key"] = key.name_key

    existing, matched_by = find_existing(store, key)

    if existing is None:
        if key.source_id:
            body.setdefault("source_id", key.source_id)
        if key.name:
            body.setdefault("name", key.name)
        body["created_at"] = stamp
        body["synced_at"] = stamp
        row = store.upsert(None, body)
        logger.info(f"[RECONCILE] Created {body.get('name')!r} ({row['id']})")
        return ReconcileOutcome(id=row["id"], created=True, matched_by=None, action="created")

    update = {
        k: v for k, v in body.items()
        if k not in preserve or _is_empty(existing.get(k))
    }
    if key.source_id and not existing.get("source_id"):
        update["source_id"] = key.source_id
    update["synced_at"] = stamp

    row = store.upsert(existing["id"], update)
    logger.info(f"[RECONCILE] Updated {existing.get('name')!r} via {matched_by} ({len(update) - 1} fields)")
    return ReconcileOutcome(id=row.get("id", existing["id"]), created=False, matched_by=matched_by, action="updated")
