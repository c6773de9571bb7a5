"""
Keyed record store abstraction (portfolio companies table / equivalent).
Implementations: Supabase.
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

import logging

from portfolio_sync.core.exceptions import StoreError

logger = logging.getLogger(__name__)


class RecordStore(ABC):
    """Interface for company records: find by field, create-or-update, ordered query."""

    @abstractmethod
    def find(self, field: str, equals: Any) -> List[Dict[str, Any]]:
        """Records whose `field` equals `equals`. Empty list when none."""
        pass

    @abstractmethod
    def upsert(self, id: Optional[str], patch: Dict[str, Any]) -> Dict[str, Any]:
        """Insert when id is None, else partial update. Returns at least {"id": ...}."""
        pass

    @abstractmethod
    def query(self, order_by: str = "name", limit: Optional[int] = None) -> List[Dict[str, Any]]:
        """All records ordered by a field."""
        pass


class SupabaseRecordStore(RecordStore):
    """Supabase implementation over one table (default portfolio_companies)."""

    def __init__(self, client, table: str = "portfolio_companies"):
        self._client = client
        self._table = table

    def find(self, field: str, equals: Any) -> List[Dict[str, Any]]:
        try:
            r = self._client.table(self._table).select("*").eq(field, equals).execute()
            return list(r.data or [])
        except Exception as e:
            logger.error("find %s=%r in %s: %s", field, equals, self._table, e)
            raise StoreError(f"find on {self._table}.{field} failed: {e}", operation="find") from e

    def upsert(self, id: Optional[str], patch: Dict[str, Any]) -> Dict[str, Any]:
        try:
            if id is None:
                r = self._client.table(self._table).insert(patch).execute()
            else:
                r = self._client.table(self._table).update(patch).eq("id", id).execute()
        except Exception as e:
            logger.error("upsert %s in %s: %s", id or "<new>", self._table, e)
            raise StoreError(f"upsert on {self._table} failed: {e}", operation="upsert") from e
        if not r.data:
            if id is not None:
                return {"id": id}
            raise StoreError("insert returned no data", operation="insert")
        return r.data[0]

    def query(self, order_by: str = "name", limit: Optional[int] = None) -> List[Dict[str, Any]]:
        try:
            q = self._client.table(self._table).select("*").order(order_by)
            if limit:
                q = q.limit(limit)
            r = q.execute()
            return list(r.data or [])
        except Exception as e:
            logger.error("query %s ordered by %s: %s", self._table, order_by, e)
            raise StoreError(f"query on {self._table} failed: {e}", operation="query") from e
