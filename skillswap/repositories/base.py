from typing import Any, AsyncIterator, Dict, Iterable, List, Optional, Tuple

from ..core.database import Database, Filters, In
from ..utils.dates import now_iso
from ..utils.pagination import Page, page_window

NEWEST_FIRST = {"created_at": "desc"}
SCAN_ORDER = {"created_at": "asc", "id": "asc"}
SCAN_BATCH = 500

class Repository:
    """CRUD over one table of the database. Rows are plain dicts."""

    table: str = ""

    def __init__(self, db: Database):
        self.db = db

    async def create(self, data: Dict[str, Any]) -> Dict[str, Any]:
        now = now_iso()
        row = {"created_at": now, "updated_at": now, **data}
        return await self.db.insert(self.table, row)

    async def get(self, row_id: str) -> Optional[Dict[str, Any]]:
        return await self.db.select_one(self.table, {"id": row_id})

    async def get_many(self, row_ids: Iterable[str]) -> Dict[str, Dict[str, Any]]:
        ids = sorted({row_id for row_id in row_ids if row_id})
        if not ids:
            return {}
        rows = await self.db.select(self.table, {"id": In(ids)}, limit=len(ids))
        return {row["id"]: row for row in rows}

    async def update(
        self, row_id: str, data: Dict[str, Any], expected: Optional[Dict[str, Any]] = None
    ) -> Optional[Dict[str, Any]]:
        """
        Update one row and return it, or None when no row matched.

        ``expected`` adds equality conditions to the write, so the update only
        lands if the row still has those values.
        """
        filters = {"id": row_id, **(expected or {})}
        rows = await self.db.update(self.table, filters, {**data, "updated_at": now_iso()})
        return rows[0] if rows else None

    async def list(
        self,
        filters: Optional[Filters],
        limit: int,
        order_by: Optional[Dict[str, str]] = None,
    ) -> List[Dict[str, Any]]:
        return await self.db.select(self.table, filters=filters, order_by=order_by or NEWEST_FIRST, limit=limit)

    async def page(
        self,
        page: int,
        limit: int,
        filters: Optional[Filters] = None,
        order_by: Optional[Dict[str, str]] = None,
        any_of: Optional[Filters] = None,
    ) -> Page[Dict[str, Any]]:
        page, limit, offset = page_window(page, limit)
        rows, total = await self.db.select_page(
            self.table, filters, order_by or NEWEST_FIRST, limit, offset, any_of
        )
        return Page(rows, total, page, limit)

    async def scan(self, filters: Optional[Filters] = None, batch_size: int = SCAN_BATCH) -> AsyncIterator[Dict[str, Any]]:
        """Every matching row, oldest first, fetched in fixed-size batches."""
        offset = 0
        while True:
            rows = await self.db.select(self.table, filters, order_by=SCAN_ORDER, limit=batch_size, offset=offset)
            for row in rows:
                yield row
            if len(rows) < batch_size:
                return
            offset += batch_size

    async def count(self, filters: Optional[Filters] = None) -> int:
        return await self.db.count(self.table, filters)

    async def totals(self, column: str, filters: Optional[Filters] = None) -> Tuple[Any, int]:
        return await self.db.totals(self.table, column, filters)
