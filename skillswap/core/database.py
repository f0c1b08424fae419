import abc
import copy
import json
import logging
import uuid
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, List, Optional, Sequence, Tuple

from postgrest.exceptions import APIError
from supabase import Client, create_client

from ..utils.dates import parse_datetime, to_iso
from .config import Settings
from .exceptions import ConflictError, NotFoundError

logger = logging.getLogger(__name__)

# (table, columns) pairs that must be unique across rows
UNIQUE_CONSTRAINTS: Dict[str, List[Tuple[str, ...]]] = {
    "users": [("email",)],
    "ratings": [("swap_request_id", "rated_by")],
}

# Postgres error codes
UNIQUE_VIOLATION = "23505"
INVALID_TEXT_REPRESENTATION = "22P02"

@dataclass(frozen=True)
class Like:
    """Case-insensitive substring match on a text column."""
    text: str

@dataclass(frozen=True)
class Contains:
    """A JSON array column holds ``value``."""
    value: Any

@dataclass(frozen=True)
class In:
    values: Sequence[Any]

@dataclass(frozen=True)
class Between:
    """Inclusive timestamp range. Either bound may be left open."""
    start: Optional[datetime] = None
    end: Optional[datetime] = None

Filters = Dict[str, Any]

class Database(abc.ABC):
    """
    Document store used by the repositories.

    ``filters`` maps a column to a plain value (equality, ``None`` meaning
    SQL null) or to one of ``Like``, ``Contains``, ``In``, ``Between``; all
    of them must hold. ``any_of`` is a second mapping of which at least one
    must hold (plain values and ``Like`` only). ``order_by`` maps a column to
    ``"asc"`` or ``"desc"``, first key being the primary sort; ``a->b``
    addresses a key inside a JSON column.
    """

    @abc.abstractmethod
    async def insert(self, table: str, data: Dict[str, Any]) -> Dict[str, Any]:
        ...

    @abc.abstractmethod
    async def select(
        self,
        table: str,
        filters: Optional[Filters] = None,
        order_by: Optional[Dict[str, str]] = None,
        limit: Optional[int] = None,
        offset: int = 0,
        any_of: Optional[Filters] = None,
    ) -> List[Dict[str, Any]]:
        ...

    @abc.abstractmethod
    async def select_page(
        self,
        table: str,
        filters: Optional[Filters],
        order_by: Dict[str, str],
        limit: int,
        offset: int = 0,
        any_of: Optional[Filters] = None,
    ) -> Tuple[List[Dict[str, Any]], int]:
        """One window of rows plus the number of rows matching overall."""

    @abc.abstractmethod
    async def update(self, table: str, filters: Filters, data: Dict[str, Any]) -> List[Dict[str, Any]]:
        ...

    @abc.abstractmethod
    async def count(self, table: str, filters: Optional[Filters] = None, any_of: Optional[Filters] = None) -> int:
        ...

    @abc.abstractmethod
    async def increment(self, table: str, row_id: str, field: str, amount: int = 1) -> Optional[Dict[str, Any]]:
        """Atomically add ``amount`` to a numeric column of a single row."""

    @abc.abstractmethod
    async def totals(self, table: str, column: str, filters: Optional[Filters] = None) -> Tuple[Any, int]:
        """Sum of a numeric column and the row count, over equality filters."""

    async def select_one(self, table: str, filters: Filters) -> Optional[Dict[str, Any]]:
        rows = await self.select(table, filters=filters, limit=1)
        return rows[0] if rows else None

def _value(row: Dict[str, Any], column: str) -> Any:
    value: Any = row
    for key in column.split("->"):
        value = value.get(key) if isinstance(value, dict) else None
    return value

def _holds(value: Any, condition: Any) -> bool:
    if isinstance(condition, Like):
        return isinstance(value, str) and condition.text.lower() in value.lower()
    if isinstance(condition, Contains):
        return condition.value in (value or [])
    if isinstance(condition, In):
        return value in condition.values
    if isinstance(condition, Between):
        if value is None:
            return False
        at = parse_datetime(value)
        return (condition.start is None or at >= condition.start) and (
            condition.end is None or at <= condition.end
        )
    return value == condition

def _sort_key(value: Any):
    # None sorts before any real value
    return (value is not None, value)

class MemoryDatabase(Database):
    """In-process tables. Rows are copied on the way in and out."""

    def __init__(self, unique: Optional[Dict[str, Sequence[Tuple[str, ...]]]] = None):
        self.tables: Dict[str, List[Dict[str, Any]]] = {}
        self.unique = UNIQUE_CONSTRAINTS if unique is None else unique

    def _table(self, table: str) -> List[Dict[str, Any]]:
        return self.tables.setdefault(table, [])

    @staticmethod
    def _matches(row: Dict[str, Any], filters: Optional[Filters], any_of: Optional[Filters] = None) -> bool:
        if filters and not all(_holds(_value(row, key), cond) for key, cond in filters.items()):
            return False
        if any_of and not any(_holds(_value(row, key), cond) for key, cond in any_of.items()):
            return False
        return True

    def _check_unique(self, table: str, row: Dict[str, Any]) -> None:
        for columns in self.unique.get(table, []):
            key = tuple(row.get(column) for column in columns)
            for existing in self._table(table):
                if existing["id"] != row["id"] and tuple(existing.get(c) for c in columns) == key:
                    raise ConflictError(
                        f"Duplicate value for {', '.join(columns)} in {table}"
                    )

    def _query(self, table, filters, order_by, any_of) -> List[Dict[str, Any]]:
        rows = [row for row in self._table(table) if self._matches(row, filters, any_of)]
        if order_by:
            # Stable sorts applied from the least to the most significant key
            for key, direction in reversed(list(order_by.items())):
                rows.sort(key=lambda r: _sort_key(_value(r, key)), reverse=direction.lower() == "desc")
        return rows

    async def insert(self, table, data):
        row = copy.deepcopy(data)
        row.setdefault("id", str(uuid.uuid4()))
        self._check_unique(table, row)
        self._table(table).append(row)
        return copy.deepcopy(row)

    async def select(self, table, filters=None, order_by=None, limit=None, offset=0, any_of=None):
        rows = self._query(table, filters, order_by, any_of)[offset:]
        if limit is not None:
            rows = rows[:limit]
        return copy.deepcopy(rows)

    async def select_page(self, table, filters, order_by, limit, offset=0, any_of=None):
        rows = self._query(table, filters, order_by, any_of)
        return copy.deepcopy(rows[offset:offset + limit]), len(rows)

    async def update(self, table, filters, data):
        if not filters:
            raise ValueError("Filters are required for update operations")
        updated = []
        for row in self._table(table):
            if self._matches(row, filters):
                candidate = {**row, **copy.deepcopy(data)}
                self._check_unique(table, candidate)
                row.update(copy.deepcopy(data))
                updated.append(copy.deepcopy(row))
        return updated

    async def count(self, table, filters=None, any_of=None):
        return sum(1 for row in self._table(table) if self._matches(row, filters, any_of))

    async def increment(self, table, row_id, field, amount=1):
        for row in self._table(table):
            if row["id"] == row_id:
                row[field] = (row.get(field) or 0) + amount
                return copy.deepcopy(row)
        return None

    async def totals(self, table, column, filters=None):
        rows = [row for row in self._table(table) if self._matches(row, filters)]
        return sum(row.get(column) or 0 for row in rows), len(rows)

def _filter_value(value: Any) -> Any:
    if isinstance(value, bool):
        return "true" if value else "false"
    return value

def _escape_like(text: str) -> str:
    return text.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")

def _quote(value: Any) -> str:
    """Quote a value for a PostgREST ``or=(...)`` list."""
    escaped = str(value).replace("\\", "\\\\").replace('"', '\\"')
    return f'"{escaped}"'

def _or_clause(any_of: Filters) -> str:
    parts = []
    for key, condition in any_of.items():
        if condition is None:
            parts.append(f"{key}.is.null")
        elif isinstance(condition, Like):
            parts.append(f"{key}.ilike.{_quote(f'*{condition.text}*')}")
        else:
            parts.append(f"{key}.eq.{_quote(_filter_value(condition))}")
    return ",".join(parts)

class SupabaseDatabase(Database):
    """Postgres through the Supabase REST client. Tables live in sql/schema.sql."""

    def __init__(self, client: Client):
        self.client = client

    @classmethod
    def from_settings(cls, settings: Settings) -> "SupabaseDatabase":
        if not settings.supabase_url or not settings.supabase_key:
            raise ValueError(
                "SUPABASE_URL and SUPABASE_KEY must be set when DATABASE_BACKEND=supabase"
            )
        logger.info(f"Connecting to Supabase at {settings.supabase_url}")
        return cls(create_client(settings.supabase_url, settings.supabase_key))

    @staticmethod
    def _apply_filters(query, filters: Optional[Filters], any_of: Optional[Filters] = None):
        for key, condition in (filters or {}).items():
            if condition is None:
                query = query.is_(key, "null")
            elif isinstance(condition, Like):
                query = query.ilike(key, f"%{_escape_like(condition.text)}%")
            elif isinstance(condition, Contains):
                query = query.filter(key, "cs", json.dumps([condition.value]))
            elif isinstance(condition, In):
                query = query.in_(key, list(condition.values))
            elif isinstance(condition, Between):
                if condition.start is not None:
                    query = query.gte(key, to_iso(condition.start))
                if condition.end is not None:
                    query = query.lte(key, to_iso(condition.end))
            else:
                query = query.eq(key, _filter_value(condition))
        if any_of:
            query = query.or_(_or_clause(any_of))
        return query

    @staticmethod
    def _execute(query, table: str):
        """Run a query. None means a filter value cannot exist in that column (e.g. a malformed uuid)."""
        try:
            return query.execute()
        except APIError as e:
            if e.code == UNIQUE_VIOLATION:
                raise ConflictError(f"Duplicate record in {table}", error=e.message) from e
            if e.code == INVALID_TEXT_REPRESENTATION:
                logger.debug(f"Malformed value in query on {table}: {e.message}")
                return None
            raise

    async def insert(self, table, data):
        result = self._execute(self.client.table(table).insert(data), table)
        if result is None:
            raise NotFoundError("Referenced record not found")
        logger.debug(f"Inserted row into {table}")
        return result.data[0]

    def _select_query(self, table, filters, order_by, limit, offset, any_of, count=None):
        query = self._apply_filters(self.client.table(table).select("*", count=count), filters, any_of)
        for key, direction in (order_by or {}).items():
            query = query.order(key, desc=direction.lower() == "desc")
        if limit is not None:
            query = query.range(offset, offset + limit - 1)
        return query

    async def select(self, table, filters=None, order_by=None, limit=None, offset=0, any_of=None):
        result = self._execute(self._select_query(table, filters, order_by, limit, offset, any_of), table)
        return result.data if result is not None else []

    async def select_page(self, table, filters, order_by, limit, offset=0, any_of=None):
        query = self._select_query(table, filters, order_by, limit, offset, any_of, count="exact")
        result = self._execute(query, table)
        if result is None:
            return [], 0
        return result.data, result.count or 0

    async def update(self, table, filters, data):
        if not filters:
            raise ValueError("Filters are required for update operations")
        result = self._execute(self._apply_filters(self.client.table(table).update(data), filters), table)
        return result.data if result is not None else []

    async def count(self, table, filters=None, any_of=None):
        query = self._apply_filters(self.client.table(table).select("id", count="exact"), filters, any_of)
        result = self._execute(query.range(0, 0), table)
        return (result.count or 0) if result is not None else 0

    async def increment(self, table, row_id, field, amount=1):
        query = self.client.rpc(
            "increment_counter",
            {"table_name": table, "row_id": row_id, "field": field, "amount": amount},
        )
        result = self._execute(query, table)
        if result is None or not result.data:
            return None
        return result.data[0] if isinstance(result.data, list) else result.data

    async def totals(self, table, column, filters=None):
        query = self.client.rpc(
            "column_totals",
            {"table_name": table, "column_name": column, "filters": filters or {}},
        )
        result = self._execute(query, table)
        row = None
        if result is not None and result.data:
            row = result.data[0] if isinstance(result.data, list) else result.data
        if not row:
            return 0, 0
        return row.get("total") or 0, row.get("row_count") or 0

def create_database(settings: Settings) -> Database:
    backend = settings.database_backend.lower()
    if backend == "memory":
        logger.info("Using in-memory database")
        return MemoryDatabase()
    if backend == "supabase":
        return SupabaseDatabase.from_settings(settings)
    raise ValueError(f"Unknown database backend: {settings.database_backend}")
