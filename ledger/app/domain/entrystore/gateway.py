"""EntryStore gateway implementations."""

from __future__ import annotations

import itertools
import re
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from threading import RLock
from typing import Any, Dict, Iterable, List, Mapping, Optional, Protocol

from sqlalchemy import Select, Table, delete, func, insert, or_, select, update
from sqlalchemy.engine import Connection, Engine
from sqlalchemy.sql.elements import ColumnElement

from ...infra.db import get_engine
from ...infra.logging import get_logger
from .errors import EntryNotFoundError
from .models import ENTRY_FIELDS, Entry, utcnow
from .schema import (
    create_schema,
    entries as entries_table,
    search_query,
    search_vector,
)

__all__ = [
    "EntryListFilters",
    "EntryStoreGateway",
    "InMemoryEntryStoreGateway",
    "PostgresEntryStoreGateway",
    "SortDirection",
    "SortField",
    "build_entry_store_gateway",
    "tokenize_search_term",
]

logger = get_logger(__name__)

_WORD_PATTERN = re.compile(r"[^\W_]+")


class SortField(str, Enum):
    """Entry attributes a listing may be ordered by."""

    ID = "id"
    NAME = "name"
    DESCRIPTION = "description"
    DATE = "date"
    VALUE = "value"
    CREATED_AT = "created_at"
    UPDATED_AT = "updated_at"


class SortDirection(str, Enum):
    ASC = "ASC"
    DESC = "DESC"


@dataclass(frozen=True)
class EntryListFilters:
    """Normalized filter set for entry listings."""

    terms: tuple[str, ...] = tuple()
    sort_field: SortField = SortField.ID
    direction: SortDirection = SortDirection.ASC
    limit: Optional[int] = None
    offset: int = 0


def tokenize_search_term(term: Optional[str]) -> tuple[str, ...]:
    """Split a search term into lowercase alphanumeric words."""

    if not term:
        return tuple()
    seen: Dict[str, None] = {}
    for word in _WORD_PATTERN.findall(term.lower()):
        seen.setdefault(word, None)
    return tuple(seen)


class EntryStoreGateway(Protocol):  # pragma: no cover
    """Persistence abstraction consumed by the entry service."""

    def create_entry(self, fields: Mapping[str, Any]) -> Entry: ...

    def get_entry(self, entry_id: int) -> Entry: ...

    def update_entry(self, entry_id: int, changes: Mapping[str, Any]) -> Entry: ...

    def delete_entry(self, entry_id: int) -> Entry: ...

    def search_by_term(self, term: str) -> List[Entry]: ...

    def count(self, filters: EntryListFilters) -> int: ...

    def list_entries(self, filters: EntryListFilters) -> List[Entry]: ...


class InMemoryEntryStoreGateway(EntryStoreGateway):
    """Simple in-memory EntryStore used for local development and tests."""

    def __init__(self) -> None:
        self._lock = RLock()
        self._entries: Dict[int, Entry] = {}
        self._ids = itertools.count(1)

    def create_entry(self, fields: Mapping[str, Any]) -> Entry:
        timestamp = utcnow()
        with self._lock:
            record = Entry(
                id=next(self._ids),
                name=fields["name"],
                description=fields.get("description"),
                date=fields["date"],
                value=fields["value"],
                created_at=timestamp,
                updated_at=timestamp,
            )
            self._entries[record.id] = record
        return record

    def get_entry(self, entry_id: int) -> Entry:
        with self._lock:
            record = self._entries.get(entry_id)
        if record is None:
            raise EntryNotFoundError(entry_id)
        return record

    def update_entry(self, entry_id: int, changes: Mapping[str, Any]) -> Entry:
        with self._lock:
            record = self._entries.get(entry_id)
            if record is None:
                raise EntryNotFoundError(entry_id)
            updated = record.with_fields(changes, timestamp=utcnow())
            self._entries[entry_id] = updated
        return updated

    def delete_entry(self, entry_id: int) -> Entry:
        with self._lock:
            record = self._entries.pop(entry_id, None)
        if record is None:
            raise EntryNotFoundError(entry_id)
        return record

    def search_by_term(self, term: str) -> List[Entry]:
        terms = tokenize_search_term(term)
        if not terms:
            return []
        return [
            entry for entry in self._snapshot() if _name_matches(entry.name, terms)
        ]

    def count(self, filters: EntryListFilters) -> int:
        return len(self._filtered(filters))

    def list_entries(self, filters: EntryListFilters) -> List[Entry]:
        matching = self._filtered(filters)
        column = filters.sort_field.value
        matching.sort(
            key=lambda entry: _null_last_key(getattr(entry, column)),
            reverse=filters.direction is SortDirection.DESC,
        )
        start = max(filters.offset, 0)
        if filters.limit is None:
            return matching[start:]
        return matching[start : start + max(filters.limit, 0)]

    def _snapshot(self) -> List[Entry]:
        with self._lock:
            return sorted(self._entries.values(), key=lambda entry: entry.id)

    def _filtered(self, filters: EntryListFilters) -> List[Entry]:
        records = self._snapshot()
        if not filters.terms:
            return records
        return [entry for entry in records if _name_matches(entry.name, filters.terms)]


class PostgresEntryStoreGateway(EntryStoreGateway):
    """SQLAlchemy-backed adapter.

    Search uses a prefix tsquery on PostgreSQL. Other dialects prefilter with
    ``LIKE '%term%'`` and apply the in-memory word-prefix rule to the rows.
    """

    def __init__(
        self,
        engine: Optional[Engine] = None,
        *,
        table: Optional[Table] = None,
    ) -> None:
        self._engine = engine or get_engine()
        self._entries = table if table is not None else entries_table
        self._use_tsvector = self._engine.dialect.name == "postgresql"

    def create_entry(self, fields: Mapping[str, Any]) -> Entry:
        timestamp = utcnow()
        stmt = (
            insert(self._entries)
            .values(
                name=fields["name"],
                description=fields.get("description"),
                date=fields["date"],
                value=fields["value"],
                created_at=timestamp,
                updated_at=timestamp,
            )
            .returning(self._entries)
        )
        with self._engine.begin() as conn:
            row = conn.execute(stmt).mappings().first()
        if row is None:  # pragma: no cover - defensive
            raise RuntimeError("failed to insert entry")
        return _row_to_entry(row)

    def get_entry(self, entry_id: int) -> Entry:
        with self._engine.begin() as conn:
            row = self._fetch_entry(conn, entry_id)
        return _row_to_entry(row)

    def update_entry(self, entry_id: int, changes: Mapping[str, Any]) -> Entry:
        with self._engine.begin() as conn:
            current = _row_to_entry(self._fetch_entry(conn, entry_id))
            updated = current.with_fields(changes, timestamp=utcnow())
            if updated is current:
                return current
            values = {key: getattr(updated, key) for key in ENTRY_FIELDS}
            stmt = (
                update(self._entries)
                .where(self._entries.c.id == entry_id)
                .values(**values, updated_at=updated.updated_at)
                .returning(self._entries)
            )
            row = conn.execute(stmt).mappings().first()
        if row is None:
            raise EntryNotFoundError(entry_id)
        return _row_to_entry(row)

    def delete_entry(self, entry_id: int) -> Entry:
        with self._engine.begin() as conn:
            row = self._fetch_entry(conn, entry_id)
            conn.execute(delete(self._entries).where(self._entries.c.id == entry_id))
        return _row_to_entry(row)

    def search_by_term(self, term: str) -> List[Entry]:
        terms = tokenize_search_term(term)
        if not terms:
            return []
        return self.list_entries(EntryListFilters(terms=terms))

    def count(self, filters: EntryListFilters) -> int:
        if filters.terms and not self._use_tsvector:
            return len(self._matching_in_python(self._ordered_select(filters), filters))
        stmt = select(func.count()).select_from(self._entries)
        condition = self._term_condition(filters.terms)
        if condition is not None:
            stmt = stmt.where(condition)
        with self._engine.begin() as conn:
            return int(conn.execute(stmt).scalar_one())

    def list_entries(self, filters: EntryListFilters) -> List[Entry]:
        stmt = self._ordered_select(filters)
        start = max(filters.offset, 0)
        if filters.terms and not self._use_tsvector:
            matching = self._matching_in_python(stmt, filters)
            if filters.limit is None:
                return matching[start:]
            return matching[start : start + max(filters.limit, 0)]
        if start:
            stmt = stmt.offset(start)
        if filters.limit is not None:
            stmt = stmt.limit(max(filters.limit, 0))
        with self._engine.begin() as conn:
            rows = conn.execute(stmt).mappings().all()
        return [_row_to_entry(row) for row in rows]

    def _ordered_select(self, filters: EntryListFilters) -> Select:
        table = self._entries
        sort_column = self._resolve_sort_column(filters.sort_field)
        order_clause = (
            sort_column.desc().nulls_first()
            if filters.direction is SortDirection.DESC
            else sort_column.asc().nulls_last()
        )
        stmt = select(table)
        condition = self._term_condition(filters.terms)
        if condition is not None:
            stmt = stmt.where(condition)
        return stmt.order_by(order_clause, table.c.id.asc())

    def _matching_in_python(
        self, stmt: Select, filters: EntryListFilters
    ) -> List[Entry]:
        """Apply the word-prefix rule to rows the LIKE prefilter let through."""

        with self._engine.begin() as conn:
            rows = conn.execute(stmt).mappings().all()
        return [
            entry
            for entry in map(_row_to_entry, rows)
            if _name_matches(entry.name, filters.terms)
        ]

    def _term_condition(self, terms: Iterable[str]) -> Optional[ColumnElement[bool]]:
        terms = tuple(terms)
        if not terms:
            return None
        name = self._entries.c.name
        if self._use_tsvector:
            query = " | ".join(f"{term}:*" for term in terms)
            return search_vector(name).bool_op("@@")(search_query(query))
        if not all(term.isascii() for term in terms):
            # SQLite lower() folds ASCII only; non-ASCII terms get no prefilter.
            return None
        lowered = func.lower(name)
        return or_(*(lowered.like(f"%{term}%") for term in terms))

    def _resolve_sort_column(self, sort_field: SortField):
        columns = {
            SortField.ID: self._entries.c.id,
            SortField.NAME: self._entries.c.name,
            SortField.DESCRIPTION: self._entries.c.description,
            SortField.DATE: self._entries.c.date,
            SortField.VALUE: self._entries.c.value,
            SortField.CREATED_AT: self._entries.c.created_at,
            SortField.UPDATED_AT: self._entries.c.updated_at,
        }
        return columns[sort_field]

    def _fetch_entry(self, conn: Connection, entry_id: int) -> Mapping[str, Any]:
        stmt = select(self._entries).where(self._entries.c.id == entry_id)
        row = conn.execute(stmt).mappings().first()
        if row is None:
            raise EntryNotFoundError(entry_id)
        return row


def build_entry_store_gateway(
    *,
    prefer_postgres: bool = True,
    fallback_to_memory: bool = False,
    ensure_schema: bool = False,
) -> EntryStoreGateway:
    """Factory that returns the desired EntryStore gateway implementation."""

    if prefer_postgres:
        try:
            engine = get_engine()
            if ensure_schema:
                create_schema(engine)
            return PostgresEntryStoreGateway(engine)
        except Exception:
            if not fallback_to_memory:
                raise
            logger.warning(
                "postgres_entry_store_unavailable_falling_back",
                exc_info=True,
            )
    return InMemoryEntryStoreGateway()


def _name_matches(name: str, terms: tuple[str, ...]) -> bool:
    words = _WORD_PATTERN.findall(name.lower())
    return any(word.startswith(term) for term in terms for word in words)


def _null_last_key(value: Any) -> tuple[bool, Any]:
    return (value is None, value if value is not None else 0)


def _row_to_entry(row: Mapping[str, Any]) -> Entry:
    return Entry(
        id=int(row["id"]),
        name=row["name"],
        description=row.get("description"),
        date=row["date"],
        value=row["value"],
        created_at=_as_utc(row["created_at"]),
        updated_at=_as_utc(row["updated_at"]),
    )


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value
