"""Table definition for persisted ledger entries."""

from __future__ import annotations

from sqlalchemy import (
    Column,
    Date,
    DateTime,
    Index,
    Integer,
    MetaData,
    Numeric,
    String,
    Table,
    Text,
    func,
    literal_column,
)
from sqlalchemy.engine import Engine

from ...infra.logging import get_logger
from .models import NAME_MAX_LENGTH, VALUE_PRECISION, VALUE_SCALE

logger = get_logger(__name__)

SEARCH_DICTIONARY = "simple"
_DICTIONARY = literal_column(f"'{SEARCH_DICTIONARY}'")


def search_vector(column):
    """`to_tsvector` over ``column``; must stay identical to the index expression."""

    return func.to_tsvector(_DICTIONARY, column)


def search_query(expression: str):
    return func.to_tsquery(_DICTIONARY, expression)


metadata = MetaData()

entries = Table(
    "entries",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("name", String(NAME_MAX_LENGTH), nullable=False),
    Column("description", Text, nullable=True),
    Column("date", Date, nullable=False),
    Column("value", Numeric(VALUE_PRECISION, VALUE_SCALE), nullable=False),
    Column("created_at", DateTime(timezone=True), nullable=False),
    Column("updated_at", DateTime(timezone=True), nullable=False),
)

Index(
    "IDX_entries_name_tsv",
    search_vector(entries.c.name),
    postgresql_using="gin",
).ddl_if(dialect="postgresql")


def create_schema(engine: Engine) -> None:
    """Create the entries table (and its search index) when missing."""

    metadata.create_all(engine, checkfirst=True)
    logger.info(
        "entry_schema_ready",
        extra={"dialect": engine.dialect.name, "table": entries.name},
    )
