"""Database connection helpers."""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine, make_url

from ..config import load_settings


def build_engine(url: str) -> Engine:
    """Create an engine, preparing SQLite file paths when needed."""

    parsed = make_url(url)
    if parsed.get_backend_name() == "sqlite":
        database = parsed.database
        if database and database != ":memory:":
            Path(database).expanduser().resolve().parent.mkdir(
                parents=True, exist_ok=True
            )
        return create_engine(
            url,
            connect_args={"check_same_thread": False},
            future=True,
        )
    return create_engine(url, echo=False, future=True, pool_pre_ping=True)


@lru_cache()
def get_engine() -> Engine:
    """Return the process-wide engine configured from settings."""

    return build_engine(load_settings().database_url)
