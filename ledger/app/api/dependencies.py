"""Shared API dependencies."""

from __future__ import annotations

from functools import lru_cache

from ..config import Settings, load_settings
from ..domain.entrystore import EntryService, build_entry_store_gateway
from ..infra.metrics import InMemoryMetricsClient, get_metrics_client

__all__ = [
    "get_entry_service",
    "get_metrics",
    "get_settings",
]


@lru_cache()
def _entry_service_singleton() -> EntryService:
    settings = load_settings()
    gateway = build_entry_store_gateway(
        ensure_schema=settings.database.auto_create_schema,
    )
    return EntryService(
        gateway=gateway,
        default_per_page=settings.listing.default_per_page,
        max_per_page=settings.listing.max_per_page,
    )


def get_entry_service() -> EntryService:
    """Return the process-wide entry service instance."""

    return _entry_service_singleton()


def get_metrics() -> InMemoryMetricsClient:
    return get_metrics_client()


def get_settings() -> Settings:
    return load_settings()
