"""Service health endpoint."""

from typing import Any

from fastapi import APIRouter, Depends
from sqlalchemy.exc import SQLAlchemyError

from ...api.dependencies import get_entry_service, get_metrics, get_settings
from ...config import Settings
from ...domain.entrystore import EntryService
from ...infra.logging import get_logger
from ...infra.metrics import InMemoryMetricsClient

router = APIRouter(prefix="/api/v1", tags=["health"])
logger = get_logger(__name__)


@router.get("/healthz")
def healthcheck(
    settings: Settings = Depends(get_settings),
    service: EntryService = Depends(get_entry_service),
    metrics: InMemoryMetricsClient = Depends(get_metrics),
) -> dict[str, Any]:
    """Return coarse-grained readiness information."""

    try:
        total_entries: int | None = service.count()
        entry_store = "ok"
    except SQLAlchemyError:
        logger.exception("healthcheck_entry_store_failed")
        total_entries = None
        entry_store = "unavailable"

    return {
        "status": "ok" if entry_store == "ok" else "degraded",
        "environment": settings.environment,
        "entryStore": entry_store,
        "totalEntries": total_entries,
        "metrics": metrics.snapshot(),
    }
