"""Entry service composing validation, lookup and persistence."""

from __future__ import annotations

from decimal import Decimal
from typing import Any, Dict, List, Mapping

from ...infra.events import EntryEventTopic, EventEmitter, get_event_emitter
from ...infra.logging import get_logger
from ...infra.metrics import MetricsClient, get_metrics_client
from .errors import EntryValidationError
from .gateway import EntryListFilters, EntryStoreGateway, InMemoryEntryStoreGateway
from .listing import (
    DEFAULT_PER_PAGE,
    MAX_PER_PAGE,
    EntryListing,
    compose_listing,
    parse_listing_query,
)
from .models import (
    ENTRY_FIELDS,
    VALUE_SCALE,
    Entry,
    merge_entry_fields,
    normalize_entry_fields,
    utcnow,
    validate_entry_fields,
)

logger = get_logger(__name__)


class EntryService:
    """Validation + audit layer over entry persistence."""

    def __init__(
        self,
        *,
        gateway: EntryStoreGateway | None = None,
        event_emitter: EventEmitter | None = None,
        metrics: MetricsClient | None = None,
        default_per_page: int = DEFAULT_PER_PAGE,
        max_per_page: int = MAX_PER_PAGE,
    ) -> None:
        self._gateway = gateway or InMemoryEntryStoreGateway()
        self._event_emitter = event_emitter or get_event_emitter()
        self._metrics = metrics or get_metrics_client()
        self._default_per_page = default_per_page
        self._max_per_page = max_per_page

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------
    def list(
        self,
        *,
        order_by: str | None = None,
        direction: str | None = None,
        page: Any = None,
        per_page: Any = None,
        search: str | None = None,
    ) -> EntryListing:
        query = parse_listing_query(
            order_by=order_by,
            direction=direction,
            page=page,
            per_page=per_page,
            search=search,
            default_per_page=self._default_per_page,
            max_per_page=self._max_per_page,
        )
        listing = compose_listing(self._gateway, query)
        logger.debug(
            "entries_listed",
            extra={
                "order_by": listing.order_by,
                "direction": listing.direction,
                "page": listing.page,
                "per_page": listing.per_page,
                "search_applied": listing.search is not None,
                "total": listing.total,
            },
        )
        return listing

    def find(self, entry_id: int) -> Entry:
        return self._gateway.get_entry(entry_id)

    def search_by_term(self, term: str) -> List[Entry]:
        return self._gateway.search_by_term(term)

    def count(self, filters: EntryListFilters | None = None) -> int:
        return self._gateway.count(filters or EntryListFilters())

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------
    def create(self, payload: Mapping[str, Any]) -> Entry:
        fields = self._validated(normalize_entry_fields(payload))
        entry = self._gateway.create_entry(fields)
        self._emit_entry_event(EntryEventTopic.CREATED, before=None, after=entry)
        self._refresh_total_metric()
        logger.info("entry_created", extra={"entry_id": entry.id})
        return entry

    def update(self, entry_id: int, payload: Mapping[str, Any]) -> Entry:
        before = self._gateway.get_entry(entry_id)
        changes = normalize_entry_fields(payload)
        merged = self._validated(merge_entry_fields(before, changes))
        changes = {key: merged[key] for key in changes}
        updated = self._gateway.update_entry(entry_id, changes)
        if updated == before:
            self._safe_metrics_increment("entries_update_noop_total")
            return updated
        self._emit_entry_event(EntryEventTopic.UPDATED, before=before, after=updated)
        logger.info(
            "entry_updated",
            extra={
                "entry_id": entry_id,
                "changed_fields": sorted(self._build_delta(before, updated)),
            },
        )
        return updated

    def delete(self, entry_id: int) -> Entry:
        self._gateway.get_entry(entry_id)
        removed = self._gateway.delete_entry(entry_id)
        self._emit_entry_event(EntryEventTopic.DELETED, before=removed, after=None)
        self._refresh_total_metric()
        logger.warning("entry_deleted", extra={"entry_id": entry_id})
        return removed

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------
    def _validated(self, fields: Dict[str, Any]) -> Dict[str, Any]:
        errors = validate_entry_fields(fields)
        if errors:
            self._safe_metrics_increment("entries_validation_failed_total")
            logger.info(
                "entry_validation_failed",
                extra={"fields": sorted(errors)},
            )
            raise EntryValidationError(errors)
        prepared = dict(fields)
        if "value" in prepared:
            prepared["value"] = prepared["value"].quantize(
                Decimal(1).scaleb(-VALUE_SCALE)
            )
        return prepared

    def _emit_entry_event(
        self,
        topic: EntryEventTopic,
        *,
        before: Entry | None,
        after: Entry | None,
    ) -> None:
        row = after or before
        if row is None:
            return
        payload = {
            "entry_id": row.id,
            "action": topic.action,
            "changes": {
                "before": before.snapshot() if before else None,
                "after": after.snapshot() if after else None,
                "delta": self._build_delta(before, after),
            },
            "occurred_at": utcnow().isoformat(),
        }
        try:
            self._event_emitter.emit(topic.value, payload)
        except Exception:  # pragma: no cover - defensive
            logger.exception(
                "entry_event_emit_failed",
                extra={"topic": topic.value, "entry_id": row.id},
            )
        self._safe_metrics_increment(f"entries_{topic.action}_total")

    @staticmethod
    def _build_delta(before: Entry | None, after: Entry | None) -> Dict[str, Any]:
        before_snapshot = before.snapshot() if before else {}
        after_snapshot = after.snapshot() if after else {}
        delta: Dict[str, Any] = {}
        for key in ENTRY_FIELDS:
            before_value = before_snapshot.get(key)
            after_value = after_snapshot.get(key)
            if before_value != after_value:
                delta[key] = {"before": before_value, "after": after_value}
        return delta

    def _refresh_total_metric(self) -> None:
        try:
            total = self._gateway.count(EntryListFilters())
        except Exception:  # pragma: no cover - defensive
            logger.exception("entries_total_metric_refresh_failed")
            return
        self._safe_metrics_gauge("entries_total", total)

    def _safe_metrics_increment(self, metric: str, value: int = 1) -> None:
        try:
            self._metrics.increment(metric, value)
        except Exception:  # pragma: no cover - defensive
            logger.exception(
                "metrics_increment_failed",
                extra={"metric": metric, "value": value},
            )

    def _safe_metrics_gauge(self, metric: str, value: int) -> None:
        try:
            self._metrics.gauge(metric, value)
        except Exception:  # pragma: no cover - defensive
            logger.exception(
                "metrics_gauge_failed",
                extra={"metric": metric, "value": value},
            )
