"""Audit trail for ledger entry mutations."""

from __future__ import annotations

from enum import Enum
from typing import Any, Mapping, Protocol

from .logging import get_logger

audit_logger = get_logger("audit")


class EntryEventTopic(str, Enum):
    CREATED = "entry.created"
    UPDATED = "entry.updated"
    DELETED = "entry.deleted"

    @property
    def action(self) -> str:
        return self.value.split(".", 1)[1]


class EventEmitter(Protocol):  # pragma: no cover - interface only
    def emit(self, topic: str, payload: Mapping[str, Any]) -> None: ...


class AuditLogEmitter:
    """Writes one ``entry_audit`` record per mutation to ``ledger.audit``.

    The record carries the entry id and the names of the changed fields as
    top-level keys so log queries need not unpack the full change set.
    """

    def emit(self, topic: str, payload: Mapping[str, Any]) -> None:
        changes = payload.get("changes") or {}
        audit_logger.info(
            "entry_audit",
            extra={
                "topic": EntryEventTopic(topic).value,
                "entry_id": payload.get("entry_id"),
                "changed_fields": sorted(changes.get("delta") or {}),
                "changes": changes,
                "occurred_at": payload.get("occurred_at"),
            },
        )


_emitter: AuditLogEmitter | None = None


def get_event_emitter() -> EventEmitter:
    """Return the process-wide audit emitter."""

    global _emitter
    if _emitter is None:
        _emitter = AuditLogEmitter()
    return _emitter
