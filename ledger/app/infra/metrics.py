"""Process-local counters and gauges for ledger operations."""

from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass, field
from threading import Lock
from typing import DefaultDict, Dict

from .logging import get_logger

logger = get_logger(__name__)


class MetricsClient:  # pragma: no cover - interface only
    """Counter/gauge interface consumed by the entry service and routers."""

    def increment(self, metric: str, value: int = 1) -> None:
        raise NotImplementedError

    def gauge(self, metric: str, value: int) -> None:
        raise NotImplementedError


@dataclass
class InMemoryMetricsClient(MetricsClient):
    """Metrics sink shared by request threads; exposed via /healthz."""

    counters: DefaultDict[str, int] = field(default_factory=lambda: defaultdict(int))
    gauges: Dict[str, int] = field(default_factory=dict)
    _lock: Lock = field(default_factory=Lock, repr=False, compare=False)

    def increment(self, metric: str, value: int = 1) -> None:
        with self._lock:
            self.counters[metric] += value
        logger.debug("metrics_increment", extra={"metric": metric, "value": value})

    def gauge(self, metric: str, value: int) -> None:
        with self._lock:
            self.gauges[metric] = value
        logger.debug("metrics_gauge", extra={"metric": metric, "value": value})

    def snapshot(self) -> Dict[str, Dict[str, int]]:
        with self._lock:
            return {"counters": dict(self.counters), "gauges": dict(self.gauges)}


_metrics_singleton: InMemoryMetricsClient | None = None


def get_metrics_client() -> InMemoryMetricsClient:
    """Return the shared metrics client."""

    global _metrics_singleton
    if _metrics_singleton is None:
        _metrics_singleton = InMemoryMetricsClient()
    return _metrics_singleton
