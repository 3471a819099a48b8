# src/com/lingenhag/lockstats/platform/monitoring/metrics.py
from __future__ import annotations

import logging
from typing import Optional

from prometheus_client import CollectorRegistry, Counter, Histogram, start_http_server

logger = logging.getLogger(__name__)


class Metrics:
    def __init__(self, port: int = 8000, registry: Optional[CollectorRegistry] = None):
        # One registry per instance
        self.registry = registry if registry is not None else CollectorRegistry()

        # ---- Event outcomes ----
        # outcome: applied | discarded | rejected
        self.events_total = Counter(
            "ledger_events_total",
            "Lock/unlock events seen by the ledger (per kind/outcome).",
            ["kind", "outcome"],
            registry=self.registry,
        )

        # ---- Day slots ----
        self.days_allocated_total = Counter(
            "ledger_days_allocated_total",
            "Number of newly allocated day slots.",
            registry=self.registry,
        )
        self.folds_total = Counter(
            "ledger_folds_total",
            "Number of days folded forward into a newer day.",
            registry=self.registry,
        )
        self.fold_scan_steps = Histogram(
            "ledger_fold_scan_steps",
            "Slots visited by the backward fold-source scan per event.",
            buckets=(1, 2, 3, 5, 10, 50, 100, float("inf")),
            registry=self.registry,
        )

        # ---- Ingest ----
        self.ingest_duration_seconds = Histogram(
            "ledger_ingest_duration_seconds",
            "Duration of a feed ingest run in seconds.",
            buckets=(0.1, 0.5, 1.0, 2.0, 5.0, 10.0, 30.0, float("inf")),
            registry=self.registry,
        )

        self._port = port
        self._started = False

    # ---- Server lifecycle ----
    def start_server(self) -> None:
        if not self._started:
            start_http_server(self._port, registry=self.registry)
            self._started = True
            logger.info("Prometheus metrics server started on port %s", self._port)

    # ---- Helpers ----
    def track_event(self, *, kind: str, outcome: str) -> None:
        self.events_total.labels(kind=kind, outcome=outcome).inc()

    def track_allocation(self) -> None:
        self.days_allocated_total.inc()

    def track_fold(self) -> None:
        self.folds_total.inc()

    def track_scan_steps(self, steps: int) -> None:
        self.fold_scan_steps.observe(steps)

    def track_ingest_duration(self, duration: float) -> None:
        self.ingest_duration_seconds.observe(duration)
