# src/com/lingenhag/lockstats/features/ledger/application/usecases/ingest_events.py
from __future__ import annotations

import logging
import time
from typing import Iterable, List, Optional

from com.lingenhag.lockstats.domain.errors import OutOfOrderEventError
from com.lingenhag.lockstats.domain.models import IngestSummary, LockEvent
from com.lingenhag.lockstats.features.ledger.application.usecases.record_event import AggregationEngine
from com.lingenhag.lockstats.platform.monitoring.metrics import Metrics

_LOG = logging.getLogger(__name__)


class IngestEvents:
    """
    Treibt die AggregationEngine über einen (zeitlich geordneten) Event-Feed.

    Counter-Semantik:
    - total: alle gelesenen Events
    - applied: Events, die committed wurden
    - discarded: amount <= 0 (fachliche Regel, kein Fehler)
    - rejected: Events mit kleinerem Timestamp als das zuletzt angewendete
      oder auf einem bereits abgeschlossenen Tag
    Store-Fehler werden nicht gezählt, sondern propagiert.
    """

    def __init__(self, engine: AggregationEngine, *, metrics: Optional[Metrics] = None) -> None:
        self.engine = engine
        self.metrics = metrics

    def run(self, events: Iterable[LockEvent], verbose: bool = False, progress_every: int = 1000) -> IngestSummary:
        total = 0
        applied = 0
        discarded = 0
        rejected = 0
        days_allocated = 0
        folds = 0
        rejections: List[str] = []
        last_ts: Optional[int] = None

        start_time = time.time()
        for event in events:
            total += 1
            if last_ts is not None and event.timestamp < last_ts and event.amount > 0:
                reason = f"timestamp {event.timestamp} < last applied {last_ts} (tx={event.tx_hash})"
                _LOG.warning("Rejecting out-of-order event: %s", reason)
                if self.metrics is not None:
                    self.metrics.track_event(kind=event.kind.value, outcome="rejected")
                rejected += 1
                rejections.append(reason)
                continue

            try:
                outcome = self.engine.record_event(event)
            except OutOfOrderEventError as e:
                _LOG.warning("Rejecting out-of-order event (tx=%s): %s", event.tx_hash, e)
                rejected += 1
                rejections.append(str(e))
                continue

            if outcome is None:
                discarded += 1
                continue

            applied += 1
            last_ts = event.timestamp
            if outcome.allocated:
                days_allocated += 1
            if outcome.folded:
                folds += 1

            if verbose and progress_every > 0 and total % progress_every == 0:
                _LOG.info("[ingest] processed=%d applied=%d day=%s", total, applied, outcome.day.day_label)

        if self.metrics is not None:
            self.metrics.track_ingest_duration(time.time() - start_time)

        return IngestSummary(
            total=total,
            applied=applied,
            discarded=discarded,
            rejected=rejected,
            days_allocated=days_allocated,
            folds=folds,
            rejections=tuple(rejections),
        )
