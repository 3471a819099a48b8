# src/com/lingenhag/lockstats/features/ledger/application/usecases/record_event.py
from __future__ import annotations

import logging
from typing import Optional

from com.lingenhag.lockstats.domain.errors import LedgerError, OutOfOrderEventError
from com.lingenhag.lockstats.domain.models import (
    DailyStat,
    GenesisDay,
    IndexCounter,
    LockEvent,
    RecordOutcome,
)
from com.lingenhag.lockstats.features.ledger.application.actor_ledger import ActorLedger
from com.lingenhag.lockstats.features.ledger.application.day_keys import (
    day_label,
    days_since_genesis,
    normalize_to_midnight,
    resolve_index,
)
from com.lingenhag.lockstats.features.ledger.application.fold_utils import (
    apply_fold,
    find_fold_source,
    recompute_averages,
)
from com.lingenhag.lockstats.features.ledger.application.ports import LedgerRepositoryPort, LedgerSessionPort
from com.lingenhag.lockstats.platform.monitoring.metrics import Metrics

_LOG = logging.getLogger(__name__)


class AggregationEngine:
    """
    Wendet genau ein Lock/Unlock-Event auf das Tages-Ledger an.

    Ablauf pro Event (eine Transaktion):
      1. Tages-Slot auflösen, laden oder neu anlegen (Zähler erhöhen)
      2. Kind-Delta auf den aktuellen Tag
      3. Actor-Buchhaltung inkl. User-Deltas
      4. Rückwärtssuche nach dem jüngsten offenen Vortag
      5. Fold: Vortag aufaddieren und als gemergt markieren
      6. Durchschnitte neu berechnen
      7. Alles persistieren (Commit) – oder bei Fehler nichts

    Nicht idempotent: dasselbe Event zweimal zählt doppelt.
    """

    def __init__(
            self,
            repo: LedgerRepositoryPort,
            genesis: Optional[GenesisDay] = None,
            *,
            ledger: Optional[ActorLedger] = None,
            metrics: Optional[Metrics] = None,
    ) -> None:
        self.repo = repo
        self.genesis = genesis or GenesisDay()
        self.ledger = ledger or ActorLedger()
        self.metrics = metrics

    def record_event(self, event: LockEvent) -> Optional[RecordOutcome]:
        kind = event.kind.value
        if event.amount <= 0:
            _LOG.debug("Discarding %s event with amount=%s (tx=%s)", kind, event.amount, event.tx_hash)
            self._track_event(kind, "discarded")
            return None

        try:
            with self.repo.session() as session:
                outcome = self._apply(session, event)
        except LedgerError:
            self._track_event(kind, "rejected")
            raise

        self._track_event(kind, "applied")
        if self.metrics is not None:
            self.metrics.track_scan_steps(outcome.scan_steps)
            if outcome.allocated:
                self.metrics.track_allocation()
            if outcome.folded:
                self.metrics.track_fold()
        return outcome

    def _apply(self, session: LedgerSessionPort, event: LockEvent) -> RecordOutcome:
        # 1) Slot
        index = resolve_index(event.timestamp, session, self.genesis)
        counter = session.get_counter()
        current = session.get_day(index)
        allocated = False
        counter_changed = False

        if current is None:
            midnight = normalize_to_midnight(event.timestamp)
            current = DailyStat(index=index, day_label=day_label(midnight), normalized_timestamp=midnight)
            allocated = True
            if counter is None:
                counter = IndexCounter()
            else:
                counter = counter.increment()
            counter_changed = True
            _LOG.debug("Allocated day %s (%s), next index %s", index, current.day_label, counter.value)
        elif current.is_added:
            raise OutOfOrderEventError(f"Day {index} ({current.day_label}) was already folded forward")

        # 2) Delta on the current day only
        current = current.with_lock(event.amount) if event.is_lock else current.with_unlock(event.amount)

        # 3) Actor
        update = self.ledger.apply(session.get_actor(event.actor), event)
        current = current.with_user_deltas(
            total_users=update.total_users_delta,
            current_users=update.current_users_delta,
        )

        # 4) Fold source
        if counter is None:
            raise RuntimeError(f"index_counter fehlt, obwohl Tag {index} existiert. Ledger-Daten inkonsistent.")
        scan = find_fold_source(session, counter.value - 1)
        previous = scan.previous

        # 5) Fold
        retired: Optional[DailyStat] = None
        if previous is not None and previous.normalized_timestamp != current.normalized_timestamp:
            current, retired = apply_fold(current, previous)
            _LOG.debug("Folded day %s into day %s", retired.index, current.index)

        # 6) Averages
        days = days_since_genesis(current.normalized_timestamp, self.genesis)
        current = recompute_averages(current, days)

        # 7) Persist
        session.put_day(current)
        if retired is not None:
            session.put_day(retired)
        if counter_changed:
            session.put_counter(counter)
        session.put_actor(update.actor)
        session.append_event(event)

        return RecordOutcome(
            day=current,
            actor=update.actor,
            event=event,
            folded_from=retired,
            scan_steps=scan.steps,
            allocated=allocated,
        )

    def _track_event(self, kind: str, outcome: str) -> None:
        if self.metrics is not None:
            self.metrics.track_event(kind=kind, outcome=outcome)
