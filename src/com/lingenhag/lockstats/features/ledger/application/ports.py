# src/com/lingenhag/lockstats/features/ledger/application/ports.py
from __future__ import annotations

from contextlib import AbstractContextManager
from typing import List, Optional, Protocol

from com.lingenhag.lockstats.domain.models import Actor, DailyStat, IndexCounter, LockEvent


class LedgerSessionPort(Protocol):
    """
    Schreib-/Lesezugriff innerhalb genau einer Transaktion.
    Alles, was während eines Events geschrieben wird (Tag, Vortag, Zähler,
    Actor, Event-Log), wird gemeinsam committed oder gemeinsam verworfen.
    """

    # Day slots, addressed by dense index (stored under a fixed-width key)
    def get_day(self, index: int) -> Optional[DailyStat]:
        ...

    def put_day(self, stat: DailyStat) -> None:
        ...

    # Global index counter
    def get_counter(self) -> Optional[IndexCounter]:
        ...

    def put_counter(self, counter: IndexCounter) -> None:
        ...

    # Actors
    def get_actor(self, address: str) -> Optional[Actor]:
        ...

    def put_actor(self, actor: Actor) -> None:
        ...

    # Append-only event log
    def append_event(self, event: LockEvent) -> int:
        ...


class LedgerRepositoryPort(Protocol):
    def session(self) -> AbstractContextManager[LedgerSessionPort]:
        """Öffnet eine Transaktion; Commit beim Verlassen, Rollback bei Exception."""
        ...

    # ---- Read side ----
    def latest_day(self) -> Optional[DailyStat]:
        ...

    def fetch_days(self, start_index: int = 0, limit: int = 100) -> List[DailyStat]:
        ...

    def fetch_actor(self, address: str) -> Optional[Actor]:
        ...

    def fetch_events(self, actor: Optional[str] = None, limit: int = 100) -> List[LockEvent]:
        ...

    def count_days(self) -> int:
        ...
