# src/com/lingenhag/lockstats/features/ledger/application/usecases/ledger_queries.py
from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import List, Optional

from com.lingenhag.lockstats.domain.models import Actor, DailyStat, LockEvent
from com.lingenhag.lockstats.features.ledger.application.ports import LedgerRepositoryPort


@dataclass(frozen=True)
class LedgerOverview:
    days: int
    latest_day: Optional[str]
    total_staked: int
    total_users: int
    current_users: int
    avg_daily_deposits: Decimal
    avg_daily_withdrawals: Decimal


class LedgerQueries:
    def __init__(self, repo: LedgerRepositoryPort) -> None:
        self.repo = repo

    def latest_day(self) -> Optional[DailyStat]:
        return self.repo.latest_day()

    def days(self, start_index: int = 0, limit: int = 100) -> List[DailyStat]:
        if start_index < 0:
            raise ValueError("start_index must be >= 0")
        if limit < 1:
            raise ValueError("limit must be positive")
        return self.repo.fetch_days(start_index=start_index, limit=limit)

    def actor(self, address: str) -> Optional[Actor]:
        return self.repo.fetch_actor(address.strip().lower())

    def events(self, actor: Optional[str] = None, limit: int = 100) -> List[LockEvent]:
        address = actor.strip().lower() if actor else None
        return self.repo.fetch_events(actor=address, limit=limit)

    def overview(self) -> LedgerOverview:
        latest = self.repo.latest_day()
        if latest is None:
            return LedgerOverview(
                days=0,
                latest_day=None,
                total_staked=0,
                total_users=0,
                current_users=0,
                avg_daily_deposits=Decimal("0"),
                avg_daily_withdrawals=Decimal("0"),
            )
        return LedgerOverview(
            days=self.repo.count_days(),
            latest_day=latest.day_label,
            total_staked=latest.total_staked,
            total_users=latest.total_users,
            current_users=latest.current_users,
            avg_daily_deposits=latest.avg_daily_deposits,
            avg_daily_withdrawals=latest.avg_daily_withdrawals,
        )
