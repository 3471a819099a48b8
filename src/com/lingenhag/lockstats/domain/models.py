# src/com/lingenhag/lockstats/domain/models.py
from __future__ import annotations
from dataclasses import dataclass, field, replace
from decimal import Decimal
from enum import Enum
from typing import Optional, Tuple

# -----------------------------
# Events
# -----------------------------
class EventKind(Enum):
    LOCK = "lock"
    UNLOCK = "unlock"


@dataclass(frozen=True)
class LockEvent:
    kind: EventKind
    actor: str
    amount: int
    timestamp: int  # seconds since epoch (block timestamp)
    deposit_before: int = 0
    when: Optional[int] = None  # schedule field from the contract event
    block_number: Optional[int] = None
    tx_hash: Optional[str] = None

    @property
    def is_lock(self) -> bool:
        return self.kind is EventKind.LOCK

    @property
    def is_unlock(self) -> bool:
        return self.kind is EventKind.UNLOCK


# -----------------------------
# Genesis
# -----------------------------
@dataclass(frozen=True)
class GenesisDay:
    label: str = "Tue Aug 01 2023"
    timestamp: int = 1690878491
    seconds_per_day: int = 86400


# -----------------------------
# Day slots
# -----------------------------
ZERO_AVG = Decimal("0")


@dataclass(frozen=True)
class DailyStat:
    index: int
    day_label: str
    normalized_timestamp: int
    is_added: bool = False
    # Cumulative counters (own delta + everything folded in from earlier days)
    deposit_amount: int = 0
    withdraw_amount: int = 0
    deposits_count: int = 0
    withdrawals_count: int = 0
    total_staked: int = 0
    total_users: int = 0
    current_users: int = 0
    # Trailing averages, truncated to 2 decimals
    avg_daily_deposits: Decimal = ZERO_AVG
    avg_daily_deposit_amount: Decimal = ZERO_AVG
    avg_daily_withdrawals: Decimal = ZERO_AVG
    avg_daily_withdraw_amount: Decimal = ZERO_AVG
    avg_daily_users: Decimal = ZERO_AVG

    def __post_init__(self):
        if self.index < 0:
            raise ValueError("Day index must be >= 0")

    def with_lock(self, amount: int) -> "DailyStat":
        return replace(
            self,
            deposit_amount=self.deposit_amount + amount,
            total_staked=self.total_staked + amount,
            deposits_count=self.deposits_count + 1,
        )

    def with_unlock(self, amount: int) -> "DailyStat":
        return replace(
            self,
            withdraw_amount=self.withdraw_amount + amount,
            total_staked=self.total_staked - amount,
            withdrawals_count=self.withdrawals_count + 1,
        )

    def with_user_deltas(self, total_users: int = 0, current_users: int = 0) -> "DailyStat":
        if not total_users and not current_users:
            return self
        return replace(
            self,
            total_users=self.total_users + total_users,
            current_users=self.current_users + current_users,
        )


# Counters carried forward by a fold. Averages are derived and never folded.
CUMULATIVE_FIELDS = (
    "deposit_amount",
    "withdraw_amount",
    "deposits_count",
    "withdrawals_count",
    "total_staked",
    "total_users",
    "current_users",
)


@dataclass(frozen=True)
class IndexCounter:
    """Next day index to allocate."""

    value: int = 1

    def increment(self) -> "IndexCounter":
        return IndexCounter(value=self.value + 1)


# -----------------------------
# Actors
# -----------------------------
@dataclass(frozen=True)
class Actor:
    address: str
    balance_locked: int = 0
    total_locked: int = 0
    total_unlocked: int = 0
    is_balance_positive: bool = False


# -----------------------------
# Results
# -----------------------------
@dataclass(frozen=True)
class RecordOutcome:
    day: DailyStat
    actor: Actor
    event: LockEvent
    folded_from: Optional[DailyStat] = None  # retired record, if a fold happened
    scan_steps: int = 0
    allocated: bool = False

    @property
    def folded(self) -> bool:
        return self.folded_from is not None


@dataclass(frozen=True)
class IngestSummary:
    total: int
    applied: int
    discarded: int
    rejected: int
    days_allocated: int
    folds: int
    rejections: Tuple[str, ...] = field(default_factory=tuple)
