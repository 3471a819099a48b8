# tests/ledger_helpers.py
from typing import Optional

from com.lingenhag.lockstats.domain.models import DailyStat, EventKind, LockEvent
from com.lingenhag.lockstats.features.ledger.application.day_keys import day_label

# 2023-08-01 00:00:00 UTC (genesis day midnight); genesis tx at 08:28:11
GENESIS_MIDNIGHT = 1690848000
GENESIS_TS = 1690878491
DAY = 86400


def ts(day: int = 0, hour: int = 12, minute: int = 0) -> int:
    """Timestamp `day` days after the genesis day at hour:minute UTC."""
    return GENESIS_MIDNIGHT + day * DAY + hour * 3600 + minute * 60


def lock(actor: str, amount: int, at: int, deposit_before: int = 0, tx: Optional[str] = None) -> LockEvent:
    return LockEvent(
        kind=EventKind.LOCK,
        actor=actor,
        amount=amount,
        timestamp=at,
        deposit_before=deposit_before,
        when=at,
        block_number=17_800_000 + (at - GENESIS_MIDNIGHT) // 12,
        tx_hash=tx or f"0xlock{at}",
    )


def unlock(actor: str, amount: int, at: int, deposit_before: int = 0, tx: Optional[str] = None) -> LockEvent:
    return LockEvent(
        kind=EventKind.UNLOCK,
        actor=actor,
        amount=amount,
        timestamp=at,
        deposit_before=deposit_before,
        when=at,
        block_number=17_800_000 + (at - GENESIS_MIDNIGHT) // 12,
        tx_hash=tx or f"0xunlock{at}",
    )


def day_stat(index: int, day: int, is_added: bool = False, **counters) -> DailyStat:
    midnight = GENESIS_MIDNIGHT + day * DAY
    return DailyStat(
        index=index,
        day_label=day_label(midnight),
        normalized_timestamp=midnight,
        is_added=is_added,
        **counters,
    )
