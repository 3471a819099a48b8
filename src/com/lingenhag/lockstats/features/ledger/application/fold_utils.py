# src/com/lingenhag/lockstats/features/ledger/application/fold_utils.py
from __future__ import annotations

from dataclasses import dataclass, replace
from decimal import Decimal
from typing import Optional, Tuple

from com.lingenhag.lockstats.domain.models import CUMULATIVE_FIELDS, DailyStat
from com.lingenhag.lockstats.features.ledger.application.ports import LedgerSessionPort

_CENTS = 100


@dataclass(frozen=True)
class FoldScan:
    previous: Optional[DailyStat]
    steps: int


def find_fold_source(session: LedgerSessionPort, start_index: int) -> FoldScan:
    """
    Sucht rückwärts ab `start_index` den jüngsten noch nicht gemergten Tag.

    Regeln:
      - fehlende Slots sind Lücken und werden übersprungen
      - der erste vorhandene Slot beendet die Suche:
          offen (is_added=False) → Fold-Quelle
          bereits gemergt        → keine Fold-Quelle (ältere sind es ebenfalls)
      - nach Index 0 ohne Treffer → keine Fold-Quelle

    Die Schleife macht höchstens start_index + 1 Schritte; ohne Lücken endet
    sie nach einem Schritt beim offenen Slot.
    """
    steps = 0
    for index in range(start_index, -1, -1):
        steps += 1
        candidate = session.get_day(index)
        if candidate is None:
            continue
        if candidate.is_added:
            return FoldScan(previous=None, steps=steps)
        return FoldScan(previous=candidate, steps=steps)
    return FoldScan(previous=None, steps=steps)


def apply_fold(current: DailyStat, previous: DailyStat) -> Tuple[DailyStat, DailyStat]:
    """
    Addiert alle kumulativen Zähler von `previous` auf `current` und markiert
    `previous` als gemergt. Liefert beide Records zurück; beide müssen in
    derselben Transaktion gespeichert werden.
    """
    if previous.is_added:
        raise ValueError(f"Day {previous.index} was already folded forward")
    if previous.normalized_timestamp == current.normalized_timestamp:
        raise ValueError("Cannot fold a day into itself")

    folded = {name: getattr(current, name) + getattr(previous, name) for name in CUMULATIVE_FIELDS}
    return replace(current, **folded), replace(previous, is_added=True)


def truncate_average(total: int, days: int) -> Decimal:
    """
    total / days, auf 2 Nachkommastellen abgeschnitten (nicht gerundet).

    Ganzzahlige Rechnung, exakt für Beträge beliebiger Grösse (wei).
    """
    if days <= 0:
        raise ValueError("days must be positive")
    cents = abs(total) * _CENTS // days
    sign = "-" if total < 0 and cents else ""
    return Decimal(f"{sign}{cents // _CENTS}.{cents % _CENTS:02d}")


def recompute_averages(stat: DailyStat, days: int) -> DailyStat:
    if days <= 0:
        return stat
    return replace(
        stat,
        avg_daily_deposits=truncate_average(stat.deposits_count, days),
        avg_daily_deposit_amount=truncate_average(stat.deposit_amount, days),
        avg_daily_withdrawals=truncate_average(stat.withdrawals_count, days),
        avg_daily_withdraw_amount=truncate_average(stat.withdraw_amount, days),
        avg_daily_users=truncate_average(stat.current_users, days),
    )
