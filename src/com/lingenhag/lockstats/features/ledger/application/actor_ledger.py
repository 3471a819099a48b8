# src/com/lingenhag/lockstats/features/ledger/application/actor_ledger.py
from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Optional

from com.lingenhag.lockstats.domain.models import Actor, LockEvent


@dataclass(frozen=True)
class ActorUpdate:
    actor: Actor
    total_users_delta: int = 0
    current_users_delta: int = 0


class ActorLedger:
    """
    Per-Address-Buchhaltung (Saldo, Lifetime-Summen) und die daraus folgenden
    User-Deltas für den aktuellen Tages-Record.
    """

    def apply(self, actor: Optional[Actor], event: LockEvent) -> ActorUpdate:
        if event.is_lock:
            return self.deposit(actor, event)
        return self.withdraw(actor, event)

    def deposit(self, actor: Optional[Actor], event: LockEvent) -> ActorUpdate:
        total_delta = 0
        current_delta = 0
        if actor is None:
            actor = Actor(address=event.actor)
            total_delta = 1
            current_delta = 1
        elif event.deposit_before == 0:
            # Reaktivierung: wurde beim Unlock auf 0 bereits abgezogen
            current_delta = 1

        balance = actor.balance_locked + event.amount
        updated = replace(
            actor,
            balance_locked=balance,
            total_locked=actor.total_locked + event.amount,
            is_balance_positive=True if balance > 0 else actor.is_balance_positive,
        )
        return ActorUpdate(actor=updated, total_users_delta=total_delta, current_users_delta=current_delta)

    def withdraw(self, actor: Optional[Actor], event: LockEvent) -> ActorUpdate:
        if actor is None:
            actor = Actor(address=event.actor)

        balance = actor.balance_locked - event.amount
        current_delta = 0
        positive = actor.is_balance_positive
        if balance <= 0:
            current_delta = -1
            positive = False

        updated = replace(
            actor,
            balance_locked=balance,
            total_unlocked=actor.total_unlocked + event.amount,
            is_balance_positive=positive,
        )
        return ActorUpdate(actor=updated, current_users_delta=current_delta)
