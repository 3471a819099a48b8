# tests/features/ledger/test_duckdb_ledger_repository.py
from dataclasses import replace
from decimal import Decimal

import duckdb
import pytest

from com.lingenhag.lockstats.domain.models import Actor, IndexCounter
from com.lingenhag.lockstats.features.ledger.application.day_keys import encode_day_key
from com.lingenhag.lockstats.features.ledger.infrastructure.repositories.duckdb_ledger_repository import (
    DuckDBLedgerRepository,
)
from ledger_helpers import day_stat, lock, ts, unlock


def test_day_round_trip_keeps_large_amounts(ledger_repo):
    huge = 123_456_789 * 10**30
    stat = day_stat(
        0, 0,
        deposit_amount=huge, total_staked=huge - 1, deposits_count=2, total_users=2, current_users=1,
        avg_daily_deposit_amount=Decimal("61728394500000000000000000000000000000.50"),
    )
    with ledger_repo.session() as session:
        session.put_day(stat)

    with ledger_repo.session() as session:
        assert session.get_day(0) == stat
        assert session.get_day(1) is None


def test_put_day_updates_existing_slot(ledger_repo):
    with ledger_repo.session() as session:
        session.put_day(day_stat(0, 0, deposit_amount=10))
    with ledger_repo.session() as session:
        session.put_day(replace(day_stat(0, 0, deposit_amount=25), is_added=True))

    assert ledger_repo.count_days() == 1
    stored = ledger_repo.latest_day()
    assert stored.deposit_amount == 25
    assert stored.is_added is True


def test_day_key_column_holds_big_endian_index(ledger_repo, db_path):
    with ledger_repo.session() as session:
        session.put_day(day_stat(300, 300))

    with duckdb.connect(db_path) as con:
        key, index = con.execute("SELECT day_key, day_index FROM daily_stats").fetchone()
    assert bytes(key) == encode_day_key(300)
    assert index == 300


def test_latest_day_and_fetch_days_follow_index_order(ledger_repo):
    with ledger_repo.session() as session:
        # 256 sorts before 2 as text but after it as a fixed-width key
        for index in (256, 2, 0, 1):
            session.put_day(day_stat(index, index))

    assert ledger_repo.latest_day().index == 256
    assert [d.index for d in ledger_repo.fetch_days()] == [0, 1, 2, 256]
    assert [d.index for d in ledger_repo.fetch_days(start_index=2, limit=1)] == [2]
    assert ledger_repo.count_days() == 4


def test_counter_is_absent_until_written(ledger_repo):
    with ledger_repo.session() as session:
        assert session.get_counter() is None
        session.put_counter(IndexCounter())
    with ledger_repo.session() as session:
        session.put_counter(session.get_counter().increment())
    with ledger_repo.session() as session:
        assert session.get_counter() == IndexCounter(value=2)


def test_actor_round_trip_and_update(ledger_repo):
    actor = Actor(address="0xabc", balance_locked=-5, total_locked=0, total_unlocked=5)
    with ledger_repo.session() as session:
        session.put_actor(actor)
        session.put_actor(replace(actor, balance_locked=95, total_locked=100, is_balance_positive=True))

    stored = ledger_repo.fetch_actor("0xabc")
    assert stored.balance_locked == 95
    assert stored.total_locked == 100
    assert stored.is_balance_positive is True
    assert ledger_repo.fetch_actor("0xdef") is None


def test_fetch_events_returns_newest_in_chronological_order(ledger_repo):
    events = [
        lock("0xa", 100, ts(0, 1)),
        lock("0xb", 10**24, ts(0, 2)),
        unlock("0xa", 40, ts(1, 3), deposit_before=100),
    ]
    with ledger_repo.session() as session:
        ids = [session.append_event(e) for e in events]

    assert ids == sorted(ids)
    assert ledger_repo.fetch_events() == events
    assert ledger_repo.fetch_events(limit=2) == events[1:]
    assert ledger_repo.fetch_events(actor="0xa") == [events[0], events[2]]


def test_session_rolls_back_on_error(ledger_repo):
    with pytest.raises(ValueError):
        with ledger_repo.session() as session:
            session.put_day(day_stat(0, 0))
            session.put_counter(IndexCounter())
            raise ValueError("boom")

    assert ledger_repo.count_days() == 0
    with ledger_repo.session() as session:
        assert session.get_counter() is None


def test_missing_schema_raises_runtime_error(tmp_path):
    repo = DuckDBLedgerRepository(tmp_path / "empty.duckdb")

    with pytest.raises(RuntimeError, match="Migration"):
        repo.latest_day()
    with pytest.raises(RuntimeError, match="Migration"):
        with repo.session():
            pass
