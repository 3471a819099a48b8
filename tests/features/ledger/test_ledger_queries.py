# tests/features/ledger/test_ledger_queries.py
from decimal import Decimal
from unittest.mock import Mock

import pytest

from com.lingenhag.lockstats.features.ledger.application.ports import LedgerRepositoryPort
from com.lingenhag.lockstats.features.ledger.application.usecases.ledger_queries import LedgerQueries
from ledger_helpers import GENESIS_TS, lock, ts, unlock


@pytest.fixture
def mock_repo():
    repo = Mock(spec=LedgerRepositoryPort)
    repo.latest_day.return_value = None
    repo.fetch_days.return_value = []
    repo.fetch_events.return_value = []
    return repo


def test_days_validates_paging(mock_repo):
    queries = LedgerQueries(mock_repo)
    with pytest.raises(ValueError):
        queries.days(start_index=-1)
    with pytest.raises(ValueError):
        queries.days(limit=0)

    queries.days(start_index=3, limit=7)
    mock_repo.fetch_days.assert_called_once_with(start_index=3, limit=7)


def test_actor_and_events_lookups_are_case_insensitive(mock_repo):
    queries = LedgerQueries(mock_repo)
    queries.actor("  0xABC ")
    queries.events(actor="0xABC", limit=5)

    mock_repo.fetch_actor.assert_called_once_with("0xabc")
    mock_repo.fetch_events.assert_called_once_with(actor="0xabc", limit=5)


def test_overview_of_empty_ledger(mock_repo):
    overview = LedgerQueries(mock_repo).overview()

    assert overview.days == 0
    assert overview.latest_day is None
    assert overview.total_staked == 0
    mock_repo.count_days.assert_not_called()


def test_overview_reflects_latest_day(engine, ledger_repo):
    engine.record_event(lock("0xa", 100, GENESIS_TS))
    engine.record_event(lock("0xb", 300, ts(1)))
    engine.record_event(unlock("0xa", 100, ts(3), deposit_before=100))

    overview = LedgerQueries(ledger_repo).overview()

    assert overview.days == 3
    assert overview.latest_day == "Fri Aug 04 2023"
    assert overview.total_staked == 300
    assert overview.total_users == 2
    assert overview.current_users == 1
    # 2 deposits over 4 days
    assert overview.avg_daily_deposits == Decimal("0.50")
    assert overview.avg_daily_withdrawals == Decimal("0.25")
