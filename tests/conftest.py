# tests/conftest.py
from typing import Dict, Optional
from unittest.mock import Mock

import pytest
from prometheus_client import CollectorRegistry

from com.lingenhag.lockstats.domain.models import DailyStat, GenesisDay, IndexCounter
from com.lingenhag.lockstats.features.ledger.application.ports import LedgerSessionPort
from com.lingenhag.lockstats.features.ledger.application.usecases.record_event import AggregationEngine
from com.lingenhag.lockstats.features.ledger.infrastructure.repositories.duckdb_ledger_repository import (
    DuckDBLedgerRepository,
)
from com.lingenhag.lockstats.platform.monitoring.metrics import Metrics
from com.lingenhag.lockstats.platform.persistence.migrator import apply_migrations


@pytest.fixture
def genesis() -> GenesisDay:
    return GenesisDay()


@pytest.fixture
def mock_session_factory():
    """Mock(spec=LedgerSessionPort) backed by a plain dict of day slots."""

    def _make(days: Dict[int, DailyStat], counter: Optional[int] = None) -> LedgerSessionPort:
        session = Mock(spec=LedgerSessionPort)
        session.get_day.side_effect = lambda index: days.get(index)
        session.get_counter.return_value = IndexCounter(value=counter) if counter is not None else None
        return session

    return _make


@pytest.fixture
def db_path(tmp_path) -> str:
    path = str(tmp_path / "ledger.duckdb")
    apply_migrations(path)
    return path


@pytest.fixture
def ledger_repo(db_path) -> DuckDBLedgerRepository:
    return DuckDBLedgerRepository(db_path)


@pytest.fixture
def metrics() -> Metrics:
    return Metrics(port=0, registry=CollectorRegistry())


@pytest.fixture
def engine(ledger_repo, genesis, metrics) -> AggregationEngine:
    return AggregationEngine(repo=ledger_repo, genesis=genesis, metrics=metrics)
