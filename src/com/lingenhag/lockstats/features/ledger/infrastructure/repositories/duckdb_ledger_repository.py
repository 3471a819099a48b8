# src/com/lingenhag/lockstats/features/ledger/infrastructure/repositories/duckdb_ledger_repository.py
from __future__ import annotations

import logging
from contextlib import contextmanager
from decimal import Decimal
from pathlib import Path
from typing import Any, Iterator, List, Optional, Sequence

import duckdb

from com.lingenhag.lockstats.domain.models import Actor, DailyStat, EventKind, IndexCounter, LockEvent
from com.lingenhag.lockstats.features.ledger.application.day_keys import decode_day_key, encode_day_key
from com.lingenhag.lockstats.features.ledger.application.ports import LedgerRepositoryPort, LedgerSessionPort

logger = logging.getLogger(__name__)

_COUNTER_NAME = "day_index"

_DAY_COLUMNS = (
    "day_key, day_label, normalized_timestamp, is_added, "
    "deposit_amount, withdraw_amount, deposits_count, withdrawals_count, "
    "total_staked, total_users, current_users, "
    "avg_daily_deposits, avg_daily_deposit_amount, avg_daily_withdrawals, "
    "avg_daily_withdraw_amount, avg_daily_users"
)

_EVENT_COLUMNS = "kind, actor, amount, deposit_before, when_ts, block_number, block_timestamp, tx_hash"


def _day_from_row(r: Sequence[Any]) -> DailyStat:
    return DailyStat(
        index=decode_day_key(bytes(r[0])),
        day_label=r[1],
        normalized_timestamp=int(r[2]),
        is_added=bool(r[3]),
        deposit_amount=int(r[4]),
        withdraw_amount=int(r[5]),
        deposits_count=int(r[6]),
        withdrawals_count=int(r[7]),
        total_staked=int(r[8]),
        total_users=int(r[9]),
        current_users=int(r[10]),
        avg_daily_deposits=Decimal(r[11]),
        avg_daily_deposit_amount=Decimal(r[12]),
        avg_daily_withdrawals=Decimal(r[13]),
        avg_daily_withdraw_amount=Decimal(r[14]),
        avg_daily_users=Decimal(r[15]),
    )


def _actor_from_row(r: Sequence[Any]) -> Actor:
    return Actor(
        address=r[0],
        balance_locked=int(r[1]),
        total_locked=int(r[2]),
        total_unlocked=int(r[3]),
        is_balance_positive=bool(r[4]),
    )


def _event_from_row(r: Sequence[Any]) -> LockEvent:
    return LockEvent(
        kind=EventKind(r[0]),
        actor=r[1],
        amount=int(r[2]),
        deposit_before=int(r[3]),
        when=r[4],
        block_number=r[5],
        timestamp=int(r[6]),
        tx_hash=r[7],
    )


class DuckDBLedgerSession(LedgerSessionPort):
    """Arbeitet auf einer offenen Verbindung innerhalb einer laufenden Transaktion."""

    def __init__(self, con: duckdb.DuckDBPyConnection) -> None:
        self._con = con

    # -------- Day slots --------
    def get_day(self, index: int) -> Optional[DailyStat]:
        row = self._con.execute(
            f"SELECT {_DAY_COLUMNS} FROM daily_stats WHERE day_key = ?",
            [encode_day_key(index)],
        ).fetchone()
        return _day_from_row(row) if row else None

    def put_day(self, stat: DailyStat) -> None:
        key = encode_day_key(stat.index)
        values = [
            stat.day_label,
            stat.normalized_timestamp,
            stat.is_added,
            str(stat.deposit_amount),
            str(stat.withdraw_amount),
            stat.deposits_count,
            stat.withdrawals_count,
            str(stat.total_staked),
            stat.total_users,
            stat.current_users,
            str(stat.avg_daily_deposits),
            str(stat.avg_daily_deposit_amount),
            str(stat.avg_daily_withdrawals),
            str(stat.avg_daily_withdraw_amount),
            str(stat.avg_daily_users),
        ]
        exists = self._con.execute("SELECT 1 FROM daily_stats WHERE day_key = ?", [key]).fetchone()
        if exists:
            self._con.execute(
                """
                UPDATE daily_stats
                SET day_label=?,
                    normalized_timestamp=?,
                    is_added=?,
                    deposit_amount=?,
                    withdraw_amount=?,
                    deposits_count=?,
                    withdrawals_count=?,
                    total_staked=?,
                    total_users=?,
                    current_users=?,
                    avg_daily_deposits=?,
                    avg_daily_deposit_amount=?,
                    avg_daily_withdrawals=?,
                    avg_daily_withdraw_amount=?,
                    avg_daily_users=?,
                    updated_at=CURRENT_TIMESTAMP
                WHERE day_key=?
                """,
                values + [key],
            )
        else:
            self._con.execute(
                f"""
                INSERT INTO daily_stats (day_index, {_DAY_COLUMNS}, updated_at)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, CURRENT_TIMESTAMP)
                """,
                [stat.index, key] + values,
            )

    # -------- Index counter --------
    def get_counter(self) -> Optional[IndexCounter]:
        row = self._con.execute(
            "SELECT value FROM index_counter WHERE name = ?",
            [_COUNTER_NAME],
        ).fetchone()
        return IndexCounter(value=int(row[0])) if row else None

    def put_counter(self, counter: IndexCounter) -> None:
        exists = self._con.execute("SELECT 1 FROM index_counter WHERE name = ?", [_COUNTER_NAME]).fetchone()
        if exists:
            self._con.execute("UPDATE index_counter SET value=? WHERE name=?", [counter.value, _COUNTER_NAME])
        else:
            self._con.execute("INSERT INTO index_counter (name, value) VALUES (?, ?)", [_COUNTER_NAME, counter.value])

    # -------- Actors --------
    def get_actor(self, address: str) -> Optional[Actor]:
        row = self._con.execute(
            """
            SELECT address, balance_locked, total_locked, total_unlocked, is_balance_positive
            FROM actors WHERE address = ?
            """,
            [address],
        ).fetchone()
        return _actor_from_row(row) if row else None

    def put_actor(self, actor: Actor) -> None:
        values = [
            str(actor.balance_locked),
            str(actor.total_locked),
            str(actor.total_unlocked),
            actor.is_balance_positive,
        ]
        exists = self._con.execute("SELECT 1 FROM actors WHERE address = ?", [actor.address]).fetchone()
        if exists:
            self._con.execute(
                """
                UPDATE actors
                SET balance_locked=?,
                    total_locked=?,
                    total_unlocked=?,
                    is_balance_positive=?,
                    updated_at=CURRENT_TIMESTAMP
                WHERE address=?
                """,
                values + [actor.address],
            )
        else:
            self._con.execute(
                """
                INSERT INTO actors
                    (address, balance_locked, total_locked, total_unlocked, is_balance_positive, updated_at)
                VALUES (?, ?, ?, ?, ?, CURRENT_TIMESTAMP)
                """,
                [actor.address] + values,
            )

    # -------- Event log --------
    def append_event(self, event: LockEvent) -> int:
        row = self._con.execute(
            f"""
            INSERT INTO lock_events ({_EVENT_COLUMNS})
            VALUES (?, ?, ?, ?, ?, ?, ?, ?)
            RETURNING id
            """,
            [
                event.kind.value,
                event.actor,
                str(event.amount),
                str(event.deposit_before),
                event.when,
                event.block_number,
                event.timestamp,
                event.tx_hash,
            ],
        ).fetchone()
        return int(row[0])


class DuckDBLedgerRepository(LedgerRepositoryPort):
    """
    Persistence adapter for the daily ledger using DuckDB.
    - One connection and one transaction per session (= per event).
    - Day slots are keyed by the fixed-width big-endian index (BLOB).
    """

    def __init__(self, db_path: str | Path) -> None:
        self.db_path = str(db_path)

    # ----------------------------------
    # Internal
    # ----------------------------------
    def _connect(self) -> duckdb.DuckDBPyConnection:
        con = duckdb.connect(self.db_path)
        try:
            con.execute("SET TimeZone='UTC'")
        except duckdb.Error as e:
            logger.warning(f"Failed to set UTC timezone: {e}")
        return con

    def _ensure_table(self, con: duckdb.DuckDBPyConnection, table: str) -> None:
        row = con.execute(
            "SELECT 1 FROM information_schema.tables WHERE table_name = ?",
            [table],
        ).fetchone()
        if not row:
            raise RuntimeError(f"{table} fehlt. Migration ausführen.")

    # ----------------------------------
    # Unit of work
    # ----------------------------------
    @contextmanager
    def session(self) -> Iterator[DuckDBLedgerSession]:
        with self._connect() as con:
            self._ensure_table(con, "daily_stats")
            con.begin()
            try:
                yield DuckDBLedgerSession(con)
                con.commit()
            except Exception as e:
                con.rollback()
                logger.error(f"Ledger transaction rolled back: {e}")
                raise

    # ----------------------------------
    # Read side
    # ----------------------------------
    def latest_day(self) -> Optional[DailyStat]:
        with self._connect() as con:
            self._ensure_table(con, "daily_stats")
            row = con.execute(
                f"SELECT {_DAY_COLUMNS} FROM daily_stats ORDER BY day_key DESC LIMIT 1"
            ).fetchone()
        return _day_from_row(row) if row else None

    def fetch_days(self, start_index: int = 0, limit: int = 100) -> List[DailyStat]:
        with self._connect() as con:
            self._ensure_table(con, "daily_stats")
            rows = con.execute(
                f"""
                SELECT {_DAY_COLUMNS} FROM daily_stats
                WHERE day_key >= ?
                ORDER BY day_key ASC
                LIMIT ?
                """,
                [encode_day_key(start_index), int(limit)],
            ).fetchall()
        return [_day_from_row(r) for r in rows]

    def count_days(self) -> int:
        with self._connect() as con:
            self._ensure_table(con, "daily_stats")
            row = con.execute("SELECT count(*) FROM daily_stats").fetchone()
        return int(row[0]) if row else 0

    def fetch_actor(self, address: str) -> Optional[Actor]:
        with self._connect() as con:
            self._ensure_table(con, "actors")
            return DuckDBLedgerSession(con).get_actor(address)

    def fetch_events(self, actor: Optional[str] = None, limit: int = 100) -> List[LockEvent]:
        """Die neuesten `limit` Events, chronologisch sortiert."""
        with self._connect() as con:
            self._ensure_table(con, "lock_events")
            params: List[Any] = []
            query = f"SELECT id, {_EVENT_COLUMNS} FROM lock_events"
            if actor is not None:
                query += " WHERE actor = ?"
                params.append(actor)
            query += " ORDER BY id DESC LIMIT ?"
            params.append(int(limit))
            rows = con.execute(query, params).fetchall()
        return [_event_from_row(r[1:]) for r in reversed(rows)]
