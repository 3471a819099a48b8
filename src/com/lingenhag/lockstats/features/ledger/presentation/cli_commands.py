# src/com/lingenhag/lockstats/features/ledger/presentation/cli_commands.py
from __future__ import annotations

import argparse
import json
import logging
from pathlib import Path
from typing import Any, Dict

import duckdb

from com.lingenhag.lockstats.domain.errors import LedgerError
from com.lingenhag.lockstats.domain.models import Actor, DailyStat, LockEvent
from com.lingenhag.lockstats.features.ledger.application.event_feed import read_events
from com.lingenhag.lockstats.features.ledger.application.usecases.ingest_events import IngestEvents
from com.lingenhag.lockstats.features.ledger.application.usecases.ledger_queries import LedgerQueries
from com.lingenhag.lockstats.features.ledger.application.usecases.record_event import AggregationEngine
from com.lingenhag.lockstats.features.ledger.infrastructure.repositories.duckdb_ledger_repository import (
    DuckDBLedgerRepository,
)
from com.lingenhag.lockstats.platform.config.settings import Settings
from com.lingenhag.lockstats.platform.monitoring.metrics import Metrics
from com.lingenhag.lockstats.platform.persistence.migrator import apply_migrations, ensure_schema

_LOG = logging.getLogger(__name__)


def add_ledger_subparser(root_subparsers: argparse._SubParsersAction[argparse.ArgumentParser]) -> None:
    """
    CLI-Integration für das Tages-Ledger.
    Subcommands: migrate, ingest, days, actor, events, summary
    """
    ledger_parser = root_subparsers.add_parser("ledger", help="Daily lock/unlock ledger")
    ledger_sub = ledger_parser.add_subparsers(dest="ledger_cmd", required=True)

    db_help = "Path to DuckDB (Default aus config.yaml: database.default_path oder 'data/lockstats.duckdb')"

    p_migrate = ledger_sub.add_parser("migrate", help="Apply SQL migrations")
    p_migrate.add_argument("--db", help=db_help)
    p_migrate.set_defaults(func=_cmd_migrate)

    p_ingest = ledger_sub.add_parser("ingest", help="Apply a JSON-lines event feed to the ledger")
    p_ingest.add_argument("--events", required=True, help="Path to the JSON-lines feed (one event per line)")
    p_ingest.add_argument("--db", help=db_help)
    p_ingest.add_argument("--auto-migrate", action="store_true", help="Apply migrations if schema is missing")
    p_ingest.add_argument("--verbose", action="store_true", help="Progress logging")
    p_ingest.set_defaults(func=_cmd_ingest)

    p_days = ledger_sub.add_parser("days", help="Show day slots")
    p_days.add_argument("--start-index", type=int, default=0, help="First day index (default: 0)")
    p_days.add_argument("--limit", type=int, default=30, help="Max. rows (default: 30)")
    p_days.add_argument("--format", choices=["table", "json"], default="table", help="Output format")
    p_days.add_argument("--db", help=db_help)
    p_days.add_argument("--auto-migrate", action="store_true", help="Apply migrations if schema is missing")
    p_days.set_defaults(func=_cmd_days)

    p_actor = ledger_sub.add_parser("actor", help="Show one actor")
    p_actor.add_argument("--address", required=True, help="Actor address (0x...)")
    p_actor.add_argument("--db", help=db_help)
    p_actor.add_argument("--auto-migrate", action="store_true", help="Apply migrations if schema is missing")
    p_actor.set_defaults(func=_cmd_actor)

    p_events = ledger_sub.add_parser("events", help="Show the event log")
    p_events.add_argument("--actor", help="Filter by actor address")
    p_events.add_argument("--limit", type=int, default=50, help="Max. rows (default: 50)")
    p_events.add_argument("--db", help=db_help)
    p_events.add_argument("--auto-migrate", action="store_true", help="Apply migrations if schema is missing")
    p_events.set_defaults(func=_cmd_events)

    p_summary = ledger_sub.add_parser("summary", help="Show the newest cumulative totals")
    p_summary.add_argument("--db", help=db_help)
    p_summary.add_argument("--auto-migrate", action="store_true", help="Apply migrations if schema is missing")
    p_summary.set_defaults(func=_cmd_summary)


def _ensure_db_dir(db_path: str) -> None:
    if db_path != ":memory:":
        Path(db_path).parent.mkdir(parents=True, exist_ok=True)


def _prepare(args: argparse.Namespace) -> DuckDBLedgerRepository:
    _ensure_db_dir(args.db)
    try:
        ensure_schema(args.db, getattr(args, "auto_migrate", False))
    except duckdb.IOException as e:
        raise SystemExit(f"Database error: {e}") from e
    return DuckDBLedgerRepository(db_path=args.db)


def _day_to_dict(d: DailyStat) -> Dict[str, Any]:
    return {
        "index": d.index,
        "date": d.day_label,
        "timestamp": d.normalized_timestamp,
        "is_added": d.is_added,
        "deposit_amount": str(d.deposit_amount),
        "withdraw_amount": str(d.withdraw_amount),
        "deposits_count": d.deposits_count,
        "withdrawals_count": d.withdrawals_count,
        "total_staked": str(d.total_staked),
        "total_users": d.total_users,
        "current_users": d.current_users,
        "avg_daily_deposits": str(d.avg_daily_deposits),
        "avg_daily_deposit_amount": str(d.avg_daily_deposit_amount),
        "avg_daily_withdrawals": str(d.avg_daily_withdrawals),
        "avg_daily_withdraw_amount": str(d.avg_daily_withdraw_amount),
        "avg_daily_users": str(d.avg_daily_users),
    }


def _actor_to_dict(a: Actor) -> Dict[str, Any]:
    return {
        "address": a.address,
        "balance_locked": str(a.balance_locked),
        "total_locked": str(a.total_locked),
        "total_unlocked": str(a.total_unlocked),
        "is_balance_positive": a.is_balance_positive,
    }


def _event_to_dict(e: LockEvent) -> Dict[str, Any]:
    return {
        "kind": e.kind.value,
        "actor": e.actor,
        "amount": str(e.amount),
        "deposit_before": str(e.deposit_before),
        "when": e.when,
        "timestamp": e.timestamp,
        "block_number": e.block_number,
        "tx_hash": e.tx_hash,
    }


def _cmd_migrate(args: argparse.Namespace, *, config: Settings, metrics: Metrics) -> None:
    _ensure_db_dir(args.db)
    try:
        applied = apply_migrations(args.db)
    except duckdb.IOException as e:
        raise SystemExit(f"Database error: {e}") from e
    if applied:
        print(f"[ledger/migrate] applied={', '.join(applied)}")
    else:
        print("[ledger/migrate] Keine Migrationen angewendet (bereits aktuell).")


def _cmd_ingest(args: argparse.Namespace, *, config: Settings, metrics: Metrics) -> None:
    """
    Führt einen Ingest-Lauf aus:
      - optional: Schema auto-migrieren
      - Feed lesen (JSON-Lines, zeitlich geordnet)
      - Events einzeln, je Event in einer Transaktion, anwenden
    """
    repo = _prepare(args)
    engine = AggregationEngine(repo=repo, genesis=config.genesis(), metrics=metrics)
    svc = IngestEvents(engine=engine, metrics=metrics)
    try:
        summary = svc.run(read_events(args.events), verbose=bool(args.verbose))
    except FileNotFoundError as e:
        raise SystemExit(f"Feed not found: {args.events}") from e
    except LedgerError as e:
        raise SystemExit(f"Ingest aborted: {e}") from e
    except duckdb.Error as e:
        raise SystemExit(f"Database error: {e}") from e

    if summary.rejections:
        _LOG.warning("%d events rejected, first: %s", summary.rejected, summary.rejections[0])
    print(
        f"[ledger/ingest] total={summary.total} applied={summary.applied} "
        f"discarded={summary.discarded} rejected={summary.rejected} "
        f"days_allocated={summary.days_allocated} folds={summary.folds}"
    )


def _cmd_days(args: argparse.Namespace, *, config: Settings, metrics: Metrics) -> None:
    queries = LedgerQueries(_prepare(args))
    try:
        days = queries.days(start_index=args.start_index, limit=args.limit)
    except ValueError as e:
        raise SystemExit(str(e)) from e

    if args.format == "json":
        print(json.dumps([_day_to_dict(d) for d in days], indent=2))
        return

    print("[ledger/days]")
    for d in days:
        state = "merged" if d.is_added else "open"
        print(
            f"  #{d.index:<4} {d.day_label}  {state:<6} staked={d.total_staked} "
            f"deposits={d.deposits_count} withdrawals={d.withdrawals_count} "
            f"users={d.current_users}/{d.total_users} avg_dep={d.avg_daily_deposits}"
        )


def _cmd_actor(args: argparse.Namespace, *, config: Settings, metrics: Metrics) -> None:
    actor = LedgerQueries(_prepare(args)).actor(args.address)
    if actor is None:
        raise SystemExit(f"Unknown actor: {args.address}")
    print(json.dumps(_actor_to_dict(actor), indent=2))


def _cmd_events(args: argparse.Namespace, *, config: Settings, metrics: Metrics) -> None:
    events = LedgerQueries(_prepare(args)).events(actor=args.actor, limit=args.limit)
    print(json.dumps([_event_to_dict(e) for e in events], indent=2))


def _cmd_summary(args: argparse.Namespace, *, config: Settings, metrics: Metrics) -> None:
    o = LedgerQueries(_prepare(args)).overview()
    if o.latest_day is None:
        print("[ledger/summary] Ledger ist leer.")
        return
    print(
        f"[ledger/summary] days={o.days} latest={o.latest_day} staked={o.total_staked} "
        f"users={o.current_users}/{o.total_users} "
        f"avg_deposits={o.avg_daily_deposits} avg_withdrawals={o.avg_daily_withdrawals}"
    )
