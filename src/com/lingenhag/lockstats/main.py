# src/com/lingenhag/lockstats/main.py
from __future__ import annotations

import argparse
import logging
import sys

from com.lingenhag.lockstats.platform.config.settings import Settings
from com.lingenhag.lockstats.platform.monitoring.metrics import Metrics
from com.lingenhag.lockstats.features.ledger.presentation.cli_commands import add_ledger_subparser


def build_parser() -> argparse.ArgumentParser:
    """
    Root-CLI.
    Beispiel:
      lockstats ledger migrate
      lockstats ledger ingest --events data/events.jsonl
      lockstats ledger days --limit 7 --format json
    """
    parser = argparse.ArgumentParser(prog="lockstats", description="com.lingenhag.lockstats – Daily lock ledger")
    parser.add_argument(
        "--config",
        default="config.yaml",
        help="Pfad zur Konfigurationsdatei (Default: config.yaml)",
    )
    parser.add_argument(
        "--metrics-port",
        type=int,
        default=0,
        help="Prometheus Metrics Port (Default: 0 = kein HTTP-Server)",
    )

    subparsers = parser.add_subparsers(dest="feature", required=True)

    # ---- Ledger ----
    add_ledger_subparser(subparsers)

    return parser


def _resolve_db_path(config: Settings, args_db: str | None) -> str:
    """
    - CLI-Argument --db hat Vorrang
    - sonst config.yaml → database.default_path (bzw. LOCKSTATS_DATABASE_DEFAULT_PATH)
    - Fallback: data/lockstats.duckdb
    """
    if args_db and str(args_db).strip():
        return str(args_db)
    return config.db_path()


def main(argv: list[str] | None = None) -> None:
    parser = build_parser()
    args = parser.parse_args(argv)

    config = Settings.load(args.config)
    logging.basicConfig(level=str(config.get("logging", "level", "INFO")).upper())

    metrics = Metrics(port=args.metrics_port)
    if args.metrics_port:
        metrics.start_server()

    if not hasattr(args, "func"):
        parser.print_help()
        sys.exit(2)

    setattr(args, "db", _resolve_db_path(config, getattr(args, "db", None)))
    args.func(args, config=config, metrics=metrics)


if __name__ == "__main__":
    main()
