# src/com/lingenhag/lockstats/platform/persistence/migrator.py
from __future__ import annotations

import logging
from pathlib import Path
from typing import List, Optional

import duckdb  # type: ignore[import-untyped]

logger = logging.getLogger(__name__)

DEFAULT_MIGRATIONS_DIR = Path(__file__).resolve().parent / "migrations"
REQUIRED_TABLES = frozenset({"daily_stats", "index_counter", "actors", "lock_events"})


def _split_sql(sql: str) -> List[str]:
    """
    Simple statement splitter: Splits on ';' at line ends.
    Ignores empty blocks and '--' comment lines.
    """
    parts: List[str] = []
    buf: list[str] = []
    for line in sql.splitlines():
        if line.strip().startswith("--"):
            continue
        buf.append(line)
        if line.strip().endswith(";"):
            stmt = "\n".join(buf).strip()
            if stmt:
                parts.append(stmt)
            buf = []
    # Trailing without semicolon
    tail = "\n".join(buf).strip()
    if tail:
        parts.append(tail)
    return parts


def _init_migrations_table(con) -> None:
    """Initialize tracking table for applied migrations."""
    con.execute("""
                CREATE TABLE IF NOT EXISTS migrations (
                    filename TEXT PRIMARY KEY,
                    applied_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
                )
                """)


def apply_migrations(db_path: str, migrations_dir: Optional[str | Path] = None) -> List[str]:
    """
    Applies SQL migrations file-by-file, statement-by-statement with clear errors.
    Tracks applied migrations in 'migrations' table; skips existing.
    """
    migrations_path = Path(migrations_dir) if migrations_dir is not None else DEFAULT_MIGRATIONS_DIR
    applied: List[str] = []

    with duckdb.connect(db_path) as con:
        con.execute("SET TimeZone='UTC'")
        _init_migrations_table(con)

        for migration_file in sorted(migrations_path.glob("*.sql")):
            filename = migration_file.name
            if con.execute("SELECT 1 FROM migrations WHERE filename = ?", [filename]).fetchone():
                logger.info("Skipping applied migration: %s", filename)
                continue

            with open(migration_file, "r", encoding="utf-8") as f:
                sql = f.read()
            statements = _split_sql(sql)
            idx, stmt = 0, ""
            try:
                for idx, stmt in enumerate(statements, start=1):
                    con.execute(stmt)
                con.execute("INSERT INTO migrations (filename) VALUES (?)", [filename])
                applied.append(filename)
                logger.info("Applied migration: %s", filename)
            except duckdb.Error as e:
                raise RuntimeError(
                    f"Migration '{filename}' failed at statement #{idx}:\n{stmt}\nError: {e}"
                ) from e

    return applied


def missing_tables(db_path: str) -> List[str]:
    with duckdb.connect(db_path) as con:
        tables = {row[0] for row in con.execute("SHOW TABLES").fetchall()}
    return sorted(REQUIRED_TABLES - tables)


def ensure_schema(db_path: str, auto_migrate: bool) -> None:
    """Wendet Migrationen an, falls Tabellen fehlen und --auto-migrate gesetzt ist."""
    if not auto_migrate:
        logger.debug("Skipping schema check as auto_migrate is not set")
        return
    missing = missing_tables(db_path)
    if not missing:
        logger.info("Schema OK")
        return
    applied = apply_migrations(db_path)
    if applied:
        logger.info("[migrate] Applied: %s", ", ".join(applied))
    elif missing_tables(db_path):
        raise RuntimeError(f"Schema initialization failed, missing tables: {', '.join(missing)}")
