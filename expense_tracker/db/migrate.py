"""Database migration utilities.

Applies idempotent migrations keyed by an integer schema version stored in
SQLite's `PRAGMA user_version`. Each migration upgrades the schema in-place
while preserving user data.
"""

from __future__ import annotations
import logging
from pathlib import Path
import sqlite3

from .schema import EXPENSES_UPDATED_AT_TRIGGER_DDL, init_db

CURRENT_SCHEMA_VERSION = 2

logger = logging.getLogger("expense_tracker.db.migrate")


def _get_schema_version(conn: sqlite3.Connection) -> int:
    row = conn.execute("PRAGMA user_version").fetchone()
    return int(row[0]) if row else 0


def _set_schema_version(conn: sqlite3.Connection, version: int) -> None:
    # PRAGMA does not accept bound parameters; version is always an int here.
    conn.execute(f"PRAGMA user_version = {int(version)}")


def _migrate_v2(conn: sqlite3.Connection) -> None:
    """Replace the v1 updated_at trigger with the strictly increasing one."""
    conn.execute("DROP TRIGGER IF EXISTS expenses_update_timestamp")
    conn.execute(EXPENSES_UPDATED_AT_TRIGGER_DDL)


def apply_migrations(db_path: Path) -> int:
    """Apply required migrations and return resulting schema version."""
    init_db(db_path)
    conn = sqlite3.connect(db_path)
    try:
        version = _get_schema_version(conn)
        if version > CURRENT_SCHEMA_VERSION:
            raise RuntimeError(
                f"database schema version {version} is newer than supported "
                f"version {CURRENT_SCHEMA_VERSION}"
            )
        if version < 1:
            # A fresh database already has the current schema from init_db.
            version = CURRENT_SCHEMA_VERSION
        if version < 2:
            _migrate_v2(conn)
            version = 2
        _set_schema_version(conn, version)
        conn.commit()
        logger.debug("schema ready", extra={"schema_version": version})
        return version
    finally:
        conn.close()
