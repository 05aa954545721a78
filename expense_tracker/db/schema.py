"""Database schema DDL definitions and initialization utilities.

Tables:
  - expenses: individual expense records

Timestamps are UTC ISO-8601 text with millisecond precision so that text
comparison and ordering match chronological comparison and ordering.
"""

from __future__ import annotations
import sqlite3
from typing import Sequence
from pathlib import Path

BASIC_UTC_NOW = "strftime('%Y-%m-%dT%H:%M:%fZ','now')"

EXPENSES_DDL = f"""
CREATE TABLE IF NOT EXISTS expenses (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    name TEXT NOT NULL CHECK (length(name) > 0),
    amount NUMERIC NOT NULL CHECK (amount > 0),
    currency TEXT NOT NULL CHECK (length(currency) = 3 AND currency = upper(currency)),
    category TEXT NOT NULL CHECK (length(category) > 0),
    date TEXT NOT NULL DEFAULT ({BASIC_UTC_NOW}), -- ISO timestamp (UTC)
    created_at TEXT NOT NULL DEFAULT ({BASIC_UTC_NOW}),
    updated_at TEXT NOT NULL DEFAULT ({BASIC_UTC_NOW})
);
"""

EXPENSES_DATE_INDEX_DDL = (
    "CREATE INDEX IF NOT EXISTS idx_expenses_date ON expenses(date);"
)
EXPENSES_CATEGORY_INDEX_DDL = (
    "CREATE INDEX IF NOT EXISTS idx_expenses_category ON expenses(category);"
)

# Store-owned refresh so no write path can forget it. Recursive triggers are off
# by default in SQLite, so the inner UPDATE does not re-fire this trigger.
# Two updates inside the same millisecond still move updated_at forward by 1 ms.
EXPENSES_UPDATED_AT_TRIGGER_DDL = f"""
CREATE TRIGGER IF NOT EXISTS expenses_update_timestamp
AFTER UPDATE OF name, amount, currency, category, date ON expenses
BEGIN
    UPDATE expenses SET updated_at = CASE
        WHEN ({BASIC_UTC_NOW}) > OLD.updated_at THEN ({BASIC_UTC_NOW})
        ELSE strftime('%Y-%m-%dT%H:%M:%fZ', OLD.updated_at, '+0.001 seconds')
    END
    WHERE id = NEW.id;
END;
"""

DDL_ORDER: Sequence[str] = (
    EXPENSES_DDL,
    EXPENSES_DATE_INDEX_DDL,
    EXPENSES_CATEGORY_INDEX_DDL,
    EXPENSES_UPDATED_AT_TRIGGER_DDL,
)


def init_db(path: Path) -> None:
    """Create all tables, indexes and triggers idempotently.

    Parameters
    ----------
    path: Path to SQLite database file.
    """
    conn = sqlite3.connect(path)
    try:
        # WAL lets readers proceed while a single writer commits.
        conn.execute("PRAGMA journal_mode=WAL")
        cur = conn.cursor()
        for ddl in DDL_ORDER:
            cur.execute(ddl)
        conn.commit()
    finally:
        conn.close()
