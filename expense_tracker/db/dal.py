"""Data Access Layer for expenses.

Responsibilities
----------------
- Own every SQL statement issued against the ``expenses`` table.
- Compose list/aggregate queries from whichever filter terms are present,
  always with bound parameters.
- Wrap SQLite failures into the application error taxonomy at this boundary.

``update`` is a read-modify-write without a concurrency guard: two concurrent
updates of the same id resolve as last-writer-wins.
"""

from __future__ import annotations

import logging
import sqlite3
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Iterator, List, Mapping, Optional, Tuple

from expense_tracker.core.errors import AppError
from expense_tracker.services.timestamps import to_storage

from .schema import BASIC_UTC_NOW

MUTABLE_COLUMNS = ("name", "amount", "currency", "category", "date")

logger = logging.getLogger("expense_tracker.db")


@dataclass(frozen=True)
class ExpenseFilter:
    """Optional predicates for list and aggregate queries.

    A term takes part in the query when it is not ``None``; an empty string is a
    real value.
    """

    category: Optional[str] = None
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    limit: Optional[int] = None
    offset: Optional[int] = None


def _bind(value: Any) -> Any:
    if isinstance(value, datetime):
        return to_storage(value)
    return value


def _where(flt: ExpenseFilter, with_category: bool = True) -> Tuple[str, List[Any]]:
    clauses: List[str] = []
    params: List[Any] = []
    if with_category and flt.category is not None:
        clauses.append("category = ?")
        params.append(flt.category)
    if flt.start_date is not None:
        clauses.append("date >= ?")
        params.append(_bind(flt.start_date))
    if flt.end_date is not None:
        clauses.append("date <= ?")
        params.append(_bind(flt.end_date))
    where = " WHERE " + " AND ".join(clauses) if clauses else ""
    return where, params


class ExpenseRepository:
    def __init__(self, db_path: Path, timeout: float = 5.0):
        self.db_path = db_path
        self.timeout = timeout

    # ------------------------------------------------------------------
    # Connection helpers
    @contextmanager
    def _connect(self) -> Iterator[sqlite3.Connection]:
        """Yield a connection; commit on success, roll back on error, always close.

        SQLite errors leave this block as ``AppError`` (constraint violations as
        conflicts, everything else as internal failures).
        """
        try:
            conn = sqlite3.connect(self.db_path, timeout=self.timeout)
        except sqlite3.Error as e:
            logger.exception("failed to open database")
            raise AppError.internal("Database unavailable", cause=e) from e
        conn.row_factory = sqlite3.Row
        try:
            yield conn
            conn.commit()
        except sqlite3.IntegrityError as e:
            conn.rollback()
            logger.info("constraint violation", extra={"detail": str(e)})
            raise AppError.conflict("Expense violates a data constraint", cause=e) from e
        except sqlite3.Error as e:
            conn.rollback()
            logger.exception("database operation failed")
            raise AppError.internal("Database operation failed", cause=e) from e
        except BaseException:
            conn.rollback()
            raise
        finally:
            conn.close()

    @staticmethod
    def _fetch_by_id(cur: sqlite3.Cursor, expense_id: int) -> Dict[str, Any]:
        cur.execute("SELECT * FROM expenses WHERE id = ?", (expense_id,))
        row = cur.fetchone()
        if row is None:
            raise AppError.not_found(f"Expense with id {expense_id} not found")
        return dict(row)

    # ------------------------------------------------------------------
    # CRUD
    def create(self, data: Mapping[str, Any]) -> Dict[str, Any]:
        """Insert an expense and return the stored row (generated fields included)."""
        with self._connect() as conn:
            cur = conn.cursor()
            cur.execute(
                f"""
                INSERT INTO expenses (name, amount, currency, category, date)
                VALUES (?, ?, ?, ?, COALESCE(?, ({BASIC_UTC_NOW})))
                """,
                (
                    data["name"],
                    data["amount"],
                    data["currency"],
                    data["category"],
                    _bind(data.get("date")),
                ),
            )
            expense_id = int(cur.lastrowid)
            logger.debug("expense inserted", extra={"expense_id": expense_id})
            return self._fetch_by_id(cur, expense_id)

    def find_by_id(self, expense_id: int) -> Dict[str, Any]:
        with self._connect() as conn:
            return self._fetch_by_id(conn.cursor(), expense_id)

    def find_all(self, flt: Optional[ExpenseFilter] = None) -> List[Dict[str, Any]]:
        flt = flt or ExpenseFilter()
        where, params = _where(flt)
        sql = f"SELECT * FROM expenses{where} ORDER BY date DESC, id DESC"
        if flt.limit is not None:
            sql += " LIMIT ?"
            params.append(flt.limit)
        if flt.offset is not None:
            if flt.limit is None:
                # SQLite only accepts OFFSET after a LIMIT; -1 means unbounded.
                sql += " LIMIT -1"
            sql += " OFFSET ?"
            params.append(flt.offset)
        with self._connect() as conn:
            cur = conn.cursor()
            cur.execute(sql, params)
            return [dict(r) for r in cur.fetchall()]

    def count(self, flt: Optional[ExpenseFilter] = None) -> int:
        """Number of rows matching the filter, ignoring limit and offset."""
        where, params = _where(flt or ExpenseFilter())
        with self._connect() as conn:
            cur = conn.cursor()
            cur.execute(f"SELECT COUNT(*) FROM expenses{where}", params)
            row = cur.fetchone()
            return int(row[0] if row and row[0] is not None else 0)

    def update(self, expense_id: int, partial: Mapping[str, Any]) -> Dict[str, Any]:
        """Shallow-merge ``partial`` over the stored row and persist the result."""
        with self._connect() as conn:
            cur = conn.cursor()
            current = self._fetch_by_id(cur, expense_id)
            merged = {
                col: _bind(partial[col]) if col in partial else current[col]
                for col in MUTABLE_COLUMNS
            }
            cur.execute(
                """
                UPDATE expenses
                SET name = ?, amount = ?, currency = ?, category = ?, date = ?
                WHERE id = ?
                """,
                (*(merged[col] for col in MUTABLE_COLUMNS), expense_id),
            )
            logger.debug(
                "expense updated",
                extra={"expense_id": expense_id, "fields": sorted(partial)},
            )
            return self._fetch_by_id(cur, expense_id)

    def delete(self, expense_id: int) -> None:
        with self._connect() as conn:
            cur = conn.cursor()
            cur.execute("DELETE FROM expenses WHERE id = ?", (expense_id,))
            if cur.rowcount == 0:
                raise AppError.not_found(f"Expense with id {expense_id} not found")
            logger.debug("expense deleted", extra={"expense_id": expense_id})

    # ------------------------------------------------------------------
    # Aggregations
    def get_total_by_category(
        self,
        start_date: Optional[datetime] = None,
        end_date: Optional[datetime] = None,
    ) -> List[Dict[str, Any]]:
        where, params = _where(
            ExpenseFilter(start_date=start_date, end_date=end_date),
            with_category=False,
        )
        sql = f"""
            SELECT category, ROUND(SUM(amount), 2) as total
            FROM expenses
            {where}
            GROUP BY category
            ORDER BY total DESC, category ASC
        """
        with self._connect() as conn:
            cur = conn.cursor()
            cur.execute(sql, params)
            return [dict(r) for r in cur.fetchall()]
