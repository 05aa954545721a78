"""Seeding helpers for local development and smoke runs.

`seed_expenses` inserts a small set of sample expenses through the repository so
that generated fields (ids, timestamps) come from the store as they do in
production. It is not idempotent: every call inserts the rows again.
"""

from __future__ import annotations
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Iterable, List, Mapping, Optional

from .dal import ExpenseRepository
from .migrate import apply_migrations

SAMPLE_EXPENSES: List[Dict[str, Any]] = [
    {
        "name": "Groceries",
        "amount": 54.3,
        "currency": "EUR",
        "category": "Food",
        "date": datetime(2024, 1, 6, 10, tzinfo=timezone.utc),
    },
    {
        "name": "Train ticket",
        "amount": 23.0,
        "currency": "EUR",
        "category": "Travel",
        "date": datetime(2024, 1, 9, 7, 45, tzinfo=timezone.utc),
    },
    {
        "name": "Coffee",
        "amount": 3.2,
        "currency": "EUR",
        "category": "Food",
        "date": datetime(2024, 1, 12, 8, 15, tzinfo=timezone.utc),
    },
    {
        "name": "Rent",
        "amount": 950.0,
        "currency": "EUR",
        "category": "Housing",
        "date": datetime(2024, 2, 1, 9, tzinfo=timezone.utc),
    },
]


def seed_expenses(
    db_path: Path, rows: Optional[Iterable[Mapping[str, Any]]] = None
) -> List[Dict[str, Any]]:
    apply_migrations(db_path)  # ensure tables exist
    repository = ExpenseRepository(db_path)
    return [repository.create(row) for row in (rows or SAMPLE_EXPENSES)]
