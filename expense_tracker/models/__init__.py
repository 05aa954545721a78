"""Pydantic domain models for the Expense Tracker API."""

from .constants import CURRENCY_PATTERN, UPDATABLE_FIELDS  # re-export
from .expense import (
    CategoryStatsQuery,
    CategoryTotal,
    ExpenseCreate,
    ExpenseListOut,
    ExpenseOut,
    ExpenseQuery,
    ExpenseUpdate,
    Pagination,
)

__all__ = [
    "CURRENCY_PATTERN",
    "UPDATABLE_FIELDS",
    "CategoryStatsQuery",
    "CategoryTotal",
    "ExpenseCreate",
    "ExpenseListOut",
    "ExpenseOut",
    "ExpenseQuery",
    "ExpenseUpdate",
    "Pagination",
]
