"""Expense use cases on top of the data layer.

Thin by intent: validation has already produced typed inputs, and the
repository owns query construction. The service applies the rules that are not
expressible as a schema (pagination clamping, non-empty updates) and decides
which not-found results become ``None``.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from datetime import datetime
from typing import Any, Dict, List, Optional

from expense_tracker.core.config import Settings
from expense_tracker.core.errors import AppError, ErrorKind, FieldViolation
from expense_tracker.db.dal import ExpenseFilter, ExpenseRepository
from expense_tracker.models.constants import MAX_SQLITE_INTEGER
from expense_tracker.models.expense import ExpenseCreate, ExpenseQuery, ExpenseUpdate

logger = logging.getLogger("expense_tracker.services.expenses")

EMPTY_UPDATE_MESSAGE = "At least one field must be provided for update"


@dataclass(frozen=True)
class ExpensePage:
    data: List[Dict[str, Any]]
    total: int
    limit: int
    offset: int


class ExpenseService:
    def __init__(self, repository: ExpenseRepository, settings: Settings):
        self.repository = repository
        self.default_page_size = settings.default_page_size
        self.max_page_size = settings.max_page_size

    def create_expense(self, payload: ExpenseCreate) -> Dict[str, Any]:
        row = self.repository.create(payload.model_dump())
        logger.info("expense created", extra={"expense_id": row["id"]})
        return row

    def get_expense_by_id(self, expense_id: int) -> Optional[Dict[str, Any]]:
        try:
            return self.repository.find_by_id(expense_id)
        except AppError as e:
            if e.kind is ErrorKind.NOT_FOUND:
                return None
            raise

    def resolve_page(self, query: ExpenseQuery) -> tuple[int, int]:
        """Return ``(limit, offset)`` with the limit clamped to the configured max.

        An explicit offset wins over ``page``; pages are 1-based.
        """
        limit = min(query.limit or self.default_page_size, self.max_page_size)
        if query.offset is not None:
            offset = query.offset
        elif query.page is not None:
            offset = min((query.page - 1) * limit, MAX_SQLITE_INTEGER)
        else:
            offset = 0
        return limit, offset

    def get_all_expenses(self, query: ExpenseQuery) -> ExpensePage:
        limit, offset = self.resolve_page(query)
        flt = ExpenseFilter(
            category=query.category,
            start_date=query.start_date,
            end_date=query.end_date,
        )
        rows = self.repository.find_all(replace(flt, limit=limit, offset=offset))
        total = self.repository.count(flt)
        return ExpensePage(data=rows, total=total, limit=limit, offset=offset)

    def update_expense(self, expense_id: int, payload: ExpenseUpdate) -> Dict[str, Any]:
        changes = payload.changes()
        if not changes:
            raise AppError.validation_failed(
                [FieldViolation("body", EMPTY_UPDATE_MESSAGE)], message=EMPTY_UPDATE_MESSAGE
            )
        row = self.repository.update(expense_id, changes)
        logger.info(
            "expense updated",
            extra={"expense_id": expense_id, "fields": sorted(changes)},
        )
        return row

    def delete_expense(self, expense_id: int) -> None:
        self.repository.delete(expense_id)
        logger.info("expense deleted", extra={"expense_id": expense_id})

    def get_expenses_by_category(
        self,
        start_date: Optional[datetime] = None,
        end_date: Optional[datetime] = None,
    ) -> List[Dict[str, Any]]:
        return self.repository.get_total_by_category(start_date, end_date)
