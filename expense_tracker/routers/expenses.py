from typing import List

from fastapi import APIRouter, Depends, Request, Response

from expense_tracker.core.errors import AppError
from expense_tracker.models.expense import (
    CategoryStatsQuery,
    CategoryTotal,
    ExpenseCreate,
    ExpenseListOut,
    ExpenseOut,
    ExpenseQuery,
    ExpenseUpdate,
    Pagination,
)
from expense_tracker.services.expense_service import ExpenseService
from expense_tracker.services.expense_validation import (
    valid_create_body,
    valid_expense_id,
    valid_expense_query,
    valid_stats_query,
    valid_update_body,
)

router = APIRouter(prefix="/expenses", tags=["expenses"])

# Dependencies -----------------------------------------------------


def get_expense_service(request: Request) -> ExpenseService:
    return request.app.state.expense_service


# Routes -----------------------------------------------------------
# The stats route is declared before "/{expense_id}" so it is not captured as an id.


@router.get(
    "/stats/category",
    response_model=List[CategoryTotal],
    summary="Total amount per category, highest first",
)
async def expenses_by_category(
    query: CategoryStatsQuery = Depends(valid_stats_query),
    service: ExpenseService = Depends(get_expense_service),
):
    return service.get_expenses_by_category(query.start_date, query.end_date)


@router.post("", response_model=ExpenseOut, status_code=201, summary="Create an expense")
async def create_expense(
    payload: ExpenseCreate = Depends(valid_create_body),
    service: ExpenseService = Depends(get_expense_service),
):
    return service.create_expense(payload)


@router.get(
    "", response_model=ExpenseListOut, summary="List expenses with optional filters"
)
async def list_expenses(
    query: ExpenseQuery = Depends(valid_expense_query),
    service: ExpenseService = Depends(get_expense_service),
):
    page = service.get_all_expenses(query)
    return ExpenseListOut(
        data=[ExpenseOut.model_validate(r) for r in page.data],
        pagination=Pagination(total=page.total, limit=page.limit, offset=page.offset),
    )


@router.get("/{expense_id}", response_model=ExpenseOut, summary="Fetch one expense")
async def get_expense(
    expense_id: int = Depends(valid_expense_id),
    service: ExpenseService = Depends(get_expense_service),
):
    row = service.get_expense_by_id(expense_id)
    if row is None:
        raise AppError.not_found(f"Expense with id {expense_id} not found")
    return row


@router.put(
    "/{expense_id}", response_model=ExpenseOut, summary="Edit an expense (partial)"
)
async def update_expense(
    expense_id: int = Depends(valid_expense_id),
    payload: ExpenseUpdate = Depends(valid_update_body),
    service: ExpenseService = Depends(get_expense_service),
):
    return service.update_expense(expense_id, payload)


@router.delete(
    "/{expense_id}",
    status_code=204,
    response_class=Response,
    summary="Delete an expense",
)
async def delete_expense(
    expense_id: int = Depends(valid_expense_id),
    service: ExpenseService = Depends(get_expense_service),
):
    service.delete_expense(expense_id)
    return Response(status_code=204)
