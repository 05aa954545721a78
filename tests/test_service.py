from datetime import datetime, timezone

import pytest

from expense_tracker.core.errors import AppError, ErrorKind
from expense_tracker.models.expense import ExpenseCreate, ExpenseQuery, ExpenseUpdate


def utc(day):
    return datetime(2024, 4, day, 9, tzinfo=timezone.utc)


@pytest.fixture
def seeded(make_expense):
    return [make_expense(name=f"e{d}", date=utc(d)) for d in range(1, 8)]


def test_create_echoes_input(service):
    row = service.create_expense(
        ExpenseCreate(name="Coffee", amount=4.5, currency="USD", category="Food")
    )
    assert (row["name"], row["amount"], row["currency"], row["category"]) == (
        "Coffee",
        4.5,
        "USD",
        "Food",
    )
    assert row["created_at"] == row["updated_at"]


def test_missing_expense_reads_as_none(service):
    assert service.get_expense_by_id(404) is None


def test_default_page(service, seeded):
    page = service.get_all_expenses(ExpenseQuery())
    assert (page.limit, page.offset, page.total) == (10, 0, 7)
    assert [r["name"] for r in page.data] == [f"e{d}" for d in range(7, 0, -1)]


def test_limit_is_clamped(service, seeded):
    page = service.get_all_expenses(ExpenseQuery(limit=500))
    assert page.limit == 50


def test_page_translates_to_offset(service, seeded):
    page = service.get_all_expenses(ExpenseQuery(limit=3, page=3))
    assert page.offset == 6
    assert [r["name"] for r in page.data] == ["e1"]
    assert page.total == 7


def test_explicit_offset_wins_over_page(service):
    assert service.resolve_page(ExpenseQuery(limit=2, offset=1, page=4)) == (2, 1)


def test_total_reflects_filter(service, make_expense, seeded):
    make_expense(category="Travel")
    page = service.get_all_expenses(ExpenseQuery(category="Travel", limit=1))
    assert page.total == 1 and len(page.data) == 1


def test_empty_update_is_a_validation_failure(service, make_expense):
    row = make_expense()
    with pytest.raises(AppError) as exc:
        service.update_expense(row["id"], ExpenseUpdate.model_construct())
    assert exc.value.kind is ErrorKind.VALIDATION_FAILED


def test_update_missing_propagates_not_found(service):
    with pytest.raises(AppError) as exc:
        service.update_expense(9, ExpenseUpdate(name="x"))
    assert exc.value.kind is ErrorKind.NOT_FOUND


def test_delete_missing_propagates_not_found(service):
    with pytest.raises(AppError) as exc:
        service.delete_expense(9)
    assert exc.value.kind is ErrorKind.NOT_FOUND


def test_category_totals(service, make_expense):
    make_expense(category="Food", amount=10)
    make_expense(category="Food", amount=15)
    make_expense(category="Travel", amount=5)
    assert service.get_expenses_by_category() == [
        {"category": "Food", "total": 25},
        {"category": "Travel", "total": 5},
    ]


def test_page_offset_is_clamped_to_storable_range(service, seeded):
    query = ExpenseQuery(limit=10, page=2**63 - 1)
    assert service.resolve_page(query) == (10, 2**63 - 1)
    page = service.get_all_expenses(query)
    assert page.data == [] and page.total == 7
