"""Shared fixtures: every test gets its own SQLite file under pytest's tmp_path."""

from __future__ import annotations

from datetime import datetime, timezone

import pytest
from fastapi.testclient import TestClient

from expense_tracker.core.config import Settings
from expense_tracker.db.dal import ExpenseRepository
from expense_tracker.db.migrate import apply_migrations
from expense_tracker.main import create_app
from expense_tracker.services.expense_service import ExpenseService


def utc(year: int, month: int, day: int, hour: int = 12) -> datetime:
    return datetime(year, month, day, hour, tzinfo=timezone.utc)


@pytest.fixture
def settings(tmp_path) -> Settings:
    s = Settings(
        data_dir=tmp_path,
        db_filename="test.sqlite3",
        environment="test",
        log_level="WARNING",
        default_page_size=10,
        max_page_size=50,
    )
    s.init_post_load()
    return s


@pytest.fixture
def repository(settings: Settings) -> ExpenseRepository:
    apply_migrations(settings.db_path)
    return ExpenseRepository(settings.db_path)


@pytest.fixture
def service(repository: ExpenseRepository, settings: Settings) -> ExpenseService:
    return ExpenseService(repository, settings)


@pytest.fixture
def make_expense(repository: ExpenseRepository):
    def _make(**overrides):
        data = {
            "name": "Coffee",
            "amount": 4.5,
            "currency": "USD",
            "category": "Food",
            "date": utc(2024, 1, 1),
        }
        data.update(overrides)
        return repository.create(data)

    return _make


@pytest.fixture
def app(settings: Settings):
    return create_app(settings_override=settings)


@pytest.fixture
def client(app) -> TestClient:
    with TestClient(app) as c:
        yield c
