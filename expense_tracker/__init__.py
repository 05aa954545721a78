"""Expense Tracker API: CRUD, filtering, pagination and category totals for expenses."""

__version__ = "0.1.0"
