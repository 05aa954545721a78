"""Request validation pipeline for the expenses API.

Each inbound input (body, query string, path id) has a parse function that
returns either ``Valid(value)`` with the coerced, typed value or
``Invalid(violations)`` listing every violated rule. Parse functions never raise
for bad input.

The FastAPI dependencies at the bottom of this module are the only place where
an ``Invalid`` result turns into an exception (``AppError``), so route handlers
receive already-typed values and never re-parse.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any, Generic, List, Mapping, Type, TypeVar, Union

from fastapi import Request
from pydantic import BaseModel, ValidationError

from expense_tracker.core.errors import AppError, FieldViolation
from expense_tracker.models.constants import EXPENSE_ID_PATTERN, MAX_SQLITE_INTEGER
from expense_tracker.models.expense import (
    CategoryStatsQuery,
    ExpenseCreate,
    ExpenseQuery,
    ExpenseUpdate,
)

T = TypeVar("T")
M = TypeVar("M", bound=BaseModel)

_VALUE_ERROR_PREFIX = "Value error, "
INVALID_ID_MESSAGE = "Invalid expense ID"


@dataclass(frozen=True)
class Valid(Generic[T]):
    value: T


@dataclass(frozen=True)
class Invalid:
    violations: List[FieldViolation]


Parsed = Union[Valid[T], Invalid]


def violations_from(exc: ValidationError, source: str) -> List[FieldViolation]:
    """Flatten a pydantic error into one violation per failed rule.

    Errors raised by model-level rules have an empty location and are reported
    against ``source`` (``body`` or ``query``).
    """
    out: List[FieldViolation] = []
    for err in exc.errors():
        field = ".".join(str(p) for p in err["loc"]) or source
        message = err["msg"]
        if message.startswith(_VALUE_ERROR_PREFIX):
            message = message[len(_VALUE_ERROR_PREFIX):]
        out.append(FieldViolation(field=field, message=message))
    return out


def _parse_model(model: Type[M], raw: Any, source: str) -> Parsed[M]:
    try:
        return Valid(model.model_validate(raw))
    except ValidationError as e:
        return Invalid(violations_from(e, source))


def parse_create_body(raw: Any) -> Parsed[ExpenseCreate]:
    return _parse_model(ExpenseCreate, raw, "body")


def parse_update_body(raw: Any) -> Parsed[ExpenseUpdate]:
    return _parse_model(ExpenseUpdate, raw, "body")


def parse_expense_query(raw: Mapping[str, Any]) -> Parsed[ExpenseQuery]:
    return _parse_model(ExpenseQuery, dict(raw), "query")


def parse_stats_query(raw: Mapping[str, Any]) -> Parsed[CategoryStatsQuery]:
    return _parse_model(CategoryStatsQuery, dict(raw), "query")


def parse_expense_id(raw: str) -> Parsed[int]:
    """Accept only decimal digit strings whose value is a positive 64-bit integer."""
    if not isinstance(raw, str) or not EXPENSE_ID_PATTERN.fullmatch(raw):
        return Invalid([FieldViolation("id", INVALID_ID_MESSAGE)])
    value = int(raw)
    if value <= 0 or value > MAX_SQLITE_INTEGER:
        return Invalid([FieldViolation("id", INVALID_ID_MESSAGE)])
    return Valid(value)


# ----------------------------------------------------------------------
# FastAPI dependencies


async def _json_body(request: Request) -> Any:
    body = await request.body()
    if not body.strip():
        return {}
    try:
        return json.loads(body)
    except (UnicodeDecodeError, json.JSONDecodeError) as e:
        raise AppError.bad_request("Malformed JSON body") from e


def _unwrap(result: Parsed[T]) -> T:
    if isinstance(result, Invalid):
        raise AppError.validation_failed(result.violations)
    return result.value


async def valid_create_body(request: Request) -> ExpenseCreate:
    return _unwrap(parse_create_body(await _json_body(request)))


async def valid_update_body(request: Request) -> ExpenseUpdate:
    return _unwrap(parse_update_body(await _json_body(request)))


def valid_expense_query(request: Request) -> ExpenseQuery:
    return _unwrap(parse_expense_query(request.query_params))


def valid_stats_query(request: Request) -> CategoryStatsQuery:
    return _unwrap(parse_stats_query(request.query_params))


def valid_expense_id(expense_id: str) -> int:
    result = parse_expense_id(expense_id)
    if isinstance(result, Invalid):
        raise AppError.bad_request(INVALID_ID_MESSAGE, errors=result.violations)
    return result.value
