from __future__ import annotations
from datetime import datetime
from typing import Any, List, Optional

from pydantic import (
    AwareDatetime,
    BaseModel,
    ConfigDict,
    Field,
    field_validator,
    model_validator,
)
from pydantic.alias_generators import to_camel

from expense_tracker.services.timestamps import to_utc

from .constants import (
    CURRENCY_PATTERN,
    DATE_TEXT_PATTERN,
    MAX_SQLITE_INTEGER,
    UPDATABLE_FIELDS,
)

CURRENCY_MESSAGE = "Currency must be a valid 3-letter code (e.g., USD, EUR)"
DATE_TEXT_MESSAGE = "Date must be an ISO 8601 date-time string"


def _check_currency(v: str) -> str:
    if not CURRENCY_PATTERN.fullmatch(v):
        raise ValueError(CURRENCY_MESSAGE)
    return v


def _check_date_text(v: Any) -> Any:
    if v is not None and not (isinstance(v, str) and DATE_TEXT_PATTERN.match(v)):
        raise ValueError(DATE_TEXT_MESSAGE)
    return v


def _check_storable(v: Optional[datetime]) -> Optional[datetime]:
    if v is not None:
        to_utc(v)
    return v


class ExpenseCreate(BaseModel):
    name: str = Field(..., min_length=1)
    amount: float = Field(..., gt=0, allow_inf_nan=False, strict=True)
    currency: str = Field(..., min_length=1)
    category: str = Field(..., min_length=1)
    date: Optional[AwareDatetime] = None

    @field_validator("currency")
    @classmethod
    def valid_currency(cls, v: str) -> str:
        return _check_currency(v)

    @field_validator("date", mode="before")
    @classmethod
    def date_is_text(cls, v: Any) -> Any:
        return _check_date_text(v)

    @field_validator("date")
    @classmethod
    def storable_date(cls, v: Optional[datetime]) -> Optional[datetime]:
        return _check_storable(v)


class ExpenseUpdate(BaseModel):
    """Partial update model.

    All fields optional but individually validated like `ExpenseCreate`; at least
    one must be provided. Unknown fields are rejected and explicit nulls are not
    accepted (omit the field to keep its current value).
    """

    model_config = ConfigDict(extra="forbid")

    name: Optional[str] = Field(None, min_length=1)
    amount: Optional[float] = Field(None, gt=0, allow_inf_nan=False, strict=True)
    currency: Optional[str] = Field(None, min_length=1)
    category: Optional[str] = Field(None, min_length=1)
    date: Optional[AwareDatetime] = None

    @field_validator(*UPDATABLE_FIELDS, mode="before")
    @classmethod
    def not_null(cls, v: Any) -> Any:
        if v is None:
            raise ValueError("Field may not be null")
        return v

    @field_validator("currency")
    @classmethod
    def valid_currency(cls, v: str) -> str:
        return _check_currency(v)

    @field_validator("date", mode="before")
    @classmethod
    def date_is_text(cls, v: Any) -> Any:
        return _check_date_text(v)

    @field_validator("date")
    @classmethod
    def storable_date(cls, v: Optional[datetime]) -> Optional[datetime]:
        return _check_storable(v)

    @model_validator(mode="after")
    def at_least_one(self) -> "ExpenseUpdate":
        if not self.model_fields_set:
            raise ValueError("At least one field must be provided for update")
        return self

    def changes(self) -> dict:
        return self.model_dump(exclude_unset=True)


class _QueryModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    start_date: Optional[AwareDatetime] = None
    end_date: Optional[AwareDatetime] = None

    @field_validator("start_date", "end_date")
    @classmethod
    def storable_bounds(cls, v: Optional[datetime]) -> Optional[datetime]:
        return _check_storable(v)

    @model_validator(mode="after")
    def ordered_range(self) -> Any:
        if self.start_date and self.end_date and self.start_date > self.end_date:
            raise ValueError("startDate cannot be after endDate")
        return self


class ExpenseQuery(_QueryModel):
    category: Optional[str] = None
    limit: Optional[int] = Field(None, gt=0)
    offset: Optional[int] = Field(None, ge=0, le=MAX_SQLITE_INTEGER)
    page: Optional[int] = Field(None, gt=0, le=MAX_SQLITE_INTEGER)


class CategoryStatsQuery(_QueryModel):
    pass


class _WireModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ExpenseOut(_WireModel):
    id: int
    name: str
    amount: float
    currency: str
    category: str
    # Stored ISO-8601 UTC text, passed through unchanged
    date: str
    created_at: str
    updated_at: str


class Pagination(_WireModel):
    total: int
    limit: int
    offset: int


class ExpenseListOut(_WireModel):
    data: List[ExpenseOut]
    pagination: Pagination


class CategoryTotal(_WireModel):
    category: str
    total: float
