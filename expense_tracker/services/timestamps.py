"""Timestamp normalization helpers.

Centralized so validation, the data layer, and tests agree on the single
storage format produced by SQLite's ``strftime('%Y-%m-%dT%H:%M:%fZ','now')``.
Years are always four digits so text order stays chronological.
"""

from __future__ import annotations
from datetime import datetime, timezone

OUT_OF_RANGE_MESSAGE = "Timestamp must fall between years 0001 and 9999 in UTC"


def to_utc(value: datetime) -> datetime:
    """Convert an aware datetime to UTC; ``ValueError`` if the result is not representable."""
    if value.tzinfo is None:
        raise ValueError("timestamp must carry a timezone")
    try:
        return value.astimezone(timezone.utc)
    except OverflowError as e:
        raise ValueError(OUT_OF_RANGE_MESSAGE) from e


def to_storage(value: datetime) -> str:
    """Render an aware datetime as UTC text with millisecond precision."""
    utc = to_utc(value)
    return (
        f"{utc.year:04d}-{utc.month:02d}-{utc.day:02d}"
        f"T{utc.hour:02d}:{utc.minute:02d}:{utc.second:02d}"
        f".{utc.microsecond // 1000:03d}Z"
    )
