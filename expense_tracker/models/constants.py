"""Domain constants used by validation and the data layer."""

import re
from typing import Pattern, Tuple

# ISO-4217 shaped only; not checked against a real currency list.
CURRENCY_PATTERN: Pattern[str] = re.compile(r"[A-Z]{3}")
EXPENSE_ID_PATTERN: Pattern[str] = re.compile(r"\d+")

UPDATABLE_FIELDS: Tuple[str, ...] = ("name", "amount", "currency", "category", "date")

# Largest value SQLite can bind as an INTEGER parameter.
MAX_SQLITE_INTEGER = 2**63 - 1
# Calendar dates only; digit strings would otherwise be read as Unix time.
DATE_TEXT_PATTERN: Pattern[str] = re.compile(r"\d{4}-\d{2}-\d{2}")
