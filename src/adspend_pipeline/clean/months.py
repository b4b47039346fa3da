"""Calendar table and month-token reconciliation.

Two textual encodings of a calendar month circulate through the pipeline:

- ``"MonthName Year"`` (e.g. ``"January 2024"``), the human form found in
  source exports and used for display;
- ``"YYYY-MM"`` (e.g. ``"2024-01"``), the canonical sortable month key.

`matches` is the only place that decides whether two tokens denote the same
calendar month; everything else (filtering, YoY lookups) goes through it or
through `parse_token` / `to_month_key`.
"""

from __future__ import annotations

import re

MONTH_NAMES: tuple[str, ...] = (
    "January", "February", "March", "April", "May", "June",
    "July", "August", "September", "October", "November", "December",
)

# lowercase name -> month number (1-12)
MONTH_NUMBERS: dict[str, int] = {name.lower(): i for i, name in enumerate(MONTH_NAMES, start=1)}

YEAR_RE = re.compile(r"^[0-9]{4}$")
MONTH_KEY_RE = re.compile(r"^([0-9]{4})-([0-9]{2})$")


def month_number(name: str) -> int | None:
    """Return 1-12 for a month name (case-insensitive), else None."""
    return MONTH_NUMBERS.get(name.strip().lower())


def parse_raw_month(raw: str) -> tuple[str, str] | None:
    """Resolve a ``"MonthName Year"`` string into ``(month_key, year)``.

    Args:
        raw: Month text from a source row.

    Returns:
        ``("2024-01", "2024")`` for ``"January 2024"``, or None when the name
        is not in the calendar table or the year is not four digits.
    """
    parts = str(raw).split()
    if len(parts) != 2:
        return None
    name, year = parts
    num = month_number(name)
    if num is None or not YEAR_RE.match(year):
        return None
    return f"{year}-{num:02d}", year


def parse_token(token: str) -> tuple[str, str] | None:
    """Extract ``(lowercase month name, year)`` from either month encoding.

    Args:
        token: ``"MonthName Year"`` or ``"YYYY-MM"``.

    Returns:
        The pair, or None if the token fits neither encoding.
    """
    text = str(token).strip()

    m = MONTH_KEY_RE.match(text)
    if m:
        year, mm = m.group(1), int(m.group(2))
        if 1 <= mm <= 12:
            return MONTH_NAMES[mm - 1].lower(), year
        return None

    parts = text.split()
    if len(parts) == 2:
        name = parts[0].lower()
        # Only calendar-table names with an ASCII four-digit year resolve
        if name in MONTH_NUMBERS and YEAR_RE.match(parts[1]):
            return name, parts[1]
    return None


def matches(token_a: str, token_b: str) -> bool:
    """Return True when two month tokens denote the same calendar month.

    Examples:
        >>> matches("January 2023", "2023-01")
        True
        >>> matches("January 2023", "2023-02")
        False
    """
    if token_a == token_b:
        return True
    a = parse_token(token_a)
    b = parse_token(token_b)
    if a is None or b is None:
        return False
    return a == b


def to_month_key(token: str) -> str | None:
    """Convert a token in either encoding to ``"YYYY-MM"`` (None if invalid)."""
    parsed = parse_token(token)
    if parsed is None:
        return None
    name, year = parsed
    if not YEAR_RE.match(year):
        return None
    return f"{year}-{MONTH_NUMBERS[name]:02d}"


def month_label(month_key: str) -> str:
    """Return the display form (``"January 2024"``) of a month key."""
    m = MONTH_KEY_RE.match(month_key)
    if not m or not 1 <= int(m.group(2)) <= 12:
        return month_key
    return f"{MONTH_NAMES[int(m.group(2)) - 1]} {m.group(1)}"


def split_month_key(month_key: str) -> tuple[int, int] | None:
    """Return ``(year, month)`` integers for a valid month key."""
    m = MONTH_KEY_RE.match(month_key)
    if not m:
        return None
    year, month = int(m.group(1)), int(m.group(2))
    if not 1 <= month <= 12:
        return None
    return year, month
