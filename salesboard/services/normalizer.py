"""
Row Normalizer Service

Reads logical fields out of raw sheet rows. Branch sheets are typed by hand, so
the helpers here are tolerant by construction:

- Column labels may carry stray whitespace or different casing.
- Dates are written m/d/y with either Gregorian or Buddhist-era years, and
  sometimes with two-digit years or a trailing time of day.
- Amounts carry thousands separators and sometimes a currency sign.

None of these functions raise on bad input; they return an empty string,
None or 0.0 instead.
"""

import math
import re
from datetime import date
from typing import Mapping, Optional

from salesboard.models.enums import DateOrder


# =============================================================================
# Constants
# =============================================================================

# Years above this are Buddhist era (BE = CE + 543)
BUDDHIST_YEAR_THRESHOLD: int = 2500
BUDDHIST_YEAR_OFFSET: int = 543

# Two-digit years are read as 20xx
TWO_DIGIT_YEAR_LIMIT: int = 100
TWO_DIGIT_YEAR_BASE: int = 2000

_DATE_SEPARATORS = re.compile(r"[/\-.]")
_LEADING_INT = re.compile(r"\s*([+-]?\d+)")
_LEADING_FLOAT = re.compile(r"\s*([+-]?(?:\d+\.?\d*|\.\d+))")
_NON_NUMERIC = re.compile(r"[^0-9.\-]")
_WHITESPACE = re.compile(r"\s+")


def _squash(label: str) -> str:
    return _WHITESPACE.sub("", label).lower()


# =============================================================================
# Field Resolution
# =============================================================================

def resolve_field(record: Mapping[str, Optional[str]], logical_name: str) -> str:
    """
    Look up a logical field in a raw record.

    Tries the exact column label first. On a miss, compares labels with all
    whitespace removed and lower-cased and returns the first match in column
    order.

    Args:
        record: Column label -> cell value
        logical_name: Column label as configured

    Returns:
        The cell value, or "" when no column matches
    """
    if not record:
        return ""

    if logical_name in record:
        value = record[logical_name]
        return "" if value is None else str(value)

    target = _squash(logical_name)
    for label, value in record.items():
        if _squash(str(label)) == target:
            return "" if value is None else str(value)

    return ""


# =============================================================================
# Date Parsing
# =============================================================================

def _leading_int(component: str) -> Optional[int]:
    match = _LEADING_INT.match(component)
    if match is None:
        return None
    return int(match.group(1))


def parse_local_date(value: Optional[str], order: DateOrder = DateOrder.MDY) -> Optional[date]:
    """
    Parse a hand-typed sheet date.

    The string is split on '/', '-' or '.', and the first three components are
    read by their leading digits, so "1/2/2025 10:30:00" still parses. With the
    default MDY order the components are (month, day, year); DMY swaps the first
    two. Years above 2500 are Buddhist era and lose 543; years below 100 gain
    2000.

    Args:
        value: Raw cell text
        order: Which of the first two components holds the month

    Returns:
        The calendar date, or None when the text is not a valid date

    Example:
        >>> parse_local_date("01/02/2568")
        datetime.date(2025, 1, 2)
    """
    if not value:
        return None

    parts = _DATE_SEPARATORS.split(str(value).strip())
    if len(parts) < 3:
        return None

    numbers = [_leading_int(part) for part in parts[:3]]
    if any(number is None for number in numbers):
        return None

    first, second, year = numbers
    if order == DateOrder.DMY:
        day, month = first, second
    else:
        month, day = first, second

    if year > BUDDHIST_YEAR_THRESHOLD:
        year -= BUDDHIST_YEAR_OFFSET
    if year < TWO_DIGIT_YEAR_LIMIT:
        year += TWO_DIGIT_YEAR_BASE

    try:
        return date(year, month, day)
    except ValueError:
        return None


# =============================================================================
# Amount Parsing
# =============================================================================

def parse_amount(value: Optional[str], strict: bool = True) -> float:
    """
    Parse a money cell into a float.

    Thousands separators are always removed. In strict mode every character
    other than digits, '.' and '-' is removed too, so "฿1,500" reads as 1500.
    The leading numeric part of what remains is used.

    Args:
        value: Raw cell text (numbers are accepted as well)
        strict: Drop currency signs and other symbols before parsing

    Returns:
        The amount, or 0.0 for empty, non-numeric or non-finite input

    Example:
        >>> parse_amount("1,234.50")
        1234.5
    """
    if value is None:
        return 0.0

    text = str(value).replace(",", "")
    if strict:
        text = _NON_NUMERIC.sub("", text)

    match = _LEADING_FLOAT.match(text)
    if match is None:
        return 0.0

    try:
        amount = float(match.group(1))
    except ValueError:
        return 0.0

    if not math.isfinite(amount):
        return 0.0
    return amount
