"""Cell parsing and display formatting for money amounts and session dates.

Nothing in here raises on bad input: parsers return ``None`` and leave it to
the caller to decide whether that is an error or simply "no value".
"""

import datetime as dt
import math
import re

CellValue = str | int | float | None

# M/D/YYYY or M/D/YY, nothing trailing (so "1/2/2025 In Progress" is not a date)
_DATE_PATTERN = re.compile(r"^\s*(\d{1,2})/(\d{1,2})/(\d{4}|\d{2})\s*$")
_MONEY_NOISE = re.compile(r"[$,\s]")
# Plain decimal only: no exponents, digit separators or words like "inf"
_MONEY_NUMBER = re.compile(r"^-?(\d+\.?\d*|\.\d+)$")

MIN_YEAR = 1900
MAX_YEAR = 2100
TWO_DIGIT_YEAR_BASE = 2000

# Spreadsheet serial day numbers count from 1899-12-30
SERIAL_EPOCH = dt.date(1899, 12, 30)
MAX_SERIAL = 100_000
MIN_SERIAL_YEAR = 1990


def _is_number(value: object) -> bool:
    return isinstance(value, int | float) and not isinstance(value, bool)


def parse_money(value: CellValue) -> float | None:
    """Parse a currency cell such as ``$1,234.50`` or ``($30.00)``.

    Args:
        value: Raw cell content. Numbers pass straight through.

    Returns:
        The signed amount, or None when the cell is blank (no participation)
        or cannot be read as a number.
    """
    if value is None:
        return None
    if _is_number(value):
        number = float(value)
        return number if math.isfinite(number) else None

    cleaned = _MONEY_NOISE.sub("", str(value))
    if not cleaned:
        return None

    # Accounting style negatives: ($30.00)
    if cleaned.startswith("(") and cleaned.endswith(")"):
        cleaned = "-" + cleaned[1:-1]

    if not _MONEY_NUMBER.match(cleaned):
        return None
    return float(cleaned)


def is_blank(value: CellValue) -> bool:
    """Return True for a cell that holds nothing but whitespace."""
    return value is None or (isinstance(value, str) and not value.strip())


def parse_date(text: str | None) -> dt.date | None:
    """Parse ``M/D/YYYY`` (or ``M/D/YY``, read as 20YY) into a date.

    Month must be 1-12, day 1-31 and year 1900-2100, and the combination must
    exist on the calendar, so ``2/30/2025`` is rejected rather than rolled
    over into March.
    """
    if not text:
        return None
    match = _DATE_PATTERN.match(text)
    if not match:
        return None

    month, day, year = (int(part) for part in match.groups())
    if len(match.group(3)) == 2:  # noqa: PLR2004
        year += TWO_DIGIT_YEAR_BASE

    if not (1 <= month <= 12 and 1 <= day <= 31 and MIN_YEAR <= year <= MAX_YEAR):  # noqa: PLR2004
        return None

    try:
        return dt.date(year, month, day)
    except ValueError:
        return None


def serial_to_date(serial: float) -> dt.date | None:
    """Convert a spreadsheet serial day number into a date (1990-2100 only)."""
    if serial < 1 or serial > MAX_SERIAL:
        return None
    day = SERIAL_EPOCH + dt.timedelta(days=int(serial))
    if MIN_SERIAL_YEAR <= day.year <= MAX_YEAR:
        return day
    return None


def parse_header_date(cell: CellValue) -> dt.date | None:
    """Parse a header cell that may be date text or an unformatted serial number."""
    if cell is None:
        return None
    if _is_number(cell):
        return serial_to_date(float(cell))
    return parse_date(str(cell))


def format_money(amount: float) -> str:
    """Format as ``$1,234.50`` / ``-$30.00``."""
    formatted = f"{abs(amount):,.2f}"
    if amount >= 0:
        return f"${formatted}"
    return f"-${formatted}"


def format_money_with_sign(amount: float) -> str:
    """Format with an explicit sign for gains: ``+$30.00``, ``-$30.00``, ``$0.00``."""
    formatted = f"{abs(amount):,.2f}"
    if amount > 0:
        return f"+${formatted}"
    if amount < 0:
        return f"-${formatted}"
    return f"${formatted}"


def format_percentage(value: float) -> str:
    return f"{value:.1f}%"


def format_date(day: dt.date) -> str:
    """``Jan 2, 2025``."""
    return f"{day:%b} {day.day}, {day.year}"


def format_date_short(day: dt.date) -> str:
    """``1/2/25``."""
    return f"{day.month}/{day.day}/{day:%y}"


def format_session_date(day: dt.date) -> str:
    """``1/2/2025``, the label used in import warnings and sheet headers."""
    return f"{day.month}/{day.day}/{day.year}"
