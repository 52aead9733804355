"""Ad Ops Hub - Cell Sanitizers.

Normalizes raw sheet cells into typed values. Every helper returns ``None``
for "absent" instead of raising.
"""

import math
import re
from datetime import date, datetime, timedelta, timezone
from typing import Any, Optional

from dateutil import parser as date_parser

# Spreadsheet serial dates count days from 1899-12-30.
SERIAL_EPOCH = date(1899, 12, 30)
MAX_SERIAL_DAYS = 100_000

_NON_NUMERIC = re.compile(r"[^0-9.+\-]")


def is_present(value: Any) -> bool:
    """True for non-null non-strings, and for strings that are not blank or "N/A"."""
    if isinstance(value, str):
        stripped = value.strip()
        return stripped != "" and stripped.upper() != "N/A"
    return value is not None


def parse_number(value: Any) -> Optional[float]:
    """Coerce a cell to a finite float. "$1,234.56" -> 1234.56."""
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        number = float(value)
        return number if math.isfinite(number) else None
    if isinstance(value, str) and value.strip():
        cleaned = _NON_NUMERIC.sub("", value)
        try:
            number = float(cleaned)
        except ValueError:
            return None
        return number if math.isfinite(number) else None
    return None


def _from_numeric(value: float) -> Optional[date]:
    if not math.isfinite(value):
        return None
    try:
        if abs(value) < MAX_SERIAL_DAYS:
            return SERIAL_EPOCH + timedelta(days=int(value))
        return datetime.fromtimestamp(value / 1000, tz=timezone.utc).date()
    except (OverflowError, OSError, ValueError):
        return None


def parse_date(value: Any) -> Optional[date]:
    """Coerce a cell to a calendar date.

    Accepts date/datetime objects, spreadsheet serial numbers (or epoch
    milliseconds for large values) and date strings. Unparseable input
    yields ``None``.
    """
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return _from_numeric(float(value))
    if isinstance(value, str) and value.strip():
        text = value.strip()
        try:
            if len(text) >= 10 and text[4] == "-":
                return date.fromisoformat(text[:10])
            return date_parser.parse(text).date()
        except (ValueError, OverflowError):
            return None
    return None


def clean_text(value: Any) -> Optional[str]:
    """Return the cell as stripped text, or ``None`` when absent."""
    if not is_present(value):
        return None
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value).strip()


def format_date(value: Optional[date]) -> str:
    """Render a date as YYYY-MM-DD, or an empty string when absent."""
    return value.strftime("%Y-%m-%d") if value else ""
