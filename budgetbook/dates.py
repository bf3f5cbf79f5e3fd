# budgetbook/dates.py
# Calendar-date helpers. Dates travel as 'YYYY-MM-DD' strings and are never
# routed through timezone-aware datetimes.
from __future__ import annotations

import calendar
import re
from datetime import date, datetime, timezone
from typing import List, Optional, Tuple

DATE_FORMAT = "%Y-%m-%d"

_DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")


def today() -> date:
    return date.today()


def today_str() -> str:
    return date.today().strftime(DATE_FORMAT)


def now_iso() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="seconds").replace("+00:00", "Z")


def is_date_str(s) -> bool:
    """True for a well-formed, real calendar date like '2024-02-29'."""
    if not isinstance(s, str) or not _DATE_RE.match(s):
        return False
    return parse_date(s) is not None


def parse_date(s: str) -> Optional[date]:
    if not s:
        return None
    try:
        return datetime.strptime(str(s).strip(), DATE_FORMAT).date()
    except ValueError:
        return None


def format_date(d: date) -> str:
    return d.strftime(DATE_FORMAT)


def split_date(s: str) -> Tuple[int, int, int]:
    """
    Split 'YYYY-MM-DD' into (year, month, day) by substring, month 1-12.
    Raises ValueError on anything that is not at least 'YYYY-MM'.
    """
    s = str(s or "")
    parts = s[:10].split("-")
    if len(parts) < 2:
        raise ValueError(f"Invalid date string: {s!r}")
    year, month = int(parts[0]), int(parts[1])
    day = int(parts[2]) if len(parts) > 2 and parts[2] else 1
    return year, month, day


def shift_month(month: int, year: int, delta: int) -> Tuple[int, int]:
    """Move a 0-indexed (month, year) pair by delta months."""
    total = year * 12 + month + delta
    return total % 12, total // 12


def months_back(month: int, year: int, count: int) -> List[Tuple[int, int]]:
    """[(month, year), ...] starting at the anchor and walking backwards."""
    return [shift_month(month, year, -i) for i in range(max(0, count))]


def month_abbr(month: int) -> str:
    return calendar.month_abbr[month + 1]


def month_name(month: int) -> str:
    return calendar.month_name[month + 1]


def month_key(month: int, year: int) -> str:
    return f"{year:04d}-{month + 1:02d}"
