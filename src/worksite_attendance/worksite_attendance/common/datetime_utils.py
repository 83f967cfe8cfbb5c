from __future__ import annotations

import calendar
from datetime import date, datetime, time
from typing import Optional, Tuple


def parse_iso_date(value: str) -> date:
    """Parse YYYY-MM-DD string into date."""
    return datetime.strptime(value, "%Y-%m-%d").date()


def now_local() -> datetime:
    """Current local time.

    Note: Wrapped so tests can patch/mocked easier.
    """
    return datetime.now()


def start_of_day(value: date | datetime) -> datetime:
    d = value.date() if isinstance(value, datetime) else value
    return datetime.combine(d, time.min)


def end_of_day(value: date | datetime) -> datetime:
    d = value.date() if isinstance(value, datetime) else value
    return datetime.combine(d, time(23, 59, 59, 999000))


def hours_between(start: Optional[datetime], end: Optional[datetime]) -> Optional[float]:
    """Elapsed hours between two instants, rounded to 2 decimals."""
    if start is None or end is None:
        return None
    return round((end - start).total_seconds() / 3600, 2)


def current_month_range(today: date) -> Tuple[date, date]:
    last_day = calendar.monthrange(today.year, today.month)[1]
    return today.replace(day=1), today.replace(day=last_day)


def parse_instant(value: str) -> datetime:
    """Parse an ISO-8601 date or datetime string (a trailing 'Z' is accepted).

    Aware values are converted to naive local time so they compare with now_local().
    """
    v = value.strip()
    if v.endswith("Z"):
        v = v[:-1] + "+00:00"
    parsed = datetime.fromisoformat(v)
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone().replace(tzinfo=None)
    return parsed


def isoformat_or_none(value: Optional[date | datetime]) -> Optional[str]:
    return value.isoformat() if value is not None else None
