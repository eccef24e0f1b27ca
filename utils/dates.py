"""Date helpers shared by models, services and routes.

Datetimes are stored naive, in UTC.
"""
from __future__ import annotations

from datetime import date, datetime, time, timedelta, timezone
from typing import Optional


def utcnow() -> datetime:
    """Return the current UTC time as a naive datetime."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def start_of_day(value: datetime) -> datetime:
    return datetime.combine(value.date(), time.min)


def end_of_day(value: datetime) -> datetime:
    return datetime.combine(value.date(), time.max)


def parse_iso_datetime(value: Optional[str]) -> Optional[datetime]:
    """Parse an ISO-8601 date or datetime string into a naive UTC datetime.

    Accepts date-only values (``2025-05-01``), local datetimes and values with
    an offset or a trailing ``Z``. Raises ``ValueError`` for anything else.
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, date):
        parsed = datetime.combine(value, time.min)
    else:
        text = str(value).strip()
        if not text:
            return None
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        parsed = datetime.fromisoformat(text)
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    return parsed


def isoformat(value: Optional[datetime]) -> Optional[str]:
    if value is None:
        return None
    return value.isoformat()


def format_display_date(value: Optional[datetime], with_time: bool = True) -> Optional[str]:
    """Format as ``May 1, 2025`` or ``May 1, 2025 2:30 PM``."""
    if value is None:
        return None
    text = f"{value:%b} {value.day}, {value:%Y}"
    if not with_time:
        return text
    hour = value.hour % 12 or 12
    return f"{text} {hour}:{value:%M} {value:%p}"


def month_bounds(value: datetime) -> tuple[datetime, datetime]:
    """First and last instant of the month containing ``value``."""
    first = datetime.combine(value.date().replace(day=1), time.min)
    if first.month == 12:
        next_month = first.replace(year=first.year + 1, month=1)
    else:
        next_month = first.replace(month=first.month + 1)
    return first, end_of_day(next_month - timedelta(days=1))
