"""Calendar window helpers: week/month boundaries, period keys and UTC normalization.

All stored timestamps are naive UTC. Keys are derived from the UTC start time of
a shift so that listing, tagging and bulk deletion agree on which period a shift
belongs to.
"""

from __future__ import annotations

import calendar
import math
from datetime import date, datetime, time, timedelta, timezone
from typing import Optional, Tuple, Union

from rota.errors import ValidationError

DateLike = Union[date, datetime]

SCHEDULE_PERIODS = ("today", "tomorrow", "this_week", "this_month", "custom")
RELATIVE_PERIODS = ("today", "week", "month")


def utc_now() -> datetime:
    """Current wall-clock time as naive UTC."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def to_utc(value: Union[str, DateLike]) -> datetime:
    """
    Normalize a timestamp to naive UTC.

    Aware datetimes are converted, naive ones are taken as UTC, plain dates map
    to midnight and ISO-8601 strings (a trailing ``Z`` included) are parsed.

    Raises:
        ValidationError: If the value cannot be interpreted as a timestamp
    """
    if isinstance(value, str):
        text = value.strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            value = datetime.fromisoformat(text)
        except ValueError as e:
            raise ValidationError(f"Malformed timestamp: {value!r}") from e

    if isinstance(value, datetime):
        if value.tzinfo is not None:
            value = value.astimezone(timezone.utc).replace(tzinfo=None)
        return value
    if isinstance(value, date):
        return datetime.combine(value, time.min)

    raise ValidationError(f"Expected a timestamp, got {type(value).__name__}")


def parse_day(value: Union[str, DateLike]) -> date:
    """Parse a ``YYYY-MM-DD`` string (or pass a date/datetime through) into a date."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(str(value).strip())
    except ValueError as e:
        raise ValidationError(f"Malformed date: {value!r} (expected YYYY-MM-DD)") from e


def week_start(value: DateLike) -> DateLike:
    """Monday of the week containing ``value`` (midnight when given a datetime)."""
    start = value - timedelta(days=value.isoweekday() - 1)
    if isinstance(start, datetime):
        start = start.replace(hour=0, minute=0, second=0, microsecond=0)
    return start


def week_end(value: DateLike) -> DateLike:
    """Exclusive upper bound of the week containing ``value``."""
    return week_start(value) + timedelta(days=7)


def iso_week_key(value: DateLike) -> str:
    """
    ISO-8601 week key, e.g. ``2025-W01``.

    The week belongs to the year of its Thursday, so early January can fall in
    week 52/53 of the previous year and late December in week 01 of the next.
    """
    day = value.date() if isinstance(value, datetime) else value
    thursday = day + timedelta(days=4 - day.isoweekday())
    week = math.ceil(thursday.timetuple().tm_yday / 7)
    return f"{thursday.year}-W{week:02d}"


def month_key(value: DateLike) -> str:
    """Calendar month key, e.g. ``2025-02``."""
    return f"{value.year}-{value.month:02d}"


def day_key(value: DateLike) -> str:
    """Calendar day key, e.g. ``2025-02-28``."""
    day = value.date() if isinstance(value, datetime) else value
    return day.isoformat()


def month_start(value: DateLike) -> datetime:
    return datetime(value.year, value.month, 1)


def add_months(value: datetime, months: int) -> datetime:
    """Shift by whole calendar months, clamping the day to the target month length."""
    index = value.month - 1 + months
    year = value.year + index // 12
    month = index % 12 + 1
    day = min(value.day, calendar.monthrange(year, month)[1])
    return value.replace(year=year, month=month, day=day)


def day_bounds(day: date) -> Tuple[datetime, datetime]:
    start = datetime.combine(day, time.min)
    return start, start + timedelta(days=1)


def resolve_period(
    period: str,
    now: Optional[datetime] = None,
    start_date: Optional[Union[str, date]] = None,
    end_date: Optional[Union[str, date]] = None,
    max_days: Optional[int] = None,
) -> Tuple[datetime, datetime]:
    """
    Resolve a scheduling period into a half-open ``[start, end)`` UTC range.

    Args:
        period: One of today, tomorrow, this_week, this_month, custom
        now: Reference time (defaults to the current UTC time)
        start_date: First day of a custom range (inclusive)
        end_date: Last day of a custom range (inclusive)
        max_days: Optional upper bound on the length of a custom range

    Raises:
        ValidationError: On an unknown period, missing or stray custom dates,
            an inverted range or a range longer than ``max_days``
    """
    if period not in SCHEDULE_PERIODS:
        raise ValidationError(f"Unknown period {period!r}; expected one of {', '.join(SCHEDULE_PERIODS)}")

    if period != "custom":
        if start_date is not None or end_date is not None:
            raise ValidationError("start_date/end_date are only allowed with period 'custom'")
        today = (now or utc_now()).date()
        if period == "today":
            return day_bounds(today)
        if period == "tomorrow":
            return day_bounds(today + timedelta(days=1))
        if period == "this_week":
            start = datetime.combine(week_start(today), time.min)
            return start, start + timedelta(days=7)
        start = month_start(today)
        return start, add_months(start, 1)

    if start_date is None or end_date is None:
        raise ValidationError("Period 'custom' requires both start_date and end_date")
    first = parse_day(start_date)
    last = parse_day(end_date)
    if last < first:
        raise ValidationError(f"end_date {last} is before start_date {first}")
    days = (last - first).days + 1
    if max_days is not None and days > max_days:
        raise ValidationError(f"Custom range of {days} days exceeds the limit of {max_days}")
    return datetime.combine(first, time.min), datetime.combine(last + timedelta(days=1), time.min)
