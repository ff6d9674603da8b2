"""Time helpers for turning RoleShift patterns into concrete shift times."""

from __future__ import annotations

from datetime import date, datetime, time, timedelta
from typing import List, Tuple

from rota.domain.models import RoleShift
from rota.errors import ValidationError

WEEKDAYS = ["monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday"]


def parse_time_string(hm: str) -> time:
    """
    Parse an ``HH:MM`` string.

    Raises:
        ValidationError: On anything that is not a valid 24-hour time
    """
    try:
        hours, minutes = (int(part) for part in str(hm).strip().split(":"))
        return time(hours, minutes)
    except (TypeError, ValueError) as e:
        raise ValidationError(f"Malformed time {hm!r} (expected HH:MM)") from e


def weekday_index(name: str) -> int:
    """Monday=0 .. Sunday=6, from a case-insensitive weekday name."""
    try:
        return WEEKDAYS.index(str(name).strip().lower())
    except ValueError as e:
        raise ValidationError(f"Unknown weekday {name!r}") from e


def pattern_times(pattern: RoleShift, day: date) -> Tuple[datetime, datetime]:
    """
    Start and end of a pattern occurrence beginning on ``day``.

    The end lands ``(end_day - start_day) mod 7`` days later, so a
    friday 22:00 -> saturday 06:00 pattern ends the next morning.
    """
    start_t = parse_time_string(pattern.start_time)
    end_t = parse_time_string(pattern.end_time)
    day_offset = (weekday_index(pattern.end_day) - weekday_index(pattern.start_day)) % 7

    start = datetime.combine(day, start_t)
    end = datetime.combine(day + timedelta(days=day_offset), end_t)
    return start, end


def calculate_shift_hours(pattern: RoleShift) -> float:
    """Duration of one occurrence in hours (independent of the date)."""
    anchor = date(2024, 1, 1) + timedelta(days=weekday_index(pattern.start_day))
    start, end = pattern_times(pattern, anchor)
    return (end - start).total_seconds() / 3600


def occurrences(pattern: RoleShift, start: datetime, end: datetime) -> List[Tuple[datetime, datetime]]:
    """
    Every occurrence of a weekly pattern starting inside ``[start, end)``.

    Returns:
        List of (start, end) pairs in chronological order
    """
    target = weekday_index(pattern.start_day)
    found = []
    day = start.date()
    while datetime.combine(day, time.min) < end:
        if day.weekday() == target:
            occ_start, occ_end = pattern_times(pattern, day)
            if start <= occ_start < end:
                found.append((occ_start, occ_end))
        day += timedelta(days=1)
    return found


def task_description(pattern: RoleShift) -> str | None:
    """Tasks of a pattern as one task per line (plain strings or ``{"task": ...}`` items)."""
    lines = []
    for item in pattern.tasks or []:
        text = item.get("task") if isinstance(item, dict) else item
        if text:
            lines.append(str(text))
    return "\n".join(lines) or None
