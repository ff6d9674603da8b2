"""In-memory shift filters applied after a range query.

Each filter is an independent predicate and the result is their conjunction,
so the order filters are applied in never changes the outcome.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Callable, Iterable, List, Optional

from rota.domain.models import Shift, ShiftStatus, ShiftType
from rota.errors import ValidationError
from rota.timewindow import add_months, to_utc, utc_now

Predicate = Callable[[Shift], bool]


@dataclass
class ShiftFilters:
    """
    Display filters. ``None`` (or an unrecognised value) disables a filter.

    Attributes:
        view: "mine" keeps the current user's shifts plus open shifts; "all" keeps everything
        current_user_id: Who "mine" refers to
        status: Exact status match
        location: Exact location name match
        shift_type: "assigned" or "open"
        date_filter: "today", "week" or "month", relative to the current time
    """

    view: Optional[str] = None
    current_user_id: Optional[str] = None
    status: Optional[str] = None
    location: Optional[str] = None
    shift_type: Optional[str] = None
    date_filter: Optional[str] = None


def _start_of(shift: Shift) -> Optional[datetime]:
    """Start time as naive UTC, or None when it is missing or unparsable."""
    value = getattr(shift, "start_time", None)
    if value is None:
        return None
    try:
        return to_utc(value)
    except ValidationError:
        return None


def ownership_filter(user_id: str) -> Predicate:
    return lambda shift: shift.user_id == user_id or shift.type == ShiftType.OPEN


def status_filter(status: str) -> Predicate:
    return lambda shift: shift.status == status


def location_filter(location: str) -> Predicate:
    return lambda shift: shift.location == location


def type_filter(shift_type: str) -> Predicate:
    return lambda shift: shift.type == shift_type


def relative_date_filter(period: str, now: datetime) -> Predicate:
    """
    Rolling window from the start of today.

    ``today`` is the calendar day of ``now``; ``week`` covers the next seven
    days and ``month`` the next calendar month, both inclusive of the bound.
    Shifts with a malformed start time never match.
    """
    today = now.replace(hour=0, minute=0, second=0, microsecond=0)
    if period == "today":
        upper = today + timedelta(days=1)
        inclusive = False
    elif period == "week":
        upper = today + timedelta(days=7)
        inclusive = True
    else:
        upper = add_months(today, 1)
        inclusive = True

    def predicate(shift: Shift) -> bool:
        start = _start_of(shift)
        if start is None:
            return False
        if start < today:
            return False
        return start <= upper if inclusive else start < upper

    return predicate


def build_predicates(filters: ShiftFilters, now: Optional[datetime] = None) -> List[Predicate]:
    """Turn a ShiftFilters value into the list of active predicates."""
    predicates: List[Predicate] = []

    if filters.view == "mine" and filters.current_user_id:
        predicates.append(ownership_filter(filters.current_user_id))
    if filters.status in ShiftStatus.ALL:
        predicates.append(status_filter(filters.status))
    if filters.location:
        predicates.append(location_filter(filters.location))
    if filters.shift_type in ShiftType.ALL:
        predicates.append(type_filter(filters.shift_type))
    if filters.date_filter in ("today", "week", "month"):
        predicates.append(relative_date_filter(filters.date_filter, to_utc(now) if now else utc_now()))

    return predicates


def filter_shifts(shifts: Iterable[Shift], predicates: Iterable[Predicate]) -> List[Shift]:
    predicates = list(predicates)
    return [shift for shift in shifts if all(p(shift) for p in predicates)]


def apply_filters(
    shifts: Iterable[Shift],
    filters: ShiftFilters,
    now: Optional[datetime] = None,
) -> List[Shift]:
    """
    Narrow a shift collection for display.

    Args:
        shifts: Result of a range query
        filters: Active filters
        now: Wall-clock reference for the relative date filter

    Returns:
        Matching shifts in their original order
    """
    return filter_shifts(shifts, build_predicates(filters, now))
