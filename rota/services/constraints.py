"""Shift invariants, overlap detection and the status transition table."""

from __future__ import annotations

from datetime import datetime, timedelta
from typing import Dict, Iterable, Optional, Tuple

from rota.domain.models import Shift, ShiftStatus, ShiftType
from rota.errors import ConflictError, ValidationError

# Moves allowed by admin edits and the attendance tracker
ALLOWED_TRANSITIONS: Dict[str, Tuple[str, ...]] = {
    ShiftStatus.OPEN: (ShiftStatus.SCHEDULED, ShiftStatus.CANCELLED),
    ShiftStatus.SCHEDULED: (ShiftStatus.IN_PROGRESS, ShiftStatus.LATE, ShiftStatus.OPEN, ShiftStatus.CANCELLED),
    ShiftStatus.LATE: (ShiftStatus.IN_PROGRESS, ShiftStatus.CANCELLED),
    ShiftStatus.IN_PROGRESS: ShiftStatus.COMPLETED_STATES + (ShiftStatus.CANCELLED,),
    ShiftStatus.COMPLETED: (),
    ShiftStatus.COMPLETED_EARLY: (),
    ShiftStatus.COMPLETED_OVERTIME: (),
    ShiftStatus.CANCELLED: (),
}

REQUIRED_FIELDS = ("company_id", "title", "start_time", "end_time")


def validate_shift(shift: Shift, max_shift_hours: int = 24) -> None:
    """
    Check a shift against the data-model invariants.

    Args:
        shift: Shift to check (persisted or not)
        max_shift_hours: Longest allowed duration

    Raises:
        ValidationError: If any invariant is violated
    """
    for name in REQUIRED_FIELDS:
        value = getattr(shift, name)
        if value is None or (isinstance(value, str) and not value.strip()):
            raise ValidationError(f"Missing required field '{name}'")

    if not isinstance(shift.start_time, datetime) or not isinstance(shift.end_time, datetime):
        raise ValidationError("start_time and end_time must be timestamps")

    # 1. Ordering and duration
    if shift.end_time <= shift.start_time:
        raise ValidationError(
            f"end_time {shift.end_time.isoformat()} must be after start_time {shift.start_time.isoformat()}"
        )
    duration = shift.end_time - shift.start_time
    if duration > timedelta(hours=max_shift_hours):
        hours = duration.total_seconds() / 3600
        raise ValidationError(f"Shift lasts {hours:.2f}h, longer than the {max_shift_hours}h limit")

    # 2. Type and assignee agree
    if shift.type not in ShiftType.ALL:
        raise ValidationError(f"Unknown shift type {shift.type!r}")
    if shift.type == ShiftType.ASSIGNED and not shift.user_id:
        raise ValidationError("Assigned shifts need a user_id")
    if shift.type == ShiftType.OPEN and shift.user_id:
        raise ValidationError("Open shifts cannot have a user_id")

    # 3. Known status
    if shift.status not in ShiftStatus.ALL:
        raise ValidationError(f"Unknown shift status {shift.status!r}")

    # 4. Coordinates, when given, are on the globe
    if shift.latitude is not None and not -90 <= shift.latitude <= 90:
        raise ValidationError(f"Latitude out of range: {shift.latitude}")
    if shift.longitude is not None and not -180 <= shift.longitude <= 180:
        raise ValidationError(f"Longitude out of range: {shift.longitude}")


def intervals_overlap(a_start: datetime, a_end: datetime, b_start: datetime, b_end: datetime) -> bool:
    """Half-open interval overlap; back-to-back shifts do not overlap."""
    return a_start < b_end and b_start < a_end


def find_overlap(
    start: datetime,
    end: datetime,
    booked: Iterable[Tuple[datetime, datetime]],
) -> Optional[Tuple[datetime, datetime]]:
    """Return the first booked interval overlapping ``[start, end)``, if any."""
    for b_start, b_end in booked:
        if intervals_overlap(start, end, b_start, b_end):
            return b_start, b_end
    return None


def can_transition(current: str, new: str) -> bool:
    return current == new or new in ALLOWED_TRANSITIONS.get(current, ())


def assert_transition(current: str, new: str) -> None:
    """
    Raises:
        ValidationError: If ``new`` is not a known status
        ConflictError: If the state machine does not allow the move
    """
    if new not in ShiftStatus.ALL:
        raise ValidationError(f"Unknown shift status {new!r}")
    if not can_transition(current, new):
        raise ConflictError(f"Cannot move shift from '{current}' to '{new}'")
