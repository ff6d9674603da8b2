"""Tests for service layer (constraints, timeplan, access)."""

import datetime as dt

import pytest

from rota.domain.models import RoleShift, ShiftStatus
from rota.errors import AuthorizationError, ConflictError, ValidationError
from rota.services.access import Actor, require_admin, require_same_company
from rota.services.constraints import assert_transition, can_transition, find_overlap, intervals_overlap
from rota.services.timeplan import (
    calculate_shift_hours,
    occurrences,
    parse_time_string,
    task_description,
    weekday_index,
)


def _pattern(start_day="monday", end_day="monday", start="07:00", end="15:00", tasks=None):
    return RoleShift(
        name="pattern",
        start_day=start_day,
        end_day=end_day,
        start_time=start,
        end_time=end,
        tasks=tasks or [],
    )


def test_parse_time_string():
    """Test time string parsing."""
    t = parse_time_string("07:30")
    assert t.hour == 7
    assert t.minute == 30

    for bad in ("7.30", "25:00", "", None):
        with pytest.raises(ValidationError):
            parse_time_string(bad)


def test_weekday_index():
    assert weekday_index("Monday") == 0
    assert weekday_index(" sunday ") == 6
    with pytest.raises(ValidationError):
        weekday_index("funday")


def test_calculate_shift_hours():
    """Test shift duration calculation."""
    assert calculate_shift_hours(_pattern(start="07:00", end="15:00")) == 8.0
    assert calculate_shift_hours(_pattern(start="05:00", end="12:30")) == 7.5

    # Overnight into the next day
    assert calculate_shift_hours(_pattern("friday", "saturday", "22:00", "06:00")) == 8.0
    # Same day with the end before the start is not a valid pattern
    assert calculate_shift_hours(_pattern(start="22:00", end="06:00")) < 0


def test_occurrences_in_range():
    pattern = _pattern("friday", "saturday", "22:00", "06:00")
    # 2025-03-03 is a Monday; two Fridays fall inside two weeks
    found = occurrences(pattern, dt.datetime(2025, 3, 3), dt.datetime(2025, 3, 17))
    assert found == [
        (dt.datetime(2025, 3, 7, 22), dt.datetime(2025, 3, 8, 6)),
        (dt.datetime(2025, 3, 14, 22), dt.datetime(2025, 3, 15, 6)),
    ]


def test_occurrences_respect_half_open_range():
    pattern = _pattern(start="09:00", end="17:00")
    assert occurrences(pattern, dt.datetime(2025, 3, 3, 10), dt.datetime(2025, 3, 10, 9)) == []
    assert len(occurrences(pattern, dt.datetime(2025, 3, 3, 9), dt.datetime(2025, 3, 10, 9, 1))) == 2


def test_task_description():
    assert task_description(_pattern(tasks=["open up", {"task": "stock milk"}, {"other": 1}])) == "open up\nstock milk"
    assert task_description(_pattern()) is None


def test_intervals_overlap_is_half_open():
    nine, noon, five = dt.datetime(2025, 3, 3, 9), dt.datetime(2025, 3, 3, 12), dt.datetime(2025, 3, 3, 17)
    assert intervals_overlap(nine, five, noon, five)
    assert not intervals_overlap(nine, noon, noon, five)
    assert find_overlap(noon, five, [(nine, noon)]) is None
    assert find_overlap(nine, five, [(nine, noon)]) == (nine, noon)


def test_transition_table():
    assert can_transition(ShiftStatus.SCHEDULED, ShiftStatus.IN_PROGRESS)
    assert can_transition(ShiftStatus.LATE, ShiftStatus.IN_PROGRESS)
    assert can_transition(ShiftStatus.IN_PROGRESS, ShiftStatus.COMPLETED_OVERTIME)
    assert not can_transition(ShiftStatus.COMPLETED, ShiftStatus.CANCELLED)
    assert not can_transition(ShiftStatus.CANCELLED, ShiftStatus.SCHEDULED)

    with pytest.raises(ConflictError):
        assert_transition(ShiftStatus.OPEN, ShiftStatus.COMPLETED)
    with pytest.raises(ValidationError):
        assert_transition(ShiftStatus.OPEN, "paused")


def test_access_guards():
    admin = Actor("boss", "acme", is_admin=True)
    staff = Actor("alice", "acme")

    require_admin(admin, "do things")
    with pytest.raises(AuthorizationError):
        require_admin(staff, "do things")

    require_same_company(staff, "acme")
    with pytest.raises(AuthorizationError):
        require_same_company(staff, "other")
