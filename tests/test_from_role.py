"""Tests for creating shifts from a role pattern."""

import datetime as dt

import pytest

from conftest import COMPANY, at
from rota.domain.models import Shift, ShiftStatus, ShiftType
from rota.errors import AuthorizationError, NotFoundError, PartialFailure, ValidationError
from rota.services.access import Actor
from rota.services.from_role import RoleShiftCreator, next_pattern_day
from rota.services.providers import Location, StaticLocationRegistry

MONDAY = dt.date(2025, 3, 3)


@pytest.fixture
def creator():
    return RoleShiftCreator()


@pytest.fixture
def morning(make_role):
    role = make_role("Barista", ["alice", "bob", "cara", "dan"], [("Monday", "monday", "monday", "09:00", "17:00", 2)])
    return role.shifts[0]


def test_next_pattern_day():
    assert next_pattern_day("monday", MONDAY) == MONDAY
    assert next_pattern_day("friday", MONDAY) == dt.date(2025, 3, 7)
    # Tuesday rolls forward to the following Monday
    assert next_pattern_day("monday", dt.date(2025, 3, 4)) == dt.date(2025, 3, 10)


def test_create_overnight_pattern(db_session, admin, creator, make_role):
    role = make_role("Security", ["alice", "bob"], [("Night", "friday", "saturday", "22:00", "06:00", 2)])

    result = creator.create_from_pattern(db_session, admin, role.shifts[0].id, MONDAY, ["alice", "bob"])

    assert result.day == dt.date(2025, 3, 7)
    assert result.partial_failure is None
    assert [(s.user_id, s.seat) for s in result.created] == [("alice", 1), ("bob", 2)]
    for shift in result.created:
        assert shift.start_time == at("2025-03-07", "22:00")
        assert shift.end_time == at("2025-03-08", "06:00")
        assert shift.type == ShiftType.ASSIGNED
        assert shift.status == ShiftStatus.SCHEDULED
        assert shift.title == "Security: Night"
        assert shift.role_id == role.id
        assert shift.created_by == "boss"
    assert db_session.query(Shift).count() == 2


def test_double_booked_staff_is_collected(db_session, admin, creator, morning, make_shift):
    make_shift(at("2025-03-03", "08:00"), at("2025-03-03", "12:00"), user_id="alice")

    result = creator.create_from_pattern(db_session, admin, morning.id, MONDAY, ["alice", "bob"])

    assert [s.user_id for s in result.created] == ["bob"]
    assert result.created[0].seat == 2
    assert len(result.failed) == 1
    assert result.failed[0]["user_id"] == "alice"
    assert "already booked" in result.failed[0]["error"]
    assert isinstance(result.partial_failure, PartialFailure)
    assert result.partial_failure.succeeded == [result.created[0].id]
    assert db_session.query(Shift).filter(Shift.role_shift_id == morning.id).count() == 1


def test_filled_seats_are_collected(db_session, admin, creator, morning):
    creator.create_from_pattern(db_session, admin, morning.id, MONDAY, ["alice", "bob"])

    result = creator.create_from_pattern(db_session, admin, morning.id, MONDAY, ["cara", "dan"])

    assert result.created == []
    assert [f["user_id"] for f in result.failed] == ["cara", "dan"]
    assert all("Seat already filled" in f["error"] for f in result.failed)
    assert db_session.query(Shift).count() == 2


@pytest.mark.parametrize(
    "actor",
    [Actor("alice", COMPANY), Actor("boss", "other", is_admin=True)],
)
def test_only_admins_of_the_company_may_create(db_session, creator, morning, actor):
    with pytest.raises(AuthorizationError):
        creator.create_from_pattern(db_session, actor, morning.id, MONDAY, ["alice", "bob"])
    assert db_session.query(Shift).count() == 0


@pytest.mark.parametrize(
    "staff",
    [["alice"], ["alice", "bob", "cara"], ["alice", "alice"], ["alice", "erin"]],
)
def test_invalid_staff_selection(db_session, admin, creator, morning, staff):
    with pytest.raises(ValidationError):
        creator.create_from_pattern(db_session, admin, morning.id, MONDAY, staff)
    assert db_session.query(Shift).count() == 0


def test_inactive_or_unknown_pattern(db_session, admin, creator, morning):
    morning.is_active = False
    db_session.commit()
    with pytest.raises(ValidationError):
        creator.create_from_pattern(db_session, admin, morning.id, MONDAY, ["alice", "bob"])

    with pytest.raises(NotFoundError):
        creator.create_from_pattern(db_session, admin, "missing", MONDAY, ["alice", "bob"])


def test_location_comes_from_registry(db_session, admin, morning):
    morning.location_id = "shop"
    db_session.commit()
    registry = StaticLocationRegistry([Location("shop", "Shop", "1 High St", 51.5, -0.12, company_id=COMPANY)])

    result = RoleShiftCreator(locations=registry).create_from_pattern(
        db_session, admin, morning.id, MONDAY, ["alice", "bob"]
    )

    assert {s.location for s in result.created} == {"Shop"}
    assert result.created[0].location_address == "1 High St"
    assert result.created[0].latitude == 51.5
