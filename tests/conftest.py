"""Pytest configuration and shared fixtures."""

import datetime as dt

import pytest

from rota.domain.models import Role, RoleShift, Shift
from rota.domain.repositories import DatabaseManager, RoleRepository, ShiftRepository
from rota.services.access import Actor

COMPANY = "acme"


def pytest_configure(config):
    """Configure pytest."""
    # Add custom markers
    config.addinivalue_line(
        "markers", "integration: marks tests as integration tests (deselect with '-m \"not integration\"')"
    )
    config.addinivalue_line(
        "markers", "slow: marks tests as slow (deselect with '-m \"not slow\"')"
    )


@pytest.fixture
def db():
    """In-memory database with all tables."""
    manager = DatabaseManager("sqlite:///:memory:")
    manager.create_tables()
    return manager


@pytest.fixture
def db_session(db):
    """Create in-memory database session for testing."""
    session = db.get_session()
    yield session
    session.close()


@pytest.fixture
def admin():
    return Actor(user_id="boss", company_id=COMPANY, is_admin=True)


@pytest.fixture
def make_shift(db_session):
    """Persist a shift; ``user_id`` decides assigned vs open unless ``type`` is given."""

    def _make(start, end, user_id=None, company_id=COMPANY, **fields):
        shift = Shift(
            company_id=company_id,
            title=fields.pop("title", "Shift"),
            start_time=start,
            end_time=end,
            user_id=user_id,
            **fields,
        )
        return ShiftRepository.create(db_session, shift)

    return _make


@pytest.fixture
def make_role(db_session):
    """
    Persist a role with patterns given as
    ``(name, start_day, end_day, start_time, end_time, required_staff)`` tuples.
    """

    def _make(title, qualified, patterns, company_id=COMPANY, **fields):
        role = Role(company_id=company_id, title=title, qualified_users=list(qualified), **fields)
        for name, start_day, end_day, start_hm, end_hm, required in patterns:
            role.shifts.append(
                RoleShift(
                    name=name,
                    start_day=start_day,
                    end_day=end_day,
                    start_time=start_hm,
                    end_time=end_hm,
                    required_staff=required,
                )
            )
        return RoleRepository.create(db_session, role)

    return _make


def at(day, hm="00:00"):
    """``at("2025-03-03", "09:00")`` -> naive UTC datetime."""
    hours, minutes = (int(x) for x in hm.split(":"))
    return dt.datetime.combine(dt.date.fromisoformat(day), dt.time(hours, minutes))
