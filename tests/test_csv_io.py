"""Tests for CSV import/export functionality."""

import pandas as pd
import pytest

from rota.domain.repositories import RoleRepository
from rota.errors import ValidationError
from rota.io.export_csv import EXPORT_COLUMNS, export_shifts_csv
from rota.io.import_csv import import_roles_csv

from conftest import COMPANY, at

ROLES_CSV = """company_id,role_title,role_description,pattern_name,start_day,end_day,start_time,end_time,required_staff,qualified_users,location_id,tasks
acme,Barista,Coffee bar,Weekday morning,monday,monday,07:00,15:00,2,alice;bob,,open up;stock milk
acme,Barista,Coffee bar,Friday night,friday,saturday,22:00,02:00,,bob;cara,loc-1,
acme,Manager,,Weekday,tuesday,tuesday,09:00,17:00,1,dana,,
"""


def test_import_roles_csv(db_session, tmp_path):
    """Test importing role templates from CSV."""
    csv_file = tmp_path / "roles.csv"
    csv_file.write_text(ROLES_CSV)

    count = import_roles_csv(db_session, csv_file)
    assert count == 2

    roles = {role.title: role for role in RoleRepository.get_all(db_session, COMPANY)}
    barista = roles["Barista"]
    assert barista.description == "Coffee bar"
    assert barista.qualified_users == ["alice", "bob", "cara"]
    assert [p.name for p in barista.shifts] == ["Weekday morning", "Friday night"]

    morning, night = barista.shifts
    assert morning.required_staff == 2
    assert morning.tasks == ["open up", "stock milk"]
    assert morning.location_id is None
    assert night.required_staff == 1
    assert (night.start_day, night.end_day) == ("friday", "saturday")
    assert night.location_id == "loc-1"
    assert night.tasks == []

    assert roles["Manager"].description is None


def test_import_skips_existing_roles(db_session, tmp_path, capsys):
    csv_file = tmp_path / "roles.csv"
    csv_file.write_text(ROLES_CSV)
    import_roles_csv(db_session, csv_file)

    assert import_roles_csv(db_session, csv_file) == 0
    assert "[WARN]" in capsys.readouterr().out
    assert len(RoleRepository.get_all(db_session)) == 2


def test_import_rejects_missing_columns(db_session, tmp_path):
    csv_file = tmp_path / "roles.csv"
    csv_file.write_text("company_id,role_title\nacme,Barista\n")
    with pytest.raises(ValidationError):
        import_roles_csv(db_session, csv_file)


def test_export_shifts_csv(db_session, tmp_path, make_shift):
    """Test exporting shifts to CSV."""
    make_shift(at("2025-03-03", "09:00"), at("2025-03-03", "17:30"), user_id="alice", title="Barista")
    make_shift(at("2025-03-04", "22:00"), at("2025-03-05", "02:00"), title="Night")
    make_shift(at("2025-03-12", "09:00"), at("2025-03-12", "17:00"), title="Out of range")

    out = tmp_path / "shifts.csv"
    count = export_shifts_csv(db_session, out, at("2025-03-03"), at("2025-03-10"), company_id=COMPANY)
    assert count == 2

    df = pd.read_csv(out)
    assert list(df.columns) == EXPORT_COLUMNS
    assert list(df["title"]) == ["Barista", "Night"]
    assert list(df["duration_hours"]) == [8.5, 4.0]
    assert df.loc[0, "start_time"] == "2025-03-03T09:00:00"
    assert df.loc[1, "type"] == "open"
    assert df.loc[0, "week_key"] == "2025-W10"


def test_export_filtered_by_user(db_session, tmp_path, make_shift):
    make_shift(at("2025-03-03", "09:00"), at("2025-03-03", "17:00"), user_id="alice")
    make_shift(at("2025-03-03", "09:00"), at("2025-03-03", "17:00"), user_id="bob")

    out = tmp_path / "alice.csv"
    assert export_shifts_csv(db_session, out, at("2025-03-03"), at("2025-03-04"), user_id="alice") == 1
    assert list(pd.read_csv(out)["user_id"]) == ["alice"]
