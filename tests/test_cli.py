"""End-to-end tests for the command-line interface."""

import json

import pandas as pd
import pytest

from rota.cli import main

ROLES_CSV = """company_id,role_title,pattern_name,start_day,end_day,start_time,end_time,required_staff,qualified_users
acme,Barista,Monday morning,monday,monday,07:00,15:00,2,alice;bob
acme,Barista,Friday night,friday,saturday,22:00,02:00,1,bob;cara
acme,Manager,Tuesday,tuesday,tuesday,09:00,17:00,1,dana
"""

WEEK = ["--period", "custom", "--start-date", "2025-03-03", "--end-date", "2025-03-09"]


@pytest.fixture
def cli(tmp_path):
    db_url = f"sqlite:///{tmp_path / 'rota.db'}"
    csv_file = tmp_path / "roles.csv"
    csv_file.write_text(ROLES_CSV)

    def run(*argv):
        main(["--db", db_url, *argv])

    run("init-db")
    run("import-roles", str(csv_file))
    return run


@pytest.mark.integration
def test_preview_writes_nothing(cli, capsys):
    capsys.readouterr()
    cli("preview", "--company", "acme", *WEEK, "--json")
    out = capsys.readouterr().out
    response = json.loads(out[out.index("\n{\n") + 1:])

    assert response["stats"]["total_shifts"] == 4
    assert response["stats"]["filled_shifts"] == 4

    cli("summary", "--company", "acme", "--from", "2025-03-03", "--to", "2025-03-09")
    assert "No shifts." in capsys.readouterr().out


@pytest.mark.integration
def test_generate_then_summarize_export_and_delete(cli, capsys, tmp_path):
    cli("generate", "--company", "acme", *WEEK, "--algorithm", "coverage")
    out = capsys.readouterr().out
    assert "[OK] Created 4 shifts, 4 filled (100% coverage)" in out

    cli("summary", "--company", "acme", "--from", "2025-03-03", "--to", "2025-03-09")
    out = capsys.readouterr().out
    assert "Shifts: 4 (0 open)" in out
    assert "Total hours: 28.00" in out

    export = tmp_path / "shifts.csv"
    cli("export", "--company", "acme", "--from", "2025-03-03", "--to", "2025-03-09", "--out", str(export))
    assert len(pd.read_csv(export)) == 4

    cli("bulk-delete", "--company", "acme", "--week", "2025-W10")
    assert "[OK] Deleted 4 shifts" in capsys.readouterr().out


@pytest.mark.integration
def test_second_generate_reports_failures(cli, capsys):
    cli("generate", "--company", "acme", *WEEK)
    capsys.readouterr()

    cli("generate", "--company", "acme", *WEEK)
    out = capsys.readouterr().out
    assert "[WARN] 4 of 4 shifts failed to persist" in out
    assert "[OK] Created 0 shifts" in out


def test_bulk_delete_needs_a_scope(cli):
    with pytest.raises(SystemExit):
        cli("bulk-delete", "--company", "acme")
