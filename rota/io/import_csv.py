"""CSV import of role templates."""

from __future__ import annotations

from pathlib import Path
from typing import List, Optional

import pandas as pd
from sqlalchemy.orm import Session

from rota.domain.models import Role, RoleShift
from rota.domain.repositories import RoleRepository
from rota.errors import ValidationError

REQUIRED_COLUMNS = ["company_id", "role_title", "pattern_name", "start_day", "end_day", "start_time", "end_time"]


def _split_list(value) -> List[str]:
    """``a;b;c`` -> ["a", "b", "c"]; blank cells give an empty list."""
    if not isinstance(value, str) or not value.strip():
        return []
    return [item.strip() for item in value.split(";") if item.strip()]


def _optional(row: pd.Series, column: str) -> Optional[str]:
    value = row.get(column)
    return str(value).strip() if pd.notna(value) and str(value).strip() else None


def import_roles_csv(session: Session, csv_path: str | Path) -> int:
    """
    Import role templates from CSV into database.

    One row per RoleShift pattern; rows sharing ``company_id`` and
    ``role_title`` become one Role. ``qualified_users`` and ``tasks`` are
    semicolon-separated lists. Roles whose title already exists for the
    company are skipped.

    Args:
        session: Database session
        csv_path: Path to roles CSV

    Returns:
        Number of roles imported
    """
    df = pd.read_csv(csv_path, dtype=str)

    # Normalize column names
    df.columns = df.columns.str.lower().str.strip()
    missing = [col for col in REQUIRED_COLUMNS if col not in df.columns]
    if missing:
        raise ValidationError(f"Roles CSV is missing columns: {', '.join(missing)}")

    imported = 0
    for (company_id, title), rows in df.groupby(["company_id", "role_title"], sort=False):
        existing = {role.title for role in RoleRepository.get_all(session, company_id)}
        if title in existing:
            print(f"[WARN] Role '{title}' already exists for company {company_id}, skipping")
            continue

        first = rows.iloc[0]
        qualified: List[str] = []
        for value in rows.get("qualified_users", pd.Series(dtype=str)):
            for staff_id in _split_list(value):
                if staff_id not in qualified:
                    qualified.append(staff_id)

        role = Role(
            company_id=company_id,
            title=title,
            description=_optional(first, "role_description"),
            qualified_users=qualified,
            is_active=True,
        )
        for _, row in rows.iterrows():
            required = _optional(row, "required_staff")
            try:
                required_staff = int(required) if required else 1
            except ValueError:
                raise ValidationError(f"Invalid required_staff {required!r} for role '{title}'") from None
            role.shifts.append(
                RoleShift(
                    name=str(row["pattern_name"]).strip(),
                    start_day=str(row["start_day"]).strip().lower(),
                    end_day=str(row["end_day"]).strip().lower(),
                    start_time=str(row["start_time"]).strip(),
                    end_time=str(row["end_time"]).strip(),
                    required_staff=required_staff,
                    location_id=_optional(row, "location_id"),
                    tasks=_split_list(row.get("tasks")),
                    is_active=True,
                )
            )

        RoleRepository.create(session, role)
        imported += 1

    print(f"[INFO] Imported {imported} roles from {csv_path}")
    return imported
