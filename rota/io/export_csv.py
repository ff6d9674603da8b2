"""CSV export of shifts."""

from __future__ import annotations

from datetime import datetime
from pathlib import Path
from typing import Optional, Union

import pandas as pd
from sqlalchemy.orm import Session

from rota.domain.repositories import ShiftRepository

EXPORT_COLUMNS = [
    "id",
    "company_id",
    "title",
    "start_time",
    "end_time",
    "duration_hours",
    "type",
    "user_id",
    "status",
    "location",
    "role_id",
    "role_shift_id",
    "seat",
    "week_key",
    "actual_start",
    "actual_end",
]


def export_shifts_csv(
    session: Session,
    csv_path: str | Path,
    start: Union[str, datetime],
    end: Union[str, datetime],
    company_id: Optional[str] = None,
    user_id: Optional[str] = None,
) -> int:
    """
    Export shifts starting in ``[start, end)`` to CSV.

    Returns:
        Number of shifts exported
    """
    shifts = ShiftRepository.query(session, start, end, company_id=company_id, user_id=user_id)
    rows = []
    for shift in shifts:
        row = {col: getattr(shift, col) for col in EXPORT_COLUMNS if col != "duration_hours"}
        row["duration_hours"] = round(shift.duration_hours, 2)
        rows.append(row)

    df = pd.DataFrame(rows, columns=EXPORT_COLUMNS)
    for col in ("start_time", "end_time", "actual_start", "actual_end"):
        df[col] = pd.to_datetime(df[col]).dt.strftime("%Y-%m-%dT%H:%M:%S")
    df.to_csv(csv_path, index=False)

    print(f"[INFO] Exported {len(df)} shifts to {csv_path}")
    return len(df)
