"""Roster statistics built with pandas."""

from __future__ import annotations

from typing import Iterable, List

import pandas as pd

from rota.domain.models import Shift, ShiftStatus, ShiftType

SHIFT_COLUMNS = ["id", "user_id", "type", "status", "location", "role_id", "start_time", "end_time"]


def shifts_frame(shifts: Iterable[Shift]) -> pd.DataFrame:
    """One row per shift with derived ``date`` and ``hours`` columns."""
    rows = [{col: getattr(shift, col) for col in SHIFT_COLUMNS} for shift in shifts]
    df = pd.DataFrame(rows, columns=SHIFT_COLUMNS)
    if df.empty:
        return df.assign(date=pd.Series(dtype=str), hours=pd.Series(dtype=float))
    df["start_time"] = pd.to_datetime(df["start_time"])
    df["end_time"] = pd.to_datetime(df["end_time"])
    df["date"] = df["start_time"].dt.strftime("%Y-%m-%d")
    df["hours"] = (df["end_time"] - df["start_time"]).dt.total_seconds() / 3600.0
    return df


def summarize_shifts(shifts: Iterable[Shift]) -> dict:
    """
    Headline numbers for a set of shifts. Cancelled shifts are ignored.

    Returns:
        Dict with total_shifts, total_hours, scheduled_days, staff_scheduled,
        open_shifts and hours_by_staff
    """
    df = shifts_frame(shifts)
    if not df.empty:
        df = df[df["status"] != ShiftStatus.CANCELLED]
    if df.empty:
        return {
            "total_shifts": 0,
            "total_hours": 0.0,
            "scheduled_days": 0,
            "staff_scheduled": 0,
            "open_shifts": 0,
            "hours_by_staff": {},
        }

    assigned = df[df["type"] == ShiftType.ASSIGNED]
    hours = assigned.groupby("user_id")["hours"].sum().sort_values(ascending=False)
    return {
        "total_shifts": int(len(df)),
        "total_hours": round(float(df["hours"].sum()), 2),
        "scheduled_days": int(df["date"].nunique()),
        "staff_scheduled": int(assigned["user_id"].nunique()),
        "open_shifts": int((df["type"] == ShiftType.OPEN).sum()),
        "hours_by_staff": {user_id: round(float(h), 2) for user_id, h in hours.items()},
    }


def format_summary(summary: dict) -> str:
    if not summary["total_shifts"]:
        return "No shifts."
    lines = [
        f"Shifts: {summary['total_shifts']} ({summary['open_shifts']} open)",
        f"Total hours: {summary['total_hours']:.2f}",
        f"Days with shifts: {summary['scheduled_days']}",
        f"Staff scheduled: {summary['staff_scheduled']}",
    ]
    if summary["hours_by_staff"]:
        lines.append("")
        lines.append("Hours per staff member:")
        lines.append(pd.Series(summary["hours_by_staff"]).to_string())
    return "\n".join(lines)


def staff_workload(candidates) -> List[dict]:
    """
    Per-staff load of a scheduling run's filled candidates.

    Args:
        candidates: CandidateShift objects (only filled ones count)

    Returns:
        Rows sorted by total hours (descending) then user id
    """
    rows = [
        {
            "user_id": c.assigned.id,
            "user_name": c.assigned.name,
            "hours": c.duration_hours,
            "role_name": c.role_name,
        }
        for c in candidates
        if c.is_filled
    ]
    if not rows:
        return []

    df = pd.DataFrame(rows)
    roles = {user_id: sorted(set(group)) for user_id, group in df.groupby("user_id")["role_name"]}
    grouped = (
        df.groupby(["user_id", "user_name"])
        .agg(
            total_hours=("hours", "sum"),
            scheduled_shifts=("hours", "size"),
        )
        .reset_index()
        .sort_values(["total_hours", "user_id"], ascending=[False, True])
    )
    return [
        {
            "user_id": row.user_id,
            "user_name": row.user_name,
            "total_hours": round(float(row.total_hours), 2),
            "scheduled_shifts": int(row.scheduled_shifts),
            "assigned_roles": roles[row.user_id],
        }
        for row in grouped.itertuples(index=False)
    ]
