"""AutoScheduler - materializes role patterns into seats and fills them with an algorithm."""

from __future__ import annotations

import time
import uuid
from collections import defaultdict
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from typing import Any, Dict, List, Optional, Tuple, Type

from sqlalchemy.orm import Session

from rota.config import RotaConfig
from rota.domain.models import Role
from rota.domain.repositories import RoleRepository, ShiftRepository
from rota.errors import ConflictError, PartialFailure, ValidationError
from rota.services.access import Actor, require_admin
from rota.services.providers import (
    LeaveCalendar,
    LocationRegistry,
    NoLeave,
    RoleStaffDirectory,
    StaffDirectory,
    StaticLocationRegistry,
)
from rota.services.timeplan import calculate_shift_hours, occurrences, task_description
from rota.summary import staff_workload
from rota.timewindow import SCHEDULE_PERIODS, parse_day, resolve_period, to_utc, utc_now

from .balanced import BalancedAlgorithm
from .base import AssignmentContext, BaseAlgorithm, CandidateShift
from .coverage import CoverageAlgorithm
from .simple import SimpleAlgorithm

ALGORITHMS: Dict[str, Type[BaseAlgorithm]] = {
    "simple": SimpleAlgorithm,
    "balanced": BalancedAlgorithm,
    "coverage": CoverageAlgorithm,
}


def get_algorithm(name: str) -> BaseAlgorithm:
    """Instantiate an algorithm by name."""
    try:
        return ALGORITHMS[name]()
    except KeyError:
        raise ValidationError(f"Unknown algorithm {name!r}; expected one of {', '.join(ALGORITHMS)}") from None


@dataclass
class AutoScheduleRequest:
    """
    Parameters of one scheduling run.

    ``start_date``/``end_date`` are inclusive calendar days and are only
    accepted together with ``period="custom"``.
    """

    period: str = "this_week"
    algorithm: str = "balanced"
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    auto_create_shifts: bool = False
    excluded_staff_ids: List[str] = field(default_factory=list)
    max_shifts_per_staff: Optional[int] = None
    notes: Optional[str] = None

    def __post_init__(self):
        if self.period not in SCHEDULE_PERIODS:
            raise ValidationError(f"Unknown period {self.period!r}; expected one of {', '.join(SCHEDULE_PERIODS)}")
        if self.algorithm not in ALGORITHMS:
            raise ValidationError(f"Unknown algorithm {self.algorithm!r}; expected one of {', '.join(ALGORITHMS)}")
        if self.start_date is not None:
            self.start_date = parse_day(self.start_date)
        if self.end_date is not None:
            self.end_date = parse_day(self.end_date)
        if self.period == "custom":
            if self.start_date is None or self.end_date is None:
                raise ValidationError("Period 'custom' requires both start_date and end_date")
            if self.end_date < self.start_date:
                raise ValidationError(f"end_date {self.end_date} is before start_date {self.start_date}")
        elif self.start_date is not None or self.end_date is not None:
            raise ValidationError("start_date/end_date are only allowed with period 'custom'")
        if self.max_shifts_per_staff is not None:
            if isinstance(self.max_shifts_per_staff, bool) or not isinstance(self.max_shifts_per_staff, int):
                raise ValidationError("max_shifts_per_staff must be an integer")
            if self.max_shifts_per_staff < 0:
                raise ValidationError("max_shifts_per_staff cannot be negative")
        self.excluded_staff_ids = [str(staff_id) for staff_id in self.excluded_staff_ids or []]
        self.auto_create_shifts = bool(self.auto_create_shifts)

    @classmethod
    def from_dict(cls, data: Dict[str, Any], default_algorithm: str = "balanced") -> "AutoScheduleRequest":
        """Build a request from a JSON-style dict, rejecting unknown keys."""
        known = set(cls.__dataclass_fields__)
        unknown = set(data) - known
        if unknown:
            raise ValidationError(f"Unknown request fields: {', '.join(sorted(unknown))}")
        values = dict(data)
        values.setdefault("algorithm", default_algorithm)
        return cls(**values)

    def date_range(self, now: Optional[datetime] = None, max_days: Optional[int] = None) -> Tuple[datetime, datetime]:
        return resolve_period(self.period, now, self.start_date, self.end_date, max_days)


@dataclass
class AutoScheduleResponse:
    """Result of a preview or commit run."""

    period: str
    algorithm_used: str
    start: datetime
    end: datetime
    shifts: List[CandidateShift]
    stats: Dict[str, Any]
    warnings: List[str] = field(default_factory=list)
    suggestions: List[str] = field(default_factory=list)
    staff_workload: List[dict] = field(default_factory=list)
    request_id: str = field(default_factory=lambda: uuid.uuid4().hex)
    generated_at: datetime = field(default_factory=utc_now)
    generation_time_ms: int = 0
    message: str = ""
    notes: Optional[str] = None
    committed: bool = False
    created_shifts: List[str] = field(default_factory=list)
    failed: List[dict] = field(default_factory=list)
    partial_failure: Optional[PartialFailure] = None

    @property
    def days_count(self) -> int:
        return (self.end - self.start).days

    def to_dict(self) -> dict:
        data = {
            "request_id": self.request_id,
            "generated_at": self.generated_at.isoformat(),
            "period": self.period,
            "algorithm_used": self.algorithm_used,
            "date_range": {
                "start": self.start.date().isoformat(),
                "end": (self.end - timedelta(days=1)).date().isoformat(),
                "days_count": self.days_count,
            },
            "shifts": [candidate.to_dict() for candidate in self.shifts],
            "stats": dict(self.stats),
            "staff_workload": list(self.staff_workload),
            "warnings": list(self.warnings),
            "suggestions": list(self.suggestions),
            "generation_time_ms": self.generation_time_ms,
            "message": self.message,
            "notes": self.notes,
        }
        if self.committed:
            data["created_shifts"] = list(self.created_shifts)
            data["failed"] = list(self.failed)
            data["partial_failure"] = self.partial_failure is not None
        return data


def coverage_percentage(filled: int, total: int) -> int:
    """Whole percent, halves rounded up (12.5 -> 13)."""
    if not total:
        return 0
    return (200 * filled + total) // (2 * total)


def build_stats(candidates: List[CandidateShift], filled_ids: Optional[set] = None) -> Dict[str, Any]:
    """
    Coverage statistics for a run.

    Args:
        candidates: Every candidate seat of the run
        filled_ids: When given, only these candidate ids count as filled
            (commit passes the ids that were actually persisted with an assignee)
    """
    if filled_ids is None:
        filled = [c for c in candidates if c.is_filled]
    else:
        filled = [c for c in candidates if c.is_filled and c.shift_id in filled_ids]
    total = len(candidates)
    return {
        "total_shifts": total,
        "filled_shifts": len(filled),
        "unfilled_shifts": total - len(filled),
        "coverage_percentage": coverage_percentage(len(filled), total),
        "total_staff_hours": round(sum(c.duration_hours for c in filled), 2),
    }


class AutoScheduler:
    """
    Two-phase scheduling: ``preview`` never writes, ``commit`` persists.

    Both phases run the same pipeline: resolve the period, materialize one
    candidate per seat of every active RoleShift occurrence, then let the
    selected algorithm fill seats against qualified, available staff.
    """

    def __init__(
        self,
        cfg: Optional[RotaConfig] = None,
        directory: Optional[StaffDirectory] = None,
        leave: Optional[LeaveCalendar] = None,
        locations: Optional[LocationRegistry] = None,
    ):
        self.cfg = cfg or RotaConfig()
        self.directory = directory or RoleStaffDirectory()
        self.leave = leave or NoLeave()
        self.locations = locations or StaticLocationRegistry()

    def materialize(
        self,
        roles: List[Role],
        company_id: str,
        start: datetime,
        end: datetime,
    ) -> Tuple[List[CandidateShift], List[str]]:
        """
        Expand active role patterns into candidate seats for ``[start, end)``.

        Returns:
            (candidates in chronological order, warnings)
        """
        candidates: List[CandidateShift] = []
        warnings: List[str] = []

        for role in roles:
            if not role.is_active:
                continue
            for pattern in role.shifts:
                if not pattern.is_active:
                    continue
                label = f"{role.title}: {pattern.name}"
                try:
                    hours = calculate_shift_hours(pattern)
                except ValidationError as e:
                    warnings.append(f"Skipped pattern {label}: {e}")
                    continue
                if not 0 < hours <= self.cfg.max_shift_hours:
                    warnings.append(f"Skipped pattern {label}: duration of {hours:g}h is not allowed")
                    continue

                location = None
                if pattern.location_id:
                    location = self.locations.get(pattern.location_id)
                    if location is None:
                        warnings.append(f"Unknown location {pattern.location_id} for {label}")

                description = task_description(pattern)
                for occ_start, occ_end in occurrences(pattern, start, end):
                    for seat in range(1, (pattern.required_staff or 1) + 1):
                        candidates.append(
                            CandidateShift(
                                company_id=company_id,
                                role_id=role.id,
                                role_name=role.title,
                                role_shift_id=pattern.id,
                                seat=seat,
                                title=label,
                                description=description,
                                start_time=occ_start,
                                end_time=occ_end,
                                location=location,
                            )
                        )

        return BaseAlgorithm.chronological(candidates), warnings

    def _existing_bookings(
        self,
        session: Session,
        staff_ids: List[str],
        start: datetime,
        end: datetime,
    ) -> Dict[str, List[Tuple[datetime, datetime]]]:
        # Widen the window so overnight shifts straddling the range edges count
        margin = timedelta(hours=self.cfg.max_shift_hours)
        bookings = defaultdict(list)
        for shift in ShiftRepository.get_bookings(session, staff_ids, start - margin, end + margin):
            bookings[shift.user_id].append((shift.start_time, shift.end_time))
        return bookings

    def plan(
        self,
        session: Session,
        company_id: str,
        request: AutoScheduleRequest,
        now: Optional[datetime] = None,
    ) -> AutoScheduleResponse:
        """Run the read-only part of the pipeline and build a response."""
        started = time.perf_counter()
        now = to_utc(now) if now else utc_now()
        start, end = request.date_range(now, self.cfg.max_schedule_days)
        algorithm = get_algorithm(request.algorithm)

        roles = RoleRepository.get_active(session, company_id)
        candidates, warnings = self.materialize(roles, company_id, start, end)

        qualified = {role.id: self.directory.qualified_staff(role) for role in roles}
        staff_ids = sorted({staff.id for staff_list in qualified.values() for staff in staff_list})
        max_per_staff = request.max_shifts_per_staff
        if max_per_staff is None:
            max_per_staff = self.cfg.max_shifts_per_staff

        context = AssignmentContext(
            qualified,
            leave=self.leave,
            bookings=self._existing_bookings(session, staff_ids, start, end),
            excluded=request.excluded_staff_ids,
            max_shifts_per_staff=max_per_staff,
        )
        algorithm.assign(candidates, context)

        warnings.extend(self._unfilled_warnings(candidates, qualified))
        suggestions = self._suggestions(candidates, qualified)
        stats = build_stats(candidates)

        response = AutoScheduleResponse(
            period=request.period,
            algorithm_used=algorithm.get_name(),
            start=start,
            end=end,
            shifts=candidates,
            stats=stats,
            warnings=warnings,
            suggestions=suggestions,
            staff_workload=staff_workload(candidates),
            generated_at=now,
            notes=request.notes,
        )
        response.generation_time_ms = int((time.perf_counter() - started) * 1000)
        response.message = (
            f"Generated {stats['total_shifts']} shifts, {stats['filled_shifts']} filled "
            f"({stats['coverage_percentage']}% coverage)"
        )
        return response

    @staticmethod
    def _unfilled_warnings(candidates: List[CandidateShift], qualified) -> List[str]:
        warnings = []
        seen = set()
        for candidate in candidates:
            if candidate.is_filled:
                continue
            key = (candidate.role_id, candidate.date)
            if key in seen:
                continue
            seen.add(key)
            day = candidate.date.isoformat()
            if not qualified.get(candidate.role_id):
                warnings.append(f"No qualified staff for Role {candidate.role_name} on Date {day}")
            else:
                warnings.append(f"Not enough available staff for Role {candidate.role_name} on Date {day}")
        return warnings

    @staticmethod
    def _suggestions(candidates: List[CandidateShift], qualified) -> List[str]:
        suggestions = []
        for candidate in candidates:
            if candidate.is_filled:
                continue
            if not qualified.get(candidate.role_id):
                text = f"Consider hiring for Role {candidate.role_name}"
            else:
                text = f"Consider adding qualified staff to Role {candidate.role_name}"
            if text not in suggestions:
                suggestions.append(text)
        return suggestions

    def preview(
        self,
        session: Session,
        actor: Actor,
        request: AutoScheduleRequest,
        now: Optional[datetime] = None,
    ) -> AutoScheduleResponse:
        """Dry run: nothing is written to the database."""
        print(f"[INFO] Preview {request.period} with '{request.algorithm}' for company {actor.company_id}")
        response = self.plan(session, actor.company_id, request, now)
        print(f"[OK] {response.message}")
        return response

    def commit(
        self,
        session: Session,
        actor: Actor,
        request: AutoScheduleRequest,
        now: Optional[datetime] = None,
    ) -> AutoScheduleResponse:
        """
        Plan and persist shift by shift (admin only).

        A failing shift is recorded and the batch continues; ``stats`` then
        reports what was actually stored.

        Raises:
            AuthorizationError: Caller is not an admin
            ValidationError: Malformed request
        """
        require_admin(actor, "commit schedules")
        print(f"[INFO] Commit {request.period} with '{request.algorithm}' for company {actor.company_id}")
        response = self.plan(session, actor.company_id, request, now)
        response.committed = True

        persisted_filled = set()
        succeeded: List[str] = []
        for candidate in response.shifts:
            if not candidate.is_filled and not self.cfg.persist_unfilled_as_open:
                continue
            shift = candidate.to_shift(created_by=actor.user_id)
            try:
                ShiftRepository.create(session, shift, self.cfg.max_shift_hours)
            except (ValidationError, ConflictError) as e:
                candidate.error = str(e)
                response.failed.append({"shift_id": candidate.shift_id, "error": str(e)})
                print(f"[WARN] Could not persist {candidate.title} at {candidate.start_time.isoformat()}: {e}")
                continue
            succeeded.append(candidate.shift_id)
            if candidate.is_filled:
                persisted_filled.add(candidate.shift_id)

        response.created_shifts = succeeded
        response.stats = build_stats(response.shifts, persisted_filled)
        response.stats["persisted_shifts"] = len(succeeded)
        response.staff_workload = staff_workload(
            [c for c in response.shifts if c.shift_id in persisted_filled]
        )
        if response.failed:
            response.partial_failure = PartialFailure(succeeded, response.failed)
            print(f"[WARN] {len(response.failed)} of {len(response.shifts)} shifts failed to persist")

        response.message = (
            f"Created {len(succeeded)} shifts, {response.stats['filled_shifts']} filled "
            f"({response.stats['coverage_percentage']}% coverage)"
        )
        print(f"[OK] {response.message}")
        return response

    def run(
        self,
        session: Session,
        actor: Actor,
        request: AutoScheduleRequest,
        now: Optional[datetime] = None,
    ) -> AutoScheduleResponse:
        """Preview or commit depending on ``request.auto_create_shifts``."""
        if request.auto_create_shifts:
            return self.commit(session, actor, request, now)
        return self.preview(session, actor, request, now)
