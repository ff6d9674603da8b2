"""Base algorithm interface and the shared assignment state."""

from __future__ import annotations

import uuid
from abc import ABC, abstractmethod
from collections import defaultdict
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Dict, Iterable, List, Mapping, Optional, Set, Tuple

from rota.domain.models import Shift, ShiftStatus, ShiftType
from rota.services.constraints import find_overlap
from rota.services.providers import LeaveCalendar, Location, NoLeave, StaffMember


@dataclass
class CandidateShift:
    """One seat of one RoleShift occurrence, before (or without) persistence."""

    company_id: str
    role_id: str
    role_name: str
    role_shift_id: str
    seat: int
    title: str
    start_time: datetime
    end_time: datetime
    description: Optional[str] = None
    location: Optional[Location] = None
    shift_id: str = field(default_factory=lambda: uuid.uuid4().hex)
    assigned: Optional[StaffMember] = None
    assignment_reason: Optional[str] = None
    error: Optional[str] = None

    @property
    def duration_hours(self) -> float:
        return round((self.end_time - self.start_time).total_seconds() / 3600, 2)

    @property
    def is_filled(self) -> bool:
        return self.assigned is not None

    @property
    def date(self) -> date:
        return self.start_time.date()

    def sort_key(self) -> Tuple:
        return (self.start_time, self.role_name, self.seat, self.shift_id)

    def to_shift(self, created_by: Optional[str] = None) -> Shift:
        """Build the Shift record; unfilled seats become open shifts."""
        loc = self.location
        return Shift(
            id=self.shift_id,
            company_id=self.company_id,
            title=self.title,
            description=self.description,
            start_time=self.start_time,
            end_time=self.end_time,
            type=ShiftType.ASSIGNED if self.assigned else ShiftType.OPEN,
            user_id=self.assigned.id if self.assigned else None,
            status=ShiftStatus.SCHEDULED if self.assigned else ShiftStatus.OPEN,
            location=loc.name if loc else None,
            location_address=loc.address if loc else None,
            latitude=loc.latitude if loc else None,
            longitude=loc.longitude if loc else None,
            role_id=self.role_id,
            role_shift_id=self.role_shift_id,
            seat=self.seat,
            created_by=created_by,
        )

    def to_dict(self) -> dict:
        data = {
            "shift_id": self.shift_id,
            "title": self.title,
            "role_id": self.role_id,
            "role_name": self.role_name,
            "start_time": self.start_time.isoformat(),
            "end_time": self.end_time.isoformat(),
            "duration_hours": self.duration_hours,
            "day_of_week": self.start_time.strftime("%A").lower(),
            "location_name": self.location.name if self.location else None,
            "is_filled": self.is_filled,
            "user_id": self.assigned.id if self.assigned else None,
            "user_name": self.assigned.name if self.assigned else None,
            "assignment_reason": self.assignment_reason,
        }
        if self.error:
            data["error"] = self.error
        return data


class AssignmentContext:
    """
    Eligibility rules and running state for one scheduling run.

    A staff member is eligible for a candidate when they are qualified for its
    role, not excluded, not on approved leave that day, not booked on an
    overlapping shift (stored or assigned earlier in this run) and below the
    per-run cap.
    """

    def __init__(
        self,
        qualified: Mapping[str, List[StaffMember]],
        leave: Optional[LeaveCalendar] = None,
        bookings: Optional[Mapping[str, Iterable[Tuple[datetime, datetime]]]] = None,
        excluded: Iterable[str] = (),
        max_shifts_per_staff: Optional[int] = None,
    ):
        self.qualified = {role_id: list(staff) for role_id, staff in qualified.items()}
        self.leave = leave or NoLeave()
        self.bookings: Dict[str, List[Tuple[datetime, datetime]]] = defaultdict(list)
        for staff_id, intervals in (bookings or {}).items():
            self.bookings[staff_id].extend(intervals)
        self.excluded: Set[str] = set(excluded)
        self.max_shifts_per_staff = max_shifts_per_staff
        self.counts: Dict[str, int] = defaultdict(int)

    def qualified_for(self, candidate: CandidateShift) -> List[StaffMember]:
        return self.qualified.get(candidate.role_id, [])

    def is_eligible(self, staff: StaffMember, candidate: CandidateShift, check_bookings: bool = True) -> bool:
        if staff.id in self.excluded:
            return False
        if self.max_shifts_per_staff is not None and self.counts[staff.id] >= self.max_shifts_per_staff:
            return False
        if self.leave.is_on_leave(staff.id, candidate.date):
            return False
        if check_bookings and find_overlap(candidate.start_time, candidate.end_time, self.bookings[staff.id]):
            return False
        return True

    def eligible(self, candidate: CandidateShift) -> List[StaffMember]:
        """Eligible staff for a candidate, in directory order."""
        return [staff for staff in self.qualified_for(candidate) if self.is_eligible(staff, candidate)]

    def book(self, candidate: CandidateShift, staff: StaffMember, reason: str) -> None:
        candidate.assigned = staff
        candidate.assignment_reason = reason
        self.bookings[staff.id].append((candidate.start_time, candidate.end_time))
        self.counts[staff.id] += 1


class BaseAlgorithm(ABC):
    """
    Abstract base class for assignment algorithms.

    An algorithm receives every candidate seat of a run and fills as many as
    it can through ``context.book``. Seats it cannot fill stay unassigned.
    """

    name: str | None = None  # Override in subclasses (e.g., "simple", "balanced")

    @abstractmethod
    def assign(self, candidates: List[CandidateShift], context: AssignmentContext) -> None:
        """
        Fill candidate seats in place.

        Args:
            candidates: Materialized seats for the whole run
            context: Eligibility rules and running counts
        """
        pass

    @staticmethod
    def chronological(candidates: List[CandidateShift]) -> List[CandidateShift]:
        return sorted(candidates, key=CandidateShift.sort_key)

    def get_name(self) -> str:
        return self.name or "unknown"
